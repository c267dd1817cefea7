"""
API server package - the shared message store peers push to and pull from.

Run with: uvicorn backend_riskshare.api_server.app:app --host 0.0.0.0 --port 26843
"""
