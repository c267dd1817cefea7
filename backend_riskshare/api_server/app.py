"""
FastAPI/ASGI application entrypoint.

Storage comes from RISKSHARE_STORE_DIR (directory) or memory when unset.
Run with: uvicorn backend_riskshare.api_server.app:app --host 0.0.0.0 --port 26843
"""

from backend_riskshare.api_server.server import create_app, store_from_settings
from backend_riskshare.config import get_settings

app = create_app(store_from_settings(get_settings()))

__all__ = ["app"]
