"""
Core utilities - exceptions and the injectable clock shared by the
analysis engine, the exchange layer and the periodic worker.
"""
