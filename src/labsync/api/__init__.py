"""
HTTP API (FastAPI). Run with `labsync-api` or `uvicorn labsync.api.main:app`.
"""
