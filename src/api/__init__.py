"""
Announcement board backend package.

The FastAPI application lives in ``src.api.main`` (``app`` for servers,
``create_app`` for explicitly configured instances).
"""
