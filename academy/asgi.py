"""
ASGI entrypoint: expose `app` pour les process managers (ex: uvicorn academy.asgi:app).
"""
from academy.app import app

__all__ = ["app"]
