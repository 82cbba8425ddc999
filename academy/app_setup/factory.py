"""
Factory d'application pour les entrypoints (academy.asgi, academy.__main__).
"""
from fastapi import FastAPI

from .lifespan import lifespan
from .middlewares import register_basic_middlewares, register_no_cache_middleware, register_security_middleware
from .exceptions import register_exception_handlers
from .routers import register_routers

def create_app() -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - middlewares de base, sécurité/CSRF, no-cache
      - gestionnaire d'exceptions
      - tous les routers (API v1, health)
    """
    app = FastAPI(title="Academy API", lifespan=lifespan)
    register_basic_middlewares(app)
    register_security_middleware(app)
    register_no_cache_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    return app
