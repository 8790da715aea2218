"""
Factory d’application pour les entrypoints (helldivers_backend.asgi, tests).
Ordonne les étapes d’initialisation de manière lisible et testable.
"""
from fastapi import FastAPI
from .lifespan import lifespan
from .middlewares import register_basic_middlewares, register_security_middleware
from .exceptions import register_exception_handlers
from .routes import register_routes
from .routers import register_routers

def create_app() -> FastAPI:
    """
    Construit l’app FastAPI avec le lifespan et enregistre:
      - middlewares (CORS, TrustedHost, en-têtes de sécurité)
      - gestionnaires d’exceptions et routes simples
      - routers (paiements, commandes, health)
    """
    app = FastAPI(title="HelldiversBoost Checkout API", version="1.0.0", lifespan=lifespan)
    app.state.local_rate_limiters = {}
    register_basic_middlewares(app)
    register_security_middleware(app)
    register_exception_handlers(app)
    register_routes(app)
    register_routers(app)
    return app
