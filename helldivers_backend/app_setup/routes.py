"""
Routes simples (hors routers).
- /api/ping: vérification rapide de disponibilité, message configurable (PING_MESSAGE).
"""
from fastapi import FastAPI

import helldivers_backend.config as config

def register_routes(app: FastAPI) -> None:
    @app.get("/api/ping", tags=["Health"])
    def ping():
        return {"message": config.PING_MESSAGE}
