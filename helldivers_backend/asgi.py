"""
ASGI entrypoint: expose `app` pour les process managers / déploiements.

- En production, uvicorn (ou gunicorn avec workers uvicorn) importe `helldivers_backend.asgi:app`.
- Toute la configuration FastAPI est centralisée dans helldivers_backend.app_setup.factory.
"""

from helldivers_backend.app import app
