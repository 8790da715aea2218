"""
Registre central des routers.
- API: payments (/api/stripe), orders (/api/orders)
- Health: health_router (/health)
"""
from fastapi import FastAPI
from helldivers_backend.payments import views as payments_views
from helldivers_backend.orders import views as orders_views
from helldivers_backend.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    app.include_router(payments_views.router)
    app.include_router(orders_views.router)
    # Health & monitoring
    app.include_router(health_router)
