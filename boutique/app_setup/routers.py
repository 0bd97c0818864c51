"""
Registre central des routers (API v1, health).
- API v1: auth, coupons, payments
- Health: health_router
"""
from fastapi import FastAPI
from boutique.auth.views import api_router as auth_api_router
from boutique.coupons.views import router as coupons_router
from boutique.payments import views as payments_views
from boutique.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    # API v1
    app.include_router(auth_api_router)
    app.include_router(coupons_router)
    app.include_router(payments_views.router)
    # Health & monitoring
    app.include_router(health_router)
