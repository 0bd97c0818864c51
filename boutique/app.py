# module boutique.app
from fastapi import FastAPI

from boutique.app_setup.lifespan import lifespan
from boutique.app_setup.middlewares import (
    register_basic_middlewares,
    register_security_middleware,
    register_no_cache_middleware,
)
from boutique.app_setup.exceptions import register_exception_handlers
from boutique.app_setup.routers import register_routers

def create_app() -> FastAPI:
    """
    Crée et configure l’instance FastAPI de l’application.
    Étapes et ordre:
      1) register_basic_middlewares: CORS, TrustedHost.
      2) register_security_middleware: en-têtes de sécurité.
      3) register_no_cache_middleware: pas de cache sur auth/coupons/payments.
      4) register_exception_handlers: ServiceError -> {detail, code}, HTTPException -> {detail}.
      5) register_routers: auth, coupons, payments, health.
    """
    app = FastAPI(title="Boutique API", lifespan=lifespan)
    register_basic_middlewares(app)
    register_security_middleware(app)
    register_no_cache_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    return app

# App globale
app = create_app()
