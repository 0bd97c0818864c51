"""
Middlewares transverses de l’application.
- register_basic_middlewares: CORS et TrustedHost.
- register_security_middleware: en-têtes de sécurité (API JSON, pas de CSP pour pages).
- register_no_cache_middleware: empêche la mise en cache des réponses d'auth et de paiement.
Les cookies d'auth sont samesite=strict: pas de jeton CSRF séparé.
"""
from fastapi import Request, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware

from boutique.config import COOKIE_SECURE, CORS_ORIGINS, ALLOWED_HOSTS

NO_CACHE_PREFIXES = ("/api/v1/auth", "/api/v1/payments", "/api/v1/coupons")

def register_basic_middlewares(app: FastAPI) -> None:
    """
    - CORSMiddleware: autorise les origines définies (dev/prod), credentials pour les cookies.
    - TrustedHostMiddleware: limite les hôtes acceptés (défense host header).
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=ALLOWED_HOSTS + ["*"] if "*" in CORS_ORIGINS else ALLOWED_HOSTS,
    )

def register_security_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
        if COOKIE_SECURE:
            response.headers.setdefault("Strict-Transport-Security", "max-age=63072000; includeSubDomains; preload")
        return response

def register_no_cache_middleware(app: FastAPI) -> None:
    """Ajoute Cache-Control/Pragma/Expires sur les routes qui posent des cookies ou exposent des coupons."""
    @app.middleware("http")
    async def no_cache_for_protected(request: Request, call_next):
        response = await call_next(request)
        if request.url.path.startswith(NO_CACHE_PREFIXES):
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
            response.headers["Pragma"] = "no-cache"
            response.headers["Expires"] = "0"
        return response
