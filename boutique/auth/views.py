import logging
from typing import Dict, Any
from fastapi import APIRouter, HTTPException, Depends, Request, Response

from boutique.auth.tokens import TokenError
from boutique.utils.rate_limit import optional_rate_limit
from boutique.utils.security import (
    require_user,
    set_auth_cookies,
    set_access_cookie,
    clear_auth_cookies,
    REFRESH_COOKIE_NAME,
)
from .models import SignupRequest, LoginRequest
from .service import (
    signup as svc_signup,
    login as svc_login,
    logout as svc_logout,
    refresh as svc_refresh,
)

logger = logging.getLogger(__name__)

# --- API Router (/api/v1/auth) ---

api_router = APIRouter(prefix="/api/v1/auth", tags=["Auth API"])

@api_router.post("/signup", status_code=201, dependencies=[Depends(optional_rate_limit(times=5, seconds=60))])
def api_signup(req: SignupRequest, response: Response):
    """Inscription (API JSON).
    - 400 si l'email est déjà utilisé.
    - En cas de succès, pose les cookies accessToken/refreshToken et retourne le profil.
    """
    result = svc_signup(req.name, req.email, req.password)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error or "Inscription impossible")
    set_auth_cookies(response, result.access_token, result.refresh_token)
    return result.user

@api_router.post("/login", dependencies=[Depends(optional_rate_limit(times=5, seconds=60))])
def api_login(req: LoginRequest, response: Response):
    """Connexion (API JSON).
    - 400 si les identifiants sont invalides.
    - Pose les cookies et retourne le profil; la session précédente de l'utilisateur
      perd son refresh token (une seule session par utilisateur).
    """
    result = svc_login(req.email, req.password)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error or "Identifiants invalides")
    set_auth_cookies(response, result.access_token, result.refresh_token)
    return result.user

@api_router.post("/logout")
def api_logout(request: Request, response: Response):
    """Déconnexion: révoque le refresh token côté serveur puis efface les cookies.
    Un refresh token illisible n'empêche pas la déconnexion côté navigateur.
    """
    refresh_token = request.cookies.get(REFRESH_COOKIE_NAME)
    try:
        svc_logout(refresh_token)
    except TokenError as e:
        logger.warning("auth.logout refresh token rejeté (%s)", e.code)
    clear_auth_cookies(response)
    return {"message": "Déconnexion réussie"}

@api_router.post("/refresh-token")
def api_refresh_token(request: Request, response: Response):
    """Rotation de l'access token à partir du cookie refreshToken.
    - 401 avec code expired | invalid | revoked (via le handler ServiceError).
    """
    access_token = svc_refresh(request.cookies.get(REFRESH_COOKIE_NAME))
    set_access_cookie(response, access_token)
    return {"message": "Access token renouvelé"}

@api_router.get("/profile")
def api_profile(user: Dict[str, Any] = Depends(require_user)) -> Dict[str, Any]:
    """Profil de l'utilisateur authentifié."""
    return user
