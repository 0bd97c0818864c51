from fastapi import Request, HTTPException, Depends
from fastapi.responses import Response
from typing import Optional, Dict, Any, Callable
from boutique.config import COOKIE_SECURE, ACCESS_TOKEN_TTL_SECONDS, REFRESH_TOKEN_TTL_SECONDS
from boutique.auth.tokens import TokenError

ACCESS_COOKIE_NAME = "accessToken"
REFRESH_COOKIE_NAME = "refreshToken"

def set_access_cookie(response: Response, access_token: str):
    response.set_cookie(
        key=ACCESS_COOKIE_NAME,
        value=access_token,
        httponly=True,
        secure=COOKIE_SECURE,
        samesite="strict",
        max_age=ACCESS_TOKEN_TTL_SECONDS,
        path="/",
    )

def set_auth_cookies(response: Response, access_token: str, refresh_token: str):
    set_access_cookie(response, access_token)
    response.set_cookie(
        key=REFRESH_COOKIE_NAME,
        value=refresh_token,
        httponly=True,
        secure=COOKIE_SECURE,
        samesite="strict",
        max_age=REFRESH_TOKEN_TTL_SECONDS,
        path="/",
    )

def clear_auth_cookies(response: Response):
    response.delete_cookie(ACCESS_COOKIE_NAME, path="/")
    response.delete_cookie(REFRESH_COOKIE_NAME, path="/")

def extract_access_token(request: Request) -> Optional[str]:
    # Hybride: priorité au Bearer, fallback cookie
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        if token:
            return token
    return request.cookies.get(ACCESS_COOKIE_NAME) or None

def get_current_user(request: Request) -> Dict[str, Any]:
    """
    Authentifie la requête (cookie accessToken ou Bearer).
    - 401 avec une raison distincte: jeton absent, expiré, invalide, utilisateur introuvable.
    - En cas de succès, attache l'identité {id, name, email, role} à request.state.user.
    """
    token = extract_access_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Non authentifié - aucun access token fourni")

    # Délégué au service Auth (import tardif: le service dépend de la couche données)
    from boutique.auth import service as auth_service
    try:
        user = auth_service.get_user_from_token(token)
    except TokenError as e:
        if e.code == "expired":
            raise HTTPException(status_code=401, detail="Non authentifié - access token expiré")
        raise HTTPException(status_code=401, detail="Non authentifié - access token invalide")
    if not user.get("id"):
        raise HTTPException(status_code=401, detail="Utilisateur introuvable")
    request.state.user = user
    return user

def require_user(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return user

def require_role(role: str) -> Callable[..., Dict[str, Any]]:
    """Fabrique de dépendance: 403 sauf si le rôle de l'identité authentifiée correspond."""
    def _require(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        if user.get("role") != role:
            raise HTTPException(status_code=403, detail="Accès interdit")
        return user
    return _require

require_admin = require_role("admin")
