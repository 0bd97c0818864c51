from typing import Optional, Dict, Any
import logging
import bcrypt

from boutique.errors import DuplicateKey
from boutique.auth import tokens
from boutique.auth.models import AuthResponse, public_user
from . import repository

logger = logging.getLogger(__name__)

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")

def check_password(password: str, password_hash: Optional[str]) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # hash corrompu en base
        logger.warning("auth.service.check_password: hash bcrypt illisible")
        return False

def _session_for(user: Dict[str, Any]) -> AuthResponse:
    access_token, refresh_token = tokens.issue(str(user.get("id")))
    return AuthResponse(
        True,
        user=public_user(user),
        session={"access_token": access_token, "refresh_token": refresh_token},
    )

# --- Cas d’usage Auth exposés ---

def signup(name: str, email: str, password: str) -> AuthResponse:
    """Inscription:
    - Refuse un email déjà utilisé (lecture préalable + contrainte unique en base)
    - Hash bcrypt du mot de passe, rôle 'customer' par défaut
    - Émet la paire de jetons (le refresh token est enregistré dans le store)
    """
    email = (email or "").strip().lower()
    if repository.get_user_by_email(email):
        return AuthResponse(False, error="Utilisateur existe déjà")
    try:
        user = repository.create_user(name=name.strip(), email=email, password_hash=hash_password(password))
    except DuplicateKey:
        return AuthResponse(False, error="Utilisateur existe déjà")
    return _session_for(user)

def login(email: str, password: str) -> AuthResponse:
    """Connexion: vérifie le mot de passe et émet une nouvelle paire de jetons.
    Une nouvelle connexion invalide le refresh token de la session précédente.
    """
    email = (email or "").strip().lower()
    user = repository.get_user_by_email(email)
    if not user or not check_password(password, user.get("password_hash")):
        return AuthResponse(False, error="Identifiants invalides")
    return _session_for(user)

def logout(refresh_token: Optional[str]) -> None:
    """Révoque le refresh token courant s'il est présent (idempotent)."""
    if refresh_token:
        tokens.revoke(refresh_token)

def refresh(refresh_token: Optional[str]) -> str:
    """Rotation de l'access token à partir du refresh token (TokenError si refusé)."""
    if not refresh_token:
        raise tokens.TokenError("Aucun refresh token fourni", code="invalid")
    return tokens.rotate_access(refresh_token)

def get_user_from_token(access_token: str) -> Dict[str, Any]:
    """Vérifie l'access token et charge le profil: {id, name, email, role}.
    Retourne {} si l'utilisateur n'existe plus.
    """
    user_id = tokens.verify_access(access_token)
    row = repository.get_user_by_id(user_id)
    if not row:
        return {}
    return public_user(row)
