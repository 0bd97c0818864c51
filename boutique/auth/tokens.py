"""
Service de jetons: paire access (courte durée) + refresh (longue durée, révocable côté serveur).

Politique « une session par utilisateur »: le store Redis garde une seule valeur de refresh
token courante sous refresh_token:<user_id>. Un nouvel issue() écrase la précédente, ce qui
rend l'ancien refresh token inutilisable immédiatement, même s'il est encore signé et non expiré.
"""
from datetime import datetime, timedelta, timezone
from typing import Tuple
import logging
import secrets

import jwt
import redis

from boutique import config
from boutique.errors import Unauthorized, StoreUnavailable
import boutique.infra.redis_client as redis_client

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
REFRESH_KEY_PREFIX = "refresh_token:"


class TokenError(Unauthorized):
    """Échec de vérification d'un jeton: code in {"expired", "invalid", "revoked"}."""

    def __init__(self, message: str, code: str = "invalid"):
        super().__init__(message, code=code)


def refresh_key(user_id: str) -> str:
    return f"{REFRESH_KEY_PREFIX}{user_id}"


def _secret(name: str) -> str:
    value = getattr(config, name, "")
    if not value:
        raise RuntimeError(f"{name} manquant")
    return value


def _encode(user_id: str, secret: str, ttl_seconds: int) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "userId": str(user_id),
        "iat": now,
        "exp": now + timedelta(seconds=ttl_seconds),
        # deux jetons émis dans la même seconde doivent rester distincts
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def _decode(token: str, secret: str, verify_exp: bool = True) -> str:
    if not token:
        raise TokenError("Jeton manquant", code="invalid")
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            options={"verify_exp": verify_exp, "require": ["exp", "userId"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Jeton expiré", code="expired")
    except jwt.InvalidTokenError:
        raise TokenError("Jeton invalide", code="invalid")
    user_id = str(payload.get("userId") or "")
    if not user_id:
        raise TokenError("Jeton invalide", code="invalid")
    return user_id


def issue(user_id: str) -> Tuple[str, str]:
    """
    Émet la paire (access_token, refresh_token) et enregistre le refresh token
    dans le store avec un TTL aligné sur sa validité (écrase toute valeur précédente).
    """
    access_token = _encode(user_id, _secret("ACCESS_TOKEN_SECRET"), config.ACCESS_TOKEN_TTL_SECONDS)
    refresh_token = _encode(user_id, _secret("REFRESH_TOKEN_SECRET"), config.REFRESH_TOKEN_TTL_SECONDS)
    try:
        redis_client.get_redis().set(refresh_key(user_id), refresh_token, ex=config.REFRESH_TOKEN_TTL_SECONDS)
    except redis.RedisError as e:
        logger.exception("auth.tokens.issue store failure user_id=%s", user_id)
        raise StoreUnavailable(f"Store de révocation indisponible: {e}")
    return access_token, refresh_token


def verify_access(token: str) -> str:
    """Vérifie un access token et retourne le user_id (TokenError expired|invalid sinon)."""
    return _decode(token, _secret("ACCESS_TOKEN_SECRET"))


def rotate_access(refresh_token: str) -> str:
    """
    Émet un nouvel access token à partir d'un refresh token.
    - Vérifie signature et expiration (TokenError expired|invalid).
    - Exige l'égalité avec la valeur courante du store; sinon (y compris absence) -> revoked.
    """
    user_id = _decode(refresh_token, _secret("REFRESH_TOKEN_SECRET"))
    try:
        stored = redis_client.get_redis().get(refresh_key(user_id))
    except redis.RedisError as e:
        logger.exception("auth.tokens.rotate_access store failure user_id=%s", user_id)
        raise StoreUnavailable(f"Store de révocation indisponible: {e}")
    if not stored or not secrets.compare_digest(str(stored), refresh_token):
        raise TokenError("Refresh token révoqué", code="revoked")
    return _encode(user_id, _secret("ACCESS_TOKEN_SECRET"), config.ACCESS_TOKEN_TTL_SECONDS)


def revoke(refresh_token: str) -> None:
    """
    Supprime la valeur stockée pour l'utilisateur du refresh token (idempotent).
    La signature reste vérifiée; l'expiration est ignorée (la clé a alors déjà expiré).
    """
    user_id = _decode(refresh_token, _secret("REFRESH_TOKEN_SECRET"), verify_exp=False)
    try:
        redis_client.get_redis().delete(refresh_key(user_id))
    except redis.RedisError as e:
        logger.exception("auth.tokens.revoke store failure user_id=%s", user_id)
        raise StoreUnavailable(f"Store de révocation indisponible: {e}")
