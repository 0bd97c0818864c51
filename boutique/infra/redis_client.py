"""
Client Redis du store de révocation (une valeur de refresh token courante par utilisateur).
- Instance unique par process, timeouts courts pour ne jamais bloquer une requête.
"""
from typing import Optional
import redis
from boutique.config import REDIS_URL, STORE_TIMEOUT_SECONDS

_redis: Optional[redis.Redis] = None

def get_redis() -> redis.Redis:
    global _redis
    if _redis is None:
        _redis = redis.from_url(
            REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=STORE_TIMEOUT_SECONDS,
            socket_connect_timeout=STORE_TIMEOUT_SECONDS,
        )
    return _redis
