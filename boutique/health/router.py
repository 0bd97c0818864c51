import logging
import redis
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

import boutique.infra.redis_client as redis_client
from boutique.utils.rate_limit import rate_limit_health_info

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/health", tags=["Health"])

@router.get("")
def health_root():
    return {"ok": True}

@router.get("/redis")
def health_redis(request: Request):
    """Joignabilité du store de révocation + état du rate limiting."""
    rate_limit = rate_limit_health_info(request)
    try:
        redis_client.get_redis().ping()
    except redis.RedisError as e:
        logger.warning("health.redis ping failed: %s", e)
        return JSONResponse({"ok": False, "error": e.__class__.__name__, "rate_limit": rate_limit}, status_code=503)
    return {"ok": True, "rate_limit": rate_limit}
