from typing import Dict, Any
from fastapi import Request, Response, HTTPException
import os
import time
import hashlib
from boutique.utils.security import ACCESS_COOKIE_NAME

def _user_key_from_request(req: Request) -> str:
    # Priorité: cookie d'accès (hashé) puis IP
    token = req.cookies.get(ACCESS_COOKIE_NAME)
    path = req.url.path
    if token:
        h = hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]
        return f"user:{h}:{path}"
    ip = req.client.host if req.client else "local"
    return f"ip:{ip}:{path}"

def optional_rate_limit(times: int, seconds: int):
    async def _dep(request: Request, response: Response):
        # Fallback mémoire (dev/tests) si demandé
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            now = time.time()
            key = _user_key_from_request(request)
            store = getattr(request.app.state, "_rl_store", {})
            # Entrées (fenêtre, hits): une clé sans hit dans sa fenêtre est retirée
            for k in [k for k, (window, ts) in store.items() if not ts or now - ts[-1] >= window]:
                del store[k]
            hits = [t for t in store.get(key, (seconds, []))[1] if now - t < seconds]
            if len(hits) >= times:
                store[key] = (seconds, hits)
                request.app.state._rl_store = store
                raise HTTPException(status_code=429, detail="Too Many Requests")
            hits.append(now)
            store[key] = (seconds, hits)
            request.app.state._rl_store = store
            return

        # Respecter le flag global posé par le lifespan
        if getattr(request.app.state, "rate_limit_enabled", None) is not True:
            return

        from fastapi_limiter.depends import RateLimiter
        async def _identifier(req: Request) -> str:
            return _user_key_from_request(req)
        return await RateLimiter(times=times, seconds=seconds, identifier=_identifier)(request, response)
    return _dep

def rate_limit_health_info(request: Request) -> Dict[str, Any]:
    enabled = getattr(request.app.state, "rate_limit_enabled", None)
    limiter_ready = False
    try:
        from fastapi_limiter import FastAPILimiter
        limiter_ready = getattr(FastAPILimiter, "redis", None) is not None
    except ImportError:
        limiter_ready = False
    return {
        "enabled": (bool(enabled) if enabled is not None else None),
        "ready": limiter_ready,
        "backend": "redis" if limiter_ready else None,
    }
