from typing import Any, Optional
import logging
import httpx
from postgrest.exceptions import APIError
from supabase import create_client, Client, ClientOptions
from boutique.config import SUPABASE_URL, SUPABASE_SERVICE_KEY, STORE_TIMEOUT_SECONDS
from boutique.errors import DuplicateKey, PersistenceConflict, StoreUnavailable

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"

_service_supabase: Optional[Client] = None

def get_service_supabase() -> Client:
    """
    Client Supabase service-role (bypass RLS), partagé par tout le process.
    Les tables users, coupons et orders ne sont écrites que côté serveur.
    """
    global _service_supabase
    if not SUPABASE_SERVICE_KEY:
        raise RuntimeError("SUPABASE_SERVICE_KEY manquant pour get_service_supabase()")
    if _service_supabase is None:
        _service_supabase = create_client(
            SUPABASE_URL,
            SUPABASE_SERVICE_KEY,
            options=ClientOptions(postgrest_client_timeout=STORE_TIMEOUT_SECONDS),
        )
    return _service_supabase

def _api_error_code(e: APIError) -> Optional[str]:
    code = getattr(e, "code", None)
    if not code and e.args and isinstance(e.args[0], dict):
        code = e.args[0].get("code")
    return str(code) if code else None

def execute(query: Any, action: str) -> Any:
    """
    Exécute une requête PostgREST et traduit les échecs:
    - 23505 (violation d'unicité) -> DuplicateKey
    - autre erreur PostgREST -> PersistenceConflict
    - timeout / erreur réseau -> StoreUnavailable (rejouable)
    """
    try:
        return query.execute()
    except APIError as e:
        if _api_error_code(e) == UNIQUE_VIOLATION:
            raise DuplicateKey(f"{action}: doublon")
        logger.exception("store %s failed", action)
        raise PersistenceConflict(f"{action}: {e}")
    except httpx.HTTPError as e:
        logger.exception("store %s unreachable", action)
        raise StoreUnavailable(f"{action}: store indisponible ({e.__class__.__name__})")

def first_row(res: Any) -> Optional[dict]:
    rows = getattr(res, "data", None) or []
    if isinstance(rows, dict):
        return rows
    return rows[0] if rows else None
