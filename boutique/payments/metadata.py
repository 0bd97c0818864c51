"""
Désérialisation des métadonnées Stripe (userId, couponCode, products).
"""
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

# module boutique.payments.metadata
def _products_json(meta: Dict[str, Any]) -> Optional[str]:
    if meta.get("products"):
        return meta.get("products")
    try:
        count = int(meta.get("products_chunks") or 0)
    except (TypeError, ValueError):
        return None
    if count <= 0:
        return None
    parts = [meta.get(f"products_{i}") for i in range(count)]
    if any(p is None for p in parts):
        return None
    return "".join(parts)

def extract_metadata_from_session(session: Dict[str, Any]) -> Tuple[str, str, Optional[List[Dict[str, Any]]]]:
    """
    Extrait (user_id, coupon_code, products) depuis une session Stripe Checkout.
    - products est None si l'instantané est absent ou illisible (à journaliser par l'appelant).
    """
    meta = (session or {}).get("metadata") or {}
    user_id = str(meta.get("userId") or "")
    coupon_code = str(meta.get("couponCode") or "")
    raw = _products_json(meta)
    if not raw:
        return user_id, coupon_code, None
    try:
        products = json.loads(raw)
    except ValueError:
        logger.warning("payments.metadata products JSON illisible session=%s", (session or {}).get("id"))
        return user_id, coupon_code, None
    if not isinstance(products, list):
        return user_id, coupon_code, None
    return user_id, coupon_code, [p for p in products if isinstance(p, dict)]

def session_from_event(event: Dict[str, Any]) -> Dict[str, Any]:
    """Retourne event.data.object (la session Checkout) d'un événement webhook."""
    return ((event or {}).get("data") or {}).get("object") or {}
