"""
Accès aux données pour la feature 'payments' (table orders).
Contrainte UNIQUE sur stripe_session_id: une session ne produit jamais deux commandes.
"""
from typing import Any, Dict, List, Optional
import logging
import boutique.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

ORDER_COLUMNS = "id, user_id, products, total_amount, stripe_session_id, created_at"

# module boutique.payments.repository
def _table():
    return supabase_client.get_service_supabase().table("orders")

def insert_order(
    *,
    user_id: str,
    products: List[Dict[str, Any]],
    total_amount: int,
    stripe_session_id: str,
) -> Dict[str, Any]:
    """
    Insère une commande via service-role (webhook et confirmation client).
    - total_amount en unités mineures (amount_total de la session).
    - DuplicateKey si la session a déjà été réglée (à traiter par l'appelant).
    """
    row = {
        "user_id": user_id,
        "products": products,
        "total_amount": total_amount,
        "stripe_session_id": stripe_session_id,
    }
    res = supabase_client.execute(_table().insert(row), "orders.insert")
    return supabase_client.first_row(res) or row

def get_order_by_session_id(stripe_session_id: str) -> Optional[Dict[str, Any]]:
    res = supabase_client.execute(
        _table().select(ORDER_COLUMNS).eq("stripe_session_id", stripe_session_id).limit(1),
        "orders.get_by_session_id",
    )
    return supabase_client.first_row(res)
