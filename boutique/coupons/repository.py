"""
Accès aux données (Supabase) des coupons.
Table coupons: contrainte UNIQUE sur user_id (au plus un coupon par utilisateur).
"""
from typing import Any, Dict, Optional
import boutique.infra.supabase_client as supabase_client

COUPON_COLUMNS = "id, code, user_id, discount_percentage, expiration_date, is_active"

def _table():
    return supabase_client.get_service_supabase().table("coupons")

def find_by_code(user_id: str, code: str) -> Optional[Dict[str, Any]]:
    """Coupon de l'utilisateur portant ce code, actif ou non."""
    res = supabase_client.execute(
        _table().select(COUPON_COLUMNS).eq("user_id", user_id).eq("code", code).limit(1),
        "coupons.find_by_code",
    )
    return supabase_client.first_row(res)

def find_active(user_id: str) -> Optional[Dict[str, Any]]:
    res = supabase_client.execute(
        _table().select(COUPON_COLUMNS).eq("user_id", user_id).eq("is_active", True).limit(1),
        "coupons.find_active",
    )
    return supabase_client.first_row(res)

def deactivate(user_id: str, code: str) -> bool:
    """Passe is_active=false; retourne True si une ligne correspondait."""
    res = supabase_client.execute(
        _table().update({"is_active": False}).eq("user_id", user_id).eq("code", code),
        "coupons.deactivate",
    )
    return bool(getattr(res, "data", None))

def replace_for_user(row: Dict[str, Any]) -> Dict[str, Any]:
    """
    Remplace le coupon de l'utilisateur en une seule instruction:
    INSERT ... ON CONFLICT (user_id) DO UPDATE. Deux émissions concurrentes
    pour le même utilisateur ne peuvent donc pas laisser deux coupons actifs.
    """
    res = supabase_client.execute(
        _table().upsert(row, on_conflict="user_id"),
        "coupons.replace_for_user",
    )
    return supabase_client.first_row(res) or dict(row)
