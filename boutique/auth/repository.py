"""Accès aux données (Supabase) du domaine Auth: table users."""
from typing import Any, Dict, Optional
import boutique.infra.supabase_client as supabase_client

USER_COLUMNS = "id, name, email, role, password_hash"

def get_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    """Récupère un utilisateur par email (avec password_hash, usage interne au login)."""
    if not email:
        return None
    res = supabase_client.execute(
        supabase_client.get_service_supabase()
        .table("users")
        .select(USER_COLUMNS)
        .eq("email", email)
        .limit(1),
        "users.get_by_email",
    )
    return supabase_client.first_row(res)

def get_user_by_id(user_id: str) -> Optional[Dict[str, Any]]:
    """Récupère le profil public d'un utilisateur (sans password_hash)."""
    if not user_id:
        return None
    res = supabase_client.execute(
        supabase_client.get_service_supabase()
        .table("users")
        .select("id, name, email, role")
        .eq("id", user_id)
        .limit(1),
        "users.get_by_id",
    )
    return supabase_client.first_row(res)

def create_user(*, name: str, email: str, password_hash: str, role: str = "customer") -> Dict[str, Any]:
    """Insère un utilisateur; DuplicateKey si l'email existe déjà (contrainte unique)."""
    res = supabase_client.execute(
        supabase_client.get_service_supabase()
        .table("users")
        .insert({"name": name, "email": email, "password_hash": password_hash, "role": role}),
        "users.create",
    )
    return supabase_client.first_row(res) or {}
