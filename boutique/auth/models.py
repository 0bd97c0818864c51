from typing import Optional, Dict, Any
from pydantic import BaseModel, EmailStr, Field, field_validator


class SignupRequest(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    email: EmailStr
    password: str = Field(min_length=6)

    @field_validator("name")
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Nom requis")
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class AuthResponse:
    def __init__(
        self,
        success: bool,
        user: Optional[Dict[str, Any]] = None,
        session: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ):
        self.success = success
        self.user = user
        self.session = session
        self.error = error

    @property
    def access_token(self):
        return (self.session or {}).get("access_token")

    @property
    def refresh_token(self):
        return (self.session or {}).get("refresh_token")


def public_user(row: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Projection exposée au client: jamais de password_hash."""
    row = row or {}
    return {
        "id": row.get("id"),
        "name": row.get("name"),
        "email": row.get("email"),
        "role": row.get("role") or "customer",
    }
