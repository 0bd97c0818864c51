# module boutique.coupons.models
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, field_validator


class Coupon(BaseModel):
    """Coupon cadeau: remise en pourcentage, à usage unique, lié à un utilisateur."""
    id: Optional[str] = None
    code: str
    user_id: str
    discount_percentage: int = Field(ge=0, le=100)
    expiration_date: datetime
    is_active: bool = True

    @field_validator("expiration_date")
    def ensure_utc(cls, v: datetime) -> datetime:
        # Supabase renvoie du timestamptz; une date naïve est considérée UTC
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.expiration_date < (now or datetime.now(timezone.utc))

    @classmethod
    def from_row(cls, row: Optional[Dict[str, Any]]) -> Optional["Coupon"]:
        if not row:
            return None
        data = dict(row)
        if data.get("id") is not None:
            data["id"] = str(data["id"])
        data["user_id"] = str(data.get("user_id") or "")
        return cls.model_validate(data)

    def to_row(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "user_id": self.user_id,
            "discount_percentage": self.discount_percentage,
            "expiration_date": self.expiration_date.isoformat(),
            "is_active": self.is_active,
        }

    def to_public(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "discountPercentage": self.discount_percentage,
            "expirationDate": self.expiration_date.isoformat(),
            "isActive": self.is_active,
        }


class ValidateCouponRequest(BaseModel):
    code: str = Field(min_length=1, max_length=64)
