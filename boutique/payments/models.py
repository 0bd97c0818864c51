from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field, AliasChoices, field_validator


class CheckoutProduct(BaseModel):
    id: str = Field(validation_alias=AliasChoices("id", "_id"), min_length=1)
    name: str = "Article"
    image: Optional[str] = None
    price: Decimal = Field(ge=0)
    quantity: int = Field(gt=0, strict=True)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v):
        return str(v).strip() if v is not None else v


class CheckoutRequest(BaseModel):
    products: List[CheckoutProduct] = Field(min_length=1)
    coupon_code: Optional[str] = Field(default=None, validation_alias=AliasChoices("couponCode", "coupon_code"))

    @field_validator("coupon_code")
    @classmethod
    def _strip_code(cls, v: Optional[str]) -> Optional[str]:
        v = (v or "").strip()
        return v or None

    def lines(self) -> List[dict]:
        """Lignes au format attendu par payments.cart.validate_lines."""
        return [p.model_dump() for p in self.products]


class CheckoutSuccessRequest(BaseModel):
    session_id: str = Field(validation_alias=AliasChoices("sessionId", "session_id"), min_length=1)
