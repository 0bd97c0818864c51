# module boutique.coupons.views

"""Endpoints coupons de l'utilisateur connecté.
- GET /api/v1/coupons: coupon actif (ou null).
- POST /api/v1/coupons/validate: vérifie un code avant le checkout.
"""
from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends

from boutique.utils.security import require_user
from .models import ValidateCouponRequest
from . import service as coupons_service

router = APIRouter(prefix="/api/v1/coupons", tags=["Coupons API"])


@router.get("")
def get_coupon(user: Dict[str, Any] = Depends(require_user)) -> Optional[Dict[str, Any]]:
    coupon = coupons_service.get_active(user["id"])
    return coupon.to_public() if coupon else None


@router.post("/validate")
def validate_coupon(req: ValidateCouponRequest, user: Dict[str, Any] = Depends(require_user)) -> Dict[str, Any]:
    """404 coupon_not_found | coupon_expired via le handler ServiceError."""
    coupon = coupons_service.validate(user["id"], req.code)
    return {
        "message": "Coupon valide",
        "code": coupon.code,
        "discountPercentage": coupon.discount_percentage,
    }
