"""
Cas d'usage 'payments': orchestre cart, coupons, stripe_client et repository.
- create_checkout_session: validation -> total -> coupon -> session Stripe -> coupon cadeau.
- settle_session: appelé par la redirection client ET par le webhook (idempotent).
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional
import logging

from boutique import config
from boutique.coupons import service as coupons_service
from boutique.errors import DuplicateKey, Forbidden, PersistenceConflict, ServiceError
from . import cart
from . import repository
from . import stripe_client
from .metadata import extract_metadata_from_session

logger = logging.getLogger(__name__)

PAID = "paid"

def _discard_discount_coupon(coupon_id: str) -> None:
    # L'erreur de session reste celle remontée à l'appelant
    try:
        stripe_client.delete_discount_coupon(coupon_id)
    except ServiceError:
        logger.exception("payments.checkout coupon Stripe orphelin coupon=%s", coupon_id)

# module boutique.payments.service
def create_checkout_session(
    *,
    user_id: str,
    products: List[Dict[str, Any]],
    coupon_code: Optional[str],
    success_url: str,
    cancel_url: str,
) -> Dict[str, Any]:
    """
    Prépare la session Stripe à partir d'un user_id et d'un panier.
    Les échecs de validation (panier, coupon) surviennent avant tout appel Stripe
    et avant toute écriture de coupon.
    Retour: {id, url, totalAmount (unités majeures), totalMinorUnits}
    """
    lines = cart.validate_lines(products)
    total = cart.total_minor_units(lines)

    coupon = None
    if coupon_code:
        coupon = coupons_service.validate(user_id, coupon_code)
        total = cart.apply_discount(total, coupon.discount_percentage)

    metadata = cart.make_metadata(user_id, coupon.code if coupon else "", lines)
    discounts = []
    stripe_coupon_id = None
    if coupon:
        stripe_coupon_id = stripe_client.create_discount_coupon(coupon.discount_percentage)
        discounts.append({"coupon": stripe_coupon_id})

    try:
        session = stripe_client.create_session(
            line_items=cart.to_line_items(lines, config.CURRENCY),
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
            discounts=discounts,
        )
    except ServiceError:
        if stripe_coupon_id:
            _discard_discount_coupon(stripe_coupon_id)
        raise
    logger.info("payments.checkout session=%s user_id=%s total=%s", session.get("id"), user_id, total)

    # Coupon cadeau émis à la création de session, pas au paiement
    coupons_service.issue_if_qualifying(user_id, total, config.COUPON_THRESHOLD_MINOR_UNITS)

    return {
        "id": session.get("id"),
        "url": session.get("url"),
        "totalAmount": float(Decimal(total) / 100),
        "totalMinorUnits": total,
    }


@dataclass
class SettlementResult:
    success: bool
    order_id: Optional[Any] = None
    already_settled: bool = False
    payment_status: Optional[str] = None

    def to_response(self) -> Dict[str, Any]:
        if not self.success:
            return {"success": False, "paymentStatus": self.payment_status}
        return {
            "success": True,
            "message": "Paiement confirmé, commande enregistrée",
            "orderId": self.order_id,
            "alreadySettled": self.already_settled,
        }


def _order_products(products: Optional[List[Dict[str, Any]]], session_id: str) -> List[Dict[str, Any]]:
    if products is None:
        logger.error("payments.settle instantané produits illisible session=%s", session_id)
        return []
    return [
        {"product": str(p.get("id") or ""), "quantity": p.get("quantity"), "price": p.get("price")}
        for p in products
    ]

def settle_session(session_id: str, expected_user_id: Optional[str] = None) -> SettlementResult:
    """
    Finalise une session Checkout payée.
    - expected_user_id (confirmation client): le propriétaire des metadata doit correspondre (Forbidden).
    - payment_status != 'paid': aucun effet, SettlementResult(success=False).
    - Consomme le coupon utilisé puis insère la commande (unique par stripe_session_id).
    - Session déjà réglée: retourne la commande existante avec already_settled=True.
    """
    session = stripe_client.get_session(session_id)
    owner, coupon_code, products = extract_metadata_from_session(session)

    if expected_user_id is not None and owner != str(expected_user_id):
        raise Forbidden("Session appartenant à un autre utilisateur")

    payment_status = session.get("payment_status") or ""
    if payment_status != PAID:
        logger.info("payments.settle non payé session=%s status=%s", session_id, payment_status)
        return SettlementResult(success=False, payment_status=payment_status)

    if not owner:
        raise PersistenceConflict(f"Session {session_id} sans userId dans les metadata")

    if coupon_code:
        coupons_service.consume(owner, coupon_code)

    try:
        order = repository.insert_order(
            user_id=owner,
            products=_order_products(products, session_id),
            total_amount=int(session.get("amount_total") or 0),
            stripe_session_id=session.get("id") or session_id,
        )
    except DuplicateKey:
        existing = repository.get_order_by_session_id(session.get("id") or session_id)
        if not existing:
            raise PersistenceConflict(f"Commande introuvable après doublon session={session_id}")
        logger.info("payments.settle déjà réglée session=%s order=%s", session_id, existing.get("id"))
        return SettlementResult(success=True, order_id=existing.get("id"), already_settled=True)

    logger.info("payments.settle commande créée session=%s order=%s user_id=%s", session_id, order.get("id"), owner)
    return SettlementResult(success=True, order_id=order.get("id"))
