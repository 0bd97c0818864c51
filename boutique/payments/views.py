import asyncio
import logging
from typing import Any, Dict

from fastapi import APIRouter, Request, Depends, HTTPException
from pydantic import ValidationError

from boutique import config
from boutique.errors import InvalidCart, ServiceError
from boutique.utils.security import require_user
from boutique.utils.rate_limit import optional_rate_limit
from boutique.payments import stripe_client
from boutique.payments import service as payments_service
from boutique.payments.metadata import session_from_event
from boutique.payments.models import CheckoutRequest, CheckoutSuccessRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])

SETTLEMENT_EVENTS = ("checkout.session.completed", "checkout.session.async_payment_succeeded")

def _checkout_urls() -> Dict[str, str]:
    base = config.CLIENT_URL.rstrip("/")
    return {
        "success_url": f"{base}{config.CHECKOUT_SUCCESS_PATH}?session_id={{CHECKOUT_SESSION_ID}}",
        "cancel_url": f"{base}{config.CHECKOUT_CANCEL_PATH}",
    }

async def _json_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        raise InvalidCart("Corps JSON invalide")
    if not isinstance(body, dict):
        raise InvalidCart("Corps JSON invalide")
    return body

# module boutique.payments.views
@router.post("/create-checkout-session", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def create_checkout_session(request: Request, user: dict = Depends(require_user)):
    """
    Crée une session Checkout Stripe pour le panier de l’utilisateur authentifié.
    - Entrée JSON: { "products": [ {"_id", "name", "image", "price", "quantity"}, ... ], "couponCode": "GIFT..." }
    - Sécurité: require_user + rate limit (10 req / 60s)
    - Réponse: {id, url, totalAmount, totalMinorUnits}
    - Erreurs: 400 invalid_cart, 404 coupon_not_found | coupon_expired, 503 si Stripe indisponible
    """
    body = await _json_body(request)
    try:
        req = CheckoutRequest.model_validate(body)
    except ValidationError as e:
        raise InvalidCart(f"Panier invalide: {e.errors()[0].get('msg')}")
    try:
        return await asyncio.to_thread(
            payments_service.create_checkout_session,
            user_id=user.get("id", ""),
            products=req.lines(),
            coupon_code=req.coupon_code,
            **_checkout_urls(),
        )
    except ServiceError:
        raise
    except Exception:
        logger.exception("Erreur create_checkout_session")
        raise HTTPException(status_code=500, detail="Erreur lors de la création de la session de paiement")

@router.post("/checkout-success")
async def checkout_success(request: Request, user: dict = Depends(require_user)):
    """
    Confirmation côté client après redirection Stripe.
    - Entrée JSON: {"sessionId": "cs_..."}
    - Vérifie la propriété de la session (403 sinon) puis règle la commande (idempotent).
    """
    body = await _json_body(request)
    try:
        req = CheckoutSuccessRequest.model_validate(body)
    except ValidationError:
        raise HTTPException(status_code=400, detail="sessionId manquant")
    try:
        result = await asyncio.to_thread(payments_service.settle_session, req.session_id, expected_user_id=user.get("id"))
        return result.to_response()
    except ServiceError:
        raise
    except Exception:
        logger.exception("Erreur checkout_success")
        raise HTTPException(status_code=500, detail="Erreur lors du traitement du paiement")

@router.post("/webhook", include_in_schema=False)
async def webhook_stripe(request: Request):
    """
    Webhook Stripe: consomme checkout.session.completed / async_payment_succeeded.
    - Signature: validée via stripe_client.parse_event (Stripe-Signature + STRIPE_WEBHOOK_SECRET)
    - La session est relue chez Stripe puis réglée par le même chemin que checkout-success.
    - Réponses: {"status": "ok", ...résultat} ou {"status": "ignored"}
    """
    event = await stripe_client.parse_event(request)
    event_type = (event or {}).get("type")
    if event_type not in SETTLEMENT_EVENTS:
        return {"status": "ignored"}
    session_id = session_from_event(event).get("id")
    if not session_id:
        raise HTTPException(status_code=400, detail="Webhook sans session")
    try:
        result = await asyncio.to_thread(payments_service.settle_session, session_id)
    except ServiceError:
        raise
    except Exception:
        logger.exception("Erreur webhook_stripe")
        raise HTTPException(status_code=500, detail="Erreur lors du traitement du webhook")
    logger.info("payments.webhook type=%s session=%s success=%s", event_type, session_id, result.success)
    return {"status": "ok", **result.to_response()}
