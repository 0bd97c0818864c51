"""
Adaptateur Stripe: centralise les appels, la configuration et la traduction des erreurs.
- Timeouts et retries réseau configurés une fois (GATEWAY_TIMEOUT_SECONDS).
- Panne transitoire (réseau, rate limit, 5xx) -> GatewayUnavailable (rejouable).
"""
import json
import logging
from typing import Any, Dict, List

import stripe
from fastapi import HTTPException, Request

from boutique import config
from boutique.errors import GatewayError, GatewayUnavailable, InvalidCart, SessionNotFound

logger = logging.getLogger(__name__)

_TRANSIENT_ERRORS = (stripe.APIConnectionError, stripe.RateLimitError, stripe.APIError)

# module boutique.payments.stripe_client
def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l’emploi.
    - GatewayError si STRIPE_SECRET_KEY est absent.
    """
    if not config.STRIPE_SECRET_KEY:
        raise GatewayError("STRIPE_SECRET_KEY manquant", code="gateway_not_configured")
    stripe.api_key = config.STRIPE_SECRET_KEY
    stripe.max_network_retries = 2
    if not isinstance(stripe.default_http_client, stripe.RequestsClient):
        stripe.default_http_client = stripe.RequestsClient(timeout=config.GATEWAY_TIMEOUT_SECONDS)
    return stripe

def _translate(e: stripe.StripeError, action: str):
    if isinstance(e, _TRANSIENT_ERRORS):
        logger.warning("stripe %s indisponible: %s", action, e)
        return GatewayUnavailable(f"Passerelle de paiement indisponible ({action})")
    logger.exception("stripe %s en erreur", action)
    return GatewayError(f"Erreur passerelle de paiement ({action}): {getattr(e, 'user_message', None) or e}")

def create_discount_coupon(discount_percentage: int) -> str:
    """Crée un coupon Stripe à usage unique (percent_off) et retourne son id."""
    require_stripe()
    try:
        coupon = stripe.Coupon.create(percent_off=discount_percentage, duration="once")
    except stripe.StripeError as e:
        raise _translate(e, "coupon.create")
    return coupon["id"]

def delete_discount_coupon(coupon_id: str) -> None:
    """Supprime un coupon Stripe resté sans session (création de session échouée)."""
    require_stripe()
    try:
        stripe.Coupon.delete(coupon_id)
    except stripe.InvalidRequestError:
        logger.info("stripe coupon.delete: coupon %s déjà absent", coupon_id)
    except stripe.StripeError as e:
        raise _translate(e, "coupon.delete")

def create_session(
    *,
    line_items: List[Dict[str, Any]],
    success_url: str,
    cancel_url: str,
    metadata: Dict[str, str],
    discounts: List[Dict[str, Any]] | None = None,
) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout (mode paiement, carte).
    Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
    """
    require_stripe()
    try:
        session = stripe.checkout.Session.create(
            line_items=line_items,
            mode="payment",
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
            discounts=discounts or [],
            payment_method_types=["card"],
        )
    except stripe.InvalidRequestError as e:
        logger.warning("stripe checkout.create refusé: %s", e)
        raise InvalidCart(f"Session refusée par la passerelle: {getattr(e, 'user_message', None) or e}")
    except stripe.StripeError as e:
        raise _translate(e, "checkout.create")
    # stripe retourne un objet; on le traite comme dict-compatible
    return dict(session)

def get_session(session_id: str) -> Dict[str, Any]:
    """
    Récupère une session Stripe Checkout par son identifiant.
    Retour: dict session incluant "id", "payment_status", "amount_total", "metadata".
    """
    if not session_id:
        raise SessionNotFound("session_id manquant")
    require_stripe()
    try:
        session = stripe.checkout.Session.retrieve(session_id)
    except stripe.InvalidRequestError:
        raise SessionNotFound(f"Session introuvable: {session_id}")
    except stripe.StripeError as e:
        raise _translate(e, "checkout.retrieve")
    return dict(session)

async def parse_event(request: Request) -> Dict[str, Any]:
    """
    Parse et valide un événement Stripe signé (webhook).
    - Lit le body brut + en-tête Stripe-Signature, valide via Webhook.construct_event.
    - Sans STRIPE_WEBHOOK_SECRET (dev uniquement), le JSON est accepté tel quel.
    """
    payload = await request.body()
    sig = request.headers.get("stripe-signature")
    if not config.STRIPE_WEBHOOK_SECRET:
        logger.warning("STRIPE_WEBHOOK_SECRET absent: signature webhook non vérifiée (dev only)")
        try:
            return json.loads(payload.decode("utf-8"))
        except ValueError:
            raise HTTPException(status_code=400, detail="Webhook invalide: JSON illisible")
    try:
        return stripe.Webhook.construct_event(payload=payload, sig_header=sig, secret=config.STRIPE_WEBHOOK_SECRET)
    except (ValueError, stripe.SignatureVerificationError) as e:
        raise HTTPException(status_code=400, detail=f"Webhook invalide: {e}")
