"""
Gestion des coupons cadeaux (Incentive Manager).
Cycle de vie: créé quand un checkout franchit le seuil -> actif -> consommé par un
paiement confirmé, ou expiré paresseusement à la première lecture après expiration_date.
Les autres composants passent par ce module, jamais directement par le repository.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging
import secrets
import string

from boutique.config import COUPON_DISCOUNT_PERCENTAGE, COUPON_VALIDITY_DAYS
from boutique.errors import CouponNotFound, CouponExpired
from .models import Coupon
from . import repository

logger = logging.getLogger(__name__)

CODE_PREFIX = "GIFT"
CODE_ALPHABET = string.ascii_uppercase + string.digits

def generate_code(length: int = 6) -> str:
    return CODE_PREFIX + "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))

def _normalize_code(code: str) -> str:
    return (code or "").strip()

def get_active(user_id: str) -> Optional[Coupon]:
    """Coupon actif de l'utilisateur, ou None. Un coupon expiré trouvé ici est désactivé."""
    coupon = Coupon.from_row(repository.find_active(user_id))
    if coupon and coupon.is_expired():
        repository.deactivate(user_id, coupon.code)
        logger.info("coupons.get_active expired code=%s user_id=%s", coupon.code, user_id)
        return None
    return coupon

def validate(user_id: str, code: str) -> Coupon:
    """
    Valide un code pour son propriétaire.
    - Actif et expiré: désactivation puis CouponExpired (auto-réparation de l'état).
    - Déjà inactif et expiré: CouponExpired (appels répétés stables).
    - Inactif non expiré (consommé) ou inconnu: CouponNotFound.
    """
    code = _normalize_code(code)
    coupon = Coupon.from_row(repository.find_by_code(user_id, code)) if code else None
    if not coupon:
        raise CouponNotFound("Coupon introuvable")
    if coupon.is_expired():
        if coupon.is_active:
            repository.deactivate(user_id, coupon.code)
            logger.info("coupons.validate expired code=%s user_id=%s", coupon.code, user_id)
        raise CouponExpired("Coupon expiré")
    if not coupon.is_active:
        raise CouponNotFound("Coupon introuvable")
    return coupon

def issue_if_qualifying(user_id: str, total_minor_units: int, threshold: int) -> Optional[Coupon]:
    """
    Émet un nouveau coupon si total_minor_units >= threshold.
    Le coupon précédent de l'utilisateur (s'il existe) est remplacé atomiquement.
    """
    if total_minor_units < threshold:
        return None
    coupon = Coupon(
        code=generate_code(),
        user_id=str(user_id),
        discount_percentage=COUPON_DISCOUNT_PERCENTAGE,
        expiration_date=datetime.now(timezone.utc) + timedelta(days=COUPON_VALIDITY_DAYS),
        is_active=True,
    )
    row = repository.replace_for_user(coupon.to_row())
    logger.info("coupons.issue code=%s user_id=%s total=%s", coupon.code, user_id, total_minor_units)
    return Coupon.from_row(row) or coupon

def consume(user_id: str, code: str) -> bool:
    """Désactive le coupon utilisé par un paiement confirmé (idempotent)."""
    code = _normalize_code(code)
    if not code:
        return False
    return repository.deactivate(user_id, code)
