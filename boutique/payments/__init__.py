"""
Module 'payments' (feature-first): point d'entrée public.
Réunit logique panier, metadata Stripe, client Stripe, repository BD, et services.
"""

from .cart import validate_lines, total_minor_units, apply_discount, make_metadata, to_line_items
from .metadata import extract_metadata_from_session, session_from_event
from .stripe_client import require_stripe, create_session, create_discount_coupon, delete_discount_coupon, get_session, parse_event
from .repository import insert_order, get_order_by_session_id
from .service import create_checkout_session, settle_session, SettlementResult

__all__ = [
    # cart
    "validate_lines",
    "total_minor_units",
    "apply_discount",
    "make_metadata",
    "to_line_items",
    # metadata
    "extract_metadata_from_session",
    "session_from_event",
    # stripe
    "require_stripe",
    "create_session",
    "create_discount_coupon",
    "delete_discount_coupon",
    "get_session",
    "parse_event",
    # repository
    "insert_order",
    "get_order_by_session_id",
    # services
    "create_checkout_session",
    "settle_session",
    "SettlementResult",
]
