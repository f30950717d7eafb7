"""
Module 'payments' (feature-first): point d'entrée public.
Réunit métadonnées versionnées, client Stripe, repository BD, broker de checkout et réconciliateur de webhooks.
"""

from .metadata import CheckoutMetadata, build_metadata, extract_metadata_from_session
from .stripe_client import require_stripe, create_session, create_refund, parse_event
from .repository import (
    insert_payment,
    upsert_payment_by_session,
    get_payment,
    mark_failed_by_intent,
    apply_refund,
    record_refund_total,
)
from .service import create_checkout
from .webhooks import handle_event

__all__ = [
    # metadata
    "CheckoutMetadata",
    "build_metadata",
    "extract_metadata_from_session",
    # stripe
    "require_stripe",
    "create_session",
    "create_refund",
    "parse_event",
    # repository
    "insert_payment",
    "upsert_payment_by_session",
    "get_payment",
    "mark_failed_by_intent",
    "apply_refund",
    "record_refund_total",
    # services
    "create_checkout",
    "handle_event",
]
