"""
Cas d'usage 'payments': Checkout Session Broker.
Orchestre l'intention d'inscription, les métadonnées versionnées, Stripe et le ledger.
"""
import logging
from typing import Any, Dict, Optional

from eventreg.config import BASE_URL, CHECKOUT_SUCCESS_PATH, CHECKOUT_CANCEL_PATH, STRIPE_CURRENCY
from eventreg.errors import ValidationError
from eventreg.registrations import service as registrations_service
from . import repository
from . import stripe_client
from .metadata import build_metadata

logger = logging.getLogger(__name__)

def default_urls(event_id: str) -> Dict[str, str]:
    base = BASE_URL.rstrip("/")
    return {
        "success_url": base + CHECKOUT_SUCCESS_PATH.format(event_id=event_id),
        "cancel_url": base + CHECKOUT_CANCEL_PATH.format(event_id=event_id),
    }

def to_line_items(event: Dict[str, Any], unit_amount: int) -> list:
    return [{
        "price_data": {
            "currency": STRIPE_CURRENCY,
            "unit_amount": unit_amount,
            "product_data": {"name": event.get("title") or "Inscription"},
        },
        "quantity": 1,
    }]

# module eventreg.payments.service
def create_checkout(
    event_id: str,
    contact: Dict[str, Any],
    success_url: Optional[str] = None,
    cancel_url: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Crée la session Stripe Checkout d'une inscription payante.
    Étapes:
      1) Charge l'événement (NotFoundError) et refuse un événement gratuit
      2) create_intent: doublon/capacité vérifiés avant tout appel Stripe
      3) Session Stripe avec métadonnées versionnées et client_reference_id = id d'inscription,
         rattachée au client Stripe existant de cet email s'il y en a un
      4) Ligne payments 'requires_payment' indexée par l'id de session
    Retour: {"url", "sessionId", "registrationId"}
    """
    event = registrations_service.load_event(event_id)
    amount = registrations_service.price_cents(event)
    if amount <= 0:
        raise ValidationError("Événement gratuit: utiliser l'inscription directe", code="free_event")

    registration = registrations_service.create_intent(event["id"], contact, event=event)
    metadata = build_metadata(registration, event["id"]).to_stripe()

    urls = default_urls(event["id"])
    customer_id = stripe_client.find_customer_id(registration.get("email"))
    session = stripe_client.create_session(
        line_items=to_line_items(event, amount),
        success_url=success_url or urls["success_url"],
        cancel_url=cancel_url or urls["cancel_url"],
        metadata=metadata,
        client_reference_id=str(registration["id"]),
        customer_email=registration.get("email"),
        customer=customer_id,
    )

    repository.insert_payment({
        "event_id": event["id"],
        "registration_id": registration["id"],
        "stripe_checkout_session_id": session["id"],
        "amount_cents": amount,
        "currency": STRIPE_CURRENCY,
        "status": "requires_payment",
    })
    logger.info(
        "payments.create_checkout session=%s registration_id=%s amount=%s",
        session["id"], registration["id"], amount,
    )
    return {"url": session["url"], "sessionId": session["id"], "registrationId": registration["id"]}
