"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
Toute erreur du SDK est convertie en ProviderError (récupérable).
"""
import json
import logging
from typing import Any, Dict, Optional

import stripe

from eventreg.config import STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET as WEBHOOK_SECRET
from eventreg.errors import ProviderError, ValidationError

logger = logging.getLogger(__name__)

# module eventreg.payments.stripe_client
def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Configure stripe.api_key via STRIPE_SECRET_KEY.
    - Lève ProviderError si la clé est absente (aucun appel possible).
    """
    if not STRIPE_SECRET_KEY:
        raise ProviderError("STRIPE_SECRET_KEY manquant", code="provider_not_configured")
    stripe.api_key = STRIPE_SECRET_KEY
    return stripe

def find_customer_id(email: Optional[str]) -> Optional[str]:
    """Client Stripe existant pour cet email (le plus récent), sinon None."""
    if not email:
        return None
    require_stripe()
    try:
        customers = stripe.Customer.list(email=email, limit=1)
    except stripe.StripeError as e:
        logger.exception("payments.stripe_client.find_customer_id failed")
        raise ProviderError(f"Recherche du client Stripe impossible: {e.user_message or e}") from e
    data = getattr(customers, "data", None) or []
    return data[0].id if data else None

def create_session(
    *,
    line_items: list,
    success_url: str,
    cancel_url: str,
    metadata: Dict[str, str],
    client_reference_id: str,
    customer_email: Optional[str] = None,
    customer: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout (mode "payment").
    - customer (cus_...) prime sur customer_email: Stripe refuse les deux ensemble.
    Retour: {"id": "cs_...", "url": "https://checkout.stripe.com/..."}
    """
    require_stripe()
    try:
        session = stripe.checkout.Session.create(
            line_items=line_items,
            mode="payment",
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
            client_reference_id=client_reference_id,
            customer=customer,
            customer_email=None if customer else customer_email,
            payment_intent_data={"metadata": metadata},
        )
    except stripe.StripeError as e:
        logger.exception("payments.stripe_client.create_session failed ref=%s", client_reference_id)
        raise ProviderError(f"Création de la session Stripe impossible: {e.user_message or e}") from e
    return {"id": session.id, "url": session.url}

def create_refund(*, payment_intent_id: str, amount_cents: int, metadata: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    Émet un remboursement Stripe sur un PaymentIntent.
    Retour: {"id": "re_...", "status": "succeeded|pending|..."}
    """
    require_stripe()
    try:
        refund = stripe.Refund.create(
            payment_intent=payment_intent_id,
            amount=amount_cents,
            reason="requested_by_customer",
            metadata=metadata or {},
        )
    except stripe.StripeError as e:
        logger.exception("payments.stripe_client.create_refund failed pi=%s amount=%s", payment_intent_id, amount_cents)
        raise ProviderError(f"Remboursement Stripe refusé: {e.user_message or e}") from e
    return {"id": refund.id, "status": getattr(refund, "status", None)}

def parse_event(payload: bytes, sig_header: Optional[str]) -> Dict[str, Any]:
    """
    Parse un événement webhook Stripe.
    - Avec STRIPE_WEBHOOK_SECRET: signature obligatoire, vérifiée par Webhook.construct_event.
    - Sans secret: parsing non vérifié (repli de développement, journalisé en warning).
    - Lève ValidationError(code="invalid_signature"|"invalid_payload").
    Retour: l'événement sous forme de dict JSON brut.
    """
    if WEBHOOK_SECRET:
        if not sig_header:
            raise ValidationError("En-tête Stripe-Signature manquant", code="invalid_signature")
        try:
            stripe.Webhook.construct_event(payload, sig_header, WEBHOOK_SECRET)
        except stripe.SignatureVerificationError as e:
            raise ValidationError("Signature Stripe invalide", code="invalid_signature") from e
        except ValueError as e:
            raise ValidationError("Payload Stripe invalide", code="invalid_payload") from e
    else:
        logger.warning("payments.stripe_client.parse_event STRIPE_WEBHOOK_SECRET absent: payload non vérifié")

    try:
        event = json.loads(payload)
    except (TypeError, ValueError) as e:
        raise ValidationError("Payload Stripe invalide", code="invalid_payload") from e
    if not isinstance(event, dict) or not event.get("type"):
        raise ValidationError("Payload Stripe invalide", code="invalid_payload")
    return event
