"""
Refund Orchestrator.
Ordre strict: autorisation, validation, appel Stripe, puis écritures locales.
Un échec Stripe interrompt avant toute mutation du ledger.
"""
import logging
from typing import Any, Dict, Optional

from eventreg.audit import repository as audit_repository
from eventreg.errors import AuthorizationError, NotFoundError, ValidationError
from eventreg.payments import repository as payments_repository
from eventreg.payments import stripe_client
from eventreg.registrations import repository as registrations_repository
from . import repository

logger = logging.getLogger(__name__)

REFUND_ROLES = ("admin", "finance")

def authorize(actor: Optional[Dict[str, Any]]) -> str:
    """Retourne l'id de l'acteur autorisé; lève AuthorizationError (401 sans acteur, 403 sans rôle)."""
    actor_id = (actor or {}).get("id")
    if not actor_id:
        raise AuthorizationError("Authentification requise", code="unauthorized")
    if not repository.has_role(actor_id, REFUND_ROLES):
        raise AuthorizationError("Rôle admin ou finance requis", code="insufficient_permissions")
    return actor_id

def resolve_amount(payment: Dict[str, Any], amount_cents: Optional[int]) -> int:
    """Montant absent ou nul: solde restant (amount_cents - refunded_cents)."""
    remaining = int(payment.get("amount_cents") or 0) - int(payment.get("refunded_cents") or 0)
    amount = int(amount_cents) if amount_cents else remaining
    if amount <= 0:
        raise ValidationError("Montant de remboursement invalide", code="invalid_amount")
    if amount > remaining:
        raise ValidationError(
            f"Montant supérieur au solde remboursable ({remaining} centimes)", code="amount_exceeds_remaining"
        )
    return amount

# module eventreg.refunds.service
def issue_refund(
    payment_id: str,
    amount_cents: Optional[int],
    reason: Optional[str],
    actor: Optional[Dict[str, Any]],
) -> Dict[str, Any]:
    """
    Rembourse (tout ou partie) un paiement.
    Étapes:
      1) Autorisation admin/finance (aucun appel Stripe sinon)
      2) Paiement existant, avec PaymentIntent, montant dans ]0, solde restant]
      3) Stripe Refund (ProviderError: rien n'est écrit)
      4) Ligne 'refunds', report idempotent du cumul sur refunded_cents, inscription 'refunded'
         si remboursement total, audit 'refund_issued'
    Retour: {"success": True, "refundId", "refundedCents", "status"}
    """
    actor_id = authorize(actor)

    if not payment_id:
        raise ValidationError("paymentId requis", code="missing_payment_id")
    payment = payments_repository.get_payment(payment_id)
    if not payment:
        raise NotFoundError("Paiement introuvable", code="payment_not_found")
    payment_intent = payment.get("stripe_payment_intent_id")
    if not payment_intent:
        raise ValidationError("Paiement sans PaymentIntent Stripe", code="missing_payment_intent")
    amount = resolve_amount(payment, amount_cents)

    refund = stripe_client.create_refund(
        payment_intent_id=payment_intent,
        amount_cents=amount,
        metadata={"payment_id": str(payment_id), "actor_id": str(actor_id)},
    )

    repository.insert_refund({
        "payment_id": payment_id,
        "stripe_refund_id": refund["id"],
        "amount_cents": amount,
        "reason": reason or None,
        "created_by": actor_id,
    })

    updated = payments_repository.apply_refund(payment_id)
    if updated is None:
        # Stripe a remboursé mais le report du cumul n'a rien mis à jour:
        # le webhook charge.refunded reportera le cumul réel.
        logger.error(
            "refunds.issue_refund total not applied payment_id=%s amount=%s refund=%s",
            payment_id, amount, refund["id"],
        )
        audit_repository.record(
            "refund_unreconciled",
            "payment",
            entity_id=payment_id,
            details={"amount_cents": amount, "stripe_refund_id": refund["id"], "reason": reason},
            user_id=actor_id,
        )
        return {"success": True, "refundId": refund["id"], "refundedCents": None, "status": None}

    if updated.get("status") == "refunded" and payment.get("registration_id"):
        registrations_repository.set_payment_status(payment["registration_id"], "refunded")

    audit_repository.record(
        "refund_issued",
        "payment",
        entity_id=payment_id,
        details={
            "amount_cents": amount,
            "stripe_refund_id": refund["id"],
            "reason": reason,
            "refunded_cents": updated.get("refunded_cents"),
        },
        user_id=actor_id,
    )
    logger.info(
        "refunds.issue_refund ok payment_id=%s amount=%s refunded_cents=%s status=%s",
        payment_id, amount, updated.get("refunded_cents"), updated.get("status"),
    )
    return {
        "success": True,
        "refundId": refund["id"],
        "refundedCents": updated.get("refunded_cents"),
        "status": updated.get("status"),
    }
