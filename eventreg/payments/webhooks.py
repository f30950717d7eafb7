"""
Webhook Reconciler: traduit les événements Stripe asynchrones en transitions du ledger.

- Chaque livraison est journalisée dans 'webhook_logs' (clé stripe_event_id) avant
  traitement; une livraison déjà traitée est acquittée sans rejouer ses effets.
- Les transitions du ledger sont des upserts sur identifiants naturels: l'ordre
  de livraison des événements Stripe n'est pas supposé fiable.
- Les effets secondaires (email, rappels) échouent en ReconciliationError:
  journalisés, jamais remontés à Stripe.
- Toute autre exception est propagée: la vue répond 500 et Stripe relivre.
"""
import logging
from typing import Any, Callable, Dict, Optional

from eventreg.audit import repository as audit_repository
from eventreg.errors import ReconciliationError, ValidationError
from eventreg.events import repository as events_repository
from eventreg.jobs import repository as jobs_repository
from eventreg.jobs.scheduling import reminder_jobs
from eventreg.notifications import email_client
from eventreg.registrations import repository as registrations_repository
from . import repository
from .metadata import CheckoutMetadata, extract_metadata_from_session

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
PAYMENT_FAILED = "payment_intent.payment_failed"
CHARGE_REFUNDED = "charge.refunded"

def _object(event: Dict[str, Any]) -> Dict[str, Any]:
    return ((event or {}).get("data") or {}).get("object") or {}

def _id_of(value: Any) -> Optional[str]:
    """Champ Stripe éventuellement 'expandé' (objet) ou simple identifiant."""
    if isinstance(value, dict):
        return value.get("id")
    return value or None

# --- Effets secondaires (non critiques) ---

def _send_confirmation(meta: CheckoutMetadata, event_row: Dict[str, Any], amount_total: Optional[int]) -> None:
    try:
        amount_paid = amount_total / 100 if amount_total else None
        email_client.send_event_confirmation(meta.email, meta.full_name, event_row, amount_paid=amount_paid)
    except Exception as e:
        raise ReconciliationError(f"Email de confirmation non envoyé: {e}") from e

def _schedule_reminders(
    meta: CheckoutMetadata, event_row: Dict[str, Any], registration_id: str, stripe_event_id: str
) -> int:
    try:
        jobs = reminder_jobs(
            event_row,
            to_email=meta.email,
            registration_id=registration_id,
            dedupe_prefix=stripe_event_id,
        )
        return jobs_repository.enqueue_jobs(jobs)
    except Exception as e:
        raise ReconciliationError(f"Rappels non planifiés: {e}") from e

# --- Transitions du ledger ---

# module eventreg.payments.webhooks
def handle_checkout_completed(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    checkout.session.completed:
      1) Valide les métadonnées versionnées (ValidationError si champ requis absent)
      2) Inscription -> 'paid' (upsert event_id,email); paiement -> 'paid' (upsert session)
      3) Audit 'payment_confirmed'
      4) Email de confirmation + rappels 24h/2h (échecs avalés)
    """
    session = _object(event)
    meta = extract_metadata_from_session(session)
    payment_intent = _id_of(session.get("payment_intent"))
    amount_total = session.get("amount_total")

    registration = registrations_repository.upsert_registration({
        "event_id": meta.event_id,
        "email": meta.email.lower(),
        "full_name": meta.full_name,
        "phone": meta.phone or None,
        "team_name": meta.team_name or None,
        "payment_status": "paid",
        "stripe_payment_id": payment_intent,
    })
    # L'id persistant de la paire fait foi (le pending d'origine a pu être remplacé)
    registration_id = (registration or {}).get("id") or meta.registration_id

    payment = {
        "stripe_checkout_session_id": session.get("id"),
        "event_id": meta.event_id,
        "registration_id": registration_id,
        "status": "paid",
        "stripe_payment_intent_id": payment_intent,
        "stripe_customer_id": _id_of(session.get("customer")),
    }
    if amount_total is not None:
        payment["amount_cents"] = int(amount_total)
    if session.get("currency"):
        payment["currency"] = session.get("currency")
    repository.upsert_payment_by_session(payment)

    audit_repository.record(
        "payment_confirmed",
        "registration",
        entity_id=registration_id,
        details={
            "event_id": meta.event_id,
            "amount": amount_total,
            "stripe_pi": payment_intent,
            "stripe_session": session.get("id"),
        },
    )
    logger.info(
        "payments.webhooks.handle_checkout_completed paid registration_id=%s session=%s",
        registration_id, session.get("id"),
    )

    event_row = events_repository.get_event(meta.event_id)
    scheduled = 0
    if event_row:
        try:
            _send_confirmation(meta, event_row, amount_total)
        except ReconciliationError as e:
            logger.exception("payments.webhooks.handle_checkout_completed %s: %s", e.code, e.message)
        try:
            scheduled = _schedule_reminders(meta, event_row, registration_id, event.get("id") or session.get("id"))
        except ReconciliationError as e:
            logger.exception("payments.webhooks.handle_checkout_completed %s: %s", e.code, e.message)
    else:
        logger.warning("payments.webhooks.handle_checkout_completed event introuvable id=%s", meta.event_id)
    return {"registrationId": registration_id, "remindersScheduled": scheduled}

def handle_payment_failed(event: Dict[str, Any]) -> Dict[str, Any]:
    """payment_intent.payment_failed: paiement -> 'failed' (sauf s'il est déjà payé/remboursé)."""
    intent = _object(event)
    payment_intent = intent.get("id")
    row = repository.mark_failed_by_intent(payment_intent)
    error = (intent.get("last_payment_error") or {}).get("message")
    audit_repository.record(
        "payment_failed",
        "payment",
        entity_id=(row or {}).get("id"),
        details={"stripe_pi": payment_intent, "error": error},
    )
    logger.info("payments.webhooks.handle_payment_failed pi=%s updated=%s", payment_intent, bool(row))
    return {"updated": bool(row)}

def handle_charge_refunded(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    charge.refunded: reporte le cumul 'amount_refunded' de la charge.
    Monotone et borné côté SQL; remboursement total -> inscription 'refunded'.
    """
    charge = _object(event)
    payment_intent = _id_of(charge.get("payment_intent"))
    if not payment_intent:
        logger.warning("payments.webhooks.handle_charge_refunded charge sans payment_intent id=%s", charge.get("id"))
        return {"updated": False}

    total = int(charge.get("amount_refunded") or 0)
    row = repository.record_refund_total(payment_intent, total)
    if row and row.get("status") == "refunded" and row.get("registration_id"):
        registrations_repository.set_payment_status(row["registration_id"], "refunded")

    audit_repository.record(
        "refund_recorded",
        "payment",
        entity_id=(row or {}).get("id"),
        details={"stripe_pi": payment_intent, "refunded_cents": (row or {}).get("refunded_cents", total)},
    )
    logger.info(
        "payments.webhooks.handle_charge_refunded pi=%s refunded_cents=%s status=%s",
        payment_intent, (row or {}).get("refunded_cents"), (row or {}).get("status"),
    )
    return {"updated": bool(row)}

HANDLERS: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    CHECKOUT_COMPLETED: handle_checkout_completed,
    PAYMENT_FAILED: handle_payment_failed,
    CHARGE_REFUNDED: handle_charge_refunded,
}

def handle_event(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Point d'entrée du réconciliateur (événement déjà vérifié et parsé).
    Retour: {"received": True, ...}; lève si la transition du ledger n'a pu être écrite.
    """
    stripe_event_id = event.get("id") or ""
    event_type = event.get("type") or ""

    existing = repository.get_webhook_log(stripe_event_id)
    if existing and existing.get("processed"):
        logger.info("payments.webhooks.handle_event duplicate event=%s type=%s", stripe_event_id, event_type)
        return {"received": True, "duplicate": True}
    if stripe_event_id:
        repository.insert_webhook_log(stripe_event_id, event_type, event)

    handler = HANDLERS.get(event_type)
    if handler is None:
        logger.info("payments.webhooks.handle_event ignored type=%s", event_type)
        if stripe_event_id:
            repository.mark_webhook_log(stripe_event_id, processed=True)
        return {"received": True, "ignored": True}

    try:
        handler(event)
    except ValidationError as e:
        # Payload inexploitable: le relivrer ne changerait rien
        logger.error("payments.webhooks.handle_event %s event=%s: %s", e.code, stripe_event_id, e.message)
        if stripe_event_id:
            repository.mark_webhook_log(stripe_event_id, processed=True, error_message=e.message)
        return {"received": True, "warning": e.code}
    except Exception as e:
        logger.exception("payments.webhooks.handle_event ledger write failed event=%s type=%s", stripe_event_id, event_type)
        if stripe_event_id:
            repository.mark_webhook_log(stripe_event_id, processed=False, error_message=str(e))
        raise

    if stripe_event_id:
        repository.mark_webhook_log(stripe_event_id, processed=True)
    return {"received": True}
