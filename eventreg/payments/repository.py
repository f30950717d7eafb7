"""
Accès aux données pour la feature 'payments' (table 'payments').
Seuls le réconciliateur de webhooks et l'orchestrateur de remboursements écrivent ici.
"""
from typing import Any, Dict, Optional
import logging
import eventreg.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

TABLE = "payments"

def _first(res) -> Optional[dict]:
    rows = getattr(res, "data", None) or []
    if isinstance(rows, list):
        return rows[0] if rows else None
    return rows or None

# module eventreg.payments.repository
def insert_payment(data: Dict[str, Any]) -> Optional[dict]:
    """Crée la ligne 'requires_payment' associée à une session Checkout."""
    try:
        res = supabase_client.get_service_supabase().table(TABLE).insert(data).execute()
        return _first(res)
    except Exception:
        logger.exception(
            "payments.repository.insert_payment failed session=%s", data.get("stripe_checkout_session_id")
        )
        raise

def upsert_payment_by_session(data: Dict[str, Any]) -> Optional[dict]:
    """Upsert sur stripe_checkout_session_id (rejouable sans doublon)."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table(TABLE)
            .upsert(data, on_conflict="stripe_checkout_session_id")
            .execute()
        )
        return _first(res)
    except Exception:
        logger.exception(
            "payments.repository.upsert_payment_by_session failed session=%s", data.get("stripe_checkout_session_id")
        )
        raise

def get_payment(payment_id: str) -> Optional[dict]:
    if not payment_id:
        return None
    try:
        res = (
            supabase_client.get_service_supabase()
            .table(TABLE)
            .select("*")
            .eq("id", payment_id)
            .limit(1)
            .execute()
        )
        return _first(res)
    except Exception:
        logger.exception("payments.repository.get_payment failed id=%s", payment_id)
        raise

def mark_failed_by_intent(payment_intent_id: str) -> Optional[dict]:
    """
    Passe en 'failed' le paiement lié au PaymentIntent, sauf s'il est déjà
    payé ou remboursé (un échec livré en retard n'écrase pas un succès).
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table(TABLE)
            .update({"status": "failed"})
            .eq("stripe_payment_intent_id", payment_intent_id)
            .in_("status", ["requires_payment", "failed"])
            .execute()
        )
        return _first(res)
    except Exception:
        logger.exception("payments.repository.mark_failed_by_intent failed pi=%s", payment_intent_id)
        raise

def apply_refund(payment_id: str) -> Optional[dict]:
    """
    Reporte sur le paiement le cumul des lignes 'refunds' (fonction SQL apply_refund):
    refunded_cents = greatest(actuel, least(somme des refunds, amount_cents)).
    Indifférent à l'ordre d'arrivée du webhook charge.refunded: un remboursement
    n'est compté qu'une fois (une ligne par stripe_refund_id).
    Retourne la ligne mise à jour, ou None si aucun remboursement n'est enregistré.
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .rpc("apply_refund", {"p_payment_id": payment_id})
            .execute()
        )
        return _first(res)
    except Exception:
        logger.exception("payments.repository.apply_refund failed id=%s", payment_id)
        raise

def record_refund_total(payment_intent_id: str, total_refunded_cents: int) -> Optional[dict]:
    """
    Reporte le cumul remboursé annoncé par Stripe (fonction SQL record_refund_total):
    refunded_cents = greatest(actuel, least(total, amount_cents)).
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .rpc(
                "record_refund_total",
                {"p_payment_intent_id": payment_intent_id, "p_total_cents": int(total_refunded_cents)},
            )
            .execute()
        )
        return _first(res)
    except Exception:
        logger.exception(
            "payments.repository.record_refund_total failed pi=%s total=%s", payment_intent_id, total_refunded_cents
        )
        raise

# --- Journal des webhooks (détection des relivraisons, clé stripe_event_id) ---

def get_webhook_log(stripe_event_id: str) -> Optional[dict]:
    if not stripe_event_id:
        return None
    res = (
        supabase_client.get_service_supabase()
        .table("webhook_logs")
        .select("id, stripe_event_id, processed")
        .eq("stripe_event_id", stripe_event_id)
        .limit(1)
        .execute()
    )
    return _first(res)

def insert_webhook_log(stripe_event_id: str, event_type: str, payload: Dict[str, Any]) -> None:
    """Journalise la livraison avant traitement (ignore le doublon si déjà journalisée)."""
    try:
        (
            supabase_client.get_service_supabase()
            .table("webhook_logs")
            .upsert(
                {"stripe_event_id": stripe_event_id, "event_type": event_type, "payload": payload, "processed": False},
                on_conflict="stripe_event_id",
                ignore_duplicates=True,
            )
            .execute()
        )
    except Exception:
        logger.exception("payments.repository.insert_webhook_log failed event=%s", stripe_event_id)

def mark_webhook_log(stripe_event_id: str, *, processed: bool, error_message: Optional[str] = None) -> None:
    try:
        (
            supabase_client.get_service_supabase()
            .table("webhook_logs")
            .update({"processed": processed, "error_message": error_message})
            .eq("stripe_event_id", stripe_event_id)
            .execute()
        )
    except Exception:
        logger.exception("payments.repository.mark_webhook_log failed event=%s", stripe_event_id)
