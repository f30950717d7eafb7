from typing import Optional
import eventreg.infra.supabase_client as supabase_client
import logging

logger = logging.getLogger(__name__)

# module eventreg.events.repository
def get_event(event_id: str) -> Optional[dict]:
    """
    Lit un événement par son identifiant (table 'events').
    - Retourne None si introuvable ou en cas d'erreur.
    """
    if not event_id:
        return None
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("events")
            .select("*")
            .eq("id", event_id)
            .maybe_single()
            .execute()
        )
        return (res.data if res is not None else None) or None
    except Exception:
        logger.exception("events.repository.get_event failed id=%s", event_id)
        return None

def count_paid_registrations(event_id: str) -> int:
    """
    Compte les inscriptions payées d'un événement (capacité dérivée, jamais stockée).
    Les inscriptions 'pending' sont exclues. Les erreurs de lecture sont propagées:
    un comptage faux admettrait au-delà de la capacité.
    """
    res = (
        supabase_client.get_service_supabase()
        .table("registrants")
        .select("id", count="exact")
        .eq("event_id", event_id)
        .eq("payment_status", "paid")
        .execute()
    )
    if getattr(res, "count", None) is not None:
        return int(res.count)
    return len(res.data or [])
