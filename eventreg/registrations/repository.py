"""
Accès aux données pour la feature 'registrations' (table 'registrants').
Les écritures passent par le client service-role et propagent les erreurs:
l'appelant ne doit jamais croire à une inscription non persistée.
"""
from typing import Any, Dict, Optional
import logging
import eventreg.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

TABLE = "registrants"
CONFLICT_TARGET = "event_id,email"

def _first(res) -> Optional[dict]:
    rows = getattr(res, "data", None) or []
    if isinstance(rows, list):
        return rows[0] if rows else None
    return rows or None

# Statuts qui valent inscription confirmée (doublon refusé)
REGISTERED_STATUSES = ["paid", "walk-up"]

# module eventreg.registrations.repository
def find_registered(event_id: str, email: str) -> Optional[dict]:
    """Retourne l'inscription confirmée (payée ou walk-up) pour (event_id, email), sinon None."""
    res = (
        supabase_client.get_service_supabase()
        .table(TABLE)
        .select("id, payment_status")
        .eq("event_id", event_id)
        .eq("email", email)
        .in_("payment_status", REGISTERED_STATUSES)
        .limit(1)
        .execute()
    )
    return _first(res)

def get_registration(registration_id: str) -> Optional[dict]:
    if not registration_id:
        return None
    try:
        res = (
            supabase_client.get_service_supabase()
            .table(TABLE)
            .select("*")
            .eq("id", registration_id)
            .limit(1)
            .execute()
        )
        return _first(res)
    except Exception:
        logger.exception("registrations.repository.get_registration failed id=%s", registration_id)
        return None

def delete_pending(event_id: str, email: str) -> None:
    """Supprime les brouillons 'pending' de la paire (au plus un pending par paire)."""
    try:
        (
            supabase_client.get_service_supabase()
            .table(TABLE)
            .delete()
            .eq("event_id", event_id)
            .eq("email", email)
            .eq("payment_status", "pending")
            .execute()
        )
    except Exception:
        logger.exception("registrations.repository.delete_pending failed event_id=%s email=%s", event_id, email)
        raise

def upsert_registration(data: Dict[str, Any]) -> Optional[dict]:
    """
    Insert-or-update sur la cible de conflit (event_id, email).
    Rejouer la même écriture produit le même état (upsert idempotent).
    Seules les colonnes fournies sont réécrites sur une ligne existante: sans
    payment_status, une nouvelle ligne prend le défaut 'pending' et une ligne
    existante garde son statut et son created_at.
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table(TABLE)
            .upsert(data, on_conflict=CONFLICT_TARGET)
            .execute()
        )
        return _first(res)
    except Exception:
        logger.exception(
            "registrations.repository.upsert_registration failed event_id=%s email=%s status=%s",
            data.get("event_id"), data.get("email"), data.get("payment_status"),
        )
        raise

def set_payment_status(registration_id: str, payment_status: str) -> bool:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table(TABLE)
            .update({"payment_status": payment_status})
            .eq("id", registration_id)
            .execute()
        )
        return bool(getattr(res, "data", None))
    except Exception:
        logger.exception(
            "registrations.repository.set_payment_status failed id=%s status=%s", registration_id, payment_status
        )
        raise

def delete_stale_pending(created_before: str) -> int:
    """
    Purge les inscriptions 'pending' abandonnées créées avant created_before (ISO 8601).
    Retourne le nombre de lignes supprimées (0 en cas d'erreur: la purge est opportuniste).
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table(TABLE)
            .delete()
            .eq("payment_status", "pending")
            .lt("created_at", created_before)
            .execute()
        )
        return len(getattr(res, "data", None) or [])
    except Exception:
        logger.exception("registrations.repository.delete_stale_pending failed created_before=%s", created_before)
        return 0
