"""
Accès aux données pour la feature 'refunds' (tables 'refunds' et 'user_roles').
"""
from typing import Any, Dict, Iterable, Optional
import logging
import eventreg.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

# module eventreg.refunds.repository
def has_role(user_id: str, roles: Iterable[str]) -> bool:
    """Vrai si user_id possède au moins un des rôles (table user_roles)."""
    if not user_id:
        return False
    res = (
        supabase_client.get_service_supabase()
        .table("user_roles")
        .select("role")
        .eq("user_id", user_id)
        .in_("role", list(roles))
        .limit(1)
        .execute()
    )
    return bool(res.data)

def insert_refund(data: Dict[str, Any]) -> Optional[dict]:
    """Ajoute une ligne 'refunds' (append-only: jamais modifiée ensuite)."""
    try:
        res = supabase_client.get_service_supabase().table("refunds").insert(data).execute()
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception(
            "refunds.repository.insert_refund failed payment_id=%s refund=%s",
            data.get("payment_id"), data.get("stripe_refund_id"),
        )
        raise
