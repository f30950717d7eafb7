"""
Journal d'audit en écriture seule (table 'audit_logs'): jamais modifié ni supprimé ici.
"""
from typing import Any, Dict, Optional
import logging
import eventreg.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

# module eventreg.audit.repository
def record(
    action: str,
    entity_type: str,
    entity_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    user_id: Optional[str] = None,
) -> bool:
    """
    Ajoute une entrée d'audit (payment_confirmed, payment_failed, refund_recorded, refund_issued...).
    L'audit suit une écriture déjà durable: un échec est journalisé, pas propagé.
    """
    try:
        supabase_client.get_service_supabase().table("audit_logs").insert({
            "action": action,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "details": details or {},
            "user_id": user_id,
        }).execute()
        return True
    except Exception:
        logger.exception("audit.repository.record failed action=%s entity=%s:%s", action, entity_type, entity_id)
        return False
