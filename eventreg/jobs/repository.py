"""
Accès aux données pour la feature 'jobs' (tables 'scheduled_jobs' et 'email_logs').
"""
from typing import Any, Dict, List, Optional
import logging
import eventreg.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

TABLE = "scheduled_jobs"

# module eventreg.jobs.repository
def enqueue_jobs(jobs: List[Dict[str, Any]]) -> int:
    """
    Insère des jobs; ceux dont la dedupe_key existe déjà sont ignorés.
    Retourne le nombre de jobs soumis.
    """
    if not jobs:
        return 0
    (
        supabase_client.get_service_supabase()
        .table(TABLE)
        .upsert(jobs, on_conflict="dedupe_key", ignore_duplicates=True)
        .execute()
    )
    return len(jobs)

def fetch_due_jobs(now_iso: str, limit: int = 50) -> List[dict]:
    """Jobs 'scheduled' échus (run_at <= now), les plus anciens d'abord."""
    res = (
        supabase_client.get_service_supabase()
        .table(TABLE)
        .select("*")
        .eq("status", "scheduled")
        .lte("run_at", now_iso)
        .order("run_at")
        .limit(limit)
        .execute()
    )
    return res.data or []

def claim_job(job_id: str, attempts: int) -> Optional[dict]:
    """
    Passe le job en 'running' avec attempts incrémenté, seulement s'il est encore 'scheduled'.
    Retourne None si un autre runner l'a déjà pris.
    """
    res = (
        supabase_client.get_service_supabase()
        .table(TABLE)
        .update({"status": "running", "attempts": attempts})
        .eq("id", job_id)
        .eq("status", "scheduled")
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None

def finish_job(job_id: str, status: str, last_error: Optional[str] = None) -> None:
    data: Dict[str, Any] = {"status": status}
    if last_error is not None:
        data["last_error"] = last_error[:2000]
    try:
        supabase_client.get_service_supabase().table(TABLE).update(data).eq("id", job_id).execute()
    except Exception:
        logger.exception("jobs.repository.finish_job failed id=%s status=%s", job_id, status)

def insert_email_log(data: Dict[str, Any]) -> None:
    try:
        supabase_client.get_service_supabase().table("email_logs").insert(data).execute()
    except Exception:
        logger.exception("jobs.repository.insert_email_log failed to=%s", data.get("recipient_email"))
