"""
Runner de jobs planifiés: déclenché périodiquement (cron externe), sans payload.
- Réclame chaque job ('running', attempts+1) avant exécution: un crash en cours
  d'exécution reste visible via le compteur d'essais.
- Politique de reprise fixe: au plus JOBS_MAX_ATTEMPTS essais, sans backoff.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from eventreg.config import JOBS_BATCH_SIZE, JOBS_MAX_ATTEMPTS, PENDING_TTL_MINUTES
from eventreg.errors import JobExecutionError
from eventreg.notifications import email_client
from eventreg.registrations import repository as registrations_repository
from . import repository
from .scheduling import JOB_SEND_EMAIL

logger = logging.getLogger(__name__)

def _send_email(payload: Dict[str, Any]) -> None:
    template_key = payload.get("template_key")
    to_email = payload.get("to_email")
    if not template_key or not to_email:
        raise JobExecutionError("Payload send_email incomplet (template_key, to_email)")
    message_id = email_client.send_email(template_key, to_email, payload.get("data") or {})
    repository.insert_email_log({
        "recipient_email": to_email,
        "email_type": template_key,
        "event_id": payload.get("event_id"),
        "registration_id": payload.get("registration_id"),
        "status": "sent",
        "sent_at": datetime.now(timezone.utc).isoformat(),
        "metadata": {"provider_message_id": message_id or None},
    })

HANDLERS = {
    JOB_SEND_EMAIL: _send_email,
}

def execute_job(job: Dict[str, Any]) -> None:
    """Exécute l'effet de bord d'un job; lève JobExecutionError si le type est inconnu."""
    handler = HANDLERS.get(job.get("job_type"))
    if handler is None:
        raise JobExecutionError(f"Type de job inconnu: {job.get('job_type')}")
    handler(job.get("payload") or {})

def sweep_stale_pending(now: datetime) -> int:
    cutoff = (now - timedelta(minutes=PENDING_TTL_MINUTES)).isoformat()
    deleted = registrations_repository.delete_stale_pending(cutoff)
    if deleted:
        logger.info("jobs.sweep_stale_pending deleted=%s cutoff=%s", deleted, cutoff)
    return deleted

# module eventreg.jobs.service
def run_due_jobs(now: Optional[datetime] = None) -> Dict[str, int]:
    """
    Traite un lot de jobs échus (au plus JOBS_BATCH_SIZE, run_at croissant).
    - succès -> 'completed'
    - échec -> 'scheduled' (nouvel essai au prochain passage) ou 'failed'
      si attempts >= JOBS_MAX_ATTEMPTS; last_error conservé dans les deux cas
    Retour: {"processed", "failed", "total"} (signal de supervision).
    """
    now = now or datetime.now(timezone.utc)
    sweep_stale_pending(now)

    jobs = repository.fetch_due_jobs(now.isoformat(), limit=JOBS_BATCH_SIZE)
    processed = 0
    failed = 0
    for job in jobs:
        attempts = int(job.get("attempts") or 0) + 1
        if not repository.claim_job(job["id"], attempts):
            logger.info("jobs.run_due_jobs skip id=%s (déjà réclamé)", job["id"])
            continue
        try:
            execute_job(job)
        except Exception as e:
            failed += 1
            status = "failed" if attempts >= JOBS_MAX_ATTEMPTS else "scheduled"
            logger.warning(
                "jobs.run_due_jobs failure id=%s type=%s attempts=%s -> %s: %s",
                job["id"], job.get("job_type"), attempts, status, e,
            )
            repository.finish_job(job["id"], status, last_error=str(e) or e.__class__.__name__)
            continue
        repository.finish_job(job["id"], "completed")
        processed += 1

    logger.info("jobs.run_due_jobs processed=%s failed=%s total=%s", processed, failed, len(jobs))
    return {"processed": processed, "failed": failed, "total": len(jobs)}
