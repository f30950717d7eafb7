"""
Planification des rappels d'événement: logique pure (pas de DB).
"""
from datetime import datetime, timedelta, timezone, time, date
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

from eventreg.config import EVENT_TIMEZONE

JOB_SEND_EMAIL = "send_email"

# (clé de gabarit, délai avant le début de l'événement)
REMINDERS = (
    ("reminder_24h", timedelta(hours=24)),
    ("reminder_2h", timedelta(hours=2)),
)

def event_start(event: Dict[str, Any], tz_name: str = EVENT_TIMEZONE) -> Optional[datetime]:
    """
    Combine date + start_time (stockés sans fuseau) dans le fuseau des événements.
    Retourne None si l'un des deux champs est absent ou illisible.
    """
    try:
        d = date.fromisoformat(str(event.get("date") or ""))
        t = time.fromisoformat(str(event.get("start_time") or ""))
    except ValueError:
        return None
    return datetime.combine(d, t, tzinfo=ZoneInfo(tz_name))

# module eventreg.jobs.scheduling
def reminder_jobs(
    event: Dict[str, Any],
    *,
    to_email: str,
    registration_id: Optional[str],
    dedupe_prefix: str,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """
    Construit les lignes scheduled_jobs des rappels 24h et 2h.
    - Un rappel dont run_at est déjà passé n'est pas planifié.
    - dedupe_key = "<dedupe_prefix>:<gabarit>": une relivraison du même webhook
      ne crée pas de doublon (contrainte unique côté DB).
    """
    start = event_start(event)
    if start is None:
        return []
    now = now or datetime.now(timezone.utc)
    data = {
        "eventTitle": event.get("title"),
        "eventDate": event.get("date"),
        "eventTime": event.get("start_time"),
        "eventEndTime": event.get("end_time"),
        "location": event.get("location"),
    }
    jobs: List[Dict[str, Any]] = []
    for template_key, offset in REMINDERS:
        run_at = start - offset
        if run_at <= now:
            continue
        jobs.append({
            "job_type": JOB_SEND_EMAIL,
            "run_at": run_at.astimezone(timezone.utc).isoformat(),
            "status": "scheduled",
            "attempts": 0,
            "dedupe_key": f"{dedupe_prefix}:{template_key}",
            "payload": {
                "template_key": template_key,
                "to_email": to_email,
                "event_id": event.get("id"),
                "registration_id": registration_id,
                "data": data,
            },
        })
    return jobs
