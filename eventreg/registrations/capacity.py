"""
Garde de capacité: logique pure (pas de Stripe, pas de DB).
Consultative: entre l'admission et le paiement, d'autres checkouts concurrents
peuvent être admis; la contrainte unique (event_id, email) et les
remboursements manuels bornent ce sur-booking.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

ADMIT = "admit"
REJECT = "reject"

SOLD_OUT = "sold_out"
REGISTRATION_CLOSED = "registration_closed"

# 'sold_out' reste ouvert ici: la complétude se décide au comptage, pas au statut
OPEN_STATUSES = ("published", "sold_out")

@dataclass(frozen=True)
class Admission:
    decision: str
    reason: Optional[str] = None

    @property
    def admitted(self) -> bool:
        return self.decision == ADMIT

def _parse_ts(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt

# module eventreg.registrations.capacity
def check_admission(event: Dict[str, Any], paid_count: int, now: Optional[datetime] = None) -> Admission:
    """
    Admet ou rejette une nouvelle tentative d'inscription.
    - REJECT(registration_closed): statut non publié ou date limite dépassée.
    - REJECT(sold_out): capacité définie et paid_count >= capacité.
    - capacity null = illimité.
    """
    now = now or datetime.now(timezone.utc)
    status = (event.get("status") or "published").lower()
    if status not in OPEN_STATUSES:
        return Admission(REJECT, REGISTRATION_CLOSED)

    close_at = _parse_ts(event.get("registration_close_at"))
    if close_at and close_at <= now:
        return Admission(REJECT, REGISTRATION_CLOSED)

    capacity = event.get("capacity")
    if capacity is not None and int(paid_count) >= int(capacity):
        return Admission(REJECT, SOLD_OUT)
    return Admission(ADMIT)
