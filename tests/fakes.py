"""
Ledger en mémoire pour les tests: remplace les fonctions des repositories en
reproduisant les garanties de la base (unicités, upserts, mises à jour conditionnelles).
"""
import copy
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

from eventreg.audit import repository as audit_repository
from eventreg.events import repository as events_repository
from eventreg.jobs import repository as jobs_repository
from eventreg.notifications import email_client
from eventreg.payments import repository as payments_repository
from eventreg.payments import stripe_client
from eventreg.refunds import repository as refunds_repository
from eventreg.registrations import repository as registrations_repository


# Colonnes de email_logs (sql/schema.sql)
EMAIL_LOG_COLUMNS = {
    "id", "registration_id", "event_id", "recipient_email", "email_type",
    "status", "error_message", "metadata", "sent_at", "created_at",
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _ts(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class FakeLedger:
    def __init__(self):
        self.events: Dict[str, dict] = {}
        self.registrants: List[dict] = []
        self.payments: List[dict] = []
        self.refunds: List[dict] = []
        self.scheduled_jobs: List[dict] = []
        self.audit_logs: List[dict] = []
        self.webhook_logs: List[dict] = []
        self.email_logs: List[dict] = []
        self.user_roles: List[dict] = []
        self.outbox: List[dict] = []
        self.stripe_sessions: List[dict] = []
        self.stripe_refunds: List[dict] = []
        self.stripe_customers: Dict[str, str] = {}
        self.fail_email = False
        self.fail_payment_upsert = False

    # --- Données de test ---

    def add_event(self, **fields) -> dict:
        event = {
            "id": fields.pop("id", str(uuid.uuid4())),
            "title": "5 Points Cup",
            "date": "2099-06-01",
            "start_time": "10:00:00",
            "end_time": "18:00:00",
            "location": "Central Park",
            "capacity": None,
            "price": 0,
            "status": "published",
            "registration_close_at": None,
        }
        event.update(fields)
        self.events[event["id"]] = event
        return event

    def add_registrant(self, event_id: str, email: str, payment_status: str = "paid", **fields) -> dict:
        row = {
            "id": str(uuid.uuid4()),
            "event_id": event_id,
            "email": email,
            "full_name": fields.pop("full_name", email.split("@")[0]),
            "phone": None,
            "team_name": None,
            "payment_status": payment_status,
            "stripe_payment_id": None,
            "created_at": fields.pop("created_at", _now_iso()),
        }
        row.update(fields)
        self.registrants.append(row)
        return row

    def add_payment(self, **fields) -> dict:
        row = {
            "id": str(uuid.uuid4()),
            "event_id": None,
            "registration_id": None,
            "stripe_checkout_session_id": f"cs_{uuid.uuid4().hex[:12]}",
            "stripe_payment_intent_id": None,
            "stripe_customer_id": None,
            "amount_cents": 0,
            "currency": "usd",
            "status": "requires_payment",
            "refunded_cents": 0,
        }
        row.update(fields)
        self.payments.append(row)
        return row

    def grant_role(self, user_id: str, role: str) -> None:
        self.user_roles.append({"user_id": user_id, "role": role})

    def registrations_for(self, event_id: str, email: str) -> List[dict]:
        return [r for r in self.registrants if r["event_id"] == event_id and r["email"] == email]

    # --- events ---

    def get_event(self, event_id):
        event = self.events.get(event_id)
        return copy.deepcopy(event) if event else None

    def count_paid_registrations(self, event_id):
        return sum(1 for r in self.registrants if r["event_id"] == event_id and r["payment_status"] == "paid")

    # --- registrants ---

    def find_registered(self, event_id, email):
        for r in self.registrations_for(event_id, email):
            if r["payment_status"] in ("paid", "walk-up"):
                return {"id": r["id"], "payment_status": r["payment_status"]}
        return None

    def get_registration(self, registration_id):
        for r in self.registrants:
            if r["id"] == registration_id:
                return copy.deepcopy(r)
        return None

    def delete_pending(self, event_id, email):
        self.registrants = [
            r for r in self.registrants
            if not (r["event_id"] == event_id and r["email"] == email and r["payment_status"] == "pending")
        ]

    def upsert_registration(self, data):
        existing = self.registrations_for(data["event_id"], data["email"])
        if existing:
            existing[0].update(data)
            return copy.deepcopy(existing[0])
        row = {"id": str(uuid.uuid4()), "created_at": _now_iso(), "stripe_payment_id": None, "payment_status": "pending"}
        row.update(data)
        self.registrants.append(row)
        return copy.deepcopy(row)

    def set_payment_status(self, registration_id, payment_status):
        for r in self.registrants:
            if r["id"] == registration_id:
                r["payment_status"] = payment_status
                return True
        return False

    def delete_stale_pending(self, created_before):
        cutoff = _ts(created_before)
        keep = [r for r in self.registrants if not (r["payment_status"] == "pending" and _ts(r["created_at"]) < cutoff)]
        deleted = len(self.registrants) - len(keep)
        self.registrants = keep
        return deleted

    # --- payments ---

    def _payment_by(self, key, value) -> Optional[dict]:
        for p in self.payments:
            if value and p.get(key) == value:
                return p
        return None

    def insert_payment(self, data):
        if self._payment_by("stripe_checkout_session_id", data.get("stripe_checkout_session_id")):
            raise RuntimeError("duplicate key value violates unique constraint payments_session_key")
        row = {"id": str(uuid.uuid4()), "refunded_cents": 0, "stripe_payment_intent_id": None}
        row.update(data)
        self.payments.append(row)
        return copy.deepcopy(row)

    def upsert_payment_by_session(self, data):
        if self.fail_payment_upsert:
            raise RuntimeError("connection reset by peer")
        existing = self._payment_by("stripe_checkout_session_id", data.get("stripe_checkout_session_id"))
        if existing:
            existing.update(data)
            return copy.deepcopy(existing)
        row = {"id": str(uuid.uuid4()), "refunded_cents": 0, "currency": "usd"}
        row.update(data)
        self.payments.append(row)
        return copy.deepcopy(row)

    def get_payment(self, payment_id):
        row = self._payment_by("id", payment_id)
        return copy.deepcopy(row) if row else None

    def mark_failed_by_intent(self, payment_intent_id):
        row = self._payment_by("stripe_payment_intent_id", payment_intent_id)
        if row and row["status"] in ("requires_payment", "failed"):
            row["status"] = "failed"
            return copy.deepcopy(row)
        return None

    def apply_refund(self, payment_id):
        row = self._payment_by("id", payment_id)
        issued = sum(r["amount_cents"] for r in self.refunds if r["payment_id"] == payment_id)
        if not row or issued <= 0:
            return None
        row["refunded_cents"] = max(row["refunded_cents"], min(issued, row["amount_cents"]))
        row["status"] = "refunded" if row["refunded_cents"] >= row["amount_cents"] else "partially_refunded"
        return copy.deepcopy(row)

    def record_refund_total(self, payment_intent_id, total_refunded_cents):
        row = self._payment_by("stripe_payment_intent_id", payment_intent_id)
        if not row or total_refunded_cents <= 0:
            return None
        row["refunded_cents"] = max(row["refunded_cents"], min(total_refunded_cents, row["amount_cents"]))
        row["status"] = "refunded" if row["refunded_cents"] >= row["amount_cents"] else "partially_refunded"
        return copy.deepcopy(row)

    # --- webhook_logs ---

    def get_webhook_log(self, stripe_event_id):
        for log in self.webhook_logs:
            if log["stripe_event_id"] == stripe_event_id:
                return copy.deepcopy(log)
        return None

    def insert_webhook_log(self, stripe_event_id, event_type, payload):
        if self.get_webhook_log(stripe_event_id) is None:
            self.webhook_logs.append({
                "stripe_event_id": stripe_event_id,
                "event_type": event_type,
                "payload": payload,
                "processed": False,
                "error_message": None,
            })

    def mark_webhook_log(self, stripe_event_id, *, processed, error_message=None):
        for log in self.webhook_logs:
            if log["stripe_event_id"] == stripe_event_id:
                log["processed"] = processed
                log["error_message"] = error_message

    # --- audit ---

    def record(self, action, entity_type, entity_id=None, details=None, user_id=None):
        self.audit_logs.append({
            "action": action,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "details": details or {},
            "user_id": user_id,
        })
        return True

    def actions(self) -> List[str]:
        return [a["action"] for a in self.audit_logs]

    # --- scheduled_jobs / email_logs ---

    def enqueue_jobs(self, jobs):
        keys = {j.get("dedupe_key") for j in self.scheduled_jobs}
        for job in jobs:
            if job.get("dedupe_key") and job["dedupe_key"] in keys:
                continue
            row = {"id": str(uuid.uuid4()), "last_error": None}
            row.update(copy.deepcopy(job))
            self.scheduled_jobs.append(row)
            keys.add(job.get("dedupe_key"))
        return len(jobs)

    def add_job(self, **fields) -> dict:
        row = {
            "id": str(uuid.uuid4()),
            "job_type": "send_email",
            "run_at": "2000-01-01T00:00:00+00:00",
            "payload": {"template_key": "reminder_24h", "to_email": "a@x.com", "data": {}},
            "status": "scheduled",
            "attempts": 0,
            "last_error": None,
            "dedupe_key": None,
        }
        row.update(fields)
        self.scheduled_jobs.append(row)
        return row

    def fetch_due_jobs(self, now_iso, limit=50):
        now = _ts(now_iso)
        due = [j for j in self.scheduled_jobs if j["status"] == "scheduled" and _ts(j["run_at"]) <= now]
        due.sort(key=lambda j: _ts(j["run_at"]))
        return [copy.deepcopy(j) for j in due[:limit]]

    def claim_job(self, job_id, attempts):
        for j in self.scheduled_jobs:
            if j["id"] == job_id and j["status"] == "scheduled":
                j["status"] = "running"
                j["attempts"] = attempts
                return copy.deepcopy(j)
        return None

    def finish_job(self, job_id, status, last_error=None):
        for j in self.scheduled_jobs:
            if j["id"] == job_id:
                j["status"] = status
                if last_error is not None:
                    j["last_error"] = last_error

    def insert_email_log(self, data):
        unknown = set(data) - EMAIL_LOG_COLUMNS
        if unknown:
            raise AssertionError(f"colonnes absentes de email_logs: {sorted(unknown)}")
        self.email_logs.append(dict(data))

    # --- refunds / user_roles ---

    def has_role(self, user_id, roles):
        return any(r["user_id"] == user_id and r["role"] in roles for r in self.user_roles)

    def insert_refund(self, data):
        row = {"id": str(uuid.uuid4()), "created_at": _now_iso()}
        row.update(data)
        self.refunds.append(row)
        return copy.deepcopy(row)

    # --- fournisseurs (Stripe, Resend) ---

    def find_customer_id(self, email):
        return self.stripe_customers.get(email)

    def create_session(self, *, line_items, success_url, cancel_url, metadata, client_reference_id,
                       customer_email=None, customer=None):
        session = {
            "id": f"cs_test_{len(self.stripe_sessions) + 1}",
            "url": f"https://checkout.stripe.com/pay/cs_test_{len(self.stripe_sessions) + 1}",
            "line_items": line_items,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": dict(metadata),
            "client_reference_id": client_reference_id,
            "customer_email": None if customer else customer_email,
            "customer": customer,
        }
        self.stripe_sessions.append(session)
        return {"id": session["id"], "url": session["url"]}

    def create_refund(self, *, payment_intent_id, amount_cents, metadata=None):
        refund = {"id": f"re_test_{len(self.stripe_refunds) + 1}", "status": "succeeded",
                  "payment_intent": payment_intent_id, "amount": amount_cents}
        self.stripe_refunds.append(refund)
        return {"id": refund["id"], "status": refund["status"]}

    def send_email(self, template_key, to_email, data):
        if self.fail_email:
            raise RuntimeError("Resend error: status=503 body=unavailable")
        self.outbox.append({"template_key": template_key, "to_email": to_email, "data": data})
        return f"msg_{len(self.outbox)}"

    # --- Événements webhook ---

    def completed_event(self, session_id: str, *, event_id: str = "evt_1", payment_intent: str = "pi_1",
                        amount_total: Optional[int] = None) -> Dict[str, Any]:
        session = next(s for s in self.stripe_sessions if s["id"] == session_id)
        if amount_total is None:
            amount_total = session["line_items"][0]["price_data"]["unit_amount"]
        return {
            "id": event_id,
            "type": "checkout.session.completed",
            "data": {"object": {
                "id": session_id,
                "object": "checkout.session",
                "client_reference_id": session["client_reference_id"],
                "metadata": dict(session["metadata"]),
                "payment_intent": payment_intent,
                "customer": "cus_1",
                "amount_total": amount_total,
                "currency": "usd",
            }},
        }

    # --- Installation ---

    def install(self, monkeypatch) -> "FakeLedger":
        patches = {
            events_repository: ["get_event", "count_paid_registrations"],
            registrations_repository: [
                "find_registered", "get_registration", "delete_pending",
                "upsert_registration", "set_payment_status", "delete_stale_pending",
            ],
            payments_repository: [
                "insert_payment", "upsert_payment_by_session", "get_payment", "mark_failed_by_intent",
                "apply_refund", "record_refund_total", "get_webhook_log", "insert_webhook_log", "mark_webhook_log",
            ],
            audit_repository: ["record"],
            jobs_repository: ["enqueue_jobs", "fetch_due_jobs", "claim_job", "finish_job", "insert_email_log"],
            refunds_repository: ["has_role", "insert_refund"],
            stripe_client: ["find_customer_id", "create_session", "create_refund"],
            email_client: ["send_email"],
        }
        for module, names in patches.items():
            for name in names:
                monkeypatch.setattr(module, name, getattr(self, name))
        return self


def stripe_object(**fields):
    """Objet façon SDK Stripe (accès par attribut)."""
    return SimpleNamespace(**fields)
