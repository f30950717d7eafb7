"""
Adaptateur Resend: centralise l'envoi des emails transactionnels (HTTP via httpx).
"""
from typing import Any, Dict, Optional
import logging
import httpx

from eventreg.config import RESEND_API_KEY, RESEND_API_URL, EMAIL_FROM
from .templates import render_email

logger = logging.getLogger(__name__)

# module eventreg.notifications.email_client
def send_email(template_key: str, to_email: str, data: Dict[str, Any]) -> str:
    """
    Rend le gabarit puis POST sur l'API Resend.
    - Retourne l'identifiant du message côté fournisseur.
    - Lève RuntimeError si la clé est absente ou si Resend répond hors 2xx.
    """
    if not RESEND_API_KEY:
        raise RuntimeError("RESEND_API_KEY manquant")
    if not to_email:
        raise ValueError("to_email requis")
    subject, html = render_email(template_key, data or {})
    headers = {
        "Authorization": f"Bearer {RESEND_API_KEY}",
        "Content-Type": "application/json",
    }
    payload = {"from": EMAIL_FROM, "to": [to_email], "subject": subject, "html": html}
    resp = httpx.post(RESEND_API_URL, json=payload, headers=headers, timeout=10)
    if not (200 <= resp.status_code < 300):
        raise RuntimeError(f"Resend error: status={resp.status_code} body={resp.text}")
    try:
        return str((resp.json() or {}).get("id") or "")
    except ValueError:
        return ""

def send_event_confirmation(
    recipient_email: str,
    recipient_name: str,
    event: Dict[str, Any],
    amount_paid: Optional[float] = None,
) -> str:
    """Email de confirmation d'inscription (gratuite ou payée)."""
    data = {
        "recipientName": recipient_name,
        "eventTitle": event.get("title"),
        "eventDate": event.get("date"),
        "eventTime": event.get("start_time"),
        "eventEndTime": event.get("end_time"),
        "location": event.get("location"),
        "customMessage": event.get("email_template"),
        "amountPaid": amount_paid,
    }
    message_id = send_email("event_confirmation", recipient_email, data)
    logger.info("notifications.send_event_confirmation sent event_id=%s to=%s", event.get("id"), recipient_email)
    return message_id
