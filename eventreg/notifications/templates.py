"""
Gabarits d'emails: sujet (texte brut) + corps HTML rendu par Jinja2.
Les corps vivent dans email_templates/ (autoescape actif: les champs saisis
par l'inscrit ne peuvent pas injecter de HTML). Aucun appel réseau.
Clés connues: event_confirmation, reminder_24h, reminder_2h.
"""
from datetime import date, time
from typing import Any, Dict, Optional, Tuple

from jinja2 import Environment, PackageLoader, StrictUndefined, select_autoescape

def format_time(value: Optional[str]) -> str:
    """'18:30:00' -> '6:30 PM' ; chaîne vide si absent ou illisible."""
    if not value:
        return ""
    try:
        t = time.fromisoformat(str(value))
    except ValueError:
        return str(value)
    hour = t.hour % 12 or 12
    return f"{hour}:{t.minute:02d} {'PM' if t.hour >= 12 else 'AM'}"

def format_date(value: Optional[str]) -> str:
    if not value:
        return ""
    try:
        return date.fromisoformat(str(value)).strftime("%A, %B %d, %Y")
    except ValueError:
        return str(value)

env = Environment(
    loader=PackageLoader("eventreg.notifications", "email_templates"),
    autoescape=select_autoescape(["html"]),
    undefined=StrictUndefined,
    trim_blocks=True,
    lstrip_blocks=True,
)
env.filters["event_date"] = format_date
env.filters["event_time"] = format_time

# Variables lues par les gabarits; absentes du payload -> None
TEMPLATE_FIELDS = (
    "recipientName", "eventTitle", "eventDate", "eventTime", "eventEndTime",
    "location", "amountPaid", "customMessage",
)

REMINDER_DELAYS = {
    "reminder_24h": "tomorrow",
    "reminder_2h": "in 2 hours",
}

def _context(data: Dict[str, Any], **extra) -> Dict[str, Any]:
    ctx = {field: data.get(field) for field in TEMPLATE_FIELDS}
    ctx.update(extra)
    return ctx

# module eventreg.notifications.templates
def render_email(template_key: str, data: Dict[str, Any]) -> Tuple[str, str]:
    """
    Retourne (subject, html) pour un gabarit donné.
    - Lève KeyError si la clé de gabarit est inconnue (le job échoue alors explicitement).
    """
    data = data or {}
    title = data.get("eventTitle")

    if template_key == "event_confirmation":
        html = env.get_template("event_confirmation.html").render(_context(data))
        return f"You're registered for {title or 'the event'}!", html

    if template_key in REMINDER_DELAYS:
        delay = REMINDER_DELAYS[template_key]
        html = env.get_template("reminder.html").render(_context(data, delay=delay))
        return f"Reminder: {title or 'your event'} starts {delay}", html

    raise KeyError(f"Gabarit email inconnu: {template_key}")
