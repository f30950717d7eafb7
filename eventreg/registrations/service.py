"""
Cas d'usage 'registrations': intention d'inscription (avant paiement) et RSVP gratuit.
Orchestre repository, garde de capacité et notification de confirmation.
"""
import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from eventreg.errors import ConflictError, NotFoundError, ValidationError
from eventreg.events import repository as events_repository
from eventreg.notifications import email_client
from . import capacity
from . import repository

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

CONFLICT_MESSAGES = {
    capacity.SOLD_OUT: "Événement complet",
    capacity.REGISTRATION_CLOSED: "Inscriptions closes pour cet événement",
}

def normalize_contact(contact: Dict[str, Any]) -> Dict[str, Optional[str]]:
    """
    Normalise les champs de contact {full_name, email, phone, team_name}.
    - Accepte aussi les clés camelCase du front (fullName, teamName).
    - email en minuscules: la paire (event_id, email) est la clé d'unicité.
    - Lève ValidationError si nom ou email manquant/mal formé.
    """
    contact = contact or {}
    full_name = str(contact.get("full_name") or contact.get("fullName") or "").strip()
    email = str(contact.get("email") or "").strip().lower()
    phone = str(contact.get("phone") or "").strip() or None
    team_name = str(contact.get("team_name") or contact.get("teamName") or "").strip() or None
    if not full_name:
        raise ValidationError("Nom complet requis", code="missing_full_name")
    if not email or not EMAIL_RE.match(email):
        raise ValidationError("Email invalide", code="invalid_email")
    return {"full_name": full_name, "email": email, "phone": phone, "team_name": team_name}

def price_cents(event: Dict[str, Any]) -> int:
    """Prix de l'événement (dollars, numeric) converti en centimes; 0 = gratuit."""
    try:
        return int((Decimal(str(event.get("price") or 0)) * 100).quantize(Decimal("1")))
    except InvalidOperation:
        raise ValidationError("Prix d'événement invalide", code="invalid_price")

def load_event(event_id: str) -> Dict[str, Any]:
    if not (event_id or "").strip():
        raise ValidationError("eventId requis", code="missing_event_id")
    event = events_repository.get_event(event_id)
    if not event:
        raise NotFoundError("Événement introuvable", code="event_not_found")
    return event

def ensure_admitted(event: Dict[str, Any], email: str) -> None:
    """
    Vérifie doublon puis capacité (dans cet ordre: un inscrit voit "déjà inscrit",
    pas "complet"). Doublon = ligne 'paid' ou 'walk-up'; les inscriptions 'pending'
    ne comptent ni pour l'un ni pour l'autre.
    """
    if repository.find_registered(event["id"], email):
        raise ConflictError("Vous êtes déjà inscrit à cet événement", code="duplicate")
    paid_count = events_repository.count_paid_registrations(event["id"])
    admission = capacity.check_admission(event, paid_count)
    if not admission.admitted:
        raise ConflictError(CONFLICT_MESSAGES.get(admission.reason, "Inscription refusée"), code=admission.reason)

# module eventreg.registrations.service
def create_intent(event_id: str, contact: Dict[str, Any], event: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Crée l'inscription provisoire ('pending') précédant le paiement.
    Étapes:
      1) Valide le contact et charge l'événement (NotFoundError si absent)
      2) Doublon paid/walk-up -> ConflictError(duplicate); garde de capacité -> ConflictError(sold_out|registration_closed)
      3) Supprime le 'pending' périmé de la paire puis écrit le contact sans statut:
         nouvelle ligne 'pending' (created_at neuf), ou ligne refunded/failed/unpaid
         réutilisée telle quelle (historique conservé, jamais purgée par le TTL)
    Retour: la ligne registrants (son id sert de client_reference_id Stripe).
    """
    contact = normalize_contact(contact)
    event = event or load_event(event_id)
    ensure_admitted(event, contact["email"])

    repository.delete_pending(event["id"], contact["email"])
    row = repository.upsert_registration({"event_id": event["id"], **contact})
    if not row:
        raise RuntimeError("Impossible de créer l'inscription")
    logger.info(
        "registrations.create_intent id=%s event_id=%s status=%s", row.get("id"), event["id"], row.get("payment_status")
    )
    return row

def finalize_free(event_id: str, contact: Dict[str, Any]) -> Dict[str, Any]:
    """
    RSVP d'un événement gratuit: écrit directement 'paid' (upsert sur (event_id, email)),
    sans Payment ni aller-retour Stripe. L'email de confirmation est envoyé de façon
    synchrone; son échec est journalisé sans annuler l'inscription.
    """
    contact = normalize_contact(contact)
    event = load_event(event_id)
    if price_cents(event) != 0:
        raise ValidationError("Événement payant: passer par le checkout", code="paid_event")
    ensure_admitted(event, contact["email"])

    row = repository.upsert_registration({
        "event_id": event["id"],
        **contact,
        "payment_status": "paid",
    })
    if not row:
        raise RuntimeError("Impossible d'enregistrer l'inscription")
    logger.info("registrations.finalize_free paid id=%s event_id=%s", row.get("id"), event["id"])

    try:
        email_client.send_event_confirmation(contact["email"], contact["full_name"], event, amount_paid=None)
    except Exception:
        logger.exception("registrations.finalize_free confirmation email failed id=%s", row.get("id"))
    return row
