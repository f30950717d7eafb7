"""
Module 'registrations': intention d'inscription, RSVP gratuit et garde de capacité.
"""

from .capacity import check_admission, Admission, ADMIT, REJECT, SOLD_OUT, REGISTRATION_CLOSED
from .service import create_intent, finalize_free, normalize_contact, price_cents, load_event

__all__ = [
    # capacity
    "check_admission",
    "Admission",
    "ADMIT",
    "REJECT",
    "SOLD_OUT",
    "REGISTRATION_CLOSED",
    # service
    "create_intent",
    "finalize_free",
    "normalize_contact",
    "price_cents",
    "load_event",
]
