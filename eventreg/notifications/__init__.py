"""
Module 'notifications': rendu des emails transactionnels et envoi via Resend.
"""

from .templates import render_email
from .email_client import send_email, send_event_confirmation

__all__ = [
    "render_email",
    "send_email",
    "send_event_confirmation",
]
