"""
Module 'jobs': file durable de travaux différés (rappels, reçus) avec reprise bornée.
"""

from .scheduling import reminder_jobs, event_start
from .service import run_due_jobs, execute_job

__all__ = [
    "reminder_jobs",
    "event_start",
    "run_due_jobs",
    "execute_job",
]
