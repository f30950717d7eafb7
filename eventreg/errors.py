"""
Taxonomie des erreurs métier.
- Chaque erreur porte un code stable (lu par le front pour distinguer
  "déjà inscrit" / "complet" / échec générique) et un statut HTTP.
- Rendu JSON {"error": message, "code": code} via app_setup.exceptions.
"""
from typing import Optional


class DomainError(Exception):
    status_code = 500
    default_code = "error"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class ValidationError(DomainError):
    """Entrée manquante ou mal formée: aucune écriture effectuée."""
    status_code = 400
    default_code = "invalid"


class NotFoundError(DomainError):
    status_code = 404
    default_code = "not_found"


class ConflictError(DomainError):
    """Doublon d'inscription payée, événement complet ou inscriptions closes."""
    status_code = 409
    default_code = "conflict"


class ProviderError(DomainError):
    """Échec d'appel Stripe: récupérable, l'appelant peut réessayer."""
    status_code = 502
    default_code = "provider_error"


class AuthorizationError(DomainError):
    status_code = 403
    default_code = "insufficient_permissions"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message, code)
        if self.code == "unauthorized":
            self.status_code = 401


class ReconciliationError(DomainError):
    """Effet de bord du webhook en échec (email, planification): journalisé, jamais remonté à Stripe."""
    default_code = "reconciliation_failed"


class JobExecutionError(DomainError):
    default_code = "job_failed"
