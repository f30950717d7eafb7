"""
Schéma versionné des métadonnées Stripe (seul canal de contexte entre la création
du checkout et le webhook): construit à la création, validé à la réception.
"""
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, ValidationError as PydanticValidationError, field_validator

from eventreg.errors import ValidationError

METADATA_VERSION = "1"
# Limite Stripe: 500 caractères par valeur de métadonnée
MAX_VALUE_LENGTH = 500

class CheckoutMetadata(BaseModel):
    v: Literal["1"] = METADATA_VERSION
    registration_id: str
    event_id: str
    email: str
    full_name: str
    phone: str = ""
    team_name: str = ""

    @field_validator("registration_id", "event_id", "email", "full_name")
    @classmethod
    def required_not_blank(cls, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("champ requis vide")
        return value

    def to_stripe(self) -> Dict[str, str]:
        """Sérialise en dict de chaînes (format attendu par l'API Stripe)."""
        return {k: str(v or "")[:MAX_VALUE_LENGTH] for k, v in self.model_dump().items()}

# module eventreg.payments.metadata
def build_metadata(registration: Dict[str, Any], event_id: str) -> CheckoutMetadata:
    """Instantané du contact + identifiants inscription/événement embarqués dans la session."""
    return CheckoutMetadata(
        registration_id=str(registration.get("id") or ""),
        event_id=str(event_id),
        email=registration.get("email") or "",
        full_name=registration.get("full_name") or "",
        phone=registration.get("phone") or "",
        team_name=registration.get("team_name") or "",
    )

def _missing_fields(exc: PydanticValidationError) -> List[str]:
    return sorted({".".join(str(p) for p in err.get("loc", ())) or "metadata" for err in exc.errors()})

def extract_metadata_from_session(session: Dict[str, Any]) -> CheckoutMetadata:
    """
    Valide les métadonnées d'une session Checkout (objet data.object d'un webhook).
    - registration_id: repli sur client_reference_id si absent des métadonnées.
    - Lève ValidationError(code="invalid_metadata") en nommant les champs fautifs.
    """
    session = session if isinstance(session, dict) else {}
    meta = dict(session.get("metadata") or {})
    if not meta.get("registration_id") and session.get("client_reference_id"):
        meta["registration_id"] = session.get("client_reference_id")
    try:
        return CheckoutMetadata.model_validate(meta)
    except PydanticValidationError as exc:
        fields = _missing_fields(exc)
        raise ValidationError(
            f"Métadonnées de checkout invalides: {', '.join(fields)}", code="invalid_metadata"
        ) from exc
