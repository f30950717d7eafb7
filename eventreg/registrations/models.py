"""
Corps de requête commun au checkout payant et au RSVP gratuit (clés camelCase du front).
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

class RegistrationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event_id: str = Field(alias="eventId", min_length=1)
    full_name: str = Field(alias="fullName", min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    team_name: Optional[str] = Field(default=None, alias="teamName")
    success_url: Optional[str] = Field(default=None, alias="successUrl")
    cancel_url: Optional[str] = Field(default=None, alias="cancelUrl")

    def contact(self) -> dict:
        return {
            "full_name": self.full_name,
            "email": str(self.email),
            "phone": self.phone,
            "team_name": self.team_name,
        }
