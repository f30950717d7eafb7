import logging

from fastapi import APIRouter, Depends

from eventreg.utils.rate_limit import optional_rate_limit
from eventreg.registrations.models import RegistrationRequest
from eventreg.registrations import service as registrations_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/registrations", tags=["Registrations API"])

# module eventreg.registrations.views
@router.post("/free", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def register_free(req: RegistrationRequest):
    """
    RSVP d'un événement gratuit: inscription directement 'paid', sans Stripe.
    Réponse: {registrationId, status}
    """
    row = registrations_service.finalize_free(req.event_id, req.contact())
    return {"registrationId": row.get("id"), "status": row.get("payment_status")}
