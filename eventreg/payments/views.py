import logging

from fastapi import APIRouter, Request, Depends
from fastapi.responses import JSONResponse

from eventreg.errors import ValidationError
from eventreg.utils.rate_limit import optional_rate_limit
from eventreg.registrations.models import RegistrationRequest
from eventreg.payments import stripe_client
from eventreg.payments import service as payments_service
from eventreg.payments import webhooks

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])

# module eventreg.payments.views
@router.post("/checkout", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_checkout_session(req: RegistrationRequest):
    """
    Crée une session Checkout Stripe pour une inscription payante.
    - Entrée JSON: {eventId, fullName, email, phone?, teamName?}
    - Sécurité: rate limit (10 req / 60s)
    - Réponse: {url, sessionId, registrationId}
    - Erreurs: {error, code} (400 invalide/gratuit, 404 événement, 409 duplicate|sold_out|registration_closed, 502 Stripe)
    """
    return payments_service.create_checkout(
        req.event_id,
        req.contact(),
        success_url=req.success_url,
        cancel_url=req.cancel_url,
    )

@router.post("/webhook", include_in_schema=False)
async def webhook_stripe(request: Request):
    """
    Webhook Stripe: checkout.session.completed, payment_intent.payment_failed, charge.refunded.
    - 200 {"received": true} sur tout chemin traité, ignoré, dupliqué ou dont l'erreur est avalée
    - 500 si la signature ou le payload est invalide (aucune écriture, pas de webhook_logs)
    - 500 si la transition du ledger n'a pu être écrite (Stripe relivrera)
    """
    payload = await request.body()
    try:
        event = stripe_client.parse_event(payload, request.headers.get("stripe-signature"))
    except ValidationError as e:
        logger.warning("payments.views.webhook_stripe rejet %s: %s", e.code, e.message)
        return JSONResponse(status_code=500, content={"error": e.message, "code": e.code})
    try:
        result = webhooks.handle_event(event)
    except Exception:
        logger.exception("payments.views.webhook_stripe échec event=%s", event.get("id"))
        return JSONResponse(status_code=500, content={"error": "Webhook non traité", "code": "webhook_failed"})
    return JSONResponse(result)
