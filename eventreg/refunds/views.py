import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from eventreg.utils.security import get_optional_user
from eventreg.refunds import service as refunds_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/refunds", tags=["Refunds API"])

class RefundRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    payment_id: str = Field(alias="paymentId")
    amount_cents: Optional[int] = Field(default=None, alias="amountCents")
    reason: Optional[str] = None

# module eventreg.refunds.views
@router.post("")
def create_refund(req: RefundRequest, user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    """
    Rembourse un paiement (Bearer Supabase d'un compte admin/finance).
    - 401 unauthorized sans jeton valide, 403 insufficient_permissions sans rôle
    - 502 provider_error si Stripe refuse (aucune écriture locale)
    """
    return refunds_service.issue_refund(req.payment_id, req.amount_cents, req.reason, user)
