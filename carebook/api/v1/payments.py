from fastapi import APIRouter, Depends

from ...api.deps import get_identity, get_payment_service
from ...core.security import Identity
from ...services.payment_service import PaymentService
from ...schemas.payment import (
    PaymentConfirm, PaymentConfirmResponse, PaymentIntentCreate, PaymentIntentResponse
)

router = APIRouter(prefix="/payments", tags=["Payments"])

@router.post("/create-payment-intent", response_model=PaymentIntentResponse)
async def create_payment_intent(
    intent_data: PaymentIntentCreate,
    identity: Identity = Depends(get_identity),
    payment_service: PaymentService = Depends(get_payment_service)
):
    """Start paying for an appointment. Returns the processor client secret."""
    client_secret = await payment_service.create_intent(identity, intent_data.appointment_id)
    return PaymentIntentResponse(client_secret=client_secret)

@router.post("/confirm", response_model=PaymentConfirmResponse)
async def confirm_payment(
    confirm_data: PaymentConfirm,
    identity: Identity = Depends(get_identity),
    payment_service: PaymentService = Depends(get_payment_service)
):
    """Record a successful payment and confirm the appointment."""
    appointment = await payment_service.confirm(
        identity,
        confirm_data.appointment_id,
        confirm_data.payment_intent_id
    )
    return PaymentConfirmResponse(
        message="Payment confirmed successfully",
        appointment=appointment
    )
