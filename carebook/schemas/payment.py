from datetime import datetime
from pydantic import Field

from ..models.appointment import PaymentStatus
from .appointment import Appointment
from .common import CamelModel, Money

class Payment(CamelModel):
    id: str
    appointment_id: str
    payment_intent_id: str
    amount: Money
    status: PaymentStatus = PaymentStatus.PENDING
    created_at: datetime
    updated_at: datetime

    class Config:
        frozen = True

class PaymentIntentCreate(CamelModel):
    appointment_id: str = Field(min_length=1)

class PaymentIntentResponse(CamelModel):
    client_secret: str

class PaymentConfirm(CamelModel):
    appointment_id: str = Field(min_length=1)
    payment_intent_id: str = Field(min_length=1)

class PaymentConfirmResponse(CamelModel):
    message: str
    appointment: Appointment
