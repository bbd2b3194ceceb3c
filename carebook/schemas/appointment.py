from datetime import datetime
from pydantic import Field

from ..models.appointment import AppointmentStatus, AppointmentType, PaymentStatus
from .common import CamelModel, Money

class AppointmentCreate(CamelModel):
    """Booking request. Any patient id sent by the client is ignored."""
    doctor_id: str = Field(min_length=1, max_length=32)
    appointment_date: datetime
    appointment_type: AppointmentType
    consultation_fee: Money

class AppointmentStatusUpdate(CamelModel):
    status: AppointmentStatus

class Appointment(CamelModel):
    id: str
    patient_id: str
    doctor_id: str
    appointment_date: datetime
    appointment_type: AppointmentType
    consultation_fee: Money
    status: AppointmentStatus = AppointmentStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    created_at: datetime
    updated_at: datetime

    class Config:
        frozen = True
