import logging

from ..core.exceptions import AlreadyPaid, Conflict, Forbidden
from ..core.security import Identity
from ..models.appointment import AppointmentStatus, PaymentStatus
from ..schemas.appointment import Appointment
from ..schemas.payment import Payment
from ..storage.base import BookingStore
from .payment_gateway import PaymentGateway, from_minor_units, to_minor_units

logger = logging.getLogger(__name__)

def ensure_payable(appointment: Appointment):
    if appointment.payment_status == PaymentStatus.COMPLETED:
        raise AlreadyPaid()
    if appointment.status == AppointmentStatus.CANCELLED:
        raise Conflict("Cannot pay for a cancelled appointment")

def ensure_confirmable(appointment: Appointment, payment: Payment):
    if payment.status == PaymentStatus.COMPLETED:
        raise AlreadyPaid()
    ensure_payable(appointment)

class PaymentService:
    def __init__(self, store: BookingStore, gateway: PaymentGateway, currency: str = "usd"):
        self.store = store
        self.gateway = gateway
        self.currency = currency

    async def create_intent(self, identity: Identity, appointment_id: str) -> str:
        """Open a payment intent for the appointment fee and return its client secret."""
        appointment = self._get_own_appointment(identity, appointment_id)
        ensure_payable(appointment)

        intent = await self.gateway.create_intent(
            appointment.id,
            to_minor_units(appointment.consultation_fee),
            self.currency
        )

        # Re-checked under the store lock in case the appointment changed meanwhile
        payment = self.store.add_payment(
            appointment.id,
            intent.id,
            from_minor_units(intent.amount),
            check=ensure_payable
        )
        logger.info(f"Payment intent {intent.id} created for appointment {appointment.id} ({intent.amount} {intent.currency})")
        return intent.client_secret

    async def confirm(self, identity: Identity, appointment_id: str, payment_intent_id: str) -> Appointment:
        """Mark the appointment paid and confirmed once the processor reports success."""
        appointment = self._get_own_appointment(identity, appointment_id)

        payment = self.store.find_payment(appointment.id, payment_intent_id)
        ensure_confirmable(appointment, payment)

        await self.gateway.confirm_intent(appointment.id, payment_intent_id)

        payment, appointment = self.store.complete_payment(
            appointment.id,
            payment_intent_id,
            check=ensure_confirmable
        )
        logger.info(f"Payment {payment.id} completed for appointment {appointment.id}")
        return appointment

    def _get_own_appointment(self, identity: Identity, appointment_id: str) -> Appointment:
        if not identity.is_patient:
            raise Forbidden()

        appointment = self.store.find_by_id(appointment_id)
        if appointment.patient_id != identity.subject_id:
            raise Forbidden()
        return appointment
