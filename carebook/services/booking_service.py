from typing import List
import logging

from ..core.exceptions import Conflict, Forbidden
from ..core.security import Identity
from ..models.appointment import AppointmentStatus
from ..schemas.appointment import Appointment, AppointmentCreate
from ..storage.base import BookingStore

logger = logging.getLogger(__name__)

def is_participant(identity: Identity, appointment: Appointment) -> bool:
    """Whether the caller is the booking patient or the assigned doctor."""
    if identity.is_patient:
        return appointment.patient_id == identity.subject_id
    if identity.is_doctor:
        return appointment.doctor_id == identity.subject_id
    return False

class BookingService:
    def __init__(self, store: BookingStore):
        self.store = store

    def create(self, identity: Identity, data: AppointmentCreate) -> Appointment:
        """Book an appointment for the calling patient."""
        if not identity.is_patient:
            raise Forbidden("Only patients can book appointments")

        appointment = self.store.create(identity.subject_id, data)
        logger.info(f"Appointment {appointment.id} booked by patient {identity.subject_id} with doctor {appointment.doctor_id}")
        return appointment

    def list_for_patient(self, identity: Identity) -> List[Appointment]:
        if not identity.is_patient:
            raise Forbidden()
        return self.store.find_by_patient(identity.subject_id)

    def list_for_doctor(self, identity: Identity) -> List[Appointment]:
        if not identity.is_doctor:
            raise Forbidden()
        return self.store.find_by_doctor(identity.subject_id)

    def list_mine(self, identity: Identity) -> List[Appointment]:
        if identity.is_doctor:
            return self.list_for_doctor(identity)
        return self.list_for_patient(identity)

    def get(self, identity: Identity, appointment_id: str) -> Appointment:
        appointment = self.store.find_by_id(appointment_id)
        if not is_participant(identity, appointment):
            raise Forbidden()
        return appointment

    def update_status(
        self,
        identity: Identity,
        appointment_id: str,
        status: AppointmentStatus
    ) -> Appointment:
        """Move an appointment along the status table. Assigned doctor only."""
        if not identity.is_doctor:
            raise Forbidden()

        def transition(current: Appointment):
            if current.doctor_id != identity.subject_id:
                raise Forbidden()
            if not current.status.can_transition_to(status):
                raise Conflict(
                    f"Cannot change appointment status from {current.status.value} to {status.value}"
                )
            return {"status": status}

        appointment = self.store.update(appointment_id, transition)
        logger.info(f"Appointment {appointment_id} set to {status.value} by doctor {identity.subject_id}")
        return appointment

    def cancel(self, identity: Identity, appointment_id: str) -> Appointment:
        """Cancel an appointment. Cancelling twice is a no-op."""
        already_cancelled = False

        def cancellation(current: Appointment):
            nonlocal already_cancelled
            if not is_participant(identity, current):
                raise Forbidden()
            if current.status == AppointmentStatus.CANCELLED:
                already_cancelled = True
                return {}
            if current.status.is_terminal:
                raise Conflict(f"Cannot cancel a {current.status.value} appointment")
            return {"status": AppointmentStatus.CANCELLED}

        appointment = self.store.update(appointment_id, cancellation)
        if already_cancelled:
            logger.info(f"Appointment {appointment_id} was already cancelled")
        else:
            logger.info(f"Appointment {appointment_id} cancelled by {identity.role.value} {identity.subject_id}")
        return appointment
