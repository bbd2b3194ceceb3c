from decimal import Decimal
from threading import RLock
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..core.database import as_utc
from ..core.exceptions import EmailAlreadyRegistered, NotFound
from ..core.security import UserRole
from ..models.appointment import AppointmentStatus, PaymentStatus
from ..schemas.appointment import Appointment, AppointmentCreate
from ..schemas.auth import User, UserRegister
from ..schemas.payment import Payment
from .base import (
    AppointmentCheck, BookingStore, Patch, PaymentCheck, UserStore,
    new_id, resolve_patch, utcnow
)


class InMemoryBookingStore(BookingStore):
    """Process-local store.

    A single lock serializes writers and the lookups that span records.
    Records are frozen models, so a snapshot handed to a caller never
    changes underneath it.
    """

    def __init__(self):
        self._lock = RLock()
        self._appointments: Dict[str, Appointment] = {}
        self._payments: Dict[str, Payment] = {}

    def create(self, patient_id: str, data: AppointmentCreate) -> Appointment:
        now = utcnow()
        appointment = Appointment(
            id=new_id(),
            patient_id=patient_id,
            doctor_id=data.doctor_id,
            appointment_date=as_utc(data.appointment_date),
            appointment_type=data.appointment_type,
            consultation_fee=data.consultation_fee,
            status=AppointmentStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._appointments[appointment.id] = appointment
        return appointment

    def find_by_id(self, appointment_id: str) -> Appointment:
        with self._lock:
            return self._get(appointment_id)

    def find_by_patient(self, patient_id: str) -> List[Appointment]:
        with self._lock:
            return [a for a in self._appointments.values() if a.patient_id == patient_id]

    def find_by_doctor(self, doctor_id: str) -> List[Appointment]:
        with self._lock:
            return [a for a in self._appointments.values() if a.doctor_id == doctor_id]

    def update(self, appointment_id: str, patch: Patch) -> Appointment:
        with self._lock:
            current = self._get(appointment_id)
            changes = resolve_patch(patch, current)
            if not changes:
                return current
            changes.pop("id", None)
            changes["updated_at"] = utcnow()
            updated = current.model_copy(update=changes)
            self._appointments[appointment_id] = updated
            return updated

    def add_payment(
        self,
        appointment_id: str,
        payment_intent_id: str,
        amount: Decimal,
        check: Optional[AppointmentCheck] = None,
    ) -> Payment:
        with self._lock:
            appointment = self._get(appointment_id)
            if check is not None:
                check(appointment)

            superseded = [
                p.id for p in self._payments.values()
                if p.appointment_id == appointment_id and p.status == PaymentStatus.PENDING
            ]
            for payment_id in superseded:
                del self._payments[payment_id]

            now = utcnow()
            payment = Payment(
                id=new_id(),
                appointment_id=appointment_id,
                payment_intent_id=payment_intent_id,
                amount=amount,
                status=PaymentStatus.PENDING,
                created_at=now,
                updated_at=now,
            )
            self._payments[payment.id] = payment
            return payment

    def find_payment(self, appointment_id: str, payment_intent_id: str) -> Payment:
        with self._lock:
            return self._get_payment(appointment_id, payment_intent_id)

    def find_payments(self, appointment_id: str) -> List[Payment]:
        with self._lock:
            return [p for p in self._payments.values() if p.appointment_id == appointment_id]

    def complete_payment(
        self,
        appointment_id: str,
        payment_intent_id: str,
        check: Optional[PaymentCheck] = None,
    ) -> Tuple[Payment, Appointment]:
        with self._lock:
            appointment = self._get(appointment_id)
            payment = self._get_payment(appointment_id, payment_intent_id)
            if check is not None:
                check(appointment, payment)

            now = utcnow()
            paid = payment.model_copy(update={
                "status": PaymentStatus.COMPLETED,
                "updated_at": now,
            })
            confirmed = appointment.model_copy(update={
                "payment_status": PaymentStatus.COMPLETED,
                "status": appointment.status.after_payment(),
                "updated_at": now,
            })
            self._payments[paid.id] = paid
            self._appointments[confirmed.id] = confirmed
            return paid, confirmed

    def _get(self, appointment_id: str) -> Appointment:
        appointment = self._appointments.get(appointment_id)
        if appointment is None:
            raise NotFound("Appointment not found")
        return appointment

    def _get_payment(self, appointment_id: str, payment_intent_id: str) -> Payment:
        for payment in self._payments.values():
            if payment.appointment_id == appointment_id and payment.payment_intent_id == payment_intent_id:
                return payment
        raise NotFound("Payment not found")


class InMemoryUserStore(UserStore):

    def __init__(self):
        self._lock = RLock()
        self._users: Dict[str, User] = {}

    def create(self, data: UserRegister, password_hash: str) -> User:
        now = utcnow()
        fields = data.model_dump(exclude={"password"})
        user = User(id=new_id(), password_hash=password_hash, created_at=now, updated_at=now, **fields)
        with self._lock:
            if self._find_by_email(user.email) is not None:
                raise EmailAlreadyRegistered()
            self._users[user.id] = user
        return user

    def find_by_id(self, user_id: str) -> User:
        with self._lock:
            user = self._users.get(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def find_by_email(self, email: str) -> Optional[User]:
        with self._lock:
            return self._find_by_email(email)

    def list(self, role: Optional[UserRole] = None) -> List[User]:
        with self._lock:
            return [u for u in self._users.values() if role is None or u.role == role]

    def update(self, user_id: str, patch: Mapping[str, Any]) -> User:
        with self._lock:
            current = self.find_by_id(user_id)
            changes = dict(patch)
            changes.pop("id", None)
            changes["updated_at"] = utcnow()
            # Validate the merged record so nested values keep their types
            updated = User.model_validate({**current.model_dump(), **changes})
            self._users[user_id] = updated
            return updated

    def _find_by_email(self, email: str) -> Optional[User]:
        email = email.strip().lower()
        for user in self._users.values():
            if user.email == email:
                return user
        return None
