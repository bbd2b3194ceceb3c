"""
Storage contracts used by the workflows.

Workflows only talk to these interfaces so the in-memory store and the
SQLAlchemy store are interchangeable. Records handed out are immutable
snapshots; every change goes through a store method that replaces the
record as a whole.
"""
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union
import uuid

from ..core.security import UserRole
from ..schemas.appointment import Appointment, AppointmentCreate
from ..schemas.auth import User, UserRegister
from ..schemas.payment import Payment

# Either a fixed set of changes or a function computing them from the
# current record. The function runs while the record is locked, so it may
# raise to veto the change, or return an empty mapping to leave it as is.
Patch = Union[Mapping[str, Any], Callable[[Appointment], Mapping[str, Any]]]

AppointmentCheck = Callable[[Appointment], None]
PaymentCheck = Callable[[Appointment, Payment], None]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


def resolve_patch(patch: Patch, current: Appointment) -> Dict[str, Any]:
    if callable(patch):
        return dict(patch(current))
    return dict(patch)


class BookingStore(ABC):
    """Appointments and the payments made for them."""

    @abstractmethod
    def create(self, patient_id: str, data: AppointmentCreate) -> Appointment:
        """Store a new pending, unpaid appointment for the patient."""

    @abstractmethod
    def find_by_id(self, appointment_id: str) -> Appointment:
        """Return the appointment or raise NotFound."""

    @abstractmethod
    def find_by_patient(self, patient_id: str) -> List[Appointment]:
        """All appointments booked by the patient, oldest first."""

    @abstractmethod
    def find_by_doctor(self, doctor_id: str) -> List[Appointment]:
        """All appointments assigned to the doctor, oldest first."""

    @abstractmethod
    def update(self, appointment_id: str, patch: Patch) -> Appointment:
        """Merge changes into an appointment and stamp its update time."""

    @abstractmethod
    def add_payment(
        self,
        appointment_id: str,
        payment_intent_id: str,
        amount: Decimal,
        check: Optional[AppointmentCheck] = None,
    ) -> Payment:
        """Record a pending payment, replacing any earlier pending one."""

    @abstractmethod
    def find_payment(self, appointment_id: str, payment_intent_id: str) -> Payment:
        """Return the payment for the appointment and intent or raise NotFound."""

    @abstractmethod
    def find_payments(self, appointment_id: str) -> List[Payment]:
        """All payments recorded for the appointment, oldest first."""

    @abstractmethod
    def complete_payment(
        self,
        appointment_id: str,
        payment_intent_id: str,
        check: Optional[PaymentCheck] = None,
    ) -> Tuple[Payment, Appointment]:
        """Mark a payment and its appointment as paid in one step.

        The payment becomes completed, and the appointment's payment status
        becomes completed together with its status moving to confirmed.
        No reader can observe one record changed without the other.
        """


class UserStore(ABC):
    """Patient and doctor accounts."""

    @abstractmethod
    def create(self, data: UserRegister, password_hash: str) -> User:
        """Store a new account or raise EmailAlreadyRegistered."""

    @abstractmethod
    def find_by_id(self, user_id: str) -> User:
        """Return the account or raise NotFound."""

    @abstractmethod
    def find_by_email(self, email: str) -> Optional[User]:
        pass

    @abstractmethod
    def list(self, role: Optional[UserRole] = None) -> List[User]:
        pass

    @abstractmethod
    def update(self, user_id: str, patch: Mapping[str, Any]) -> User:
        """Merge changes into an account and stamp its update time."""
