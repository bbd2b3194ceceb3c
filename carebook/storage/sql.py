from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..core.database import as_utc
from ..core.exceptions import EmailAlreadyRegistered, InfrastructureError, NotFound
from ..core.security import UserRole
from ..models.appointment import AppointmentRecord, AppointmentStatus, PaymentStatus
from ..models.payment import PaymentRecord
from ..models.user import UserRecord
from ..schemas.appointment import Appointment, AppointmentCreate
from ..schemas.auth import User, UserRegister
from ..schemas.payment import Payment
from .base import (
    AppointmentCheck, BookingStore, Patch, PaymentCheck, UserStore,
    new_id, resolve_patch, utcnow
)

logger = logging.getLogger(__name__)


class _SqlStore:
    """Runs every operation in its own transaction."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def _run(self, operation):
        try:
            with self._session_factory() as session:
                with session.begin():
                    return operation(session)
        except IntegrityError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Database operation failed: {str(e)}")
            raise InfrastructureError("Database unavailable") from e


class SqlBookingStore(_SqlStore, BookingStore):
    """SQLAlchemy-backed store. Mutations lock the appointment row first."""

    def create(self, patient_id: str, data: AppointmentCreate) -> Appointment:
        now = utcnow()
        row = AppointmentRecord(
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

        def operation(session: Session):
            session.add(row)
            session.flush()
            return Appointment.model_validate(row)

        return self._run(operation)

    def find_by_id(self, appointment_id: str) -> Appointment:
        return self._run(lambda session: Appointment.model_validate(self._get(session, appointment_id)))

    def find_by_patient(self, patient_id: str) -> List[Appointment]:
        query = select(AppointmentRecord).where(
            AppointmentRecord.patient_id == patient_id
        ).order_by(AppointmentRecord.pk)
        return self._run(lambda session: [Appointment.model_validate(r) for r in session.scalars(query)])

    def find_by_doctor(self, doctor_id: str) -> List[Appointment]:
        query = select(AppointmentRecord).where(
            AppointmentRecord.doctor_id == doctor_id
        ).order_by(AppointmentRecord.pk)
        return self._run(lambda session: [Appointment.model_validate(r) for r in session.scalars(query)])

    def update(self, appointment_id: str, patch: Patch) -> Appointment:
        def operation(session: Session):
            row = self._get(session, appointment_id, for_update=True)
            changes = resolve_patch(patch, Appointment.model_validate(row))
            changes.pop("id", None)
            if changes:
                for field, value in changes.items():
                    setattr(row, field, value)
                row.updated_at = utcnow()
                session.flush()
            return Appointment.model_validate(row)

        return self._run(operation)

    def add_payment(
        self,
        appointment_id: str,
        payment_intent_id: str,
        amount: Decimal,
        check: Optional[AppointmentCheck] = None,
    ) -> Payment:
        def operation(session: Session):
            appointment = self._get(session, appointment_id, for_update=True)
            if check is not None:
                check(Appointment.model_validate(appointment))

            superseded = session.scalars(
                select(PaymentRecord).where(
                    PaymentRecord.appointment_id == appointment_id,
                    PaymentRecord.status == PaymentStatus.PENDING,
                )
            )
            for old in superseded:
                session.delete(old)

            now = utcnow()
            row = PaymentRecord(
                id=new_id(),
                appointment_id=appointment_id,
                payment_intent_id=payment_intent_id,
                amount=amount,
                status=PaymentStatus.PENDING,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.flush()
            return Payment.model_validate(row)

        return self._run(operation)

    def find_payment(self, appointment_id: str, payment_intent_id: str) -> Payment:
        return self._run(
            lambda session: Payment.model_validate(self._get_payment(session, appointment_id, payment_intent_id))
        )

    def find_payments(self, appointment_id: str) -> List[Payment]:
        query = select(PaymentRecord).where(
            PaymentRecord.appointment_id == appointment_id
        ).order_by(PaymentRecord.pk)
        return self._run(lambda session: [Payment.model_validate(r) for r in session.scalars(query)])

    def complete_payment(
        self,
        appointment_id: str,
        payment_intent_id: str,
        check: Optional[PaymentCheck] = None,
    ) -> Tuple[Payment, Appointment]:
        def operation(session: Session):
            appointment = self._get(session, appointment_id, for_update=True)
            payment = self._get_payment(session, appointment_id, payment_intent_id, for_update=True)
            if check is not None:
                check(Appointment.model_validate(appointment), Payment.model_validate(payment))

            now = utcnow()
            payment.status = PaymentStatus.COMPLETED
            payment.updated_at = now
            appointment.payment_status = PaymentStatus.COMPLETED
            appointment.status = AppointmentStatus(appointment.status).after_payment()
            appointment.updated_at = now
            session.flush()
            return Payment.model_validate(payment), Appointment.model_validate(appointment)

        return self._run(operation)

    @staticmethod
    def _get(session: Session, appointment_id: str, for_update: bool = False) -> AppointmentRecord:
        query = select(AppointmentRecord).where(AppointmentRecord.id == appointment_id)
        if for_update:
            query = query.with_for_update()
        row = session.scalars(query).first()
        if row is None:
            raise NotFound("Appointment not found")
        return row

    @staticmethod
    def _get_payment(
        session: Session,
        appointment_id: str,
        payment_intent_id: str,
        for_update: bool = False
    ) -> PaymentRecord:
        query = select(PaymentRecord).where(
            PaymentRecord.appointment_id == appointment_id,
            PaymentRecord.payment_intent_id == payment_intent_id,
        )
        if for_update:
            query = query.with_for_update()
        row = session.scalars(query).first()
        if row is None:
            raise NotFound("Payment not found")
        return row


class SqlUserStore(_SqlStore, UserStore):

    def create(self, data: UserRegister, password_hash: str) -> User:
        now = utcnow()
        fields = data.model_dump(mode="json", exclude={"password", "consultation_fee", "role"})
        row = UserRecord(
            id=new_id(),
            password_hash=password_hash,
            role=data.role,
            consultation_fee=data.consultation_fee,
            created_at=now,
            updated_at=now,
            **fields,
        )

        def operation(session: Session):
            if session.scalars(select(UserRecord).where(UserRecord.email == row.email)).first():
                raise EmailAlreadyRegistered()
            session.add(row)
            session.flush()
            return User.model_validate(row)

        try:
            return self._run(operation)
        except IntegrityError as e:
            # Lost a race with a concurrent registration of the same email
            raise EmailAlreadyRegistered() from e

    def find_by_id(self, user_id: str) -> User:
        return self._run(lambda session: User.model_validate(self._get(session, user_id)))

    def find_by_email(self, email: str) -> Optional[User]:
        query = select(UserRecord).where(UserRecord.email == email.strip().lower())

        def operation(session: Session):
            row = session.scalars(query).first()
            return User.model_validate(row) if row is not None else None

        return self._run(operation)

    def list(self, role: Optional[UserRole] = None) -> List[User]:
        query = select(UserRecord).order_by(UserRecord.pk)
        if role is not None:
            query = query.where(UserRecord.role == role)
        return self._run(lambda session: [User.model_validate(r) for r in session.scalars(query)])

    def update(self, user_id: str, patch: Mapping[str, Any]) -> User:
        def operation(session: Session):
            row = self._get(session, user_id, for_update=True)
            for field, value in self._to_columns(patch).items():
                setattr(row, field, value)
            row.updated_at = utcnow()
            session.flush()
            return User.model_validate(row)

        return self._run(operation)

    @staticmethod
    def _to_columns(patch: Mapping[str, Any]) -> Dict[str, Any]:
        columns = {}
        for field, value in patch.items():
            if field == "id":
                continue
            if field == "working_hours" and value is not None:
                value = value.model_dump(mode="json") if hasattr(value, "model_dump") else value
            elif field == "available_days" and value is not None:
                value = [getattr(day, "value", day) for day in value]
            columns[field] = value
        return columns

    @staticmethod
    def _get(session: Session, user_id: str, for_update: bool = False) -> UserRecord:
        query = select(UserRecord).where(UserRecord.id == user_id)
        if for_update:
            query = query.with_for_update()
        row = session.scalars(query).first()
        if row is None:
            raise NotFound("User not found")
        return row
