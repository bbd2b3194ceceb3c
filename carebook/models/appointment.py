from sqlalchemy import Column, Integer, String, Numeric, Enum as SQLEnum
import enum

from ..core.database import Base, UTCDateTime

class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self]

    def can_transition_to(self, target: "AppointmentStatus") -> bool:
        return target in ALLOWED_TRANSITIONS[self]

    def after_payment(self) -> "AppointmentStatus":
        """Status an appointment takes once its fee has been paid."""
        if self == AppointmentStatus.COMPLETED:
            return self
        return AppointmentStatus.CONFIRMED

# Statuses a doctor may move an appointment to from each status
ALLOWED_TRANSITIONS = {
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.CONFIRMED: frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}

class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"

class AppointmentType(str, enum.Enum):
    IN_PERSON = "in-person"
    VIRTUAL = "virtual"

class AppointmentRecord(Base):
    __tablename__ = "appointments"

    pk = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(32), unique=True, index=True, nullable=False)

    patient_id = Column(String(32), nullable=False, index=True)
    doctor_id = Column(String(32), nullable=False, index=True)

    # Appointment details
    appointment_date = Column(UTCDateTime(), nullable=False)
    appointment_type = Column(
        SQLEnum(AppointmentType, values_callable=lambda kinds: [k.value for k in kinds]),
        nullable=False
    )
    consultation_fee = Column(Numeric(10, 2), nullable=False)
    status = Column(SQLEnum(AppointmentStatus), nullable=False, default=AppointmentStatus.PENDING)
    payment_status = Column(SQLEnum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)

    # Tracking
    created_at = Column(UTCDateTime(), nullable=False)
    updated_at = Column(UTCDateTime(), nullable=False)

    def __repr__(self):
        return f"<AppointmentRecord(id={self.id}, patient_id={self.patient_id}, doctor_id={self.doctor_id}, status='{self.status}')>"
