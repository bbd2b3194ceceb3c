from sqlalchemy import Column, Integer, String, Numeric, Enum as SQLEnum

from ..core.database import Base, UTCDateTime
from .appointment import PaymentStatus

class PaymentRecord(Base):
    __tablename__ = "payments"

    pk = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(32), unique=True, index=True, nullable=False)
    appointment_id = Column(String(32), nullable=False, index=True)
    payment_intent_id = Column(String(255), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    status = Column(SQLEnum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)

    created_at = Column(UTCDateTime(), nullable=False)
    updated_at = Column(UTCDateTime(), nullable=False)

    def __repr__(self):
        return f"<PaymentRecord(id={self.id}, appointment_id={self.appointment_id}, status='{self.status}')>"
