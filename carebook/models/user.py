from sqlalchemy import Column, Integer, String, Text, Numeric, JSON, Enum as SQLEnum
from ..core.database import Base, UTCDateTime
from ..core.security import UserRole

class UserRecord(Base):
    __tablename__ = "users"

    pk = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(32), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(SQLEnum(UserRole), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)

    # Doctor profile
    specialty = Column(String(100), nullable=True)
    location = Column(String(255), nullable=True)
    bio = Column(Text, nullable=True)
    experience = Column(String(100), nullable=True)
    languages = Column(JSON, nullable=False, default=list)
    consultation_fee = Column(Numeric(10, 2), nullable=True)
    available_days = Column(JSON, nullable=False, default=list)
    working_hours = Column(JSON, nullable=True)

    # Timestamps
    created_at = Column(UTCDateTime(), nullable=False)
    updated_at = Column(UTCDateTime(), nullable=False)

    def __repr__(self):
        return f"<UserRecord(id={self.id}, email='{self.email}', role='{self.role}')>"
