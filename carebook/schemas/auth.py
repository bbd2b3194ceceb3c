from datetime import datetime
from pydantic import EmailStr, Field, field_validator
from typing import List, Optional

from ..core.security import UserRole
from .common import CamelModel, Money
from .doctor import DoctorResponse, Weekday, WorkingHours

class UserRegister(CamelModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=72)
    role: UserRole = UserRole.PATIENT
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)

    # Only meaningful for doctors
    specialty: Optional[str] = Field(default=None, max_length=100)
    location: Optional[str] = Field(default=None, max_length=255)
    bio: Optional[str] = None
    experience: Optional[str] = Field(default=None, max_length=100)
    languages: List[str] = []
    consultation_fee: Optional[Money] = None
    available_days: List[Weekday] = []
    working_hours: Optional[WorkingHours] = None

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        if not any(c.isalpha() for c in value) or not any(c.isdigit() for c in value):
            raise ValueError("Password must contain letters and digits")
        return value

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()

class UserLogin(CamelModel):
    email: EmailStr
    password: str
    role: Optional[UserRole] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()

class User(CamelModel):
    """Stored account. Carries the password hash, so never returned as is."""
    id: str
    email: str
    password_hash: str
    role: UserRole
    first_name: str
    last_name: str
    specialty: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    experience: Optional[str] = None
    languages: List[str] = []
    consultation_fee: Optional[Money] = None
    available_days: List[Weekday] = []
    working_hours: Optional[WorkingHours] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        frozen = True

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

class UserResponse(DoctorResponse):
    """Account without its password hash. Doctor profile fields are empty for patients."""
    role: UserRole
    created_at: datetime
    updated_at: datetime

class AuthResponse(CamelModel):
    message: str
    token: str
    user: UserResponse
