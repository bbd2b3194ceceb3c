from datetime import time
from pydantic import Field, model_validator
from typing import List, Optional
import enum

from .common import CamelModel, Money

class Weekday(str, enum.Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @classmethod
    def _missing_(cls, value):
        # Accept any capitalization, e.g. "monday"
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return None

class WorkingHours(CamelModel):
    start: time = time(9, 0)
    end: time = time(17, 0)

    @model_validator(mode="after")
    def check_order(self):
        if self.end <= self.start:
            raise ValueError("Working hours must end after they start")
        return self

class DoctorResponse(CamelModel):
    id: str
    email: str
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

class DoctorProfileUpdate(CamelModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    specialty: Optional[str] = Field(default=None, max_length=100)
    location: Optional[str] = Field(default=None, max_length=255)
    bio: Optional[str] = None
    experience: Optional[str] = Field(default=None, max_length=100)
    languages: Optional[List[str]] = None
    consultation_fee: Optional[Money] = None

class ScheduleUpdate(CamelModel):
    available_days: Optional[List[Weekday]] = None
    working_hours: Optional[WorkingHours] = None

class AvailabilityResponse(CamelModel):
    available: bool
    slots: Optional[List[str]] = None
    message: Optional[str] = None
