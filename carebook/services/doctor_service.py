from datetime import date, datetime, time, timedelta
from typing import List, Optional
import logging

from ..core.exceptions import Forbidden, NotFound
from ..core.security import Identity, UserRole
from ..models.appointment import AppointmentStatus
from ..schemas.auth import User
from ..schemas.doctor import (
    AvailabilityResponse, DoctorProfileUpdate, ScheduleUpdate, Weekday, WorkingHours
)
from ..storage.base import BookingStore, UserStore

logger = logging.getLogger(__name__)

SLOT_LENGTH = timedelta(hours=1)
LUNCH_HOUR = 12

def format_slot(start: time) -> str:
    return start.strftime("%I:%M %p")

def slot_starts(hours: WorkingHours) -> List[time]:
    """Hourly slot starts that fit inside working hours, skipping lunch."""
    day = date.min
    cursor = datetime.combine(day, hours.start)
    end = datetime.combine(day, hours.end)

    starts = []
    while cursor + SLOT_LENGTH <= end:
        if cursor.hour != LUNCH_HOUR:
            starts.append(cursor.time())
        cursor += SLOT_LENGTH
    return starts

class DoctorService:
    def __init__(self, users: UserStore, bookings: BookingStore):
        self.users = users
        self.bookings = bookings

    def list_doctors(self, specialty: Optional[str] = None, name: Optional[str] = None) -> List[User]:
        doctors = self.users.list(role=UserRole.DOCTOR)

        if specialty:
            doctors = [d for d in doctors if (d.specialty or "").lower() == specialty.lower()]

        if name:
            doctors = [d for d in doctors if name.lower() in d.full_name.lower()]

        return doctors

    def get_doctor(self, doctor_id: str) -> User:
        try:
            user = self.users.find_by_id(doctor_id)
        except NotFound:
            raise NotFound("Doctor not found")

        if user.role != UserRole.DOCTOR:
            raise NotFound("Doctor not found")
        return user

    def availability(self, doctor_id: str, day: date) -> AvailabilityResponse:
        """Open slots for a doctor on a given date."""
        doctor = self.get_doctor(doctor_id)
        weekday = Weekday(day.strftime("%A"))

        if weekday not in doctor.available_days:
            return AvailabilityResponse(
                available=False,
                message=f"Dr. {doctor.last_name} is not available on {weekday.value}s"
            )

        booked = {
            a.appointment_date.time().replace(second=0, microsecond=0, tzinfo=None)
            for a in self.bookings.find_by_doctor(doctor.id)
            if a.status != AppointmentStatus.CANCELLED and a.appointment_date.date() == day
        }

        hours = doctor.working_hours or WorkingHours()
        slots = [format_slot(start) for start in slot_starts(hours) if start not in booked]

        return AvailabilityResponse(available=True, slots=slots)

    def update_profile(self, identity: Identity, doctor_id: str, data: DoctorProfileUpdate) -> User:
        self._ensure_self(identity, doctor_id)
        self.get_doctor(doctor_id)

        doctor = self.users.update(doctor_id, data.model_dump(exclude_unset=True, exclude_none=True))
        logger.info(f"Doctor {doctor_id} updated their profile")
        return doctor

    def update_schedule(self, identity: Identity, doctor_id: str, data: ScheduleUpdate) -> User:
        self._ensure_self(identity, doctor_id)
        self.get_doctor(doctor_id)

        changes = {}
        if data.available_days is not None:
            changes["available_days"] = data.available_days
        if data.working_hours is not None:
            changes["working_hours"] = data.working_hours

        doctor = self.users.update(doctor_id, changes)
        logger.info(f"Doctor {doctor_id} updated their schedule")
        return doctor

    @staticmethod
    def _ensure_self(identity: Identity, doctor_id: str):
        if not identity.is_doctor or identity.subject_id != doctor_id:
            raise Forbidden()
