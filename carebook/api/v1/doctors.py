from datetime import date
from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from ...api.deps import get_doctor_service, get_identity
from ...core.security import Identity
from ...services.doctor_service import DoctorService
from ...schemas.doctor import (
    AvailabilityResponse, DoctorProfileUpdate, DoctorResponse, ScheduleUpdate
)

router = APIRouter(prefix="/doctors", tags=["Doctors"])

@router.get("", response_model=List[DoctorResponse])
async def list_doctors(
    specialty: Optional[str] = None,
    name: Optional[str] = None,
    doctor_service: DoctorService = Depends(get_doctor_service)
):
    """List doctors, optionally filtered by specialty or name."""
    doctors = doctor_service.list_doctors(specialty=specialty, name=name)
    return [DoctorResponse.model_validate(doctor) for doctor in doctors]

@router.get("/{doctor_id}", response_model=DoctorResponse)
async def get_doctor(
    doctor_id: str,
    doctor_service: DoctorService = Depends(get_doctor_service)
):
    return DoctorResponse.model_validate(doctor_service.get_doctor(doctor_id))

@router.get(
    "/{doctor_id}/availability",
    response_model=AvailabilityResponse,
    response_model_exclude_none=True
)
async def get_availability(
    doctor_id: str,
    day: date = Query(..., alias="date"),
    doctor_service: DoctorService = Depends(get_doctor_service)
):
    """Open appointment slots for a doctor on a date."""
    return doctor_service.availability(doctor_id, day)

@router.put("/{doctor_id}", response_model=DoctorResponse)
async def update_doctor(
    doctor_id: str,
    profile_data: DoctorProfileUpdate,
    identity: Identity = Depends(get_identity),
    doctor_service: DoctorService = Depends(get_doctor_service)
):
    """Update own doctor profile."""
    doctor = doctor_service.update_profile(identity, doctor_id, profile_data)
    return DoctorResponse.model_validate(doctor)

@router.put("/{doctor_id}/schedule", response_model=DoctorResponse)
async def update_schedule(
    doctor_id: str,
    schedule_data: ScheduleUpdate,
    identity: Identity = Depends(get_identity),
    doctor_service: DoctorService = Depends(get_doctor_service)
):
    """Update own working days and hours."""
    doctor = doctor_service.update_schedule(identity, doctor_id, schedule_data)
    return DoctorResponse.model_validate(doctor)
