from fastapi import APIRouter, Depends, status
from typing import List

from ...api.deps import get_booking_service, get_identity
from ...core.security import Identity
from ...services.booking_service import BookingService
from ...schemas.appointment import Appointment, AppointmentCreate, AppointmentStatusUpdate
from ...schemas.common import MessageResponse

router = APIRouter(prefix="/appointments", tags=["Appointments"])

@router.post("", response_model=Appointment, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    appointment_data: AppointmentCreate,
    identity: Identity = Depends(get_identity),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Book an appointment (patients only)."""
    return booking_service.create(identity, appointment_data)

@router.get("/patient", response_model=List[Appointment])
async def list_patient_appointments(
    identity: Identity = Depends(get_identity),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Appointments booked by the calling patient."""
    return booking_service.list_for_patient(identity)

@router.get("/doctor", response_model=List[Appointment])
async def list_doctor_appointments(
    identity: Identity = Depends(get_identity),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Appointments assigned to the calling doctor."""
    return booking_service.list_for_doctor(identity)

@router.get("/mine", response_model=List[Appointment])
async def list_my_appointments(
    identity: Identity = Depends(get_identity),
    booking_service: BookingService = Depends(get_booking_service)
):
    return booking_service.list_mine(identity)

@router.get("/{appointment_id}", response_model=Appointment)
async def get_appointment(
    appointment_id: str,
    identity: Identity = Depends(get_identity),
    booking_service: BookingService = Depends(get_booking_service)
):
    return booking_service.get(identity, appointment_id)

@router.put("/{appointment_id}/status", response_model=Appointment)
async def update_appointment_status(
    appointment_id: str,
    status_data: AppointmentStatusUpdate,
    identity: Identity = Depends(get_identity),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Change appointment status (assigned doctor only)."""
    return booking_service.update_status(identity, appointment_id, status_data.status)

@router.delete("/{appointment_id}", response_model=MessageResponse)
async def cancel_appointment(
    appointment_id: str,
    identity: Identity = Depends(get_identity),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Cancel an appointment (booking patient or assigned doctor)."""
    booking_service.cancel(identity, appointment_id)
    return MessageResponse(message="Appointment cancelled successfully")
