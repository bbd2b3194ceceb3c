from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from functools import lru_cache
from typing import Optional
import logging

import redis

from ..core.config import settings
from ..core.database import get_redis
from ..core.exceptions import InfrastructureError, Unauthenticated
from ..core.security import Identity, decode_identity
from ..services.auth_service import AuthService
from ..services.booking_service import BookingService
from ..services.doctor_service import DoctorService
from ..services.payment_gateway import PaymentGateway, build_gateway
from ..services.payment_service import PaymentService
from ..storage.base import BookingStore, UserStore
from ..storage.factory import Stores, build_stores

logger = logging.getLogger(__name__)

# Missing credentials are reported by get_identity, not by the scheme
bearer_scheme = HTTPBearer(auto_error=False)

async def get_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Identity:
    """Extract and verify the JWT from the Authorization header."""
    if credentials is None or not credentials.credentials:
        raise Unauthenticated()

    return decode_identity(credentials.credentials)

# Storage and gateway, built once per process
@lru_cache
def get_stores() -> Stores:
    return build_stores(settings)

def get_user_store() -> UserStore:
    return get_stores().users

def get_booking_store() -> BookingStore:
    return get_stores().bookings

@lru_cache
def get_payment_gateway() -> PaymentGateway:
    return build_gateway(settings)

# Services
def get_auth_service(users: UserStore = Depends(get_user_store)) -> AuthService:
    return AuthService(users)

def get_booking_service(store: BookingStore = Depends(get_booking_store)) -> BookingService:
    return BookingService(store)

def get_payment_service(
    store: BookingStore = Depends(get_booking_store),
    gateway: PaymentGateway = Depends(get_payment_gateway)
) -> PaymentService:
    return PaymentService(store, gateway, currency=settings.PAYMENT_CURRENCY)

def get_doctor_service(
    users: UserStore = Depends(get_user_store),
    bookings: BookingStore = Depends(get_booking_store)
) -> DoctorService:
    return DoctorService(users, bookings)

# Rate limiting dependency
async def rate_limit_check(
    request: Request,
    redis_client = Depends(get_redis)
) -> None:
    """Fixed-window rate limiting for authentication endpoints."""
    if not settings.RATE_LIMIT_ENABLED:
        return

    client_ip = request.client.host if request.client else "unknown"
    key = f"rate_limit:{client_ip}"

    try:
        current_requests = redis_client.incr(key)
        if current_requests == 1:
            redis_client.expire(key, settings.RATE_LIMIT_WINDOW_SECONDS)
    except redis.RedisError as e:
        logger.error(f"Rate limiter unavailable: {str(e)}")
        raise InfrastructureError() from e

    if current_requests > settings.RATE_LIMIT_MAX_REQUESTS:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests. Please try again later."
        )
