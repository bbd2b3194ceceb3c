from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, ValidationError
from enum import Enum

from .config import settings
from .exceptions import InvalidCredential

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

class UserRole(str, Enum):
    DOCTOR = "doctor"
    PATIENT = "patient"

class TokenPayload(BaseModel):
    sub: Optional[str] = None
    role: Optional[str] = None
    exp: Optional[int] = None
    token_type: Optional[str] = None

class Identity(BaseModel):
    """The authenticated caller: who they are and which role they act in."""
    subject_id: str
    role: UserRole

    class Config:
        frozen = True

    @property
    def is_patient(self) -> bool:
        return self.role == UserRole.PATIENT

    @property
    def is_doctor(self) -> bool:
        return self.role == UserRole.DOCTOR

# Password utilities
def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    """Generate password hash."""
    return pwd_context.hash(password)

# JWT utilities
def create_access_token(
    subject_id: str,
    role: UserRole,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create a signed access token for a subject acting in a role."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    expire = datetime.now(timezone.utc) + expires_delta

    to_encode = {
        "sub": subject_id,
        "role": UserRole(role).value,
        "exp": expire,
        "token_type": "access",
    }

    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )

def verify_token(token: str) -> TokenPayload:
    """Verify and decode a JWT, raising InvalidCredential on any failure."""
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
    except ExpiredSignatureError:
        raise InvalidCredential("Token has expired")
    except JWTError:
        raise InvalidCredential()

    try:
        return TokenPayload(**payload)
    except ValidationError:
        raise InvalidCredential()

def decode_identity(token: str) -> Identity:
    """Resolve a bearer token into the caller's identity."""
    token_payload = verify_token(token)

    if token_payload.token_type != "access":
        raise InvalidCredential("Invalid token type")

    if not token_payload.sub or not token_payload.role:
        raise InvalidCredential("Invalid token payload")

    try:
        role = UserRole(token_payload.role)
    except ValueError:
        raise InvalidCredential("Invalid token role")

    return Identity(subject_id=token_payload.sub, role=role)
