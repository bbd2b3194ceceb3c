from fastapi import APIRouter, Depends, status

from ...api.deps import get_auth_service, get_identity, rate_limit_check
from ...core.security import Identity
from ...services.auth_service import AuthService
from ...schemas.auth import AuthResponse, UserLogin, UserRegister, UserResponse

router = APIRouter(prefix="/auth", tags=["Authentication"])

@router.post(
    "/register",
    response_model=AuthResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED
)
async def register(
    user_data: UserRegister,
    auth_service: AuthService = Depends(get_auth_service),
    _: None = Depends(rate_limit_check)
):
    """Register a new patient or doctor."""
    user, token = auth_service.register_user(user_data)

    return AuthResponse(
        message="User registered successfully",
        token=token,
        user=UserResponse.model_validate(user)
    )

@router.post("/login", response_model=AuthResponse, response_model_exclude_none=True)
async def login(
    login_data: UserLogin,
    auth_service: AuthService = Depends(get_auth_service),
    _: None = Depends(rate_limit_check)
):
    """Authenticate user and return an access token."""
    user, token = auth_service.authenticate_user(login_data)

    return AuthResponse(
        message="Logged in successfully",
        token=token,
        user=UserResponse.model_validate(user)
    )

@router.get("/me", response_model=UserResponse, response_model_exclude_none=True)
async def get_current_user_info(
    identity: Identity = Depends(get_identity),
    auth_service: AuthService = Depends(get_auth_service)
):
    """Get current user information."""
    return UserResponse.model_validate(auth_service.get_user(identity))
