from typing import Tuple
import logging

from ..core.exceptions import InvalidCredential, NotFound
from ..core.security import (
    Identity, create_access_token, get_password_hash, verify_password
)
from ..schemas.auth import User, UserLogin, UserRegister
from ..storage.base import UserStore

logger = logging.getLogger(__name__)

class AuthService:
    def __init__(self, users: UserStore):
        self.users = users

    def register_user(self, user_data: UserRegister) -> Tuple[User, str]:
        """Register a new patient or doctor and issue their first token."""
        hashed_password = get_password_hash(user_data.password)

        # Raises EmailAlreadyRegistered for a taken email
        user = self.users.create(user_data, hashed_password)
        logger.info(f"Registered {user.role.value} {user.id}")

        return user, create_access_token(user.id, user.role)

    def authenticate_user(self, login_data: UserLogin) -> Tuple[User, str]:
        """Check credentials and issue a token."""
        user = self.users.find_by_email(login_data.email)

        if not user or not verify_password(login_data.password, user.password_hash):
            logger.info(f"Failed login for {login_data.email}")
            raise InvalidCredential("Invalid credentials")

        # Patients and doctors log in through separate forms
        if login_data.role is not None and login_data.role != user.role:
            logger.info(f"Failed login for {login_data.email}: role mismatch")
            raise InvalidCredential("Invalid credentials")

        return user, create_access_token(user.id, user.role)

    def get_user(self, identity: Identity) -> User:
        try:
            return self.users.find_by_id(identity.subject_id)
        except NotFound:
            raise NotFound("User not found")
