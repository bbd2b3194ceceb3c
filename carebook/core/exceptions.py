from fastapi import status


class CarebookError(Exception):
    """Base class for errors that are translated into an HTTP response."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# Authentication
class Unauthenticated(CarebookError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "No token, authorization denied"


class InvalidCredential(CarebookError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Token is not valid"


# Authorization
class Forbidden(CarebookError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized"


class NotFound(CarebookError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class BadRequest(CarebookError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad request"


class AlreadyPaid(BadRequest):
    default_message = "Payment already completed"


class EmailAlreadyRegistered(BadRequest):
    default_message = "User already exists with this email"


class PaymentDeclined(BadRequest):
    default_message = "Payment has not succeeded"


class Conflict(CarebookError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Request conflicts with the current state"


# Infrastructure
class InfrastructureError(CarebookError):
    default_message = "Service temporarily unavailable"


class PaymentGatewayError(InfrastructureError):
    default_message = "Payment processor unavailable"
