"""
Typed failures raised by the service layer

Every data operation surfaces exactly one of these to its caller. None of
them are retried and none are fatal; the API layer maps them to HTTP status
codes in ``app.main``.
"""
from fastapi import status


class ChatServiceError(Exception):
    """Base class for expected service failures"""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ChatServiceError):
    """Input rejected before it reaches storage"""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class ConstraintViolationError(ChatServiceError):
    """Write rejected by a uniqueness or foreign-key constraint"""
    status_code = status.HTTP_409_CONFLICT


class PolicyViolationError(ChatServiceError):
    """Write rejected by the authorization policy"""
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(ChatServiceError):
    """Row is absent or not visible to the caller"""
    status_code = status.HTTP_404_NOT_FOUND


class InvalidTransitionError(ChatServiceError):
    """Friendship state change not allowed from the current state"""
    status_code = status.HTTP_409_CONFLICT
