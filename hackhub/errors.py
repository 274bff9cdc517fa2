"""
Error taxonomy for gated operations.

Each class is an ``HTTPException`` so FastAPI renders it as
``{"detail": message}`` with the matching status code.
"""

from typing import Optional

from fastapi import HTTPException


class HackhubError(HTTPException):
    status_code: int = 400
    default_detail: str = "Request could not be processed."

    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


class AuthorizationError(HackhubError):
    status_code = 403
    default_detail = "You are not allowed to perform this action."


class TimelineViolation(HackhubError):
    status_code = 422
    default_detail = "This action is not available at this point of the hackathon."


class StateConflict(HackhubError):
    status_code = 422
    default_detail = "This action conflicts with the current state."


class ValidationFailed(HackhubError):
    status_code = 422
    default_detail = "Invalid input."


class NotFound(HackhubError):
    status_code = 404
    default_detail = "Resource not found."
