"""
Domain errors raised by the services and the authorization gate.

Each error carries the HTTP status it maps to; ``main.py`` renders them in the
standard ``{"status": "error", "message": ...}`` envelope.
"""

from __future__ import annotations

from typing import Any

from fastapi import status


class DomainError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request could not be processed"

    def __init__(self, message: str | None = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(DomainError):
    default_message = "Validation error"


class DuplicateEmail(DomainError):
    default_message = "User with this email already exists"


class InvalidCredentials(DomainError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Incorrect email or password"


class Unauthenticated(DomainError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "You are not logged in. Please log in to get access."


class InvalidSession(DomainError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid token. Please log in again."


class ExpiredSession(DomainError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Your token has expired. Please log in again."


class AccountNotFound(DomainError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "The user belonging to this token no longer exists."


class Forbidden(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You do not have permission to perform this action"


class AccountInactive(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Your account is pending activation by an administrator"


class NotFound(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class InvalidTransition(DomainError):
    default_message = "This operation is not allowed in the current state"


class AlreadyAnswered(DomainError):
    default_message = "This question has already been answered"


class AlreadyPaid(DomainError):
    default_message = "This request has already been paid for"
