# sms_api/core/exceptions.py
"""Custom exceptions for the school management API."""
from fastapi import HTTPException
from typing import Any, Dict, Optional


class SchoolAPIException(HTTPException):
    """Base exception for the application."""
    def __init__(
        self,
        status_code: int,
        detail: str,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class NotFoundError(SchoolAPIException):
    """Exception raised when a resource is not found."""
    def __init__(self, resource: str, id: Any = None):
        message = f"{resource} not found"
        if id is not None:
            message += f" with id: {id}"
        super().__init__(status_code=404, detail=message)


class BadRequestError(SchoolAPIException):
    def __init__(self, message: str):
        super().__init__(status_code=400, detail=message)


class DuplicateError(SchoolAPIException):
    """Exception raised when a unique field is already taken."""
    def __init__(self, resource: str, field: str):
        super().__init__(
            status_code=409,
            detail=f"A {resource} with this {field} already exists"
        )


class AuthenticationError(SchoolAPIException):
    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(
            status_code=401,
            detail=message,
            headers={"WWW-Authenticate": "Bearer"}
        )


class PermissionDeniedError(SchoolAPIException):
    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(status_code=403, detail=message)


class AccountLockedError(SchoolAPIException):
    def __init__(self):
        super().__init__(
            status_code=423,
            detail="Account is temporarily locked due to too many failed login attempts. "
                   "Please try again later."
        )
