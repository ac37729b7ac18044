# exceptions.py — Domain error taxonomy
# Every class is an HTTPException so routers can raise it directly and the
# handler in main.py renders it as {"message": ...}.
from typing import Optional

from fastapi import HTTPException


class DomainError(HTTPException):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, headers: Optional[dict] = None):
        super().__init__(status_code=self.status_code, detail=message or self.default_message, headers=headers)

    @property
    def message(self) -> str:
        return self.detail


class ValidationError(DomainError):
    status_code = 422
    default_message = "The given data was invalid."


class AuthenticationError(DomainError):
    status_code = 401
    default_message = "Unauthenticated."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class AuthorizationError(DomainError):
    status_code = 403
    default_message = "This action is unauthorized."

    def __init__(self, message: Optional[str] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.reason = reason

    @classmethod
    def from_decision(cls, decision) -> "AuthorizationError":
        reason = decision.reason.value if decision.reason is not None else None
        return cls(decision.message, reason=reason)


class NotFoundError(DomainError):
    status_code = 404
    default_message = "Resource not found."
