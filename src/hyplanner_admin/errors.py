"""Exception hierarchy shared by the services and the HTTP layer."""

from __future__ import annotations

from typing import Any, Dict, Optional


class AdminError(Exception):
    status_code = 500

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.message


class ValidationError(AdminError):
    status_code = 400


class AuthenticationError(AdminError):
    status_code = 401


class NotFoundError(AdminError):
    status_code = 404


class ConflictError(AdminError):
    """Uniqueness violation (duplicate feedback, duplicate email)."""

    status_code = 400


class InternalError(AdminError):
    status_code = 500
