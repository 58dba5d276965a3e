"""
Domain errors raised by the journal services.

Routes never build error payloads themselves: services raise one of these and
the handlers registered in ``journal.main`` turn them into JSON responses.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class JournalError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    default_detail: str = "Internal server error"

    def __init__(
        self,
        detail: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        self.detail = detail or self.default_detail
        self.errors = errors or []
        super().__init__(self.detail)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"message": self.detail}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(JournalError):
    """Rejected input: nothing was written."""

    status_code = 400
    default_detail = "Validation failed"

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, errors=[{"field": field, "message": message}])


class AuthorizationError(JournalError):
    status_code = 403
    default_detail = "Not authorized"


class NotFoundError(JournalError):
    status_code = 404
    default_detail = "Resource not found"


class UpstreamServiceError(JournalError):
    """A storage or email collaborator failed."""

    status_code = 502
    default_detail = "Upstream service failure"


class SearchTierError(JournalError):
    """The last search tier attempted failed; there is nothing left to fall back to."""

    status_code = 500
    default_detail = "Search failed"

    def __init__(self, tier: str, detail: Optional[str] = None) -> None:
        self.tier = tier
        super().__init__(detail or f"Search tier '{tier}' failed")
