"""
minyan.errors — Error Hierarchy
================================

Every failure the core can report to a caller derives from
:class:`MinyanError`, which carries a stable ``code`` and the HTTP status the
API layer maps it to.

* :class:`ValidationError`     → 400, missing / malformed / out-of-range input
* :class:`NotFoundError`       → 404, unknown synagogue or report id
* :class:`PersistenceError`    → 500, store unreachable (no auto-retry)
* :class:`UpstreamUnavailable` → never surfaced; absorbed by the prayer-time
  provider chain
"""

from __future__ import annotations


class MinyanError(Exception):
    """Base class for all domain errors."""

    code = "INTERNAL_ERROR"
    http_status = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_response(self) -> dict:
        return {"error": {"code": self.code, "message": self.message}}


class ValidationError(MinyanError):
    code = "VALIDATION_ERROR"
    http_status = 400

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field

    def to_response(self) -> dict:
        body = super().to_response()
        if self.field:
            body["error"]["field"] = self.field
        return body


class NotFoundError(MinyanError):
    code = "NOT_FOUND"
    http_status = 404


class PersistenceError(MinyanError):
    code = "PERSISTENCE_ERROR"
    http_status = 500


class UpstreamUnavailable(MinyanError):
    """A time-data provider failed (network, status, payload or timeout)."""

    code = "UPSTREAM_UNAVAILABLE"
    http_status = 502

    def __init__(self, provider: str, reason: str) -> None:
        super().__init__(f"{provider}: {reason}")
        self.provider = provider
        self.reason = reason
