"""Error kinds raised by the management API client.

Every failure surfaces as a subclass of HopError so callers can tell apart
bad input, bad credentials, an unreachable broker and a protocol mismatch.
"""
from typing import Any


class HopError(Exception):
    """Base class for all client errors"""


class RequestRejected(HopError):
    """The broker answered with a 4xx status"""

    def __init__(self, status: int, reason: str | None = None, payload: Any = None):
        self.status = status
        self.reason = reason
        self.payload = payload
        message = f"Request rejected with HTTP {status}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class AuthenticationFailed(RequestRejected):
    """The broker refused the configured credentials (HTTP 401/403)"""


class BrokerUnavailable(HopError):
    """5xx response, timeout or transport failure.

    A mutating call that fails this way may or may not have been applied
    by the broker.
    """

    def __init__(self, message: str, status: int | None = None, cause: Exception | None = None):
        self.status = status
        self.cause = cause
        super().__init__(message)


class MalformedResponse(HopError):
    """A 2xx body that cannot be decoded into the expected entity"""

    def __init__(self, entity: str, field: str | None = None, detail: str | None = None):
        self.entity = entity
        self.field = field
        self.detail = detail
        message = f"Malformed {entity} response"
        if field:
            message = f"{message}: field '{field}'"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
