"""
Error taxonomy for diagnosis providers.

Adapters raise these internally; they are always caught before a response
leaves the adapter and turned into a mock diagnosis annotated with the kind.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    INVALID_API_KEY = "INVALID_API_KEY"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    RATE_LIMITED = "RATE_LIMITED"
    API_ERROR = "API_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    SCHEMA_VALIDATION_FAILED = "SCHEMA_VALIDATION_FAILED"


# Kinds that make retrying the same provider with another model pointless
TERMINAL_KINDS = {
    ErrorKind.INVALID_API_KEY,
    ErrorKind.INSUFFICIENT_BALANCE,
    ErrorKind.RATE_LIMITED,
}

ERROR_DETAILS = {
    ErrorKind.INSUFFICIENT_BALANCE: "Provider account has insufficient balance. Please add credits or use another provider.",
    ErrorKind.INVALID_API_KEY: "Provider rejected the API key. Check the key configured for this provider.",
    ErrorKind.RATE_LIMITED: "Provider rate limit reached. Please wait a moment and try again.",
}


def error_kind_for_status(status_code: int) -> ErrorKind:
    """Map an HTTP status from a provider to a coarse error kind."""
    if status_code in (401, 403):
        return ErrorKind.INVALID_API_KEY
    if status_code == 402:
        return ErrorKind.INSUFFICIENT_BALANCE
    if status_code == 429:
        return ErrorKind.RATE_LIMITED
    return ErrorKind.API_ERROR


class ProviderError(Exception):
    """A provider call failed in a way the caller should see as an error kind."""

    def __init__(self, kind: ErrorKind, status_code: Optional[int] = None, detail: str = ""):
        self.kind = kind
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)

    @classmethod
    def from_status(cls, status_code: int, detail: str = "") -> "ProviderError":
        return cls(error_kind_for_status(status_code), status_code=status_code, detail=detail)


class SchemaValidationError(ValueError):
    """Parsed provider JSON does not have the shape the prompt asked for."""
