"""
Failure kinds reported by the Gemini gateway.
"""
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    OVERLOADED = "OVERLOADED"
    RATE_LIMITED = "RATE_LIMITED"
    INVALID_REQUEST = "INVALID_REQUEST"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    FAILED_AFTER_RETRIES = "FAILED_AFTER_RETRIES"


class GatewayError(Exception):
    """Terminal failure of a gateway call, after any retries."""

    def __init__(self, kind: ErrorKind, message: str = "", attempts: int = 0):
        self.kind = kind
        self.message = message
        self.attempts = attempts
        super().__init__(f"{kind.value}: {message}" if message else kind.value)


class ProviderError(Exception):
    """A single failed attempt, before classification."""

    def __init__(self, message: str, code: Optional[int] = None, malformed: bool = False):
        self.message = message
        self.code = code
        self.malformed = malformed
        super().__init__(message)


def classify(error: ProviderError) -> ErrorKind:
    """
    Map one failed attempt to the kind that decides its backoff.

    An overload is recognised by code 503 or by the provider saying so in
    the message, whatever the code.
    """
    if error.code == 503 or "overloaded" in (error.message or "").lower():
        return ErrorKind.OVERLOADED
    if error.code == 429:
        return ErrorKind.RATE_LIMITED
    if error.code == 400:
        return ErrorKind.INVALID_REQUEST
    if error.malformed:
        return ErrorKind.MALFORMED_RESPONSE
    return ErrorKind.FAILED_AFTER_RETRIES
