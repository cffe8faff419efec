"""
Error taxonomy for the chat core.

Only GatewayError and StoreUnavailable are meant to reach callers as
failures. RetrievalError and ShopLookupError are raised by collaborators
and absorbed by the orchestrator with neutral fallback values.
"""

from __future__ import annotations


class CleanersError(Exception):
    """Base class for all domain errors, carrying an API code and status."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__class__.__doc__ or self.code)

    @property
    def message(self) -> str:
        return str(self)


class EmptyInput(CleanersError):
    """Message cannot be empty."""

    code = "EMPTY_MESSAGE"
    status_code = 400


class RetrievalError(CleanersError):
    """Knowledge retrieval failed."""

    code = "RETRIEVAL_FAILED"
    status_code = 502


class ShopLookupError(CleanersError):
    """Partner shop lookup failed."""

    code = "SHOP_LOOKUP_FAILED"
    status_code = 502


class StoreUnavailable(CleanersError):
    """Session memory is unavailable."""

    code = "STORE_UNAVAILABLE"
    status_code = 503


class GatewayError(CleanersError):
    """
    The model gateway could not produce a completion.

    ``kind`` is one of ``transport``, ``rate_limited`` or
    ``invalid_response``. ``timed_out`` distinguishes transport timeouts.
    """

    TRANSPORT = "transport"
    RATE_LIMITED = "rate_limited"
    INVALID_RESPONSE = "invalid_response"

    KINDS = (TRANSPORT, RATE_LIMITED, INVALID_RESPONSE)

    code = "AI_ERROR"

    def __init__(self, message: str, kind: str = TRANSPORT, timed_out: bool = False):
        if kind not in self.KINDS:
            raise ValueError(f"Unknown gateway error kind: {kind}")
        super().__init__(message)
        self.kind = kind
        self.timed_out = timed_out

    @property
    def status_code(self) -> int:  # type: ignore[override]
        if self.kind == self.RATE_LIMITED:
            return 429
        if self.timed_out:
            return 504
        return 502


__all__ = [
    "CleanersError",
    "EmptyInput",
    "RetrievalError",
    "ShopLookupError",
    "StoreUnavailable",
    "GatewayError",
]
