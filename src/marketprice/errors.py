"""Pricing error types."""

from __future__ import annotations

from enum import Enum


class PricingErrorCode(Enum):
    """Error classification codes."""

    # Provider transport and account
    RATE_LIMITED = "rate_limited"
    AUTH_FAILED = "auth_failed"
    TIMEOUT = "timeout"
    PROVIDER_ERROR = "provider_error"
    # Ticker data
    NOT_FOUND = "not_found"
    NO_DATA = "no_data"
    # Caller input
    INVALID_DATE_KEY = "invalid_date_key"


# Another provider (or a later attempt) may succeed.
_RETRYABLE_CODES = frozenset({
    PricingErrorCode.RATE_LIMITED,
    PricingErrorCode.TIMEOUT,
    PricingErrorCode.NO_DATA,
})


class PricingError(Exception):
    """Pricing exception with error code, retryable flag and ticker.

    Attributes:
        code: Structured error code for programmatic handling.
        retryable: Whether the engine should fall through to the next
            provider. Defaults by code: rate limits, timeouts and empty
            snapshots are retryable, everything else is not.
        symbol: Ticker the error concerns, if any.
    """

    def __init__(
        self,
        message: str,
        code: PricingErrorCode = PricingErrorCode.PROVIDER_ERROR,
        retryable: bool | None = None,
        symbol: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.retryable = code in _RETRYABLE_CODES if retryable is None else retryable
        self.symbol = symbol.upper() if symbol else None

    def __str__(self) -> str:
        message = super().__str__()
        if self.symbol and self.symbol not in message:
            return f"{self.symbol}: {message}"
        return message
