"""Error taxonomy for Mingzi.

Request-level errors carry the HTTP status the API layer maps them to.
Iteration-level errors (provider, parse, schema) are recovered inside the
batch orchestrator and never reach a caller.
"""


class MingziError(Exception):
    """Base class for all Mingzi errors."""

    status_code: int = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message or self.__class__.__doc__ or ""


# =============================================================================
# Request-level
# =============================================================================


class ValidationError(MingziError):
    """Request is missing required fields or carries invalid values."""

    status_code = 400


class BatchNotFound(MingziError):
    """Continuation requested for a batch the caller does not own."""

    status_code = 400


class QuotaExceeded(MingziError):
    """Free generation limit for this network origin has been reached."""

    status_code = 429


class InsufficientCredits(MingziError):
    """Caller's prepaid balance does not cover the requested plan."""

    status_code = 403


class QuotaUnavailable(MingziError):
    """Quota state could not be read, so the request cannot be admitted."""

    status_code = 500


class CheckoutError(MingziError):
    """Checkout request cannot be mapped to a product or session."""

    status_code = 400


# =============================================================================
# Iteration-level
# =============================================================================


class ProviderError(MingziError):
    """Generation provider call failed or returned no content."""


class ParseError(MingziError):
    """Provider text holds no decodable JSON object."""


class SchemaError(MingziError):
    """Decoded object lacks required NameRecord fields."""


# =============================================================================
# Best-effort
# =============================================================================


class PersistenceError(MingziError):
    """Storage write or read failed."""


class PaymentProviderError(MingziError):
    """Payment provider rejected or failed a checkout request."""

    status_code = 502
