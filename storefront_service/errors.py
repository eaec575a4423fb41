"""
errors.py — Error taxonomy of the storefront service

Every failure a public operation can report derives from ``StorefrontError``.
The HTTP layer turns these into ``{"error": ..., "details": ...}`` responses
using ``status_code``; the checkout flow turns the recoverable ones
(ValidationError, GeocodeError) into an inline message.
"""


class StorefrontError(Exception):
    """Base class. ``message`` is safe to show to a customer."""

    status_code = 500

    def __init__(self, message: str, details: str = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ConfigurationError(StorefrontError):
    """Missing credentials or provider location ids. Fatal, never retried."""

    status_code = 500


class UpstreamDataError(StorefrontError):
    """The vendor catalog was unavailable, empty or unusable."""

    status_code = 500


class ValidationError(StorefrontError):
    """A checkout precondition is not met (time slot, delivery tier, cart)."""

    status_code = 400


class GeocodeError(StorefrontError):
    """The address could not be resolved or lies outside the delivery radius."""

    status_code = 422


class PaymentProviderError(StorefrontError):
    """The payment provider rejected the request or could not be reached."""

    status_code = 502
