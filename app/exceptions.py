"""Shipping relay exceptions."""
from typing import Any, Optional


class ShippingError(Exception):
    """
    Base error for the shipping relay.

    Carries a human-readable ``message`` for the HTTP caller and optional
    ``details`` (the provider's error body, or the transport error text).
    """

    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class AuthenticationError(ShippingError):
    """Credential exchange with Shiprocket failed or returned no token."""

    def to_dict(self) -> dict:
        # Provider login bodies are logged, never returned to the browser
        return {"message": self.message}


class UpstreamOrderError(ShippingError):
    """Shiprocket rejected or failed the create-order call."""


class UpstreamServiceabilityError(ShippingError):
    """Shiprocket rejected or failed the serviceability check."""


class ShippingValidationError(ShippingError):
    """Request body is missing required fields or carries invalid ones."""

    status_code = 400
