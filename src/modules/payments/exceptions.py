"""Payment gateway exceptions."""

from __future__ import annotations

from typing import Optional


class PaymentGatewayError(Exception):
    """The gateway could not be reached or returned an unusable response."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PaymentGatewayNotConfigured(PaymentGatewayError):
    """Server credentials for the gateway are missing."""


class InvalidNotificationSignature(Exception):
    """A webhook notification failed signature verification."""
