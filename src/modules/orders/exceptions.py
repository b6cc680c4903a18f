"""Order domain exceptions.

Raised by the repository and service layers.  The API layer (views)
catches these and translates them into HTTP responses.
"""

from __future__ import annotations


class OrderNotFound(Exception):
    """The order reference does not resolve to a stored order."""


class InvalidStatusValue(Exception):
    """A status token is not part of the canonical order status enum."""


class OrderPersistenceError(Exception):
    """The storage layer rejected an order read or update."""


class TrackingAppendFailed(OrderPersistenceError):
    """The status update was accepted but its tracking entry could not be written.

    Raised inside the transition transaction, so the status change is
    rolled back together with the failed append.
    """


class InvalidCheckout(Exception):
    """The checkout payload is missing customer, address or cart data."""
