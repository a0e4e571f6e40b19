"""Fulfillment error taxonomy, layered on Protean's exception hierarchy.

The API maps these onto the three user-visible failures ("out of stock",
"account temporarily restricted", "purchase failed, try again").
"""

from protean.exceptions import (
    InvalidOperationError,
    InvalidStateError,
    ObjectNotFoundError,
    ValidationError,
)


class InvalidOrder(ValidationError):
    """Malformed order-creation request. Rejected, never retried."""


class OutOfStock(InvalidOperationError):
    """No unused card for the product at claim time."""


class ConflictingState(InvalidStateError):
    """A conditional write's expected prior state no longer holds."""


class SuspendedAccount(InvalidOperationError):
    """The buyer account is temporarily blocked from purchasing."""


class NotFound(ObjectNotFoundError):
    """A referenced order or card does not exist."""
