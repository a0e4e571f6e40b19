from enum import Enum


class NotificationOutcome(Enum):
    """What processing a payment notification (or a redrive) amounted to."""

    IGNORED = "ignored"
    NOT_FOUND = "not_found"
    DUPLICATE = "duplicate"
    REPAIRED = "repaired"
    REJECTED = "rejected"
    OUT_OF_STOCK = "out_of_stock"
    DELIVERED = "delivered"
