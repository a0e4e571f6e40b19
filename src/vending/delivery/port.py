"""Delivery channel port — abstract interface for reaching buyers.

The fulfillment flow programs against the port; adapters are swapped via
configuration. Delivery is best effort: callers log a failed result and
never undo the allocation that preceded it.
"""

from abc import ABC, abstractmethod


class DeliveryChannel(ABC):
    """Abstract interface for delivery adapters."""

    @abstractmethod
    def deliver_card(self, buyer_id: str, order_id: str, code: str) -> dict:
        """Send a card code to the buyer.

        Returns:
            dict with keys: status ("sent" | "failed"), message_id, error
        """
        ...

    @abstractmethod
    def notify_suspension(self, buyer_id: str, reason: str, hours: int) -> dict:
        """Tell the buyer their account is temporarily restricted.

        Returns:
            dict with keys: status, message_id, error
        """
        ...
