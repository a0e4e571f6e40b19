"""Delivery channel abstraction — pluggable buyer messaging."""

import os

from vending.delivery.port import DeliveryChannel

_channel_instance: DeliveryChannel | None = None


def get_channel() -> DeliveryChannel:
    """Return the configured delivery channel (singleton).

    Uses FakeDeliveryChannel by default; configured via the DELIVERY_CHANNEL
    environment variable.
    """
    global _channel_instance
    if _channel_instance is None:
        adapter = os.environ.get("DELIVERY_CHANNEL", "fake")
        if adapter == "fake":
            from vending.delivery.fake_adapter import FakeDeliveryChannel

            _channel_instance = FakeDeliveryChannel()
        else:
            raise ValueError(f"Unknown delivery channel: {adapter}")
    return _channel_instance


def set_channel(channel: DeliveryChannel) -> None:
    """Override the active channel (useful for tests)."""
    global _channel_instance
    _channel_instance = channel


def reset_channel():
    """Reset the channel singleton (useful for testing)."""
    global _channel_instance
    _channel_instance = None
