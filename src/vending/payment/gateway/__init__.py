"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing (PAYMENT_GATEWAY=fake, default)
- StripeGateway for production (PAYMENT_GATEWAY=stripe)
"""

import os

from vending.payment.gateway.fake_adapter import FakeGateway
from vending.payment.gateway.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def _build_gateway() -> PaymentGateway:
    kind = os.environ.get("PAYMENT_GATEWAY", "fake").lower()
    server_url = os.environ.get("SERVER_URL", "http://localhost:8000")
    if kind == "stripe":
        from vending.payment.gateway.stripe_adapter import StripeGateway

        return StripeGateway(
            api_key=os.environ["STRIPE_SECRET_KEY"],
            webhook_secret=os.environ["STRIPE_WEBHOOK_SECRET"],
            server_url=server_url,
        )
    if kind == "fake":
        return FakeGateway(base_url=server_url)
    raise ValueError(f"Unknown PAYMENT_GATEWAY {kind!r}")


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, built from the environment on first use."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = _build_gateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
