"""Payment gateway port (abstract interface).

Defines the contract every checkout adapter implements, so FakeGateway
(dev/test) and StripeGateway (production) are interchangeable without
touching the purchase flow or the webhook endpoint.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class CheckoutSession:
    """A hosted checkout session created for one order."""

    session_id: str
    payment_url: str


class GatewayError(Exception):
    """The gateway could not create a checkout session."""


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    #: HTTP header carrying the webhook signature.
    signature_header = "X-Gateway-Signature"

    @abstractmethod
    def create_checkout_session(
        self,
        product_name: str,
        price: float,
        buyer_id: str,
        order_id: str,
    ) -> CheckoutSession:
        """Open a checkout session; ``buyer_id`` and ``order_id`` travel as metadata.

        Raises GatewayError on any failure.
        """
        ...

    @abstractmethod
    def verify_webhook_signature(
        self,
        payload: str,
        signature: str,
    ) -> bool:
        """Verify that a webhook payload is authentically from the gateway."""
        ...
