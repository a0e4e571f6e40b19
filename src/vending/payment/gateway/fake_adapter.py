"""Configurable fake payment gateway for development and testing.

No external calls are made. Sessions get a ``fake_cs_`` identifier and a
local payment URL; the gateway can be switched to fail at runtime, and every
call is recorded in ``calls`` for assertions.
"""

from uuid import uuid4

from vending.payment.gateway.port import CheckoutSession, GatewayError, PaymentGateway

FAKE_SIGNATURE = "test-signature"


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self, base_url: str = "http://localhost:8000") -> None:
        self.base_url = base_url.rstrip("/")
        self.should_succeed: bool = True
        self.failure_reason: str = "Gateway unavailable"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Gateway unavailable") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_checkout_session(
        self,
        product_name: str,
        price: float,
        buyer_id: str,
        order_id: str,
    ) -> CheckoutSession:
        self.calls.append(
            {
                "method": "create_checkout_session",
                "product_name": product_name,
                "price": price,
                "buyer_id": buyer_id,
                "order_id": order_id,
            }
        )

        if not self.should_succeed:
            raise GatewayError(self.failure_reason)

        session_id = f"fake_cs_{uuid4().hex[:16]}"
        return CheckoutSession(
            session_id=session_id,
            payment_url=f"{self.base_url}/checkout/{session_id}",
        )

    def verify_webhook_signature(self, payload: str, signature: str) -> bool:  # noqa: ARG002
        return signature == FAKE_SIGNATURE
