"""Stripe payment gateway adapter.

Uses the stripe-python SDK: a hosted Checkout Session per order (one line
item priced in cents) and ``stripe.Webhook.construct_event`` for signature
verification against the endpoint's signing secret.
"""

import stripe
import structlog

from vending.payment.gateway.port import CheckoutSession, GatewayError, PaymentGateway

logger = structlog.get_logger(__name__)


class StripeGateway(PaymentGateway):
    """Production Stripe gateway adapter."""

    signature_header = "Stripe-Signature"

    def __init__(
        self,
        api_key: str,
        webhook_secret: str,
        server_url: str = "http://localhost:8000",
        currency: str = "usd",
    ) -> None:
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.server_url = server_url.rstrip("/")
        self.currency = currency

    def create_checkout_session(
        self,
        product_name: str,
        price: float,
        buyer_id: str,
        order_id: str,
    ) -> CheckoutSession:
        try:
            session = stripe.checkout.Session.create(
                api_key=self.api_key,
                mode="payment",
                payment_method_types=["card"],
                line_items=[
                    {
                        "price_data": {
                            "currency": self.currency,
                            "product_data": {"name": product_name},
                            "unit_amount": int(round(price * 100)),
                        },
                        "quantity": 1,
                    }
                ],
                success_url=f"{self.server_url}/success?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{self.server_url}/cancel",
                metadata={"buyer_id": str(buyer_id), "order_id": str(order_id)},
                idempotency_key=f"checkout_{order_id}",
            )
        except stripe.StripeError as exc:
            logger.error("Checkout session creation failed", order_id=str(order_id), error=str(exc))
            raise GatewayError(str(exc)) from exc

        return CheckoutSession(session_id=session.id, payment_url=session.url)

    def verify_webhook_signature(self, payload: str, signature: str) -> bool:
        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (stripe.SignatureVerificationError, ValueError) as exc:
            logger.warning("Webhook signature rejected", error=str(exc))
            return False
        return True
