"""Fake delivery channel — records messages instead of sending them.

Configurable success/failure behavior for integration testing.
"""

from uuid import uuid4

from vending.delivery.port import DeliveryChannel


class FakeDeliveryChannel(DeliveryChannel):
    """Fake channel that always succeeds by default."""

    def __init__(self):
        self.should_succeed = True
        self.failure_reason = "Buyer unreachable"
        self.sent: list[dict] = []

    def configure(self, should_succeed: bool = True, failure_reason: str = "Buyer unreachable"):
        """Configure the fake channel behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def _record(self, kind: str, buyer_id: str, **payload) -> dict:
        if not self.should_succeed:
            return {"status": "failed", "message_id": None, "error": self.failure_reason}

        message_id = f"msg-{uuid4().hex[:10]}"
        self.sent.append({"kind": kind, "buyer_id": str(buyer_id), "message_id": message_id, **payload})
        return {"status": "sent", "message_id": message_id, "error": None}

    def deliver_card(self, buyer_id: str, order_id: str, code: str) -> dict:
        return self._record("card", buyer_id, order_id=str(order_id), code=code)

    def notify_suspension(self, buyer_id: str, reason: str, hours: int) -> dict:
        return self._record("suspension", buyer_id, reason=reason, hours=hours)

    def cards_sent_to(self, buyer_id: str) -> list[dict]:
        return [m for m in self.sent if m["kind"] == "card" and m["buyer_id"] == str(buyer_id)]
