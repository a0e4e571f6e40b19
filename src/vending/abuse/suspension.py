"""Suspension aggregate — a temporary purchase block on a buyer account.

One record per account, keyed by the account id. A record whose
``suspended_until`` has passed is inert and is removed the next time the
account is checked.
"""

from datetime import timedelta

from protean.fields import DateTime, Identifier, Integer, String

from vending.domain import vending
from vending.utils.clock import as_utc, utcnow


@vending.aggregate
class Suspension:
    account_id = Identifier(identifier=True, required=True)
    reason = String(max_length=500)
    suspension_count = Integer(default=1)
    suspended_until = DateTime(required=True)
    updated_at = DateTime(default=utcnow)

    @classmethod
    def impose(cls, account_id: str, reason: str, hours: int, now=None):
        now = now or utcnow()
        return cls(
            account_id=str(account_id),
            reason=reason,
            suspension_count=1,
            suspended_until=now + timedelta(hours=hours),
            updated_at=now,
        )

    def extend(self, reason: str, hours: int, now=None) -> None:
        """Refresh the block from ``now`` and count the repeat offence."""
        now = now or utcnow()
        self.reason = reason
        self.suspension_count = (self.suspension_count or 0) + 1
        self.suspended_until = now + timedelta(hours=hours)
        self.updated_at = now

    def is_active(self, as_of=None) -> bool:
        return as_utc(self.suspended_until) > as_utc(as_of or utcnow())


@vending.repository(part_of=Suspension)
class SuspensionRepository:
    def find(self, account_id: str) -> Suspension | None:
        return self._dao.query.filter(account_id=str(account_id)).all().first

    def discard(self, suspension: Suspension) -> None:
        self._dao.delete(suspension)
