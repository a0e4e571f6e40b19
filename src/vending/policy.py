"""Fulfillment policy — tunable constants for abuse control and reclamation.

Defaults mirror production behaviour; each value can be overridden through
an environment variable. Tests swap the active policy with set_policy().
"""

import os
from dataclasses import dataclass


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    value = int(raw)
    if value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {raw!r}")
    return value


@dataclass(frozen=True)
class FulfillmentPolicy:
    """Abuse-control and reclamation settings."""

    velocity_window_minutes: int = 30
    velocity_threshold: int = 3
    suspension_hours: int = 12
    pending_timeout_minutes: int = 30
    reclamation_interval_minutes: int = 5

    @classmethod
    def from_env(cls) -> "FulfillmentPolicy":
        return cls(
            velocity_window_minutes=_int_env("VELOCITY_WINDOW_MINUTES", cls.velocity_window_minutes),
            velocity_threshold=_int_env("VELOCITY_THRESHOLD", cls.velocity_threshold),
            suspension_hours=_int_env("SUSPENSION_HOURS", cls.suspension_hours),
            pending_timeout_minutes=_int_env("PENDING_TIMEOUT_MINUTES", cls.pending_timeout_minutes),
            reclamation_interval_minutes=_int_env("RECLAMATION_INTERVAL_MINUTES", cls.reclamation_interval_minutes),
        )


_current_policy: FulfillmentPolicy | None = None


def get_policy() -> FulfillmentPolicy:
    """Return the active policy, reading the environment on first use."""
    global _current_policy
    if _current_policy is None:
        _current_policy = FulfillmentPolicy.from_env()
    return _current_policy


def set_policy(policy: FulfillmentPolicy) -> None:
    """Override the active policy (useful for tests)."""
    global _current_policy
    _current_policy = policy


def reset_policy() -> None:
    """Drop the override; the environment is read again on next use."""
    global _current_policy
    _current_policy = None
