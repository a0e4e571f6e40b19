"""Tests for environment-driven fulfillment policy."""

import pytest

from vending.policy import FulfillmentPolicy, get_policy, reset_policy, set_policy


class TestFromEnv:
    def test_defaults(self, monkeypatch):
        for name in (
            "VELOCITY_WINDOW_MINUTES",
            "VELOCITY_THRESHOLD",
            "SUSPENSION_HOURS",
            "PENDING_TIMEOUT_MINUTES",
            "RECLAMATION_INTERVAL_MINUTES",
        ):
            monkeypatch.delenv(name, raising=False)
        policy = FulfillmentPolicy.from_env()
        assert policy.velocity_window_minutes == 30
        assert policy.velocity_threshold == 3
        assert policy.suspension_hours == 12
        assert policy.pending_timeout_minutes == 30
        assert policy.reclamation_interval_minutes == 5

    def test_override(self, monkeypatch):
        monkeypatch.setenv("VELOCITY_THRESHOLD", "5")
        assert FulfillmentPolicy.from_env().velocity_threshold == 5

    def test_non_positive_rejected(self, monkeypatch):
        monkeypatch.setenv("SUSPENSION_HOURS", "0")
        with pytest.raises(ValueError):
            FulfillmentPolicy.from_env()


class TestAccessors:
    def test_set_and_reset(self):
        set_policy(FulfillmentPolicy(velocity_threshold=9))
        assert get_policy().velocity_threshold == 9
        reset_policy()
        assert get_policy().velocity_threshold == 3
