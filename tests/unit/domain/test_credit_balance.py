"""Unit tests for credit balance computation"""

from datetime import datetime, timedelta

from src.domain.credit_balance import (
    cycle_length,
    compute_available_credits,
    subscription_credits_available,
)
from src.domain.user_account import BillingCycle, UserAccount

NOW = datetime(2024, 6, 15, 12, 0, 0)
GRACE = timedelta(hours=24)


def account(**overrides):
    fields = dict(
        id="user_1",
        email="u@example.com",
        credits_limit=500,
        credits_used=100,
        credits_balance=100,
        credits_expires_at=NOW + timedelta(days=5),
    )
    fields.update(overrides)
    return UserAccount(**fields)


class TestSubscriptionCreditsAvailable:
    def test_future_expiry_returns_remaining(self):
        assert subscription_credits_available(account(), NOW, GRACE) == 400

    def test_no_expiry_returns_remaining(self):
        assert subscription_credits_available(account(credits_expires_at=None), NOW, GRACE) == 400

    def test_overspent_pool_is_floored_at_zero(self):
        assert subscription_credits_available(account(credits_used=600), NOW, GRACE) == 0

    def test_expired_within_grace_period_is_still_granted(self):
        """
        Given: Credits expired one hour ago and the renewal webhook has not arrived
        When: Availability is computed
        Then: The pool is still granted
        """
        acc = account(credits_expires_at=NOW - timedelta(hours=1), last_credit_renewal_at=NOW - timedelta(days=30))
        assert subscription_credits_available(acc, NOW, GRACE) == 400

    def test_expired_beyond_grace_period_is_zero(self):
        acc = account(credits_expires_at=NOW - timedelta(hours=25))
        assert subscription_credits_available(acc, NOW, GRACE) == 0

    def test_renewed_after_expiry_uses_post_renewal_state(self):
        acc = account(
            credits_expires_at=NOW - timedelta(days=3),
            last_credit_renewal_at=NOW - timedelta(days=2),
        )
        assert subscription_credits_available(acc, NOW, GRACE) == 400

    def test_grace_period_is_configurable(self):
        acc = account(credits_expires_at=NOW - timedelta(hours=30))
        assert subscription_credits_available(acc, NOW, timedelta(hours=48)) == 400


class TestComputeAvailableCredits:
    def test_total_is_subscription_plus_purchased(self):
        balance = compute_available_credits(account(), NOW, GRACE)
        assert balance.subscription == 400
        assert balance.purchased == 100
        assert balance.total == 500

    def test_purchased_pool_only_after_expiry(self):
        acc = account(credits_expires_at=NOW - timedelta(days=3))
        assert compute_available_credits(acc, NOW, GRACE).total == 100


def test_cycle_length_defaults_to_monthly():
    assert cycle_length(None) == timedelta(days=30)
    assert cycle_length(BillingCycle.YEARLY) == timedelta(days=365)
