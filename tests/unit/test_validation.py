"""Stake validation bounds."""

from datetime import datetime, timedelta, timezone

import pytest

from streakbet.config import Settings
from streakbet.errors import RuleViolationError
from streakbet.wagers.validation import max_stake, validate_amount, validate_end_date, validate_solvency

NOW = datetime(2026, 3, 10, 12, tzinfo=timezone.utc)


@pytest.fixture
def settings() -> Settings:
    return Settings()


class TestAmount:
    def test_minimum(self, settings):
        assert validate_amount(10, settings) == 10
        with pytest.raises(RuleViolationError, match="Minimum bet is 10 XP"):
            validate_amount(9, settings)

    def test_missing(self, settings):
        with pytest.raises(RuleViolationError):
            validate_amount(None, settings)


class TestEndDate:
    def test_required(self, settings):
        with pytest.raises(RuleViolationError, match="End date is required"):
            validate_end_date(None, settings, now=NOW)

    def test_must_be_future(self, settings):
        with pytest.raises(RuleViolationError, match="must be in the future"):
            validate_end_date(NOW, settings, now=NOW)
        with pytest.raises(RuleViolationError, match="must be in the future"):
            validate_end_date(NOW - timedelta(days=1), settings, now=NOW)

    def test_thirty_day_cap(self, settings):
        assert validate_end_date(NOW + timedelta(days=30), settings, now=NOW) == NOW + timedelta(days=30)
        with pytest.raises(RuleViolationError, match="Maximum bet duration is 30 days"):
            validate_end_date(NOW + timedelta(days=31), settings, now=NOW)

    def test_kind_in_message(self, settings):
        with pytest.raises(RuleViolationError, match="Maximum challenge duration"):
            validate_end_date(NOW + timedelta(days=45), settings, kind="challenge", now=NOW)

    def test_naive_input_treated_as_utc(self, settings):
        naive = (NOW + timedelta(days=2)).replace(tzinfo=None)
        assert validate_end_date(naive, settings, now=NOW).tzinfo is not None


class TestSolvency:
    def test_half_balance_cap(self, settings):
        assert max_stake(100, settings) == 50
        assert max_stake(99, settings) == 49
        validate_solvency(50, 100, settings)
        with pytest.raises(RuleViolationError, match=r"Maximum bet is 50 XP \(50% of your balance\)"):
            validate_solvency(51, 100, settings)

    def test_insufficient_balance(self, settings):
        with pytest.raises(RuleViolationError, match="Insufficient XP balance"):
            validate_solvency(20, 10, settings)
