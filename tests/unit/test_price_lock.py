"""
Unit tests for the price lock state machine.
"""
from decimal import Decimal

import pytest

from billing.errors import ValidationError
from billing.price_lock import LockState, PriceLock


@pytest.mark.unit
class TestPriceLock:
    """Tests for PriceLock transitions."""

    @pytest.fixture
    def lock(self):
        return PriceLock()

    def test_starts_unlocked_and_empty(self, lock):
        """Test a new lock is editable and has no price."""
        assert lock.state is LockState.UNLOCKED
        assert lock.price is None
        assert not lock.locked

    def test_quote_locks_price(self, lock):
        """Test a found active price locks the line."""
        assert lock.apply_quote(Decimal("2.50")) is True
        assert lock.locked
        assert lock.price == Decimal("2.50")

    def test_manual_edit_rejected_while_locked(self, lock):
        """Test a locked price cannot be typed over."""
        lock.apply_quote(Decimal("2.50"))

        with pytest.raises(ValidationError) as exc_info:
            lock.enter_manual_price("3.00")

        assert exc_info.value.fields == ["unit_price"]
        assert lock.price == Decimal("2.50")

    def test_unlock_keeps_value_and_allows_edit(self, lock):
        """Test explicit unlock keeps the quoted price as a starting point."""
        lock.apply_quote(Decimal("2.50"))
        lock.unlock()

        assert lock.state is LockState.UNLOCKED
        assert lock.price == Decimal("2.50")

        lock.enter_manual_price("2.75")
        assert lock.price == "2.75"

    def test_later_quote_does_not_relock_after_unlock(self, lock):
        """Test the user's unlock is sticky against later lookups."""
        lock.apply_quote(Decimal("2.50"))
        lock.unlock()

        assert lock.apply_quote(Decimal("9.99")) is False
        assert not lock.locked
        assert lock.price == Decimal("2.50")

    def test_quote_ignored_after_manual_entry(self, lock):
        """Test a typed price wins over a quote arriving afterwards."""
        lock.enter_manual_price("4")

        lock.apply_quote(Decimal("2.50"))

        assert not lock.locked
        assert lock.price == "4"

    def test_miss_clears_auto_filled_price(self, lock):
        """Test a miss after a quote drops the looked-up value."""
        lock.apply_quote(Decimal("2.50"))

        lock.apply_miss()

        assert lock.state is LockState.UNLOCKED
        assert lock.price is None

    def test_miss_keeps_manual_price(self, lock):
        """Test a miss never wipes what the user typed."""
        lock.enter_manual_price("2.5")

        lock.apply_miss()

        assert lock.price == "2.5"

    def test_reset_clears_override(self, lock):
        """Test reset returns to a fresh lock that accepts quotes again."""
        lock.enter_manual_price("2.5")
        lock.reset()

        assert lock.price is None
        assert not lock.manual_override
        assert lock.apply_quote(Decimal("1.25")) is True
        assert lock.locked
