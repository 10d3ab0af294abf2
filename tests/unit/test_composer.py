"""
Unit tests for a full bill-entry session through BillComposer.
"""
import asyncio
from decimal import Decimal

import pytest

from billing.composer import BillComposer
from billing.errors import ChannelBusyError, TransportError, ValidationError
from billing.store import BillAggregateStore

HEADER = dict(bill_number="B-100", bill_date="2024-01-10", supplier_id=5, site_id=2)


@pytest.fixture
def composer(fake_api):
    return BillComposer(fake_api, BillAggregateStore(fake_api), lookup_delay=0.01)


@pytest.mark.unit
class TestBillComposer:
    """Tests for BillComposer."""

    def test_active_price_locks_and_submits(self, composer, fake_api, bill_factory):
        """Test the found-price path: locked line, total 25, one create request."""
        fake_api.prices[(5, 9, "kg", "2024-01-10")] = Decimal("2.50")
        fake_api.created = bill_factory(bill_id=42, bill_number="B-100")

        async def scenario():
            composer.set_header(**HEADER)
            composer.select_material(9, "kg")
            composer.set_quantity("10")
            result = await composer.wait_for_price()
            assert result.found
            assert composer.price_locked
            with pytest.raises(ValidationError):
                composer.enter_price("3")
            line = composer.add_line()
            assert line.price_locked
            assert composer.total == Decimal("25")
            return await composer.submit()

        bill = asyncio.run(scenario())

        assert bill.id == 42
        sent = fake_api.calls[-1][1][0]
        assert sent.items[0].unit_price == Decimal("2.50")
        assert composer.cart.is_empty()
        assert not composer.header_complete
        assert [b.id for b in composer.submission.store.bills] == [42]

    def test_no_active_price_requires_manual_entry(self, composer, fake_api):
        """Test a miss leaves the line unlocked for a typed price."""

        async def scenario():
            composer.set_header(**HEADER)
            composer.select_material(9, "kg")
            composer.set_quantity("10")
            result = await composer.wait_for_price()
            assert not result.found
            assert not composer.price_locked
            composer.enter_price("2.5")
            # a late lookup must not clear what was typed
            composer.lookup.schedule()
            await composer.wait_for_price()
            return composer.add_line()

        line = asyncio.run(scenario())

        assert line.unit_price == Decimal("2.5")
        assert not line.price_locked

    def test_lookup_error_treated_as_miss(self, composer, fake_api):
        """Test a failed lookup leaves the price editable."""
        fake_api.prices[(5, 9, "kg", "2024-01-10")] = TransportError("Network error", None)

        async def scenario():
            composer.set_header(**HEADER)
            composer.select_material(9, "kg")
            return await composer.wait_for_price()

        result = asyncio.run(scenario())

        assert result.error == "Network error"
        assert not composer.price_locked

    def test_unit_change_looks_up_again(self, composer, fake_api):
        """Test a new unit resets the lock and resolves the price for that unit."""
        fake_api.prices[(5, 9, "kg", "2024-01-10")] = Decimal("2.50")
        fake_api.prices[(5, 9, "bag", "2024-01-10")] = Decimal("120")

        async def scenario():
            composer.set_header(**HEADER)
            composer.select_material(9, "kg")
            await composer.wait_for_price()
            composer.set_unit("bag")
            assert not composer.price_locked
            await composer.wait_for_price()

        asyncio.run(scenario())

        assert composer.price_locked
        assert composer.cart.draft.unit_price == Decimal("120")

    def test_material_change_mid_lookup_discards_old_price(self, composer, fake_api):
        """Test a price for the previous material never lands on the new one."""
        fake_api.prices[(5, 9, "kg", "2024-01-10")] = Decimal("2.50")

        async def scenario():
            gate = fake_api.gate("get_active_price")
            composer.set_header(**HEADER)
            composer.select_material(9, "kg")
            while fake_api.count("get_active_price") == 0:
                await asyncio.sleep(0.005)
            composer.select_material(10, "kg")
            gate.set()
            await composer.wait_for_price()

        asyncio.run(scenario())

        assert composer.cart.draft.master_material_id == 10
        assert composer.cart.draft.unit_price is None
        assert not composer.price_locked
        assert composer.lookup.results_discarded == 1

    def test_lines_require_header(self, composer):
        """Test no line can be started before the header is complete."""
        composer.set_header(bill_number="B-100", bill_date="2024-01-10")

        with pytest.raises(ValidationError) as exc_info:
            composer.select_material(9, "kg")

        assert exc_info.value.fields == ["supplier_id", "site_id"]

    def test_unknown_header_field(self, composer):
        """Test a typo in a header field name is caught."""
        with pytest.raises(TypeError):
            composer.set_header(bill_no="B-100")

    def test_submit_failure_keeps_session(self, composer, fake_api):
        """Test a rejected bill keeps the header and lines for a retry."""
        fake_api.created = TransportError("Bill number already exists", 409)

        async def scenario():
            composer.set_header(**HEADER)
            composer.select_material(9, "kg")
            await composer.wait_for_price()
            composer.set_quantity("4")
            composer.enter_price("1.5")
            composer.add_line()
            with pytest.raises(TransportError):
                await composer.submit()

        asyncio.run(scenario())

        assert len(composer.cart) == 1
        assert composer.header_complete
        assert composer.can_submit
        assert composer.submission.error == "Bill number already exists"

    def test_date_change_relocks_at_new_price(self, composer, fake_api):
        """Test a new bill date replaces a locked price with the one active on that date."""
        fake_api.prices[(5, 9, "kg", "2024-01-10")] = Decimal("2.50")
        fake_api.prices[(5, 9, "kg", "2024-02-01")] = Decimal("2.75")

        async def scenario():
            composer.set_header(**HEADER)
            composer.select_material(9, "kg")
            await composer.wait_for_price()
            assert composer.cart.draft.unit_price == Decimal("2.50")
            composer.set_header(bill_date="2024-02-01")
            return await composer.wait_for_price()

        result = asyncio.run(scenario())

        assert result.found
        assert composer.price_locked
        assert composer.cart.draft.unit_price == Decimal("2.75")

    def test_date_change_without_price_unlocks(self, composer, fake_api):
        """Test a new bill date with no active price clears the filled-in price."""
        fake_api.prices[(5, 9, "kg", "2024-01-10")] = Decimal("2.50")

        async def scenario():
            composer.set_header(**HEADER)
            composer.select_material(9, "kg")
            await composer.wait_for_price()
            assert composer.price_locked
            composer.set_header(bill_date="2023-12-01")
            return await composer.wait_for_price()

        result = asyncio.run(scenario())

        assert not result.found
        assert not composer.price_locked
        assert composer.cart.draft.unit_price is None

    def test_malformed_price_clears_lock(self, composer, fake_api):
        """Test an unexpected lookup failure after a date change unlocks the line."""
        fake_api.prices[(5, 9, "kg", "2024-01-10")] = Decimal("2.50")
        fake_api.prices[(5, 9, "kg", "2024-02-01")] = ValueError("price field missing")

        async def scenario():
            composer.set_header(**HEADER)
            composer.select_material(9, "kg")
            await composer.wait_for_price()
            composer.set_header(bill_date="2024-02-01")
            return await composer.wait_for_price()

        result = asyncio.run(scenario())

        assert result.error.startswith("Unexpected error")
        assert not composer.price_locked
        assert composer.cart.draft.unit_price is None
        assert not composer.lookup.pending

    def test_edits_refused_while_submitting(self, composer, fake_api, bill_factory):
        """Test the session cannot change under an in-flight submission."""
        fake_api.created = bill_factory(bill_id=42)

        async def scenario():
            composer.set_header(**HEADER)
            composer.select_material(9, "kg")
            await composer.wait_for_price()
            composer.set_quantity("10")
            composer.enter_price("2.5")
            composer.add_line()
            composer.select_material(4, "bag")

            gate = fake_api.gate("create_purchase_bill")
            pending = asyncio.ensure_future(composer.submit())
            await asyncio.sleep(0)
            assert composer.submission.submitting
            with pytest.raises(ChannelBusyError):
                composer.set_quantity("1")
            with pytest.raises(ChannelBusyError):
                composer.add_line()
            with pytest.raises(ChannelBusyError):
                composer.remove_line(0)
            with pytest.raises(ChannelBusyError):
                composer.set_header(bill_number="B-200")
            with pytest.raises(ChannelBusyError):
                composer.select_material(7, "kg")
            gate.set()
            return await pending

        bill = asyncio.run(scenario())

        assert bill.id == 42
        assert len(fake_api.calls[-1][1][0].items) == 1
        assert composer.cart.is_empty()
        assert composer.header.bill_number is None
        assert not composer.submission.submitting
