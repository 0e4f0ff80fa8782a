"""
Unit tests for category targets and target progress.
"""

from datetime import date

import pytest

from exceptions import TargetError
from models import Target, TargetType


class TestSetTarget:
    """Tests for creating and replacing targets."""

    def test_defaults_to_spending_limit(self, ledger, seeded):
        target = ledger.targets.set_target(seeded.groceries_id, 40000)

        stored = ledger.store.get_target(seeded.groceries_id)
        assert stored == target
        assert stored.type is TargetType.SPENDING_LIMIT
        assert stored.target_date is None

    def test_replacing_keeps_identity(self, ledger, seeded):
        """A category has one target; setting it again updates that target."""
        first = ledger.targets.set_target(seeded.rent_id, 100000)

        second = ledger.targets.set_target(
            seeded.rent_id, 250000, "savings_balance", date(2025, 12, 1)
        )

        assert second.id == first.id
        assert second.created_at == first.created_at
        stored = ledger.targets.get_target(seeded.rent_id)
        assert stored.amount == 250000
        assert stored.type is TargetType.SAVINGS_BALANCE
        assert stored.target_date == "2025-12-01"
        assert len(ledger.store.list_targets(seeded.budget_id)) == 1

    def test_unknown_category_raises(self, ledger, seeded):
        with pytest.raises(TargetError) as exc_info:
            ledger.targets.set_target("ghost", 100)

        assert exc_info.value.details == {"category_id": "ghost"}

    @pytest.mark.parametrize("amount", [0, -500, 12.5, True])
    def test_rejects_invalid_amounts(self, ledger, seeded, amount):
        with pytest.raises(TargetError):
            ledger.targets.set_target(seeded.groceries_id, amount)

        assert ledger.store.get_target(seeded.groceries_id) is None

    def test_rejects_unknown_type_and_bad_date(self, ledger, seeded):
        with pytest.raises(TargetError):
            ledger.targets.set_target(seeded.groceries_id, 100, "weekly_allowance")
        with pytest.raises(TargetError):
            ledger.targets.set_target(seeded.groceries_id, 100, target_date="2025-02-30")


class TestClearTarget:
    """Tests for removing targets."""

    def test_clear_reports_whether_anything_was_removed(self, ledger, seeded):
        ledger.targets.set_target(seeded.utilities_id, 9000)

        assert ledger.targets.clear_target(seeded.utilities_id) is True
        assert ledger.targets.clear_target(seeded.utilities_id) is False
        assert ledger.targets.get_target(seeded.utilities_id) is None

    def test_deleting_category_removes_target(self, ledger, seeded):
        ledger.targets.set_target(seeded.utilities_id, 9000)

        ledger.delete_category(seeded.utilities_id)

        assert ledger.store.list_targets(seeded.budget_id) == []


class TestTargetProgress:
    """Tests for progress toward each target type."""

    def test_no_target_gives_none(self, ledger, seeded):
        assert ledger.targets.get_progress(seeded.groceries_id, "2025-03") is None

    def test_spending_limit_counts_month_outflows(self, ledger, seeded):
        ledger.targets.set_target(seeded.groceries_id, 40000)
        ledger.transactions.add_transaction(
            seeded.checking_id, -6000, "2025-02-27", category_id=seeded.groceries_id
        )
        ledger.transactions.add_transaction(
            seeded.checking_id, -10000, "2025-03-05", category_id=seeded.groceries_id
        )

        progress = ledger.targets.get_progress(seeded.groceries_id, "2025-03")

        assert progress.current == 10000
        assert progress.remaining == 30000
        assert progress.percent == 25.0

    def test_spending_over_limit_is_clamped(self, ledger, seeded):
        """Exceeding the limit caps the percentage but not the remaining figure."""
        ledger.targets.set_target(seeded.groceries_id, 40000)
        ledger.transactions.add_transaction(
            seeded.checking_id, -50000, "2025-03-05", category_id=seeded.groceries_id
        )

        progress = ledger.targets.get_progress(seeded.groceries_id, "2025-03")

        assert progress.percent == 100.0
        assert progress.remaining == -10000

    def test_savings_balance_uses_carried_over_available(self, ledger, seeded):
        ledger.targets.set_target(seeded.rent_id, 120000, TargetType.SAVINGS_BALANCE)
        ledger.assignments.assign_to_category(seeded.rent_id, "2025-01", 30000)
        ledger.assignments.assign_to_category(seeded.rent_id, "2025-02", 30000)

        progress = ledger.targets.get_progress(seeded.rent_id, "2025-02")

        assert progress.current == 60000
        assert progress.remaining == 60000
        assert progress.percent == 50.0
        assert progress.target.type is TargetType.SAVINGS_BALANCE

    def test_overspent_savings_balance_floors_at_zero(self, ledger, seeded):
        ledger.targets.set_target(seeded.rent_id, 10000, TargetType.SAVINGS_BALANCE)
        ledger.transactions.add_transaction(
            seeded.checking_id, -5000, "2025-01-10", category_id=seeded.rent_id
        )

        progress = ledger.targets.get_progress(seeded.rent_id, "2025-01")

        assert progress.current == -5000
        assert progress.remaining == 15000
        assert progress.percent == 0.0

    def test_monthly_contribution_counts_only_this_month(self, ledger, seeded):
        ledger.targets.set_target(seeded.utilities_id, 20000, TargetType.MONTHLY_CONTRIBUTION)
        ledger.assignments.assign_to_category(seeded.utilities_id, "2025-02", 20000)
        ledger.assignments.assign_to_category(seeded.utilities_id, "2025-03", 5000)

        progress = ledger.targets.get_progress(seeded.utilities_id, "2025-03")

        assert progress.current == 5000
        assert progress.remaining == 15000
        assert progress.percent == 25.0


class TestTargetStore:
    """Tests for target persistence on each backend."""

    def test_list_targets_is_scoped_to_budget(self, ledger, seeded):
        other = ledger.create_budget("Other")
        group = ledger.create_category_group(other.id, "Misc")
        foreign = ledger.create_category(group.id, "Foreign")
        ledger.targets.set_target(seeded.groceries_id, 100)
        ledger.targets.set_target(foreign.id, 200)

        assert [t.category_id for t in ledger.store.list_targets(seeded.budget_id)] == [seeded.groceries_id]
        assert [t.amount for t in ledger.store.list_targets(other.id)] == [200]

    def test_save_target_upserts_on_category(self, ledger, seeded):
        ledger.store.save_target(Target(category_id=seeded.rent_id, amount=100))
        ledger.store.save_target(
            Target(category_id=seeded.rent_id, type="monthly_contribution", amount=300)
        )

        stored = ledger.store.get_target(seeded.rent_id)
        assert stored.amount == 300
        assert stored.type is TargetType.MONTHLY_CONTRIBUTION

    def test_unknown_target_is_none(self, store):
        assert store.get_target("ghost") is None
