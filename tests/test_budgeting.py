"""
Unit tests for the budgeting module (category assignments).
"""

import pytest

from exceptions import AssignmentError
from ledger_store import MemoryStore
from budgeting import AssignmentManager


class TestAssignToCategory:
    """Tests for setting a month's assignment."""

    def test_creates_then_overwrites(self, ledger, seeded):
        """The amount is set exactly, never added to the previous value."""
        first = ledger.assignments.assign_to_category(seeded.groceries_id, "2025-03", 40000)
        second = ledger.assignments.assign_to_category(seeded.groceries_id, "2025-03", 25000)

        assert second.id == first.id
        assert ledger.assignments.get_assigned(seeded.groceries_id, "2025-03") == 25000
        assert len(ledger.store.list_assignments(seeded.budget_id, "2025-03")) == 1

    def test_negative_amounts_are_allowed(self, ledger, seeded):
        ledger.assignments.assign_to_category(seeded.groceries_id, "2025-03", -500)

        assert ledger.assignments.get_assigned(seeded.groceries_id, "2025-03") == -500

    def test_unassigned_month_reads_zero(self, ledger, seeded):
        assert ledger.assignments.get_assigned(seeded.rent_id, "2030-01") == 0

    def test_unknown_category_raises(self, ledger, seeded):
        """Assignments to missing categories fail with the category id attached."""
        with pytest.raises(AssignmentError) as exc_info:
            ledger.assignments.assign_to_category("ghost", "2025-03", 100)

        assert exc_info.value.details["category_id"] == "ghost"
        assert ledger.store.list_all_assignments(seeded.budget_id) == []

    def test_invalid_month_raises(self, ledger, seeded):
        with pytest.raises(ValueError):
            ledger.assignments.assign_to_category(seeded.rent_id, "2025-13", 100)

    def test_float_amount_rejected(self, ledger, seeded):
        with pytest.raises(AssignmentError):
            ledger.assignments.assign_to_category(seeded.rent_id, "2025-01", 10.5)

    def test_refreshes_cached_summaries(self, ledger, seeded):
        """A new assignment in a cached month lowers cached Ready to Assign."""
        ledger.transactions.add_transaction(seeded.checking_id, 90000, "2025-01-01")
        assert ledger.summaries.get_month_ready_to_assign(seeded.budget_id, "2025-02") == 90000

        ledger.assignments.assign_to_category(seeded.rent_id, "2025-01", 30000)

        assert ledger.store.get_month_summary(seeded.budget_id, "2025-02").closing_rta == 60000


class TestMoveBetweenCategories:
    """Tests for moving money between categories."""

    def test_total_is_conserved(self, ledger, seeded):
        """Moving money never changes the month's total assigned."""
        ledger.assignments.assign_to_category(seeded.groceries_id, "2025-05", 50000)
        ledger.assignments.assign_to_category(seeded.utilities_id, "2025-05", 10000)

        source, target = ledger.assignments.move_between_categories(
            seeded.groceries_id, seeded.utilities_id, "2025-05", 15000
        )

        assert source.amount == 35000
        assert target.amount == 25000
        total = sum(a.amount for a in ledger.store.list_assignments(seeded.budget_id, "2025-05"))
        assert total == 60000

    def test_source_can_go_negative(self, ledger, seeded):
        """Moving more than is assigned leaves a negative source."""
        source, target = ledger.assignments.move_between_categories(
            seeded.groceries_id, seeded.rent_id, "2025-05", 8000
        )

        assert source.amount == -8000
        assert target.amount == 8000
        assert ledger.ready_to_assign(seeded.budget_id, "2025-05") == 0

    def test_unknown_destination_changes_nothing(self, ledger, seeded):
        """Both categories are validated before either assignment is written."""
        ledger.assignments.assign_to_category(seeded.groceries_id, "2025-05", 50000)

        with pytest.raises(AssignmentError):
            ledger.assignments.move_between_categories(seeded.groceries_id, "ghost", "2025-05", 1000)

        assert ledger.assignments.get_assigned(seeded.groceries_id, "2025-05") == 50000

    def test_failure_midway_rolls_back_in_memory(self, seeded, ledger, monkeypatch):
        """A store with rollback support keeps the source intact when the second write fails."""
        if not isinstance(ledger.store, MemoryStore):
            pytest.skip("rollback behavior checked on the in-memory store")
        ledger.assignments.assign_to_category(seeded.groceries_id, "2025-05", 50000)
        manager = AssignmentManager(ledger.store, ledger.summaries)
        original = manager.assign_to_category
        calls = []

        def flaky(category_id, month, amount):
            calls.append(category_id)
            if len(calls) == 2:
                raise RuntimeError("disk full")
            return original(category_id, month, amount)

        monkeypatch.setattr(manager, "assign_to_category", flaky)

        with pytest.raises(RuntimeError):
            manager.move_between_categories(seeded.groceries_id, seeded.rent_id, "2025-05", 1000)

        assert ledger.assignments.get_assigned(seeded.groceries_id, "2025-05") == 50000
        assert ledger.assignments.get_assigned(seeded.rent_id, "2025-05") == 0


class TestClearCategoryAssignments:
    """Tests for clearing assignments before deleting a category."""

    def test_clears_listed_months(self, ledger, seeded):
        for month in ("2025-01", "2025-02", "2025-03"):
            ledger.assignments.assign_to_category(seeded.groceries_id, month, 1000)

        cleared = ledger.assignments.clear_category_assignments(seeded.groceries_id, ["2025-02", "2025-01"])

        assert cleared == 2
        remaining = [a.month for a in ledger.store.list_all_assignments(seeded.budget_id)]
        assert remaining == ["2025-03"]

    def test_nothing_to_clear(self, ledger, seeded):
        assert ledger.assignments.clear_category_assignments(seeded.groceries_id, []) == 0

    def test_delete_category_removes_its_money(self, ledger, seeded):
        """Deleting a category returns its assigned money to Ready to Assign."""
        ledger.transactions.add_transaction(seeded.checking_id, 10000, "2025-01-01")
        ledger.assignments.assign_to_category(seeded.groceries_id, "2025-01", 4000)
        ledger.summaries.get_or_calculate_month_summary(seeded.budget_id, "2025-02")

        assert ledger.delete_category(seeded.groceries_id) is True

        assert ledger.store.get_category(seeded.groceries_id) is None
        assert ledger.summaries.get_month_ready_to_assign(seeded.budget_id, "2025-02") == 10000
        assert ledger.delete_category(seeded.groceries_id) is False
