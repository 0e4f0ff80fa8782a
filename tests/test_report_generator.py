"""
Unit tests for report generation.
"""

import pandas as pd
import pytest

from exceptions import ReportError
from report_generator import MONTH_COLUMNS, REGISTER_COLUMNS, ReportGenerator


@pytest.fixture
def reports(ledger):
    return ReportGenerator(ledger.store, ledger.summaries)


class TestMonthOverview:
    """Tests for the month budget table."""

    def test_rows_follow_group_and_category_order(self, ledger, seeded, reports):
        frame = reports.month_overview_frame(seeded.budget_id, "2025-01")

        assert list(frame.columns) == MONTH_COLUMNS
        assert list(frame["category"]) == ["Groceries", "Utilities", "Rent"]
        assert list(frame["group"]) == ["Everyday", "Bills", "Bills"]

    def test_figures_include_carryover_and_inherited(self, ledger, seeded, reports):
        ledger.assignments.assign_to_category(seeded.groceries_id, "2025-01", 40000)
        ledger.transactions.add_transaction(
            seeded.checking_id, -15000, "2025-02-10", category_id=seeded.groceries_id
        )

        frame = reports.month_overview_frame(seeded.budget_id, "2025-02").set_index("category")

        assert frame.loc["Groceries", "assigned"] == 0
        assert frame.loc["Groceries", "activity"] == -15000
        assert frame.loc["Groceries", "available"] == 25000
        assert frame.loc["Groceries", "inherited"] == 40000
        assert pd.isna(frame.loc["Rent", "inherited"])

    def test_builds_its_own_cache_when_none_given(self, ledger, seeded):
        """Omitting the cache still yields carried-over figures."""
        ledger.assignments.assign_to_category(seeded.rent_id, "2025-01", 90000)

        standalone = ReportGenerator(ledger.store)

        assert standalone.summary_cache is not ledger.summaries
        frame = standalone.month_overview_frame(seeded.budget_id, "2025-03").set_index("category")
        assert frame.loc["Rent", "available"] == 90000

    def test_invalid_month(self, seeded, reports):
        with pytest.raises(ValueError):
            reports.month_overview_frame(seeded.budget_id, "2025-1")


class TestAccountRegister:
    """Tests for account registers."""

    def test_running_balance(self, ledger, seeded, reports):
        payee = ledger.create_payee(seeded.budget_id, "Employer")
        ledger.transactions.add_transaction(seeded.checking_id, 200000, "2025-01-01", payee_id=payee.id)
        ledger.transactions.add_transaction(
            seeded.checking_id, -5000, "2025-01-03", category_id=seeded.groceries_id
        )

        frame = reports.account_register_frame(seeded.checking_id)

        assert list(frame.columns) == REGISTER_COLUMNS
        assert list(frame["running_balance"]) == [200000, 195000]
        assert frame.loc[0, "payee"] == "Employer"
        assert frame.loc[1, "category"] == "Groceries"

    def test_empty_register(self, seeded, reports):
        frame = reports.account_register_frame(seeded.savings_id)

        assert frame.empty
        assert list(frame.columns) == REGISTER_COLUMNS

    def test_unknown_account(self, reports):
        with pytest.raises(ReportError):
            reports.account_register_frame("ghost")

    def test_to_csv(self, seeded, reports, tmp_path):
        frame = reports.month_overview_frame(seeded.budget_id, "2025-01")

        path = ReportGenerator.to_csv(frame, tmp_path / "out" / "month.csv")

        assert pd.read_csv(path)["category"].tolist() == ["Groceries", "Utilities", "Rent"]
