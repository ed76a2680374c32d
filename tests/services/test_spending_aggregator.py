"""
Unit tests for SpendingAggregator.
"""

from datetime import date
from decimal import Decimal

import pytest

from services.spending_aggregator import SpendingAggregator
from tests.fixtures.transaction_fixtures import create_transaction


@pytest.fixture
def aggregator():
    return SpendingAggregator()


@pytest.fixture
def sample_transactions():
    """Spending across three months in two years, in shuffled order."""
    return [
        create_transaction(date(2024, 2, 10), "WHOLE FOODS", "80.00", "groceries", "t3"),
        create_transaction(date(2023, 12, 24), "UBER TRIP 8005928996", "25.00", "transportation", "t1"),
        create_transaction(date(2024, 2, 1), "UBER EATS", "40.00", "dining", "t2"),
        create_transaction(date(2024, 2, 10), "WHOLE FOODS", "20.00", "groceries", "t4"),
        create_transaction(date(2023, 12, 2), "WHOLE FOODS", "55.00", "groceries", "t0"),
        create_transaction(date(2024, 4, 3), "NETFLIX.COM", "15.99", "entertainment", "t5"),
    ]


class TestGrouping:
    """Month, year and day grouping."""

    def test_group_by_month_is_chronological(self, aggregator, sample_transactions):
        groups = aggregator.group_by_month(sample_transactions)
        assert list(groups) == ["2023-12", "2024-02", "2024-04"]
        assert [t.id for t in groups["2024-02"]] == ["t3", "t2", "t4"]

    def test_group_by_year(self, aggregator, sample_transactions):
        groups = aggregator.group_by_year(sample_transactions)
        assert list(groups) == [2023, 2024]
        assert len(groups[2024]) == 4

    def test_group_by_day(self, aggregator, sample_transactions):
        groups = aggregator.group_by_day(sample_transactions)
        assert len(groups[date(2024, 2, 10)]) == 2
        assert list(groups)[0] == date(2023, 12, 2)


class TestMonthlyData:
    """Monthly buckets."""

    def test_buckets_partition_transactions(self, aggregator, sample_transactions):
        buckets = aggregator.calculate_monthly_data(sample_transactions)

        assert sum(b.count for b in buckets) == len(sample_transactions)
        assert sum(b.total for b in buckets) == sum(t.amount for t in sample_transactions)

    def test_empty_months_are_not_synthesized(self, aggregator, sample_transactions):
        buckets = aggregator.calculate_monthly_data(sample_transactions)
        assert [b.period for b in buckets] == ["2023-12", "2024-02", "2024-04"]

    def test_bucket_fields(self, aggregator, sample_transactions):
        february = aggregator.calculate_monthly_data(sample_transactions)[1]

        assert february.month_start == date(2024, 2, 1)
        assert february.label == "Feb 2024"
        assert february.total == Decimal("140.00")
        assert february.count == 3
        assert february.categories == {"groceries": Decimal("100.00"), "dining": Decimal("40.00")}

    def test_empty_input(self, aggregator):
        assert aggregator.calculate_monthly_data([]) == []


class TestYearlyData:
    """Yearly buckets."""

    def test_monthly_average_uses_distinct_months(self, aggregator, sample_transactions):
        years = aggregator.calculate_yearly_data(sample_transactions)

        assert [y.year for y in years] == [2023, 2024]
        assert years[0].total == Decimal("80.00")
        assert years[0].month_count == 1
        assert years[0].monthly_average == Decimal("80.00")

        # Feb and Apr have spending: 155.99 / 2
        assert years[1].total == Decimal("155.99")
        assert years[1].month_count == 2
        assert years[1].monthly_average == Decimal("78.00")


class TestCategoryEvolution:
    """Stacked chart rows."""

    def test_rows_carry_every_requested_category(self, aggregator, sample_transactions):
        rows = aggregator.calculate_category_evolution(sample_transactions, ["groceries", "dining", "travel"])

        assert [row["period"] for row in rows] == ["2023-12", "2024-02", "2024-04"]
        assert rows[0]["label"] == "Dec 2023"
        assert rows[0]["groceries"] == Decimal("55.00")
        assert rows[0]["dining"] == Decimal("0")
        assert rows[1]["groceries"] == Decimal("100.00")
        assert rows[1]["dining"] == Decimal("40.00")
        assert all(row["travel"] == Decimal("0") for row in rows)

    def test_unrequested_categories_are_left_out(self, aggregator, sample_transactions):
        rows = aggregator.calculate_category_evolution(sample_transactions, ["dining"])
        assert set(rows[0]) == {"period", "label", "dining"}


class TestMonthOverMonth:
    """Month-over-month change."""

    def test_first_bucket_is_omitted(self, aggregator, sample_transactions):
        buckets = aggregator.calculate_monthly_data(sample_transactions)
        changes = aggregator.calculate_month_over_month(buckets)

        assert [c.period for c in changes] == ["2024-02", "2024-04"]
        assert changes[0].previous_total == Decimal("80.00")
        assert changes[0].percent_change == pytest.approx(75.0)

    def test_zero_previous_total(self, aggregator):
        transactions = [
            create_transaction(date(2024, 1, 5), "FREE TRIAL", "0"),
            create_transaction(date(2024, 2, 5), "SHOP", "10"),
        ]
        changes = aggregator.calculate_month_over_month(aggregator.calculate_monthly_data(transactions))
        assert changes[0].percent_change == 0.0

    def test_single_bucket(self, aggregator):
        transactions = [create_transaction(date(2024, 1, 5), "SHOP", "10")]
        assert aggregator.calculate_month_over_month(aggregator.calculate_monthly_data(transactions)) == []


class TestMerchantRankings:
    """Merchant aggregation."""

    def test_variants_are_grouped_and_ranked(self, aggregator, sample_transactions):
        rankings = aggregator.aggregate_merchants(sample_transactions)

        assert [r.merchant for r in rankings] == ["WHOLE FOODS", "Uber", "NETFLIX.COM"]

        whole_foods = rankings[0]
        assert whole_foods.total_spent == Decimal("155.00")
        assert whole_foods.transaction_count == 3
        assert whole_foods.average_transaction == Decimal("51.67")
        assert whole_foods.last_transaction == date(2024, 2, 10)

    def test_category_comes_from_latest_transaction(self, aggregator, sample_transactions):
        uber = next(r for r in aggregator.aggregate_merchants(sample_transactions) if r.merchant == "Uber")
        assert uber.category_id == "dining"
        assert uber.total_spent == Decimal("65.00")

    def test_percent_of_total(self, aggregator):
        transactions = [
            create_transaction(date(2024, 1, 1), "A SHOP", "75"),
            create_transaction(date(2024, 1, 2), "B SHOP", "25"),
        ]
        rankings = aggregator.aggregate_merchants(transactions)
        assert rankings[0].percent_of_total == pytest.approx(75.0)
        assert rankings[1].percent_of_total == pytest.approx(25.0)

    def test_ties_are_ordered_by_name(self, aggregator):
        transactions = [
            create_transaction(date(2024, 1, 1), "ZETA", "10"),
            create_transaction(date(2024, 1, 2), "ALPHA", "10"),
        ]
        assert [r.merchant for r in aggregator.aggregate_merchants(transactions)] == ["ALPHA", "ZETA"]


class TestDateRange:
    """Date range of a transaction set."""

    def test_empty_input(self, aggregator):
        assert aggregator.get_date_range([]) is None

    def test_range(self, aggregator, sample_transactions):
        date_range = aggregator.get_date_range(sample_transactions)

        assert date_range.start == date(2023, 12, 2)
        assert date_range.end == date(2024, 4, 3)
        assert date_range.duration_days == 124
        assert date_range.month_count == 3

    def test_single_day(self, aggregator):
        date_range = aggregator.get_date_range([create_transaction(date(2024, 1, 1), "SHOP", "1")])
        assert date_range.duration_days == 1
        assert date_range.month_count == 1
