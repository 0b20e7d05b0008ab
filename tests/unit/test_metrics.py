"""
Unit Tests - Financials, Customer Mix and Product Change Impact
"""
from datetime import date, datetime

import pytest
import polars as pl

from thelook_metrics.exceptions import InvalidRangeError
from thelook_metrics.metrics.customer_mix import customer_mix
from thelook_metrics.metrics.financials import monthly_financials
from thelook_metrics.metrics.product_impact import product_change_impact
from thelook_metrics.transformation.orders import build_completed_orders


@pytest.fixture
def sample_orders(sample_order_items_df) -> pl.DataFrame:
    """Completed orders 1, 2, 4 and 6 of the sample items"""
    return build_completed_orders(sample_order_items_df)


class TestMonthlyFinancials:
    """Tests for monthly_financials"""

    def test_monthly_rows(self, sample_orders):
        """Revenue, orders, units and aov per month"""
        result = monthly_financials(sample_orders, date(2022, 1, 1), date(2022, 3, 31))

        assert result["month"].to_list() == [date(2022, 1, 1), date(2022, 2, 1), date(2022, 3, 1)]
        assert result["revenue"].to_list() == pytest.approx([140.0, 80.0, 120.0])
        assert result["orders"].to_list() == [2, 1, 1]
        assert result["units"].to_list() == [3, 1, 1]
        assert result["aov"].to_list() == pytest.approx([70.0, 80.0, 120.0])

    def test_mom_growth(self, sample_orders):
        """Growth is relative to the previous row and null for the first"""
        result = monthly_financials(sample_orders, date(2022, 1, 1), date(2022, 3, 31))
        growth = result["mom_revenue_growth"].to_list()

        assert growth[0] is None
        assert growth[1] == pytest.approx(-60.0 / 140.0)
        assert growth[2] == pytest.approx(0.5)

    def test_range_filter(self, sample_orders):
        """Only orders inside the bounds are counted"""
        result = monthly_financials(sample_orders, date(2022, 1, 10), date(2022, 2, 28))

        assert result["month"].to_list() == [date(2022, 1, 1), date(2022, 2, 1)]
        assert result["revenue"].to_list() == pytest.approx([30.0, 80.0])

    def test_empty(self, sample_orders):
        """No orders in range gives an empty frame"""
        result = monthly_financials(sample_orders, date(2023, 1, 1), date(2023, 12, 31))

        assert result.is_empty()
        assert "mom_revenue_growth" in result.columns


class TestCustomerMix:
    """Tests for customer_mix"""

    def test_new_and_returning(self, sample_orders):
        """First month counts as new, later months as returning"""
        result = customer_mix(sample_orders, date(2022, 1, 1), date(2022, 3, 31))

        assert result.select(
            ["month", "active_customers", "new_customers", "returning_customers"]
        ).rows() == [
            (date(2022, 1, 1), 1, 1, 0),
            (date(2022, 2, 1), 1, 1, 0),
            (date(2022, 3, 1), 1, 0, 1),
        ]

    def test_revenue_split(self, sample_orders):
        """Revenue is attributed to the customer's status in the month"""
        result = customer_mix(sample_orders, date(2022, 1, 1), date(2022, 3, 31))

        assert result["revenue_new"].to_list() == pytest.approx([140.0, 80.0, 0.0])
        assert result["revenue_returning"].to_list() == pytest.approx([0.0, 0.0, 120.0])
        assert result["pct_revenue_from_returning"].to_list() == pytest.approx([0.0, 0.0, 1.0])

    def test_first_month_is_relative_to_range(self, sample_orders):
        """A user whose earlier orders fall before start_date is new again"""
        result = customer_mix(sample_orders, date(2022, 3, 1), date(2022, 3, 31))

        assert result["new_customers"].to_list() == [1]
        assert result["returning_customers"].to_list() == [0]

    def test_counts_add_up(self, sample_orders):
        """new + returning == active"""
        result = customer_mix(sample_orders, date(2022, 1, 1), date(2022, 3, 31))

        assert (
            result["new_customers"] + result["returning_customers"] == result["active_customers"]
        ).all()

    def test_zero_revenue_month_has_null_share(self, make_items):
        """Share of returning revenue is null when a month has no revenue"""
        orders = build_completed_orders(make_items((1, 1, datetime(2022, 1, 4), 0.0)))

        result = customer_mix(orders, date(2022, 1, 1), date(2022, 1, 31))

        assert result["pct_revenue_from_returning"].to_list() == [None]


class TestProductChangeImpact:
    """Tests for product_change_impact"""

    def test_period_and_flag_groups(self, sample_orders):
        """Orders split by launch date and threshold"""
        result = product_change_impact(
            sample_orders,
            pre_start=date(2022, 1, 1),
            post_end=date(2022, 3, 31),
            launch_date=date(2022, 2, 1),
            high_value_threshold=100.0,
        )

        assert result.rows() == [
            ("Post", False, 1, pytest.approx(80.0), pytest.approx(80.0)),
            ("Post", True, 1, pytest.approx(120.0), pytest.approx(120.0)),
            ("Pre", False, 1, pytest.approx(30.0), pytest.approx(30.0)),
            ("Pre", True, 1, pytest.approx(110.0), pytest.approx(110.0)),
        ]

    def test_threshold_is_inclusive(self, make_items):
        """An order exactly at the threshold is high value"""
        orders = build_completed_orders(make_items(
            (1, 1, datetime(2022, 1, 10), 100.0),
            (2, 2, datetime(2022, 1, 11), 99.99),
        ))

        result = product_change_impact(
            orders, date(2022, 1, 1), date(2022, 1, 31), date(2022, 1, 20)
        )

        assert result.select(["period", "high_value_flag", "orders"]).rows() == [
            ("Pre", False, 1),
            ("Pre", True, 1),
        ]

    def test_launch_day_is_post(self, make_items):
        """Orders on launch_date belong to Post"""
        orders = build_completed_orders(make_items((1, 1, datetime(2022, 1, 15, 0, 5), 20.0)))

        result = product_change_impact(
            orders, date(2022, 1, 1), date(2022, 1, 31), date(2022, 1, 15)
        )

        assert result["period"].to_list() == ["Post"]

    def test_launch_outside_range_raises(self, sample_orders):
        """Launch date must fall inside the compared period"""
        with pytest.raises(InvalidRangeError):
            product_change_impact(
                sample_orders, date(2022, 1, 1), date(2022, 3, 31), date(2022, 6, 1)
            )

    def test_empty(self, sample_orders):
        """No orders gives an empty frame"""
        result = product_change_impact(
            sample_orders, date(2023, 1, 1), date(2023, 3, 31), date(2023, 2, 1)
        )

        assert result.is_empty()
