"""
Monthly Financials

Revenue, order count, units, average order value and month-over-month
revenue growth of completed orders.
"""

from datetime import date

import polars as pl
import structlog

from thelook_metrics.data.models import require_columns
from thelook_metrics.transformation.orders import OrdersInput, orders_between

logger = structlog.get_logger(__name__)

REQUIRED_COLUMNS = ["order_id", "order_value"]

FINANCIALS_SCHEMA = {
    "month": pl.Date,
    "revenue": pl.Float64,
    "orders": pl.UInt32,
    "units": pl.Int64,
    "aov": pl.Float64,
    "mom_revenue_growth": pl.Float64,
}


def monthly_financials(orders: OrdersInput, start_date: date, end_date: date) -> pl.DataFrame:
    """
    One row per month with revenue, orders, units, aov and MoM growth.

    Growth compares each row with the previous reported row and is null for
    the first row or when the previous revenue is zero.

    Args:
        orders: Completed orders
        start_date: First order day included
        end_date: Last order day included

    Returns:
        DataFrame in FINANCIALS_SCHEMA sorted by month
    """
    orders = orders_between(orders, start_date, end_date)
    require_columns(orders, REQUIRED_COLUMNS, context="completed orders")
    if orders.is_empty():
        return pl.DataFrame(schema=FINANCIALS_SCHEMA)

    if "units" not in orders.columns:
        orders = orders.with_columns(pl.lit(1).alias("units"))

    monthly = (
        orders.group_by("order_month")
        .agg([
            pl.col("order_value").sum().alias("revenue"),
            pl.col("order_id").n_unique().alias("orders"),
            pl.col("units").sum().cast(pl.Int64).alias("units"),
        ])
        .rename({"order_month": "month"})
        .sort("month")
        .with_columns(
            pl.when(pl.col("orders") > 0)
            .then(pl.col("revenue") / pl.col("orders"))
            .otherwise(None)
            .alias("aov"),
            pl.col("revenue").shift(1).alias("previous_revenue"),
        )
        .with_columns(
            pl.when(pl.col("previous_revenue").is_not_null() & (pl.col("previous_revenue") != 0))
            .then((pl.col("revenue") - pl.col("previous_revenue")) / pl.col("previous_revenue"))
            .otherwise(None)
            .alias("mom_revenue_growth")
        )
        .select(list(FINANCIALS_SCHEMA))
    )

    logger.info("Monthly financials computed", months=monthly.height)
    return monthly
