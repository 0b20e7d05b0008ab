"""
New vs Returning Customer Mix

Splits each month's active customers and revenue into customers whose
first completed order falls in that month and everyone else. "First"
is judged within the requested range only, so users who bought before
start_date count as new in their first month inside the range.
"""

from datetime import date

import polars as pl
import structlog

from thelook_metrics.data.models import require_columns
from thelook_metrics.transformation.orders import OrdersInput, orders_between

logger = structlog.get_logger(__name__)

REQUIRED_COLUMNS = ["order_value"]

CUSTOMER_MIX_SCHEMA = {
    "month": pl.Date,
    "active_customers": pl.UInt32,
    "new_customers": pl.UInt32,
    "returning_customers": pl.UInt32,
    "revenue_new": pl.Float64,
    "revenue_returning": pl.Float64,
    "pct_revenue_from_returning": pl.Float64,
}


def customer_mix(orders: OrdersInput, start_date: date, end_date: date) -> pl.DataFrame:
    """
    Monthly new/returning customer counts and revenue.

    Args:
        orders: Completed orders
        start_date: First order day included
        end_date: Last order day included

    Returns:
        DataFrame in CUSTOMER_MIX_SCHEMA sorted by month
    """
    orders = orders_between(orders, start_date, end_date)
    require_columns(orders, REQUIRED_COLUMNS, context="completed orders")
    if orders.is_empty():
        return pl.DataFrame(schema=CUSTOMER_MIX_SCHEMA)

    first_purchase = orders.group_by("user_id").agg(
        pl.col("order_month").min().alias("first_order_month")
    )

    user_month = (
        orders.join(first_purchase, on="user_id", how="inner")
        .group_by(["order_month", "user_id"])
        .agg([
            pl.col("order_value").sum().alias("user_revenue"),
            (pl.col("order_month") == pl.col("first_order_month")).any().alias("is_new"),
        ])
        .rename({"order_month": "month"})
    )

    mix = (
        user_month.group_by("month")
        .agg([
            pl.col("user_id").n_unique().alias("active_customers"),
            pl.col("user_id").filter(pl.col("is_new")).n_unique().alias("new_customers"),
            pl.col("user_id").filter(~pl.col("is_new")).n_unique().alias("returning_customers"),
            pl.col("user_revenue").filter(pl.col("is_new")).sum().alias("revenue_new"),
            pl.col("user_revenue").filter(~pl.col("is_new")).sum().alias("revenue_returning"),
            pl.col("user_revenue").sum().alias("total_revenue"),
        ])
        .with_columns(
            pl.when(pl.col("total_revenue") != 0)
            .then(pl.col("revenue_returning") / pl.col("total_revenue"))
            .otherwise(None)
            .alias("pct_revenue_from_returning")
        )
        .sort("month")
        .select(list(CUSTOMER_MIX_SCHEMA))
    )

    logger.info("Customer mix computed", months=mix.height)
    return mix
