"""
Product Change Impact

Pre/post comparison of completed orders around a launch date, split by
whether an order reaches a high-value threshold. The default threshold
matches the "free shipping over $100" header change.
"""

from datetime import date

import polars as pl
import structlog

from thelook_metrics.data.models import require_columns
from thelook_metrics.exceptions import InvalidRangeError
from thelook_metrics.transformation.orders import OrdersInput, orders_between

logger = structlog.get_logger(__name__)

REQUIRED_COLUMNS = ["order_id", "order_value"]

DEFAULT_HIGH_VALUE_THRESHOLD = 100.0

PRE_PERIOD = "Pre"
POST_PERIOD = "Post"

IMPACT_SCHEMA = {
    "period": pl.Utf8,
    "high_value_flag": pl.Boolean,
    "orders": pl.UInt32,
    "revenue": pl.Float64,
    "aov": pl.Float64,
}


def check_impact_dates(pre_start: date, post_end: date, launch_date: date) -> None:
    """Reject out-of-order bounds and a launch outside them"""
    if pre_start > post_end:
        raise InvalidRangeError(pre_start, post_end)
    if not pre_start <= launch_date <= post_end:
        raise InvalidRangeError(
            pre_start,
            post_end,
            message=f"launch_date {launch_date} is outside [{pre_start}, {post_end}]",
        )


def product_change_impact(
    orders: OrdersInput,
    pre_start: date,
    post_end: date,
    launch_date: date,
    high_value_threshold: float = DEFAULT_HIGH_VALUE_THRESHOLD,
) -> pl.DataFrame:
    """
    Orders, revenue and AOV by period and high-value flag.

    Orders placed before launch_date belong to "Pre", the rest to "Post".
    Rows are sorted by period then flag in string order, so "Post" rows
    come first.

    Args:
        orders: Completed orders
        pre_start: First order day included
        post_end: Last order day included
        launch_date: First day of the "Post" period
        high_value_threshold: Minimum order_value of a high-value order

    Returns:
        DataFrame in IMPACT_SCHEMA
    """
    check_impact_dates(pre_start, post_end, launch_date)

    orders = orders_between(orders, pre_start, post_end)
    require_columns(orders, REQUIRED_COLUMNS, context="completed orders")
    if orders.is_empty():
        return pl.DataFrame(schema=IMPACT_SCHEMA)

    impact = (
        orders.with_columns([
            (pl.col("order_value") >= high_value_threshold).alias("high_value_flag"),
            pl.when(pl.col("order_date") < launch_date)
            .then(pl.lit(PRE_PERIOD))
            .otherwise(pl.lit(POST_PERIOD))
            .alias("period"),
        ])
        .group_by(["period", "high_value_flag"])
        .agg([
            pl.col("order_id").n_unique().alias("orders"),
            pl.col("order_value").sum().alias("revenue"),
        ])
        .with_columns(
            pl.when(pl.col("orders") > 0)
            .then(pl.col("revenue") / pl.col("orders"))
            .otherwise(None)
            .alias("aov")
        )
        .sort(["period", "high_value_flag"])
        .select(list(IMPACT_SCHEMA))
    )

    logger.info(
        "Product change impact computed",
        launch_date=str(launch_date),
        threshold=high_value_threshold,
        groups=impact.height,
    )
    return impact
