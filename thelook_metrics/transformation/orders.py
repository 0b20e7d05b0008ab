"""
Completed Order Derivation

Turns order item rows into the order-level and user-month frames the
metrics are computed from.
"""

from datetime import date
from typing import Iterable, Optional, Union

import polars as pl
import structlog

from thelook_metrics.data.models import (
    COMPLETED_ORDER_SCHEMA,
    ItemStatus,
    normalize_order_items,
    records_to_frame,
    require_columns,
)
from thelook_metrics.exceptions import InvalidRangeError

logger = structlog.get_logger(__name__)

OrdersInput = Union[pl.DataFrame, Iterable]


def build_completed_orders(items: pl.DataFrame) -> pl.DataFrame:
    """
    Aggregate order items to completed orders.

    An order counts only if every one of its items has status "Complete"
    and no returned_at. Orders with any other item are dropped as a whole.

    Args:
        items: Order items (see ORDER_ITEM_SCHEMA)

    Returns:
        DataFrame with order_id, user_id, order_date, order_month,
        order_value and units, sorted by order_date then order_id
    """
    if items.is_empty():
        return pl.DataFrame(schema=COMPLETED_ORDER_SCHEMA)

    items = normalize_order_items(items)

    orders = (
        items.with_columns(
            ((pl.col("status") == ItemStatus.COMPLETE.value) & pl.col("returned_at").is_null())
            .alias("is_completed_item")
        )
        .group_by("order_id")
        .agg([
            pl.col("user_id").first(),
            pl.col("created_at").min().dt.date().alias("order_date"),
            pl.col("sale_price").sum().alias("order_value"),
            pl.len().alias("units"),
            pl.col("is_completed_item").all().alias("is_completed"),
        ])
        .filter(pl.col("is_completed"))
        .with_columns(pl.col("order_date").dt.truncate("1mo").alias("order_month"))
        .select(list(COMPLETED_ORDER_SCHEMA))
        .cast({"order_value": pl.Float64, "units": pl.UInt32})
        .sort(["order_date", "order_id"])
    )

    logger.debug(
        "Built completed orders",
        items=items.height,
        orders=orders.height,
    )
    return orders


def to_orders_frame(orders: OrdersInput) -> pl.DataFrame:
    """
    Accept completed orders as a DataFrame or as records.

    Records may be CompletedOrder instances or mappings. order_month is
    derived from order_date when absent.
    """
    if isinstance(orders, pl.DataFrame):
        df = orders
    else:
        df = records_to_frame(orders, schema=COMPLETED_ORDER_SCHEMA)

    if df.width == 0:
        return pl.DataFrame(schema=COMPLETED_ORDER_SCHEMA)

    require_columns(df, ["user_id", "order_date"], context="completed orders")

    df = df.with_columns(pl.col("order_date").cast(pl.Date))
    if "order_month" not in df.columns:
        df = df.with_columns(pl.col("order_date").dt.truncate("1mo").alias("order_month"))
    return df


def orders_between(orders: OrdersInput, start_date: date, end_date: date) -> pl.DataFrame:
    """Completed orders with order_date in [start_date, end_date]"""
    if start_date > end_date:
        raise InvalidRangeError(start_date, end_date)

    orders = to_orders_frame(orders)
    return orders.filter(pl.col("order_date").is_between(start_date, end_date, closed="both"))


def user_month_activity(
    orders: pl.DataFrame,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> pl.DataFrame:
    """
    Latest completed order date per user and month.

    Args:
        orders: Completed orders
        start_date: First order_date considered (inclusive)
        end_date: Last order_date considered (inclusive)

    Returns:
        DataFrame with user_id, month, last_order_date sorted by month
        then user_id
    """
    orders = to_orders_frame(orders)

    if start_date is not None:
        orders = orders.filter(pl.col("order_date") >= start_date)
    if end_date is not None:
        orders = orders.filter(pl.col("order_date") <= end_date)

    return (
        orders.group_by(["user_id", "order_month"])
        .agg(pl.col("order_date").max().alias("last_order_date"))
        .rename({"order_month": "month"})
        .select(["user_id", "month", "last_order_date"])
        .sort(["month", "user_id"])
    )
