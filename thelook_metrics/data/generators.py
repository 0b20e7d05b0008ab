"""
Synthetic Order Item Generator

Generates thelook-shaped order items for development and testing using
vectorized numpy sampling. Output is reproducible for a given seed.
"""

from datetime import date
from pathlib import Path
from typing import Union

import numpy as np
import polars as pl
import structlog

from thelook_metrics.exceptions import InvalidRangeError
from .models import ItemStatus

logger = structlog.get_logger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

ITEM_STATUSES = [
    (ItemStatus.COMPLETE.value, 0.55),
    (ItemStatus.SHIPPED.value, 0.15),
    (ItemStatus.PROCESSING.value, 0.10),
    (ItemStatus.CANCELLED.value, 0.10),
    (ItemStatus.RETURNED.value, 0.10),
]

MIN_SALE_PRICE = 2.0
MAX_SALE_PRICE = 300.0


def generate_order_items(
    n_users: int = 1000,
    start_date: date = date(2019, 1, 1),
    end_date: date = date(2023, 3, 31),
    orders_per_user: float = 3.0,
    seed: int = 42,
) -> pl.DataFrame:
    """
    Generate synthetic order items.

    Each user places 1 + Poisson(orders_per_user) orders on uniformly drawn
    days in [start_date, end_date]; each order holds 1-4 items. Returned
    items carry a returned_at 3-30 days after creation.

    Args:
        n_users: Number of distinct users
        start_date: First possible order day
        end_date: Last possible order day
        orders_per_user: Mean number of extra orders per user
        seed: Random seed

    Returns:
        DataFrame with id, order_id, user_id, created_at, status,
        returned_at and sale_price columns
    """
    if start_date > end_date:
        raise InvalidRangeError(start_date, end_date)

    rng = np.random.default_rng(seed)
    span_days = (end_date - start_date).days

    # Orders
    order_counts = rng.poisson(orders_per_user, n_users) + 1
    n_orders = int(order_counts.sum())
    user_ids = np.repeat(np.arange(1, n_users + 1), order_counts)
    day_offsets = rng.integers(0, span_days + 1, n_orders)
    second_offsets = rng.integers(0, 86400, n_orders)
    created_at = (
        np.datetime64(start_date.isoformat(), "us")
        + day_offsets.astype("timedelta64[D]")
        + second_offsets.astype("timedelta64[s]")
    )

    # Items
    items_per_order = rng.integers(1, 5, n_orders)
    n_items = int(items_per_order.sum())
    statuses, weights = zip(*ITEM_STATUSES)

    df = pl.DataFrame({
        "id": np.arange(1, n_items + 1),
        "order_id": np.repeat(np.arange(1, n_orders + 1), items_per_order),
        "user_id": np.repeat(user_ids, items_per_order),
        "created_at": np.repeat(created_at, items_per_order),
        "status": rng.choice(statuses, size=n_items, p=weights),
        "sale_price": np.round(rng.uniform(MIN_SALE_PRICE, MAX_SALE_PRICE, n_items), 2),
        "return_lag_days": rng.integers(3, 31, n_items),
    })

    df = df.with_columns(
        pl.col("created_at").cast(pl.Datetime("us")),
    ).with_columns(
        pl.when(pl.col("status") == ItemStatus.RETURNED.value)
        .then(pl.col("created_at") + pl.duration(days=pl.col("return_lag_days")))
        .otherwise(None)
        .alias("returned_at")
    ).select(["id", "order_id", "user_id", "created_at", "status", "returned_at", "sale_price"])

    logger.info(
        "Generated order items",
        users=n_users,
        orders=n_orders,
        items=n_items,
        seed=seed,
    )
    return df


def write_order_items(df: pl.DataFrame, path: Union[str, Path]) -> Path:
    """Write order items to CSV or Parquet based on the file suffix"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if path.suffix.lower() == ".csv":
        df.write_csv(path)
    else:
        df.write_parquet(path)

    logger.info("Written order items", rows=df.height, path=str(path))
    return path
