"""
Test Suite Configuration
"""
from datetime import date, datetime
from typing import List, Tuple

import pytest
import polars as pl

from thelook_metrics.config import Settings
from thelook_metrics.data.sources import DataFrameSource


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(app_env="testing")


@pytest.fixture
def sample_order_items_df() -> pl.DataFrame:
    """
    Order items covering January to March 2022.

    Completed orders: 1 (user 1, 2 items), 2 (user 1), 4 (user 2), 6 (user 1).
    Order 3 has a returned item, order 5 is cancelled, order 7 has a
    returned_at despite its Complete status.
    """
    return pl.DataFrame({
        "order_id": [1, 1, 2, 3, 3, 4, 5, 6, 7],
        "user_id": [1, 1, 1, 2, 2, 2, 3, 1, 3],
        "created_at": [
            datetime(2022, 1, 5, 10, 0),
            datetime(2022, 1, 5, 10, 0),
            datetime(2022, 1, 20, 18, 30),
            datetime(2022, 1, 10, 9, 0),
            datetime(2022, 1, 10, 9, 0),
            datetime(2022, 2, 3, 12, 0),
            datetime(2022, 2, 14, 8, 0),
            datetime(2022, 3, 1, 23, 59),
            datetime(2022, 3, 15, 7, 45),
        ],
        "status": [
            "Complete", "Complete", "Complete",
            "Complete", "Returned",
            "Complete", "Cancelled", "Complete", "Complete",
        ],
        "sale_price": [50.0, 60.0, 30.0, 40.0, 15.0, 80.0, 20.0, 120.0, 25.0],
        "returned_at": [
            None, None, None,
            None, datetime(2022, 1, 25, 9, 0),
            None, None, None, datetime(2022, 3, 30, 10, 0),
        ],
    })


@pytest.fixture
def sample_source(sample_order_items_df) -> DataFrameSource:
    """In-memory source over the sample order items"""
    return DataFrameSource(sample_order_items_df)


def _make_orders(*history: Tuple[int, date]) -> pl.DataFrame:
    """Completed orders frame from (user_id, order_date) pairs"""
    return pl.DataFrame(
        {
            "order_id": list(range(1, len(history) + 1)),
            "user_id": [user_id for user_id, _ in history],
            "order_date": [order_date for _, order_date in history],
        },
        schema={"order_id": pl.Int64, "user_id": pl.Int64, "order_date": pl.Date},
    )


def _make_items(*orders: Tuple[int, int, datetime, float]) -> pl.DataFrame:
    """Completed single-item orders from (order_id, user_id, created_at, sale_price)"""
    rows: List[dict] = [
        {
            "order_id": order_id,
            "user_id": user_id,
            "created_at": created_at,
            "status": "Complete",
            "sale_price": sale_price,
            "returned_at": None,
        }
        for order_id, user_id, created_at, sale_price in orders
    ]
    return pl.DataFrame(
        rows,
        schema={
            "order_id": pl.Int64,
            "user_id": pl.Int64,
            "created_at": pl.Datetime("us"),
            "status": pl.Utf8,
            "sale_price": pl.Float64,
            "returned_at": pl.Datetime("us"),
        },
    )


@pytest.fixture
def make_orders():
    """Factory for completed orders frames"""
    return _make_orders


@pytest.fixture
def make_items():
    """Factory for completed order items frames"""
    return _make_items
