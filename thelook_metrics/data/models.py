"""
Record Types and Frame Schemas

Row-level dataclasses for the order items source and the derived
entities, plus the polars schemas the metric code works against.
"""

from dataclasses import asdict, dataclass, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import polars as pl

from thelook_metrics.exceptions import DataQualityError, SchemaError


class ItemStatus(str, Enum):
    """Order item status values in the thelook dataset"""
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    COMPLETE = "Complete"
    CANCELLED = "Cancelled"
    RETURNED = "Returned"


@dataclass(frozen=True)
class OrderItem:
    """One line item of an order"""
    order_id: int
    user_id: int
    created_at: datetime
    status: str
    sale_price: float
    returned_at: Optional[datetime] = None


@dataclass(frozen=True)
class CompletedOrder:
    """Order whose items are all complete and not returned"""
    order_id: int
    user_id: int
    order_date: date
    order_month: date
    order_value: float
    units: int = 1


@dataclass(frozen=True)
class UserMonthActivity:
    """Latest completed order of a user within a calendar month"""
    user_id: int
    month: date
    last_order_date: date


ORDER_ITEM_SCHEMA: Dict[str, pl.DataType] = {
    "order_id": pl.Int64,
    "user_id": pl.Int64,
    "created_at": pl.Datetime("us"),
    "status": pl.Utf8,
    "sale_price": pl.Float64,
    "returned_at": pl.Datetime("us"),
}

COMPLETED_ORDER_SCHEMA: Dict[str, pl.DataType] = {
    "order_id": pl.Int64,
    "user_id": pl.Int64,
    "order_date": pl.Date,
    "order_month": pl.Date,
    "order_value": pl.Float64,
    "units": pl.UInt32,
}

ORDER_ITEM_COLUMNS = list(ORDER_ITEM_SCHEMA)

Record = Union[Mapping[str, Any], Any]


def require_columns(df: pl.DataFrame, columns: Iterable[str], context: str = "input") -> None:
    """Raise SchemaError if any of the columns is absent"""
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise SchemaError(missing, context=context)


def records_to_frame(
    records: Iterable[Record],
    schema: Optional[Dict[str, pl.DataType]] = None,
) -> pl.DataFrame:
    """
    Build a DataFrame from dataclass instances or mappings.

    An empty iterable yields an empty frame with the given schema.
    """
    rows: List[Dict[str, Any]] = []
    for record in records:
        if is_dataclass(record):
            rows.append(asdict(record))
        else:
            rows.append(dict(record))

    if not rows:
        return pl.DataFrame(schema=schema or {})
    return pl.DataFrame(rows)


def normalize_order_items(df: pl.DataFrame) -> pl.DataFrame:
    """
    Coerce an order items frame to ORDER_ITEM_SCHEMA types.

    Timestamps may arrive as strings (CSV exports, with or without a
    trailing " UTC"), dates, or timezone-aware datetimes; all become naive
    UTC datetimes.

    Raises:
        SchemaError: If a required column is absent
        DataQualityError: If non-null timestamp strings cannot be parsed
    """
    require_columns(df, ORDER_ITEM_COLUMNS, context="order items")

    exprs = []
    parsed = []
    for col in ("created_at", "returned_at"):
        dtype = df.schema[col]
        if dtype == pl.Utf8:
            parsed.append(col)
            if df[col].null_count() == df.height:
                exprs.append(pl.col(col).cast(pl.Datetime("us")))
            else:
                exprs.append(
                    pl.col(col)
                    .str.strip_suffix(" UTC")
                    .str.to_datetime(time_unit="us", strict=False)
                )
        elif dtype == pl.Datetime and dtype.time_zone is not None:
            exprs.append(
                pl.col(col)
                .dt.convert_time_zone("UTC")
                .dt.replace_time_zone(None)
                .dt.cast_time_unit("us")
            )
        else:
            exprs.append(pl.col(col).cast(pl.Datetime("us")))

    exprs.extend([
        pl.col("status").cast(pl.Utf8),
        pl.col("sale_price").cast(pl.Float64),
    ])

    try:
        result = df.with_columns(exprs)
    except pl.exceptions.PolarsError as e:
        raise DataQualityError(f"Order items could not be coerced to the item schema: {e}") from e

    # strict=False turns bad strings into nulls; surface them instead
    for col in parsed:
        unparsed = df[col].filter(df[col].is_not_null() & result[col].is_null())
        if unparsed.len() > 0:
            raise DataQualityError(
                f"{unparsed.len()} {col} values could not be parsed as timestamps, "
                f"e.g. {unparsed.head(3).to_list()}"
            )

    return result
