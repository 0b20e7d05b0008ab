"""
Order Item Sources

Read-only access to thelook order items. Every source answers the same two
queries: all items created within an inclusive date range, and all items
of one user. Items without a created_at are returned by every range query
so that validation sees them. Results are polars DataFrames in
ORDER_ITEM_SCHEMA.

Supported sources:
- In-memory DataFrame
- CSV / Parquet files
- SQL databases through SQLAlchemy
"""

from datetime import date, datetime, time, timedelta
from enum import Enum
from pathlib import Path
from typing import Optional, Protocol, Union, runtime_checkable

import polars as pl
import structlog
from sqlalchemy import MetaData, and_, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from thelook_metrics.config.settings import Settings
from thelook_metrics.database.connection import create_source_engine
from thelook_metrics.database.models import OrderItemRecord
from thelook_metrics.exceptions import DataSourceError, InvalidRangeError
from .models import ORDER_ITEM_COLUMNS, ORDER_ITEM_SCHEMA, normalize_order_items

logger = structlog.get_logger(__name__)


class FileFormat(str, Enum):
    """Supported file formats"""
    CSV = "csv"
    PARQUET = "parquet"


@runtime_checkable
class OrderItemSource(Protocol):
    """Tabular source of order items"""

    def fetch_items(self, start_date: date, end_date: date) -> pl.DataFrame:
        """Items whose created_at date falls in [start_date, end_date], plus undated items"""
        ...

    def fetch_user_items(self, user_id: int) -> pl.DataFrame:
        """All items of one user"""
        ...


def _check_range(start_date: date, end_date: date) -> None:
    if start_date > end_date:
        raise InvalidRangeError(start_date, end_date)


class DataFrameSource:
    """
    Order item source over an in-memory DataFrame.

    Example:
        source = DataFrameSource(items_df)
        items = source.fetch_items(date(2022, 1, 1), date(2022, 12, 31))
    """

    def __init__(self, items: pl.DataFrame):
        self._items = normalize_order_items(items).select(ORDER_ITEM_COLUMNS)

    @property
    def items(self) -> pl.DataFrame:
        return self._items

    def fetch_items(self, start_date: date, end_date: date) -> pl.DataFrame:
        _check_range(start_date, end_date)
        result = self._items.filter(
            pl.col("created_at").dt.date().is_between(start_date, end_date, closed="both")
            | pl.col("created_at").is_null()
        )
        logger.debug(
            "Fetched order items",
            start_date=str(start_date),
            end_date=str(end_date),
            rows=result.height,
        )
        return result

    def fetch_user_items(self, user_id: int) -> pl.DataFrame:
        return self._items.filter(pl.col("user_id") == user_id).sort("created_at")


class FileSource(DataFrameSource):
    """
    Order item source backed by a CSV or Parquet export.

    The file is read once on construction.
    """

    def __init__(self, path: Union[str, Path], file_format: Optional[FileFormat] = None):
        self.path = Path(path)
        self.file_format = file_format or self._detect_format(self.path)
        super().__init__(self._read())

    @staticmethod
    def _detect_format(path: Path) -> FileFormat:
        suffix = path.suffix.lower().lstrip(".")
        try:
            return FileFormat(suffix)
        except ValueError:
            raise DataSourceError(f"Unsupported file format: {path.suffix or path.name}") from None

    def _read(self) -> pl.DataFrame:
        if not self.path.exists():
            raise DataSourceError(f"Order items file not found: {self.path}")

        try:
            if self.file_format == FileFormat.CSV:
                df = pl.read_csv(
                    self.path,
                    try_parse_dates=True,
                    null_values=["", "NULL", "null", "None", "NA", "N/A"],
                )
            else:
                df = pl.read_parquet(self.path)
        except (pl.exceptions.PolarsError, OSError) as e:
            raise DataSourceError(f"Failed to read {self.path}: {e}") from e

        logger.info(
            "Loaded order items file",
            path=str(self.path),
            format=self.file_format.value,
            rows=df.height,
        )
        return df


class SqlSource:
    """
    Order item source over a SQL table.

    Example:
        engine = create_source_engine("sqlite:///thelook.db")
        source = SqlSource(engine)
        items = source.fetch_items(date(2022, 1, 1), date(2022, 3, 31))
    """

    def __init__(self, engine: Engine, table_name: str = "order_items"):
        self.engine = engine
        self.table_name = table_name
        base = OrderItemRecord.__table__
        self._table = base if table_name == base.name else base.to_metadata(MetaData(), name=table_name)

    def _query(self, *conditions) -> pl.DataFrame:
        table = self._table
        stmt = (
            select(*(table.c[col] for col in ORDER_ITEM_COLUMNS))
            .where(*conditions)
            .order_by(table.c.created_at, table.c.order_id)
        )

        try:
            with self.engine.connect() as conn:
                rows = conn.execute(stmt).all()
        except SQLAlchemyError as e:
            logger.error("Order items query failed", table=self.table_name, error=str(e))
            raise DataSourceError(f"Query against {self.table_name} failed: {e}") from e

        return pl.DataFrame(
            [tuple(row) for row in rows],
            schema=ORDER_ITEM_SCHEMA,
            orient="row",
        )

    def fetch_items(self, start_date: date, end_date: date) -> pl.DataFrame:
        _check_range(start_date, end_date)
        created_at = self._table.c.created_at
        result = self._query(
            or_(
                and_(
                    created_at >= datetime.combine(start_date, time.min),
                    created_at < datetime.combine(end_date + timedelta(days=1), time.min),
                ),
                created_at.is_(None),
            )
        )
        logger.debug(
            "Fetched order items",
            table=self.table_name,
            start_date=str(start_date),
            end_date=str(end_date),
            rows=result.height,
        )
        return result

    def fetch_user_items(self, user_id: int) -> pl.DataFrame:
        return self._query(self._table.c.user_id == user_id)


def create_source(settings: Settings) -> OrderItemSource:
    """Build the order item source described by settings"""
    if settings.source.kind == "database":
        engine = create_source_engine(settings.source_url, echo=settings.database.echo)
        return SqlSource(engine, table_name=settings.source.table_name)
    return FileSource(settings.source.path)
