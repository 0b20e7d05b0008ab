"""
Metrics Runner

Fetches order items from a source, validates them, derives completed
orders and runs one metric. Each metric fetches exactly the date range
it needs; churn fetches window_days beyond end_date so the follow-up
check sees the tail.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Callable, Tuple

import polars as pl
import structlog

from thelook_metrics.data.sources import OrderItemSource
from thelook_metrics.exceptions import DataQualityError
from thelook_metrics.quality.validators import (
    DataValidator,
    ValidationStatus,
    create_completed_orders_validator,
    create_order_items_validator,
)
from thelook_metrics.transformation.orders import build_completed_orders
from .churn import DEFAULT_WINDOW_DAYS, ChurnCalculator, to_frame
from .customer_mix import customer_mix
from .financials import monthly_financials
from .product_impact import DEFAULT_HIGH_VALUE_THRESHOLD, check_impact_dates, product_change_impact

logger = structlog.get_logger(__name__)


class MetricType(str, Enum):
    """Metrics the runner can compute"""
    FINANCIALS = "financials"
    CUSTOMER_MIX = "customer-mix"
    CHURN = "churn"
    PRODUCT_IMPACT = "product-impact"


@dataclass
class MetricResult:
    """Result of one metric run"""
    metric: MetricType
    data: pl.DataFrame
    fetch_start: date
    fetch_end: date
    items_fetched: int
    orders_used: int
    started_at: datetime
    completed_at: datetime
    duration_seconds: float


class MetricsRunner:
    """
    Runs metrics against an order item source.

    Example:
        runner = MetricsRunner(FileSource("data/order_items.parquet"))
        result = runner.churn(date(2019, 1, 1), date(2022, 12, 31), window_days=90)
        print(result.data)
    """

    def __init__(self, source: OrderItemSource, validate: bool = True):
        self.source = source
        self.validate = validate

    def load_completed_orders(self, start_date: date, end_date: date) -> Tuple[int, pl.DataFrame]:
        """
        Fetch items in [start_date, end_date] and derive completed orders.

        Returns:
            Number of items fetched and the completed orders frame

        Raises:
            DataQualityError: If validation is enabled and items or the
                derived orders fail it
        """
        items = self.source.fetch_items(start_date, end_date)
        if self.validate:
            self._check(create_order_items_validator(), items, "Order items")

        orders = build_completed_orders(items)
        if self.validate:
            self._check(create_completed_orders_validator(), orders, "Completed orders")

        return items.height, orders

    @staticmethod
    def _check(validator: DataValidator, df: pl.DataFrame, label: str) -> None:
        validation = validator.validate(df)
        if validation.status == ValidationStatus.FAILED:
            names = ", ".join(c.name for c in validation.failures)
            raise DataQualityError(f"{label} failed validation: {names}", result=validation)

    def _run(
        self,
        metric: MetricType,
        fetch_start: date,
        fetch_end: date,
        compute: Callable[[pl.DataFrame], pl.DataFrame],
    ) -> MetricResult:
        started_at = datetime.utcnow()
        log = logger.bind(metric=metric.value)
        log.info("Starting metric", fetch_start=str(fetch_start), fetch_end=str(fetch_end))

        items_fetched, orders = self.load_completed_orders(fetch_start, fetch_end)
        data = compute(orders)

        completed_at = datetime.utcnow()
        result = MetricResult(
            metric=metric,
            data=data,
            fetch_start=fetch_start,
            fetch_end=fetch_end,
            items_fetched=items_fetched,
            orders_used=orders.height,
            started_at=started_at,
            completed_at=completed_at,
            duration_seconds=(completed_at - started_at).total_seconds(),
        )

        log.info(
            "Metric complete",
            items=items_fetched,
            orders=orders.height,
            rows=data.height,
            duration_seconds=round(result.duration_seconds, 3),
        )
        return result

    def monthly_financials(self, start_date: date, end_date: date) -> MetricResult:
        return self._run(
            MetricType.FINANCIALS,
            start_date,
            end_date,
            lambda orders: monthly_financials(orders, start_date, end_date),
        )

    def customer_mix(self, start_date: date, end_date: date) -> MetricResult:
        return self._run(
            MetricType.CUSTOMER_MIX,
            start_date,
            end_date,
            lambda orders: customer_mix(orders, start_date, end_date),
        )

    def churn(self, start_date: date, end_date: date, window_days: int = DEFAULT_WINDOW_DAYS) -> MetricResult:
        """Monthly churn; fetches through end_date + window_days"""
        calculator = ChurnCalculator(start_date, end_date, window_days)
        return self._run(
            MetricType.CHURN,
            start_date,
            calculator.lookahead_end,
            lambda orders: to_frame(calculator.calculate(orders)),
        )

    def product_impact(
        self,
        pre_start: date,
        post_end: date,
        launch_date: date,
        high_value_threshold: float = DEFAULT_HIGH_VALUE_THRESHOLD,
    ) -> MetricResult:
        check_impact_dates(pre_start, post_end, launch_date)
        return self._run(
            MetricType.PRODUCT_IMPACT,
            pre_start,
            post_end,
            lambda orders: product_change_impact(
                orders, pre_start, post_end, launch_date, high_value_threshold
            ),
        )

    def user_completed_orders(self, user_id: int) -> pl.DataFrame:
        """Full completed order history of one user"""
        return build_completed_orders(self.source.fetch_user_items(user_id))
