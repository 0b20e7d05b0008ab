"""
Rolling Churn Calculator

Monthly churn over a fixed follow-up window. For every user and every
month with at least one completed order, the user's last order of the month
is the reference point; the user is churned for that month when no order
follows within window_days of it.

The follow-up check scans the full order history passed in, including
orders after end_date. Callers must pass history that extends at least
window_days beyond end_date; with a shorter tail, users active near
end_date are reported as churned even though the data simply ends there
(right-censoring). This bias is not corrected.
"""

from bisect import bisect_right
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from numbers import Integral
from typing import Dict, List, Optional, Sequence

import polars as pl
import structlog

from thelook_metrics.exceptions import InvalidRangeError, InvalidWindowError
from thelook_metrics.transformation.orders import OrdersInput, to_orders_frame, user_month_activity

logger = structlog.get_logger(__name__)

DEFAULT_WINDOW_DAYS = 90

CHURN_SCHEMA = {
    "month": pl.Date,
    "active_customers": pl.Int64,
    "churned_customers": pl.Int64,
    "churn_rate": pl.Float64,
}


@dataclass(frozen=True)
class MonthlyChurn:
    """Churn result for one calendar month"""
    month: date
    active_customers: int
    churned_customers: int
    churn_rate: Optional[float]


class ChurnCalculator:
    """
    Monthly churn over a fixed lookahead window.

    Example:
        calculator = ChurnCalculator(date(2019, 1, 1), date(2022, 12, 31), window_days=90)
        rows = calculator.calculate(orders_df)
    """

    def __init__(self, start_date: date, end_date: date, window_days: int = DEFAULT_WINDOW_DAYS):
        if isinstance(window_days, bool) or not isinstance(window_days, Integral) or window_days <= 0:
            raise InvalidWindowError(window_days)
        if start_date > end_date:
            raise InvalidRangeError(start_date, end_date)

        self.start_date = start_date
        self.end_date = end_date
        self.window_days = int(window_days)

    @property
    def window(self) -> timedelta:
        return timedelta(days=self.window_days)

    @property
    def lookahead_end(self) -> date:
        """Last order date the history must cover for unbiased results"""
        return self.end_date + self.window

    def user_month_activity(self, orders: OrdersInput) -> pl.DataFrame:
        """Last order date per user and month within the reporting range"""
        return user_month_activity(orders, self.start_date, self.end_date)

    def flag_churn(self, orders: OrdersInput) -> pl.DataFrame:
        """
        Per user-month churn flags.

        Returns:
            DataFrame with user_id, month, last_order_date, has_future_order
            and churned
        """
        orders = to_orders_frame(orders)
        activity = self.user_month_activity(orders)

        if activity.is_empty():
            return activity.with_columns(
                pl.lit(None, dtype=pl.Boolean).alias("has_future_order"),
                pl.lit(None, dtype=pl.Boolean).alias("churned"),
            )

        self._warn_on_short_history(orders)

        history = self._order_dates_by_user(orders)
        window = self.window
        flags = [
            self._has_order_within(history.get(user_id, ()), last_order_date, window)
            for user_id, last_order_date in activity.select(["user_id", "last_order_date"]).iter_rows()
        ]

        return activity.with_columns(
            pl.Series("has_future_order", flags, dtype=pl.Boolean),
        ).with_columns(
            (~pl.col("has_future_order")).alias("churned"),
        )

    def calculate(self, orders: OrdersInput) -> List[MonthlyChurn]:
        """
        Monthly active and churned customers.

        Args:
            orders: Completed orders covering [start_date, lookahead_end]

        Returns:
            One MonthlyChurn per month with active customers, ascending
        """
        flags = self.flag_churn(orders)
        if flags.is_empty():
            logger.info(
                "No completed orders in reporting range",
                start_date=str(self.start_date),
                end_date=str(self.end_date),
            )
            return []

        monthly = (
            flags.group_by("month")
            .agg([
                pl.col("user_id").n_unique().alias("active_customers"),
                pl.col("user_id").filter(pl.col("churned")).n_unique().alias("churned_customers"),
            ])
            .with_columns(
                pl.when(pl.col("active_customers") > 0)
                .then(pl.col("churned_customers") / pl.col("active_customers"))
                .otherwise(None)
                .alias("churn_rate")
            )
            .sort("month")
        )

        rows = [
            MonthlyChurn(
                month=row["month"],
                active_customers=int(row["active_customers"]),
                churned_customers=int(row["churned_customers"]),
                churn_rate=row["churn_rate"],
            )
            for row in monthly.iter_rows(named=True)
        ]

        logger.info(
            "Churn computed",
            months=len(rows),
            window_days=self.window_days,
            start_date=str(self.start_date),
            end_date=str(self.end_date),
        )
        return rows

    @staticmethod
    def _order_dates_by_user(orders: pl.DataFrame) -> Dict[object, List[date]]:
        history: Dict[object, List[date]] = defaultdict(list)
        for user_id, order_date in orders.select(["user_id", "order_date"]).sort("order_date").iter_rows():
            history[user_id].append(order_date)
        return history

    @staticmethod
    def _has_order_within(dates: Sequence[date], reference: date, window: timedelta) -> bool:
        # dates is sorted; first order strictly after the reference day
        idx = bisect_right(dates, reference)
        return idx < len(dates) and dates[idx] <= reference + window

    def _warn_on_short_history(self, orders: pl.DataFrame) -> None:
        latest = orders["order_date"].max()
        if latest is not None and latest < self.lookahead_end:
            logger.warning(
                "Order history ends before churn lookahead; churn near end_date is over-counted",
                latest_order_date=str(latest),
                required_through=str(self.lookahead_end),
                window_days=self.window_days,
            )


def calculate_churn(
    orders: OrdersInput,
    start_date: date,
    end_date: date,
    window_days: int = DEFAULT_WINDOW_DAYS,
) -> List[MonthlyChurn]:
    """Convenience wrapper around ChurnCalculator.calculate"""
    return ChurnCalculator(start_date, end_date, window_days).calculate(orders)


def to_frame(rows: Sequence[MonthlyChurn]) -> pl.DataFrame:
    """MonthlyChurn rows as a DataFrame"""
    return pl.DataFrame(
        [(r.month, r.active_customers, r.churned_customers, r.churn_rate) for r in rows],
        schema=CHURN_SCHEMA,
        orient="row",
    )
