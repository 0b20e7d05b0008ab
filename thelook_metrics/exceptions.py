"""
Metric Errors

All errors raised by thelook Metrics derive from MetricsError. Parameter
errors also derive from ValueError.
"""

from datetime import date
from typing import List


class MetricsError(Exception):
    """Base class for thelook Metrics errors"""


class InvalidRangeError(MetricsError, ValueError):
    """Reporting bounds are out of order"""

    def __init__(self, start_date: date, end_date: date, message: str = ""):
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(message or f"start_date {start_date} is after end_date {end_date}")


class InvalidWindowError(MetricsError, ValueError):
    """Churn window is not a positive number of days"""

    def __init__(self, window_days: int):
        self.window_days = window_days
        super().__init__(f"window_days must be a positive integer, got {window_days!r}")


class SchemaError(MetricsError):
    """Input frame lacks required columns"""

    def __init__(self, missing: List[str], context: str = "input"):
        self.missing = missing
        super().__init__(f"{context} is missing required columns: {', '.join(missing)}")


class DataSourceError(MetricsError):
    """Order items could not be read from a source"""


class DataQualityError(MetricsError):
    """Fetched order items failed validation"""

    def __init__(self, message: str, result=None):
        self.result = result
        super().__init__(message)
