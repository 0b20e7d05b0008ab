"""
Business Metrics Module
"""
from .churn import ChurnCalculator, MonthlyChurn, calculate_churn, to_frame
from .customer_mix import customer_mix
from .financials import monthly_financials
from .product_impact import product_change_impact
from .runner import MetricResult, MetricsRunner, MetricType

__all__ = [
    "ChurnCalculator",
    "MonthlyChurn",
    "calculate_churn",
    "to_frame",
    "customer_mix",
    "monthly_financials",
    "product_change_impact",
    "MetricResult",
    "MetricsRunner",
    "MetricType",
]
