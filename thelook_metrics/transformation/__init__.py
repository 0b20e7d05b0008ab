"""
Data Transformation Module
"""
from .orders import build_completed_orders, orders_between, to_orders_frame, user_month_activity

__all__ = [
    "build_completed_orders",
    "orders_between",
    "to_orders_frame",
    "user_month_activity",
]
