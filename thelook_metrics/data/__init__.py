"""
Order Item Data Module
"""
from .models import (
    CompletedOrder,
    ItemStatus,
    OrderItem,
    UserMonthActivity,
    normalize_order_items,
    records_to_frame,
)
from .sources import DataFrameSource, FileSource, OrderItemSource, SqlSource, create_source
from .generators import generate_order_items, write_order_items

__all__ = [
    "CompletedOrder",
    "ItemStatus",
    "OrderItem",
    "UserMonthActivity",
    "normalize_order_items",
    "records_to_frame",
    "DataFrameSource",
    "FileSource",
    "OrderItemSource",
    "SqlSource",
    "create_source",
    "generate_order_items",
    "write_order_items",
]
