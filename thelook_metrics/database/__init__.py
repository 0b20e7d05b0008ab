"""
Database Module
"""
from .connection import create_source_engine, check_database_health
from .models import Base, OrderItemRecord

__all__ = [
    "create_source_engine",
    "check_database_health",
    "Base",
    "OrderItemRecord",
]
