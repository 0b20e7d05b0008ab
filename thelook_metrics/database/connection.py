"""
Database Connection Management

Synchronous SQLAlchemy 2.0 engine for reading the order items table.
"""

import time

import structlog
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from thelook_metrics.exceptions import DataSourceError

logger = structlog.get_logger(__name__)


def create_source_engine(url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the order items database.

    Args:
        url: SQLAlchemy database URL
        echo: Echo SQL statements

    Returns:
        Engine: Engine with pre-ping enabled

    Raises:
        DataSourceError: If the URL cannot be turned into an engine
    """
    try:
        engine = create_engine(url, echo=echo, future=True, pool_pre_ping=True)
    except (SQLAlchemyError, ImportError) as e:
        logger.error("Failed to create database engine", error=str(e))
        raise DataSourceError(f"Cannot create engine: {e}") from e

    logger.info("Database engine created", dialect=engine.dialect.name)
    return engine


def check_database_health(engine: Engine) -> dict:
    """
    Check database health status.

    Returns:
        dict: Health status with latency information
    """
    try:
        start = time.perf_counter()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        latency_ms = (time.perf_counter() - start) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(latency_ms, 2),
        }
    except SQLAlchemyError as e:
        return {
            "status": "unhealthy",
            "error": str(e),
        }
