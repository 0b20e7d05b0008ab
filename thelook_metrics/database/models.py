"""
Database Models

SQLAlchemy mapping of the thelook `order_items` table. Only the columns
the metrics read are mapped; the table is never written to by the metric
code.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


class OrderItemRecord(Base):
    """
    Order Item Table

    Line-item detail with grain at order-item level.
    """
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    returned_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    sale_price: Mapped[float] = mapped_column(Float, nullable=False)

    __table_args__ = (
        Index("idx_order_items_created_at", "created_at"),
        Index("idx_order_items_user", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<OrderItemRecord(id={self.id}, order_id={self.order_id}, status={self.status})>"
