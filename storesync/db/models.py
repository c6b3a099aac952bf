"""
SQLAlchemy database models.
Defines the Store table read and refreshed by sync jobs.
"""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now_naive() -> datetime:
    """Current UTC time as a naive datetime, the form stored in the registry."""
    return datetime.now(UTC).replace(tzinfo=None, microsecond=0)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class Store(Base):
    """
    Store model representing one installed Shopify shop.

    The registry owns the row; sync jobs only read it and write back shop
    attributes, cached counters and ``updated_at`` after a successful update.
    Timestamps are naive UTC at second precision.
    """

    __tablename__ = "stores"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    # Shopify identity and credentials
    myshopify_domain: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
    )
    access_token: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    installed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    # Shop attributes refreshed from the API
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    currency: Mapped[str | None] = mapped_column(String(16), nullable=True)
    plan_name: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # Cached counters
    customer_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    order_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    product_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utc_now_naive,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utc_now_naive,
        onupdate=utc_now_naive,
    )

    __table_args__ = (
        # Index for batch selection of installed stores by freshness
        Index("ix_stores_installed_updated_at", "installed", "updated_at"),
    )

    @property
    def shop(self) -> str:
        """Shop host used for API calls."""
        return self.myshopify_domain

    def compact(self) -> dict[str, Any]:
        """Identifying fields attached to every job event."""
        return {"store_id": self.id, "myshopify_domain": self.myshopify_domain}

    def __repr__(self) -> str:
        return f"Store(id={self.id}, domain={self.myshopify_domain}, installed={self.installed})"
