from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, text as sa_text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from endless_novel.storage.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GemPurchase(Base):
    __tablename__ = "gem_purchases"
    __table_args__ = (Index("idx_gem_purchases_user_id", "user_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    # USD cents; SQLite has no native decimal type.
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="Completed")
    receipt: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=sa_text("CURRENT_TIMESTAMP"), nullable=False
    )

    user: Mapped["User"] = relationship("User", back_populates="purchases")


class GemUsage(Base):
    __tablename__ = "gem_usage"
    __table_args__ = (Index("idx_gem_usage_user_id", "user_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="Completed")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=sa_text("CURRENT_TIMESTAMP"), nullable=False
    )

    user: Mapped["User"] = relationship("User", back_populates="usages")
