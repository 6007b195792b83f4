from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, String, Text, text as sa_text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from endless_novel.storage.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"
    __table_args__ = (CheckConstraint("gems >= 0", name="ck_users_gems_non_negative"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    username: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(Text, nullable=False)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    gems: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    notification_emails: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    marketing_emails: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    profile_visibility: Mapped[str] = mapped_column(String(16), nullable=False, default="public")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=sa_text("CURRENT_TIMESTAMP"), nullable=False
    )

    purchases: Mapped[list["GemPurchase"]] = relationship(
        "GemPurchase",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    usages: Mapped[list["GemUsage"]] = relationship(
        "GemUsage",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    subscription: Mapped["Subscription"] = relationship(
        "Subscription",
        back_populates="user",
        cascade="all, delete-orphan",
        uselist=False,
    )
