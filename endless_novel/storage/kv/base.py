from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, Text, text as sa_text
from sqlalchemy.orm import Mapped, mapped_column

from endless_novel.storage.base import Base


class KVEntry(Base):
    __tablename__ = "kv_entries"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=sa_text("CURRENT_TIMESTAMP"),
        onupdate=sa_text("CURRENT_TIMESTAMP"),
        nullable=False,
    )
