from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def import_all_models() -> None:
    from endless_novel.storage.kv.base import KVEntry
    from endless_novel.storage.ledger.base import GemPurchase, GemUsage
    from endless_novel.storage.subscriptions.base import Subscription
    from endless_novel.storage.users.base import User

    _ = (
        KVEntry,
        User,
        GemPurchase,
        GemUsage,
        Subscription,
    )
