"""Storage layer for SQLite via SQLAlchemy async."""

from endless_novel.storage import kv, ledger, subscriptions, users

__all__ = ["kv", "ledger", "subscriptions", "users"]
