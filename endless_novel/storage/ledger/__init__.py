"""Gem purchase and usage history."""

from endless_novel.storage.ledger.base import GemPurchase, GemUsage
from endless_novel.storage.ledger import crud

__all__ = ["GemPurchase", "GemUsage", "crud"]
