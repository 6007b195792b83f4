"""Battle Pass subscriptions, one per user."""

from endless_novel.storage.subscriptions.base import Subscription
from endless_novel.storage.subscriptions import crud

__all__ = ["Subscription", "crud"]
