"""Gem pricing, purchases, Battle Pass subscriptions and balance history."""

from endless_novel.gems.pricing import GemPackage, UnknownPackageError, compute_total, unit_price
from endless_novel.gems.service import (
    InsufficientGemsError,
    InvalidGemAmountError,
    PurchaseFailedError,
    PurchaseInProgressError,
    PurchaseResult,
    PurchaseSession,
    purchase_gems,
)
from endless_novel.gems.subscriptions import (
    InvalidSubscriptionError,
    SubscriptionTier,
    allocate_subscription_gems,
    subscribe,
)

__all__ = [
    "GemPackage",
    "InsufficientGemsError",
    "InvalidGemAmountError",
    "InvalidSubscriptionError",
    "PurchaseFailedError",
    "PurchaseInProgressError",
    "PurchaseResult",
    "PurchaseSession",
    "SubscriptionTier",
    "UnknownPackageError",
    "allocate_subscription_gems",
    "compute_total",
    "purchase_gems",
    "subscribe",
    "unit_price",
]
