from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass
class InsertResult:
    id: int | str
    inserted: bool


@dataclass
class UserRow:
    id: str
    name: str
    username: str
    email: str
    bio: str | None
    gems: int
    notification_emails: bool
    marketing_emails: bool
    profile_visibility: str
    member_since: datetime | None = None


@dataclass
class PurchaseRow:
    id: int
    user_id: str
    description: str
    amount: int
    price: Decimal
    status: str
    receipt: bool
    created_at: datetime | None = None


@dataclass
class UsageRow:
    id: int
    user_id: str
    description: str
    amount: int
    status: str
    created_at: datetime | None = None


@dataclass
class SubscriptionRow:
    user_id: str
    tier: str
    billing_cycle: str
    start_date: datetime
    next_billing_date: datetime
