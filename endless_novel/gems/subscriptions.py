"""Battle Pass subscriptions: tier pricing, sign-up credit and periodic gem allocation."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP

from loguru import logger

from endless_novel.config.schema import AppConfigRoot, GemsConfig
from endless_novel.gems.service import PurchaseFailedError, Sleep
from endless_novel.storage.db import session_scope
from endless_novel.storage.repo import SQLAlchemyRepo
from endless_novel.storage.types import SubscriptionRow
from endless_novel.users.service import UserNotFoundError

BILLING_MONTHLY = "monthly"
BILLING_YEARLY = "yearly"
BILLING_CYCLES = (BILLING_MONTHLY, BILLING_YEARLY)

_FIRST_PERIOD_DAYS = {BILLING_MONTHLY: 30, BILLING_YEARLY: 365}


class InvalidSubscriptionError(ValueError):
    pass


@dataclass(frozen=True)
class SubscriptionTier:
    id: str
    title: str
    monthly_price: Decimal
    yearly_price: Decimal
    monthly_gems: int

    def price(self, cycle: str) -> Decimal:
        return self.monthly_price if cycle == BILLING_MONTHLY else self.yearly_price

    def signup_gems(self, cycle: str) -> int:
        return self.monthly_gems if cycle == BILLING_MONTHLY else self.monthly_gems * 12

    def yearly_savings_percent(self) -> int:
        full_year = self.monthly_price * 12
        saving = (1 - self.yearly_price / full_year) * 100
        return int(saving.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass
class SubscriptionResult:
    tier: str
    billing_cycle: str
    gems_added: int
    price: Decimal
    new_balance: int
    next_billing_date: datetime


def load_subscription_tiers(config: GemsConfig) -> list[SubscriptionTier]:
    return [
        SubscriptionTier(
            id=tier.id,
            title=tier.title,
            monthly_price=tier.monthly_price,
            yearly_price=tier.yearly_price,
            monthly_gems=tier.monthly_gems,
        )
        for tier in config.subscription_tiers
    ]


def find_tier(tiers: list[SubscriptionTier], tier_id: str) -> SubscriptionTier | None:
    for tier in tiers:
        if tier.id == tier_id:
            return tier
    return None


def shift_calendar(moment: datetime, *, months: int = 0, years: int = 0) -> datetime:
    """Move by whole calendar months/years; a day past the month end rolls into the next month."""
    month_index = moment.month - 1 + months
    year = moment.year + years + month_index // 12
    month = month_index % 12 + 1
    return moment.replace(year=year, month=month, day=1) + timedelta(days=moment.day - 1)


def first_billing_date(start: datetime, cycle: str) -> datetime:
    return start + timedelta(days=_FIRST_PERIOD_DAYS[cycle])


def advance_billing_date(current: datetime, cycle: str) -> datetime:
    if cycle == BILLING_MONTHLY:
        return shift_calendar(current, months=1)
    return shift_calendar(current, years=1)


async def subscribe(
    user_id: str,
    tier_id: str,
    cycle: str,
    config: AppConfigRoot,
    *,
    now: datetime | None = None,
    sleep: Sleep = asyncio.sleep,
) -> SubscriptionResult:
    """Start (or replace) a subscription and credit its first period of gems.

    Monthly plans credit one month of gems, yearly plans twelve.
    """
    tier = find_tier(load_subscription_tiers(config.gems), tier_id)
    if tier is None:
        raise InvalidSubscriptionError(f"Unknown subscription tier: {tier_id}")
    if cycle not in BILLING_CYCLES:
        raise InvalidSubscriptionError(f"Unknown billing cycle: {cycle}")

    async with session_scope() as session:
        if await SQLAlchemyRepo(session).get_gems(user_id) is None:
            raise UserNotFoundError(user_id)

    await sleep(config.gems.purchase_delay_s)

    start = now or datetime.now(timezone.utc)
    next_billing = first_billing_date(start, cycle)
    gems = tier.signup_gems(cycle)
    price = tier.price(cycle)
    async with session_scope() as session:
        repo = SQLAlchemyRepo(session)
        new_balance = await repo.add_gems(user_id, gems)
        if new_balance is None:
            raise PurchaseFailedError("Failed to update gems")
        await repo.upsert_subscription(
            user_id=user_id,
            tier=tier.id,
            billing_cycle=cycle,
            start_date=start,
            next_billing_date=next_billing,
        )
        await repo.insert_purchase(
            user_id=user_id,
            description=f"{tier.title} Battle Pass ({cycle})",
            amount=gems,
            price=price,
        )

    logger.bind(node="subscribe", user_id=user_id).info(
        "Subscribed to {} ({}); credited {} gems, next billing {}", tier.id, cycle, gems, next_billing.date()
    )
    return SubscriptionResult(
        tier=tier.id,
        billing_cycle=cycle,
        gems_added=gems,
        price=price,
        new_balance=new_balance,
        next_billing_date=next_billing,
    )


async def allocate_subscription_gems(user_id: str, config: AppConfigRoot) -> bool:
    """Credit one period of Battle Pass gems and move the next billing date forward.

    Returns False, changing nothing, when the user has no subscription or its
    tier is not configured.
    """
    log = logger.bind(node="allocate_subscription_gems", user_id=user_id)
    async with session_scope() as session:
        repo = SQLAlchemyRepo(session)
        subscription = await repo.get_subscription(user_id)
        if subscription is None:
            return False
        tier = find_tier(load_subscription_tiers(config.gems), subscription.tier)
        if tier is None:
            log.warning("Subscription tier {} is not configured", subscription.tier)
            return False

        new_balance = await repo.add_gems(user_id, tier.monthly_gems)
        if new_balance is None:
            return False
        next_billing = advance_billing_date(subscription.next_billing_date, subscription.billing_cycle)
        await repo.set_next_billing_date(user_id, next_billing)
        await repo.insert_purchase(
            user_id=user_id,
            description=f"{tier.title} Battle Pass gems",
            amount=tier.monthly_gems,
            price=Decimal("0.00"),
            receipt=False,
        )

    log.info("Allocated {} Battle Pass gems; balance {}, next billing {}", tier.monthly_gems, new_balance, next_billing)
    return True


async def get_subscription(user_id: str) -> SubscriptionRow | None:
    async with session_scope() as session:
        return await SQLAlchemyRepo(session).get_subscription(user_id)
