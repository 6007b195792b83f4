from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

import pytest

from endless_novel.config.schema import AppConfigRoot, GemsConfig
from endless_novel.gems.service import gem_history
from endless_novel.gems.subscriptions import (
    InvalidSubscriptionError,
    advance_billing_date,
    allocate_subscription_gems,
    find_tier,
    first_billing_date,
    get_subscription,
    load_subscription_tiers,
    shift_calendar,
    subscribe,
)
from endless_novel.storage.db import init_db_service, shutdown_db_service
from endless_novel.users.service import UserNotFoundError, create_user, get_user

_NOW = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


def _config(**gems: object) -> AppConfigRoot:
    return AppConfigRoot.model_validate({"gems": {"purchase_delay_s": 0, **gems}})


def test_default_tiers() -> None:
    tiers = load_subscription_tiers(GemsConfig())

    assert [(t.id, t.monthly_gems) for t in tiers] == [("adventurer", 300), ("hero", 800), ("legend", 1500)]
    hero = find_tier(tiers, "hero")
    assert hero is not None
    assert hero.price("monthly") == Decimal("19.99")
    assert hero.price("yearly") == Decimal("199.99")
    assert hero.signup_gems("monthly") == 800
    assert hero.signup_gems("yearly") == 9600
    assert find_tier(tiers, "mythic") is None


def test_yearly_savings_percent() -> None:
    savings = [tier.yearly_savings_percent() for tier in load_subscription_tiers(GemsConfig())]

    assert savings == [17, 17, 17]


def test_duplicate_tier_ids_are_rejected() -> None:
    tier = {"id": "hero", "title": "Hero", "monthly_price": "1", "yearly_price": "10", "monthly_gems": 5}
    with pytest.raises(ValueError):
        GemsConfig.model_validate({"subscription_tiers": [tier, tier]})


@pytest.mark.parametrize(
    ("current", "cycle", "expected"),
    [
        (datetime(2024, 1, 15, tzinfo=timezone.utc), "monthly", datetime(2024, 2, 15, tzinfo=timezone.utc)),
        (datetime(2024, 12, 10, tzinfo=timezone.utc), "monthly", datetime(2025, 1, 10, tzinfo=timezone.utc)),
        (datetime(2025, 1, 31, tzinfo=timezone.utc), "monthly", datetime(2025, 3, 3, tzinfo=timezone.utc)),
        (datetime(2024, 3, 1, tzinfo=timezone.utc), "yearly", datetime(2025, 3, 1, tzinfo=timezone.utc)),
        (datetime(2024, 2, 29, tzinfo=timezone.utc), "yearly", datetime(2025, 3, 1, tzinfo=timezone.utc)),
    ],
)
def test_advance_billing_date(current: datetime, cycle: str, expected: datetime) -> None:
    assert advance_billing_date(current, cycle) == expected


def test_shift_calendar_keeps_time_of_day() -> None:
    moment = datetime(2024, 5, 20, 8, 30, tzinfo=timezone.utc)

    assert shift_calendar(moment, months=14) == datetime(2025, 7, 20, 8, 30, tzinfo=timezone.utc)


def test_first_billing_date_uses_fixed_periods() -> None:
    assert first_billing_date(_NOW, "monthly") == _NOW + timedelta(days=30)
    assert first_billing_date(_NOW, "yearly") == _NOW + timedelta(days=365)


def test_monthly_subscription_and_allocation(tmp_path: Path) -> None:
    async def _run() -> None:
        await init_db_service(tmp_path / "subs.db")
        try:
            config = _config()
            user = await create_user("Ada", "ada@example.com", "ada", config)

            result = await subscribe(user.id, "hero", "monthly", config, now=_NOW)
            assert result.gems_added == 800
            assert result.price == Decimal("19.99")
            assert result.new_balance == 1100
            assert result.next_billing_date == datetime(2024, 2, 14, 12, 0, tzinfo=timezone.utc)

            assert await allocate_subscription_gems(user.id, config) is True
            assert (await get_user(user.id)).gems == 1900

            subscription = await get_subscription(user.id)
            assert subscription is not None
            assert subscription.tier == "hero"
            assert subscription.next_billing_date == datetime(2024, 3, 14, 12, 0, tzinfo=timezone.utc)

            history = await gem_history(user.id)
            assert [(p.description, p.amount, p.price, p.receipt) for p in history.purchases[:2]] == [
                ("Hero Battle Pass gems", 800, Decimal("0.00"), False),
                ("Hero Battle Pass (monthly)", 800, Decimal("19.99"), True),
            ]
        finally:
            await shutdown_db_service()

    asyncio.run(_run())


def test_yearly_subscription_credits_twelve_months(tmp_path: Path) -> None:
    async def _run() -> None:
        await init_db_service(tmp_path / "subs.db")
        try:
            config = _config()
            user = await create_user("Ada", "ada@example.com", "ada", config)

            result = await subscribe(user.id, "legend", "yearly", config, now=_NOW)
            assert result.gems_added == 18000
            assert result.new_balance == 18300
            assert result.next_billing_date == datetime(2025, 1, 14, 12, 0, tzinfo=timezone.utc)

            assert await allocate_subscription_gems(user.id, config) is True
            assert (await get_user(user.id)).gems == 19800
            subscription = await get_subscription(user.id)
            assert subscription is not None
            assert subscription.next_billing_date == datetime(2026, 1, 14, 12, 0, tzinfo=timezone.utc)
        finally:
            await shutdown_db_service()

    asyncio.run(_run())


def test_unknown_tier_changes_nothing(tmp_path: Path) -> None:
    async def _run() -> None:
        await init_db_service(tmp_path / "subs.db")
        try:
            config = _config()
            user = await create_user("Ada", "ada@example.com", "ada", config)

            with pytest.raises(InvalidSubscriptionError):
                await subscribe(user.id, "mythic", "monthly", config, now=_NOW)
            with pytest.raises(InvalidSubscriptionError):
                await subscribe(user.id, "hero", "weekly", config, now=_NOW)
            assert await get_subscription(user.id) is None
            assert await allocate_subscription_gems(user.id, config) is False

            await subscribe(user.id, "adventurer", "monthly", config, now=_NOW)
            before = await get_subscription(user.id)
            balance = (await get_user(user.id)).gems

            hero_only = _config(
                subscription_tiers=[
                    {"id": "hero", "title": "Hero", "monthly_price": "19.99", "yearly_price": "199.99", "monthly_gems": 800}
                ]
            )
            assert await allocate_subscription_gems(user.id, hero_only) is False
            assert (await get_user(user.id)).gems == balance
            assert await get_subscription(user.id) == before
        finally:
            await shutdown_db_service()

    asyncio.run(_run())


def test_subscribe_unknown_user(tmp_path: Path) -> None:
    async def _run() -> None:
        await init_db_service(tmp_path / "subs.db")
        try:
            with pytest.raises(UserNotFoundError):
                await subscribe("missing", "hero", "monthly", _config(), now=_NOW)
        finally:
            await shutdown_db_service()

    asyncio.run(_run())


def test_resubscribing_replaces_the_plan(tmp_path: Path) -> None:
    async def _run() -> None:
        await init_db_service(tmp_path / "subs.db")
        try:
            config = _config()
            user = await create_user("Ada", "ada@example.com", "ada", config)

            await subscribe(user.id, "adventurer", "monthly", config, now=_NOW)
            await subscribe(user.id, "hero", "yearly", config, now=_NOW)

            subscription = await get_subscription(user.id)
            assert subscription is not None
            assert (subscription.tier, subscription.billing_cycle) == ("hero", "yearly")
            assert (await get_user(user.id)).gems == 300 + 300 + 9600
        finally:
            await shutdown_db_service()

    asyncio.run(_run())
