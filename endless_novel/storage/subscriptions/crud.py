from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from endless_novel.storage.subscriptions.base import Subscription
from endless_novel.storage.types import SubscriptionRow


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without an offset.
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


async def get_subscription(session: AsyncSession, user_id: str) -> SubscriptionRow | None:
    result = await session.execute(
        select(
            Subscription.user_id,
            Subscription.tier,
            Subscription.billing_cycle,
            Subscription.start_date,
            Subscription.next_billing_date,
        ).where(Subscription.user_id == user_id)
    )
    row = result.one_or_none()
    if row is None:
        return None
    return SubscriptionRow(
        user_id=str(row[0]),
        tier=str(row[1]),
        billing_cycle=str(row[2]),
        start_date=_as_utc(row[3]),
        next_billing_date=_as_utc(row[4]),
    )


async def upsert_subscription(
    session: AsyncSession,
    *,
    user_id: str,
    tier: str,
    billing_cycle: str,
    start_date: datetime,
    next_billing_date: datetime,
) -> None:
    values = {
        "tier": tier,
        "billing_cycle": billing_cycle,
        "start_date": start_date,
        "next_billing_date": next_billing_date,
    }
    stmt = (
        sqlite_insert(Subscription)
        .values(user_id=user_id, **values)
        .on_conflict_do_update(index_elements=[Subscription.user_id], set_=values)
    )
    await session.execute(stmt)


async def set_next_billing_date(session: AsyncSession, user_id: str, next_billing_date: datetime) -> bool:
    result = await session.execute(
        update(Subscription)
        .where(Subscription.user_id == user_id)
        .values(next_billing_date=next_billing_date)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
