from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from endless_novel.storage.ledger.base import GemPurchase, GemUsage
from endless_novel.storage.types import InsertResult, PurchaseRow, UsageRow

_CENT = Decimal("0.01")


def _to_cents(price: Decimal) -> int:
    return int((price.quantize(_CENT, rounding=ROUND_HALF_UP) * 100).to_integral_value())


def _from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(_CENT)


async def insert_purchase(
    session: AsyncSession,
    *,
    user_id: str,
    description: str,
    amount: int,
    price: Decimal,
    status: str = "Completed",
    receipt: bool = True,
) -> InsertResult:
    result = await session.execute(
        sqlite_insert(GemPurchase).values(
            user_id=user_id,
            description=description,
            amount=amount,
            price_cents=_to_cents(price),
            status=status,
            receipt=receipt,
        )
    )
    return InsertResult(id=int(result.lastrowid), inserted=True)


async def insert_usage(
    session: AsyncSession,
    *,
    user_id: str,
    description: str,
    amount: int,
    status: str = "Completed",
) -> InsertResult:
    result = await session.execute(
        sqlite_insert(GemUsage).values(
            user_id=user_id,
            description=description,
            amount=amount,
            status=status,
        )
    )
    return InsertResult(id=int(result.lastrowid), inserted=True)


async def list_purchases(session: AsyncSession, user_id: str) -> list[PurchaseRow]:
    result = await session.execute(
        select(
            GemPurchase.id,
            GemPurchase.user_id,
            GemPurchase.description,
            GemPurchase.amount,
            GemPurchase.price_cents,
            GemPurchase.status,
            GemPurchase.receipt,
            GemPurchase.created_at,
        )
        .where(GemPurchase.user_id == user_id)
        .order_by(GemPurchase.created_at.desc(), GemPurchase.id.desc())
    )
    return [
        PurchaseRow(
            id=int(row[0]),
            user_id=str(row[1]),
            description=str(row[2]),
            amount=int(row[3]),
            price=_from_cents(int(row[4])),
            status=str(row[5]),
            receipt=bool(row[6]),
            created_at=row[7],
        )
        for row in result.all()
    ]


async def list_usage(session: AsyncSession, user_id: str) -> list[UsageRow]:
    result = await session.execute(
        select(
            GemUsage.id,
            GemUsage.user_id,
            GemUsage.description,
            GemUsage.amount,
            GemUsage.status,
            GemUsage.created_at,
        )
        .where(GemUsage.user_id == user_id)
        .order_by(GemUsage.created_at.desc(), GemUsage.id.desc())
    )
    return [
        UsageRow(
            id=int(row[0]),
            user_id=str(row[1]),
            description=str(row[2]),
            amount=int(row[3]),
            status=str(row[4]),
            created_at=row[5],
        )
        for row in result.all()
    ]
