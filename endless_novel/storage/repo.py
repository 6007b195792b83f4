from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from endless_novel.storage.kv import crud as kv_crud
from endless_novel.storage.ledger import crud as ledger_crud
from endless_novel.storage.subscriptions import crud as subscriptions_crud
from endless_novel.storage.types import InsertResult, PurchaseRow, SubscriptionRow, UsageRow, UserRow
from endless_novel.storage.users import crud as users_crud


class SQLAlchemyRepo:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_kv(self, key: str) -> str | None:
        return await kv_crud.get_value(self.session, key)

    async def set_kv(self, key: str, value: str) -> None:
        await kv_crud.set_value(self.session, key, value)

    async def delete_kv(self, key: str) -> bool:
        return await kv_crud.delete_value(self.session, key)

    async def list_kv_keys(self, prefix: str = "") -> list[str]:
        return await kv_crud.list_keys(self.session, prefix)

    async def create_user(
        self,
        *,
        user_id: str,
        name: str,
        username: str,
        email: str,
        gems: int,
        profile_visibility: str = "public",
    ) -> InsertResult:
        return await users_crud.create_user(
            self.session,
            user_id=user_id,
            name=name,
            username=username,
            email=email,
            gems=gems,
            profile_visibility=profile_visibility,
        )

    async def get_user(self, user_id: str) -> UserRow | None:
        return await users_crud.get_user(self.session, user_id)

    async def get_user_by_username(self, username: str) -> UserRow | None:
        return await users_crud.get_user_by_username(self.session, username)

    async def get_gems(self, user_id: str) -> int | None:
        return await users_crud.get_gems(self.session, user_id)

    async def add_gems(self, user_id: str, amount: int) -> int | None:
        return await users_crud.add_gems(self.session, user_id, amount)

    async def update_profile(self, user_id: str, values: dict[str, Any]) -> UserRow | None:
        return await users_crud.update_profile(self.session, user_id, values)

    async def insert_purchase(
        self,
        *,
        user_id: str,
        description: str,
        amount: int,
        price: Decimal,
        status: str = "Completed",
        receipt: bool = True,
    ) -> InsertResult:
        return await ledger_crud.insert_purchase(
            self.session,
            user_id=user_id,
            description=description,
            amount=amount,
            price=price,
            status=status,
            receipt=receipt,
        )

    async def insert_usage(
        self,
        *,
        user_id: str,
        description: str,
        amount: int,
        status: str = "Completed",
    ) -> InsertResult:
        return await ledger_crud.insert_usage(
            self.session,
            user_id=user_id,
            description=description,
            amount=amount,
            status=status,
        )

    async def list_purchases(self, user_id: str) -> list[PurchaseRow]:
        return await ledger_crud.list_purchases(self.session, user_id)

    async def list_usage(self, user_id: str) -> list[UsageRow]:
        return await ledger_crud.list_usage(self.session, user_id)

    async def get_subscription(self, user_id: str) -> SubscriptionRow | None:
        return await subscriptions_crud.get_subscription(self.session, user_id)

    async def upsert_subscription(
        self,
        *,
        user_id: str,
        tier: str,
        billing_cycle: str,
        start_date: datetime,
        next_billing_date: datetime,
    ) -> None:
        await subscriptions_crud.upsert_subscription(
            self.session,
            user_id=user_id,
            tier=tier,
            billing_cycle=billing_cycle,
            start_date=start_date,
            next_billing_date=next_billing_date,
        )

    async def set_next_billing_date(self, user_id: str, next_billing_date: datetime) -> bool:
        return await subscriptions_crud.set_next_billing_date(self.session, user_id, next_billing_date)
