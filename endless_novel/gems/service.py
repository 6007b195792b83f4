from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Awaitable, Callable, Protocol

from loguru import logger

from endless_novel.config.schema import AppConfigRoot, GemsConfig
from endless_novel.gems.pricing import GemPackage, can_purchase, compute_total, find_package, load_packages
from endless_novel.storage.db import session_scope
from endless_novel.storage.repo import SQLAlchemyRepo
from endless_novel.storage.types import PurchaseRow, UsageRow
from endless_novel.users.service import UserNotFoundError

Sleep = Callable[[float], Awaitable[None]]


class PurchaseFailedError(RuntimeError):
    pass


class PurchaseInProgressError(RuntimeError):
    pass


class InvalidGemAmountError(ValueError):
    def __init__(self, amount: int):
        super().__init__(f"Gem amount must be positive, got {amount}")
        self.amount = amount


class InsufficientGemsError(ValueError):
    def __init__(self, balance: int, requested: int):
        super().__init__(f"Not enough gems: balance {balance}, requested {requested}")
        self.balance = balance
        self.requested = requested


class BalanceUpdater(Protocol):
    async def get_balance(self, user_id: str) -> int | None: ...

    async def add_gems(self, user_id: str, amount: int) -> int | None: ...


class PurchaseLedger(Protocol):
    async def record_purchase(self, user_id: str, *, description: str, amount: int, price: Decimal) -> None: ...


@dataclass
class PurchaseResult:
    new_balance: int
    amount: int
    price: Decimal
    description: str


@dataclass
class GemHistory:
    balance: int
    purchases: list[PurchaseRow] = field(default_factory=list)
    usage: list[UsageRow] = field(default_factory=list)


class StoredBalance:
    """Balance and ledger collaborator backed by the SQLite store.

    Each call runs in its own session scope so the purchase delay never holds
    a connection open.
    """

    async def get_balance(self, user_id: str) -> int | None:
        async with session_scope() as session:
            return await SQLAlchemyRepo(session).get_gems(user_id)

    async def add_gems(self, user_id: str, amount: int) -> int | None:
        async with session_scope() as session:
            return await SQLAlchemyRepo(session).add_gems(user_id, amount)

    async def record_purchase(self, user_id: str, *, description: str, amount: int, price: Decimal) -> None:
        async with session_scope() as session:
            await SQLAlchemyRepo(session).insert_purchase(
                user_id=user_id,
                description=description,
                amount=amount,
                price=price,
            )


async def purchase_gems(
    amount: int,
    *,
    user_id: str,
    balance: BalanceUpdater,
    delay_s: float,
    config: GemsConfig | None = None,
    price: Decimal | None = None,
    description: str | None = None,
    ledger: PurchaseLedger | None = None,
    sleep: Sleep = asyncio.sleep,
) -> PurchaseResult:
    """Simulate payment, then credit ``amount`` gems through the balance collaborator.

    Raises PurchaseFailedError without touching the balance when the amount is
    not positive, or when the collaborator declines or raises.
    """
    log = logger.bind(node="purchase_gems", user_id=user_id)
    if not can_purchase(amount):
        raise PurchaseFailedError(f"Gem amount must be positive, got {amount}")

    tiers = config.pricing_tiers if config is not None else None
    total = price if price is not None else compute_total(amount, tiers)
    label = description or f"Custom Gems ({amount})"

    await sleep(delay_s)

    try:
        new_balance = await balance.add_gems(user_id, amount)
    except Exception as exc:  # noqa: BLE001
        log.warning("Balance update raised: {}", exc)
        raise PurchaseFailedError("Failed to update gems") from exc
    if new_balance is None:
        log.warning("Balance update declined for amount={}", amount)
        raise PurchaseFailedError("Failed to update gems")

    log.info("Purchased {} gems for {}; balance now {}", amount, total, new_balance)
    if ledger is not None:
        try:
            await ledger.record_purchase(user_id, description=label, amount=amount, price=total)
        except Exception as exc:  # noqa: BLE001
            # Gems are already credited at this point.
            log.warning("Purchase history write failed: {}", exc)

    return PurchaseResult(new_balance=new_balance, amount=amount, price=total, description=label)


class PurchaseSession:
    """One user's purchase flow; at most one purchase may be pending."""

    def __init__(
        self,
        user_id: str,
        config: GemsConfig,
        balance: BalanceUpdater,
        ledger: PurchaseLedger | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.user_id = user_id
        self.config = config
        self.balance = balance
        self.ledger = ledger
        self.packages = load_packages(config)
        self._sleep = sleep
        self._pending = False

    @property
    def pending(self) -> bool:
        return self._pending

    async def _run(self, amount: int, *, price: Decimal | None, description: str | None) -> PurchaseResult:
        if self._pending:
            raise PurchaseInProgressError("A purchase is already in progress")
        self._pending = True
        try:
            return await purchase_gems(
                amount,
                user_id=self.user_id,
                balance=self.balance,
                delay_s=self.config.purchase_delay_s,
                config=self.config,
                price=price,
                description=description,
                ledger=self.ledger,
                sleep=self._sleep,
            )
        finally:
            self._pending = False

    async def purchase(self, amount: int) -> PurchaseResult:
        return await self._run(amount, price=None, description=None)

    async def buy_package(self, package_id: int) -> PurchaseResult:
        package: GemPackage = find_package(self.packages, package_id)
        return await self._run(package.amount, price=package.price, description=package.title)


async def spend_gems(user_id: str, amount: int, description: str) -> int:
    """Deduct gems for content generation and record the usage."""
    if amount <= 0:
        raise InvalidGemAmountError(amount)

    async with session_scope() as session:
        repo = SQLAlchemyRepo(session)
        current = await repo.get_gems(user_id)
        if current is None:
            raise UserNotFoundError(user_id)
        new_balance = await repo.add_gems(user_id, -amount)
        if new_balance is None:
            raise InsufficientGemsError(current, amount)
        await repo.insert_usage(user_id=user_id, description=description, amount=amount)

    logger.bind(node="spend_gems", user_id=user_id).info("Spent {} gems on {!r}", amount, description)
    return new_balance


async def gem_history(user_id: str) -> GemHistory:
    async with session_scope() as session:
        repo = SQLAlchemyRepo(session)
        balance = await repo.get_gems(user_id)
        if balance is None:
            raise UserNotFoundError(user_id)
        return GemHistory(
            balance=balance,
            purchases=await repo.list_purchases(user_id),
            usage=await repo.list_usage(user_id),
        )


def open_purchase_session(user_id: str, config: AppConfigRoot) -> PurchaseSession:
    stored = StoredBalance()
    return PurchaseSession(user_id, config.gems, balance=stored, ledger=stored)
