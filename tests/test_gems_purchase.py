from __future__ import annotations

import asyncio
from decimal import Decimal
from pathlib import Path

import pytest

from endless_novel.config.schema import AppConfigRoot, GemsConfig
from endless_novel.gems.pricing import UnknownPackageError
from endless_novel.gems.service import (
    InsufficientGemsError,
    InvalidGemAmountError,
    PurchaseFailedError,
    PurchaseInProgressError,
    PurchaseSession,
    gem_history,
    open_purchase_session,
    purchase_gems,
    spend_gems,
)
from endless_novel.storage.db import init_db_service, shutdown_db_service
from endless_novel.users.service import UserNotFoundError, create_user


class _MemoryBalance:
    def __init__(self, balances: dict[str, int]):
        self.balances = dict(balances)
        self.calls: list[tuple[str, int]] = []

    async def get_balance(self, user_id: str) -> int | None:
        return self.balances.get(user_id)

    async def add_gems(self, user_id: str, amount: int) -> int | None:
        self.calls.append((user_id, amount))
        if user_id not in self.balances:
            return None
        self.balances[user_id] += amount
        return self.balances[user_id]


class _DecliningBalance(_MemoryBalance):
    async def add_gems(self, user_id: str, amount: int) -> int | None:
        self.calls.append((user_id, amount))
        return None


class _RaisingBalance(_MemoryBalance):
    async def add_gems(self, user_id: str, amount: int) -> int | None:
        self.calls.append((user_id, amount))
        raise ConnectionError("store unavailable")


class _Ledger:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.entries: list[tuple[str, str, int, Decimal]] = []

    async def record_purchase(self, user_id: str, *, description: str, amount: int, price: Decimal) -> None:
        if self.fail:
            raise RuntimeError("ledger down")
        self.entries.append((user_id, description, amount, price))


def _recording_sleep(delays: list[float]):
    async def _sleep(delay: float) -> None:
        delays.append(delay)

    return _sleep


def test_purchase_credits_gems_after_delay() -> None:
    async def _run() -> None:
        balance = _MemoryBalance({"u1": 300})
        ledger = _Ledger()
        delays: list[float] = []

        result = await purchase_gems(
            100,
            user_id="u1",
            balance=balance,
            delay_s=1.5,
            ledger=ledger,
            sleep=_recording_sleep(delays),
        )

        assert result.new_balance == 400
        assert result.price == Decimal("5.00")
        assert result.description == "Custom Gems (100)"
        assert delays == [1.5]
        assert ledger.entries == [("u1", "Custom Gems (100)", 100, Decimal("5.00"))]

    asyncio.run(_run())


def test_declined_purchase_never_changes_balance() -> None:
    async def _run() -> None:
        balance = _DecliningBalance({"u1": 300})
        ledger = _Ledger()

        for _ in range(3):
            with pytest.raises(PurchaseFailedError):
                await purchase_gems(
                    50,
                    user_id="u1",
                    balance=balance,
                    delay_s=0,
                    ledger=ledger,
                    sleep=_recording_sleep([]),
                )

        assert balance.balances["u1"] == 300
        assert len(balance.calls) == 3
        assert ledger.entries == []

    asyncio.run(_run())


def test_raising_collaborator_becomes_purchase_failure() -> None:
    async def _run() -> None:
        balance = _RaisingBalance({"u1": 300})

        with pytest.raises(PurchaseFailedError) as excinfo:
            await purchase_gems(10, user_id="u1", balance=balance, delay_s=0, sleep=_recording_sleep([]))

        assert isinstance(excinfo.value.__cause__, ConnectionError)
        assert balance.balances["u1"] == 300

    asyncio.run(_run())


@pytest.mark.parametrize("amount", [0, -10])
def test_non_positive_amount_fails_without_waiting(amount: int) -> None:
    async def _run() -> None:
        balance = _MemoryBalance({"u1": 300})
        delays: list[float] = []

        with pytest.raises(PurchaseFailedError):
            await purchase_gems(amount, user_id="u1", balance=balance, delay_s=1.5, sleep=_recording_sleep(delays))

        assert delays == []
        assert balance.calls == []

    asyncio.run(_run())


def test_ledger_failure_does_not_undo_purchase() -> None:
    async def _run() -> None:
        balance = _MemoryBalance({"u1": 0})

        result = await purchase_gems(
            20,
            user_id="u1",
            balance=balance,
            delay_s=0,
            ledger=_Ledger(fail=True),
            sleep=_recording_sleep([]),
        )

        assert result.new_balance == 20
        assert balance.balances["u1"] == 20

    asyncio.run(_run())


def test_session_rejects_second_purchase_while_pending() -> None:
    async def _run() -> None:
        gate = asyncio.Event()

        async def _gated_sleep(_delay: float) -> None:
            await gate.wait()

        balance = _MemoryBalance({"u1": 300})
        session = PurchaseSession("u1", GemsConfig(), balance=balance, sleep=_gated_sleep)

        first = asyncio.create_task(session.purchase(100))
        await asyncio.sleep(0)
        assert session.pending is True

        with pytest.raises(PurchaseInProgressError):
            await session.purchase(5)

        gate.set()
        result = await first

        assert result.new_balance == 400
        assert session.pending is False
        assert balance.calls == [("u1", 100)]

    asyncio.run(_run())


def test_session_clears_pending_after_failure() -> None:
    async def _run() -> None:
        session = PurchaseSession("u1", GemsConfig(), balance=_DecliningBalance({}), sleep=_recording_sleep([]))

        with pytest.raises(PurchaseFailedError):
            await session.purchase(10)

        assert session.pending is False

    asyncio.run(_run())


def test_buy_package_uses_package_price_and_title() -> None:
    async def _run() -> None:
        balance = _MemoryBalance({"u1": 300})
        ledger = _Ledger()
        session = PurchaseSession("u1", GemsConfig(), balance=balance, ledger=ledger, sleep=_recording_sleep([]))

        result = await session.buy_package(2)

        assert result.new_balance == 550
        assert result.price == Decimal("10.00")
        assert ledger.entries == [("u1", "Adventurer Pack", 250, Decimal("10.00"))]

        with pytest.raises(UnknownPackageError):
            await session.buy_package(99)
        assert session.pending is False

    asyncio.run(_run())


def _config() -> AppConfigRoot:
    return AppConfigRoot.model_validate({"gems": {"purchase_delay_s": 0}})


def test_stored_purchase_and_history(tmp_path: Path) -> None:
    async def _run() -> None:
        await init_db_service(tmp_path / "gems.db")
        try:
            config = _config()
            user = await create_user("Reader", "reader@example.com", "reader", config)
            assert user.gems == 300

            session = open_purchase_session(user.id, config)
            result = await session.purchase(100)
            assert result.new_balance == 400

            history = await gem_history(user.id)
            assert history.balance == 400
            assert [(p.description, p.amount, p.price, p.receipt) for p in history.purchases] == [
                ("Custom Gems (100)", 100, Decimal("5.00"), True),
                ("Welcome Package", 300, Decimal("0.00"), False),
            ]
            assert history.usage == []
        finally:
            await shutdown_db_service()

    asyncio.run(_run())


def test_stored_purchase_for_unknown_user_fails(tmp_path: Path) -> None:
    async def _run() -> None:
        await init_db_service(tmp_path / "gems.db")
        try:
            session = open_purchase_session("missing", _config())
            with pytest.raises(PurchaseFailedError):
                await session.purchase(10)
        finally:
            await shutdown_db_service()

    asyncio.run(_run())


def test_spend_gems_records_usage_and_rejects_overdraft(tmp_path: Path) -> None:
    async def _run() -> None:
        await init_db_service(tmp_path / "gems.db")
        try:
            user = await create_user("Reader", "reader@example.com", "reader", _config())

            assert await spend_gems(user.id, 50, "Chapter generation") == 250

            with pytest.raises(InsufficientGemsError) as excinfo:
                await spend_gems(user.id, 1000, "Whole novel")
            assert excinfo.value.balance == 250

            with pytest.raises(UserNotFoundError):
                await spend_gems("missing", 1, "Nothing")

            history = await gem_history(user.id)
            assert history.balance == 250
            assert [(u.description, u.amount) for u in history.usage] == [("Chapter generation", 50)]
        finally:
            await shutdown_db_service()

    asyncio.run(_run())


@pytest.mark.parametrize("amount", [0, -5])
def test_spend_gems_rejects_non_positive_amounts(tmp_path: Path, amount: int) -> None:
    async def _run() -> None:
        await init_db_service(tmp_path / "gems.db")
        try:
            user = await create_user("Reader", "reader@example.com", "reader", _config())

            with pytest.raises(InvalidGemAmountError):
                await spend_gems(user.id, amount, "Nothing")

            history = await gem_history(user.id)
            assert history.balance == 300
            assert history.usage == []
        finally:
            await shutdown_db_service()

    asyncio.run(_run())
