"""
Wallet Service - single source of truth for user balances.

Every coin movement goes through here. Balance changes are applied with a
single conditional UPDATE so two games settling against the same user at
once can never push the wallet below zero.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dating_room.config import settings
from dating_room.database.session import get_session
from dating_room.database.models import User, Wallet
from dating_room.services.errors import InsufficientFunds, InvalidStake

logger = logging.getLogger(__name__)


@dataclass
class WalletSnapshot:
    """Read-only copy of a user's wallet row."""
    tg_user_id: int
    balance: int
    bank: int
    wagered: int
    last_work: Optional[datetime] = None
    last_daily: Optional[datetime] = None


@dataclass
class LeaderboardEntry:
    tg_user_id: int
    username: Optional[str]
    total: int


async def _ensure_wallet(
    session: AsyncSession,
    tg_user_id: int,
    username: Optional[str] = None
) -> Wallet:
    """Get the user's wallet, creating the user and wallet if needed."""
    result = await session.execute(
        select(User).where(User.tg_user_id == tg_user_id)
    )
    user = result.scalars().first()

    if not user:
        user = User(tg_user_id=tg_user_id, username=username)
        session.add(user)
        await session.flush()

    result = await session.execute(
        select(Wallet).where(Wallet.user_id == user.id)
    )
    wallet = result.scalars().first()

    if not wallet:
        wallet = Wallet(
            user_id=user.id,
            balance=settings.starting_wallet,
            bank=0,
            wagered=0,
        )
        session.add(wallet)
        await session.flush()

    return wallet


def _snapshot(tg_user_id: int, wallet: Wallet) -> WalletSnapshot:
    return WalletSnapshot(
        tg_user_id=tg_user_id,
        balance=wallet.balance,
        bank=wallet.bank,
        wagered=wallet.wagered,
        last_work=wallet.last_work,
        last_daily=wallet.last_daily,
    )


async def get_wallet(tg_user_id: int, username: Optional[str] = None) -> WalletSnapshot:
    """
    Get the full wallet of a user, creating it with the starting balance.

    Args:
        tg_user_id: Telegram user ID
        username: Optional username stored for new users

    Returns:
        WalletSnapshot
    """
    async_session = get_session()
    async with async_session() as session:
        wallet = await _ensure_wallet(session, tg_user_id, username)
        await session.commit()
        return _snapshot(tg_user_id, wallet)


async def get_balance(tg_user_id: int) -> int:
    """Get user's wallet balance (bank not included)."""
    return (await get_wallet(tg_user_id)).balance


async def adjust_balance(tg_user_id: int, delta: int, reason: str = "") -> int:
    """
    Add ``delta`` (may be negative) to the user's wallet.

    Args:
        tg_user_id: Telegram user ID
        delta: Signed change
        reason: Optional reason for logging

    Returns:
        New balance

    Raises:
        InsufficientFunds: If the change would make the balance negative.
    """
    async_session = get_session()
    async with async_session() as session:
        wallet = await _ensure_wallet(session, tg_user_id)
        user_id = wallet.user_id

        result = await session.execute(
            update(Wallet)
            .where(Wallet.user_id == user_id, Wallet.balance + delta >= 0)
            .values(balance=Wallet.balance + delta)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await session.rollback()
            raise InsufficientFunds()

        new_balance = (await session.execute(
            select(Wallet.balance).where(Wallet.user_id == user_id)
        )).scalar_one()
        await session.commit()

    logger.info(f"Balance {tg_user_id}: {delta:+d} ({reason}) -> {new_balance}")
    return new_balance


async def record_wagered(tg_user_id: int, amount: int) -> None:
    """Add ``amount`` to the user's lifetime wagered counter."""
    if amount <= 0:
        return
    async_session = get_session()
    async with async_session() as session:
        wallet = await _ensure_wallet(session, tg_user_id)
        await session.execute(
            update(Wallet)
            .where(Wallet.user_id == wallet.user_id)
            .values(wagered=Wallet.wagered + amount)
            .execution_options(synchronize_session=False)
        )
        await session.commit()


async def move_to_bank(tg_user_id: int, amount: int) -> WalletSnapshot:
    """
    Move coins between wallet and bank.

    A positive amount deposits, a negative amount withdraws.

    Raises:
        InsufficientFunds: If the source side doesn't hold ``abs(amount)``.
    """
    async_session = get_session()
    async with async_session() as session:
        wallet = await _ensure_wallet(session, tg_user_id)
        result = await session.execute(
            update(Wallet)
            .where(
                Wallet.user_id == wallet.user_id,
                Wallet.balance - amount >= 0,
                Wallet.bank + amount >= 0,
            )
            .values(balance=Wallet.balance - amount, bank=Wallet.bank + amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await session.rollback()
            raise InsufficientFunds()
        await session.commit()
        await session.refresh(wallet)
        logger.info(f"Bank {tg_user_id}: {amount:+d} (wallet {wallet.balance}, bank {wallet.bank})")
        return _snapshot(tg_user_id, wallet)


async def transfer(from_user_id: int, to_user_id: int, amount: int) -> int:
    """
    Transfer coins between users.

    Returns:
        Sender's new balance

    Raises:
        InvalidStake: On a non-positive amount or a transfer to oneself.
        InsufficientFunds: If the sender can't cover it.
    """
    if amount <= 0:
        raise InvalidStake("Enter a valid amount.")
    if from_user_id == to_user_id:
        raise InvalidStake("You can't give to yourself.")

    new_balance = await adjust_balance(from_user_id, -amount, f"transfer to {to_user_id}")
    await adjust_balance(to_user_id, amount, f"transfer from {from_user_id}")
    return new_balance


async def touch_cooldown(tg_user_id: int, field_name: str, when: datetime) -> None:
    """Store the time a cooldown-limited reward was claimed."""
    async_session = get_session()
    async with async_session() as session:
        wallet = await _ensure_wallet(session, tg_user_id)
        setattr(wallet, field_name, when)
        await session.commit()


async def admin_remove(tg_user_id: int, amount: int) -> int:
    """Take up to ``amount`` from the wallet, flooring at zero. Returns the new balance."""
    async_session = get_session()
    async with async_session() as session:
        wallet = await _ensure_wallet(session, tg_user_id)
        wallet.balance = max(0, wallet.balance - amount)
        await session.commit()
        logger.info(f"Admin removed {amount} from {tg_user_id} (new balance: {wallet.balance})")
        return wallet.balance


async def reset_all() -> int:
    """Zero every wallet, bank and wagered counter. Returns rows touched."""
    async_session = get_session()
    async with async_session() as session:
        result = await session.execute(
            update(Wallet).values(balance=0, bank=0, wagered=0)
        )
        await session.commit()
        logger.warning(f"Economy reset: {result.rowcount} wallets cleared")
        return result.rowcount


async def top_wallets(limit: int = 10) -> List[LeaderboardEntry]:
    """Richest users by wallet plus bank."""
    total = (Wallet.balance + Wallet.bank).label("total")
    async_session = get_session()
    async with async_session() as session:
        result = await session.execute(
            select(User.tg_user_id, User.username, total)
            .join(Wallet, Wallet.user_id == User.id)
            .order_by(total.desc())
            .limit(limit)
        )
        return [
            LeaderboardEntry(tg_user_id=row[0], username=row[1], total=row[2])
            for row in result.all()
        ]


async def remember_user(tg_user_id: int, username: Optional[str], first_name: Optional[str]) -> None:
    """Upsert the user's display names so ``@username`` lookups work."""
    async_session = get_session()
    async with async_session() as session:
        result = await session.execute(
            select(User).where(User.tg_user_id == tg_user_id)
        )
        user = result.scalars().first()
        if not user:
            session.add(User(tg_user_id=tg_user_id, username=username, first_name=first_name))
        else:
            user.username = username
            user.first_name = first_name
        await session.commit()


async def find_user_id_by_username(username: str) -> Optional[int]:
    """Resolve a ``@username`` (without the @, any case) to a Telegram user ID."""
    async_session = get_session()
    async with async_session() as session:
        result = await session.execute(
            select(User.tg_user_id).where(func.lower(User.username) == username.lower())
        )
        return result.scalars().first()


class WalletLedger:
    """Ledger interface the game services settle against."""

    async def get_balance(self, user_id: int) -> int:
        return await get_balance(user_id)

    async def adjust_balance(self, user_id: int, delta: int) -> int:
        return await adjust_balance(user_id, delta, "game")

    async def record_wagered(self, user_id: int, amount: int) -> None:
        await record_wagered(user_id, amount)
