"""Work and daily rewards with cooldowns."""

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from dating_room.services import wallet_service
from dating_room.utils import utc_now

logger = logging.getLogger(__name__)

WORK_COOLDOWN = timedelta(minutes=10)
WORK_MIN, WORK_MAX = 200, 700

DAILY_COOLDOWN = timedelta(hours=24)
DAILY_MIN, DAILY_MAX = 700, 4500


@dataclass
class RewardResult:
    """Result of a work/daily claim."""
    claimed: bool
    amount: int = 0
    new_balance: int = 0
    remaining: Optional[timedelta] = None


def cooldown_remaining(
    last: Optional[datetime],
    cooldown: timedelta,
    now: datetime
) -> Optional[timedelta]:
    """Time left before the next claim, or None if it is available."""
    if last is None:
        return None
    # SQLite hands datetimes back without tzinfo
    if last.tzinfo is None:
        last = last.replace(tzinfo=timezone.utc)
    remaining = cooldown - (now - last)
    if remaining <= timedelta(0):
        return None
    return remaining


async def _claim(
    user_id: int,
    field_name: str,
    cooldown: timedelta,
    low: int,
    high: int,
    rng: random.Random,
    now: Optional[datetime]
) -> RewardResult:
    now = now or utc_now()
    wallet = await wallet_service.get_wallet(user_id)
    remaining = cooldown_remaining(getattr(wallet, field_name), cooldown, now)
    if remaining is not None:
        return RewardResult(claimed=False, new_balance=wallet.balance, remaining=remaining)

    amount = rng.randint(low, high)
    await wallet_service.touch_cooldown(user_id, field_name, now)
    new_balance = await wallet_service.adjust_balance(user_id, amount, field_name)
    return RewardResult(claimed=True, amount=amount, new_balance=new_balance)


async def claim_work(
    user_id: int,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None
) -> RewardResult:
    """Pay 200-700 coins, at most once every ten minutes."""
    return await _claim(
        user_id, "last_work", WORK_COOLDOWN, WORK_MIN, WORK_MAX, rng or random, now
    )


async def claim_daily(
    user_id: int,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None
) -> RewardResult:
    """Pay 700-4500 coins, at most once a day."""
    return await _claim(
        user_id, "last_daily", DAILY_COOLDOWN, DAILY_MIN, DAILY_MAX, rng or random, now
    )
