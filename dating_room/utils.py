"""Utility functions for the bot."""

import re
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

_AMOUNT_RE = re.compile(r"^([0-9]*\.?[0-9]+)([km])?$")
_SUFFIXES = {"k": 1_000, "m": 1_000_000}


def utc_now() -> datetime:
    """
    Get current UTC time.

    Returns:
        Current UTC datetime with timezone info
    """
    return datetime.now(timezone.utc)


def parse_amount(arg: Union[str, int, None], available: int = 0) -> Optional[int]:
    """
    Parse a user-typed coin amount.

    Supports plain numbers, thousands separators ("1,000"), ``k``/``m``
    suffixes ("2.5k" -> 2500) and the words ``all`` / ``half`` which are
    resolved against ``available``.

    Args:
        arg: Raw argument from the command
        available: Balance used to resolve ``all`` and ``half``

    Returns:
        Whole amount, or None when the argument is missing or malformed
    """
    if arg is None or arg == "":
        return None
    if isinstance(arg, int):
        return arg

    text = str(arg).strip().lower()
    if text == "all":
        return available
    if text == "half":
        return available // 2

    cleaned = text.replace(",", "").replace(" ", "")
    match = _AMOUNT_RE.match(cleaned)
    if not match:
        return None

    number = float(match.group(1))
    suffix = match.group(2)
    if suffix:
        number *= _SUFFIXES[suffix]
    return int(number)


def format_currency(amount: int) -> str:
    """Render an amount as ``$1,234``."""
    return f"${amount:,}"


def format_cooldown(remaining: timedelta) -> str:
    """Render a remaining cooldown as ``"9m 5s"``."""
    total = max(0, int(remaining.total_seconds()))
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m {seconds}s"
