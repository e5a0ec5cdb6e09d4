"""In-memory stand-ins shared by the test suites."""

from typing import Dict

from dating_room.services.errors import InsufficientFunds


class FakeLedger:
    """Dict-backed ledger with the same contract as WalletLedger."""

    def __init__(self, balances: Dict[int, int] = None):
        self.balances: Dict[int, int] = dict(balances or {})
        self.wagered: Dict[int, int] = {}

    async def get_balance(self, user_id: int) -> int:
        return self.balances.get(user_id, 0)

    async def adjust_balance(self, user_id: int, delta: int) -> int:
        new_balance = self.balances.get(user_id, 0) + delta
        if new_balance < 0:
            raise InsufficientFunds()
        self.balances[user_id] = new_balance
        return new_balance

    async def record_wagered(self, user_id: int, amount: int) -> None:
        self.wagered[user_id] = self.wagered.get(user_id, 0) + amount

    def total(self) -> int:
        return sum(self.balances.values())


class SequenceRandom:
    """random_func replacement that plays back fixed values."""

    def __init__(self, *values: float):
        self._values = list(values)
        self._index = 0

    def __call__(self) -> float:
        value = self._values[self._index % len(self._values)]
        self._index += 1
        return value
