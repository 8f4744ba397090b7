"""Stepped time-amount selector used when adjusting a child's balance."""

from typing import Final

from tvtime_shared import Child

from .ledger import Direction, TimeLedger

# Ordered from most negative to most positive; adding steps right.
TIME_AMOUNTS: Final = (-60, -30, -15, -10, -5, 0, 5, 10, 15, 30, 60)
_ZERO_INDEX: Final = TIME_AMOUNTS.index(0)


def format_amount(amount: int) -> str:
    if amount == 0:
        return "0"
    sign = "+" if amount > 0 else "-"
    magnitude = abs(amount)
    if magnitude == 60:
        return f"{sign}1 hour"
    return f"{sign}{magnitude} min"


class AmountSelector:
    def __init__(self, ledger: TimeLedger):
        self._ledger = ledger
        self._index = _ZERO_INDEX

    @property
    def amount(self) -> int:
        return TIME_AMOUNTS[self._index]

    def reset(self) -> None:
        self._index = _ZERO_INDEX

    def step_up(self) -> int:
        self._index = min(self._index + 1, len(TIME_AMOUNTS) - 1)
        return self.amount

    def step_down(self) -> int:
        self._index = max(self._index - 1, 0)
        return self.amount

    def apply(self, child_id: str) -> Child | None:
        """Apply the selected amount to a child. Zero changes nothing."""
        amount = self.amount
        if amount == 0:
            return self._ledger.find(child_id)
        direction = Direction.INCREASE if amount > 0 else Direction.DECREASE
        return self._ledger.adjust_time(child_id, direction, abs(amount))
