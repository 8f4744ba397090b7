"""Time ledger: tracked children and their minute balances."""

import logging
import time
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from enum import StrEnum

from tvtime_shared import Child

from .context import AppContext
from .errors import ValidationError

logger = logging.getLogger(__name__)


class Direction(StrEnum):
    INCREASE = "add"
    DECREASE = "subtract"


def new_id(taken: Iterable[str]) -> str:
    """Millisecond timestamp id, bumped past any id already taken."""
    used = set(taken)
    candidate = int(time.time() * 1000)
    while str(candidate) in used:
        candidate += 1
    return str(candidate)


def format_duration(minutes: int) -> str:
    """Render minutes as "1h 30m", or "45m" under an hour."""
    hours, mins = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"


class TimeLedger:
    """Add, remove and adjust children. Every mutation is persisted."""

    def __init__(self, context: AppContext, clock: Callable[[], datetime] | None = None):
        self._context = context
        self._clock = clock or (lambda: datetime.now(UTC))

    @property
    def children(self) -> list[Child]:
        return self._context.ledger.children

    def find(self, child_id: str) -> Child | None:
        return next((c for c in self.children if c.id == child_id), None)

    def find_by_name(self, name: str) -> Child | None:
        wanted = name.strip().lower()
        return next((c for c in self.children if c.name.lower() == wanted), None)

    def add_person(self, name: str) -> Child:
        name = name.strip()
        if not name:
            raise ValidationError("Please enter a child's name")
        if self.find_by_name(name) is not None:
            raise ValidationError("A child with this name already exists")

        child = Child(
            id=new_id(c.id for c in self.children),
            name=name,
            time_balance=0,
            created_at=self._clock(),
        )
        self.children.append(child)
        self.save()
        logger.info("Added child %s (%s)", child.name, child.id)
        return child

    def remove_person(self, child_id: str) -> bool:
        child = self.find(child_id)
        if child is None:
            return False
        self.children.remove(child)
        self.save()
        logger.info("Removed child %s (%s)", child.name, child.id)
        return True

    def adjust_time(self, child_id: str, direction: Direction, amount: int) -> Child | None:
        """Add time, or subtract it clamping the balance at zero."""
        direction = Direction(direction)
        if amount < 0:
            raise ValidationError("Amount must not be negative")
        child = self.find(child_id)
        if child is None:
            return None

        if direction == Direction.INCREASE:
            child.time_balance += amount
        else:
            child.time_balance = max(0, child.time_balance - amount)
        self.save()
        logger.debug("Adjusted %s (%s %d), balance %d", child.name, direction, amount, child.time_balance)
        return child

    def grant_all(self, minutes: int) -> None:
        """Add the same amount to every child without persisting."""
        for child in self.children:
            child.time_balance += minutes

    def load(self, children: Iterable[Child]) -> None:
        """Replace the in-memory children without persisting."""
        self._context.ledger.children = list(children)

    def reload(self) -> None:
        """Pick up children another process wrote to the local store.

        Children already in memory are updated in place and keep their identity.
        """
        current = {c.id: c for c in self.children}
        merged: list[Child] = []
        for stored in self._context.gateway.load_children():
            child = current.get(stored.id)
            if child is None:
                child = stored
            else:
                child.name = stored.name
                child.time_balance = stored.time_balance
                child.created_at = stored.created_at
            merged.append(child)
        self._context.ledger.children = merged

    def save(self) -> None:
        self._context.gateway.save_children(self.children, self._context.last_midnight_check)
