"""Custom chores: named shortcuts that grant a fixed amount of time."""

import logging
from collections.abc import Iterable

from tvtime_shared import CHORE_TIMES, Child, Chore

from .context import AppContext
from .errors import ValidationError
from .ledger import Direction, TimeLedger, new_id

logger = logging.getLogger(__name__)


class ChoreBook:
    def __init__(self, context: AppContext, ledger: TimeLedger):
        self._context = context
        self._ledger = ledger

    @property
    def chores(self) -> list[Chore]:
        return self._context.ledger.chores

    def find(self, chore_id: str) -> Chore | None:
        return next((c for c in self.chores if c.id == chore_id), None)

    def find_by_name(self, name: str) -> Chore | None:
        wanted = name.strip().lower()
        return next((c for c in self.chores if c.name.lower() == wanted), None)

    def add(self, name: str, time: int) -> Chore:
        name = self._validate(name, time)
        chore = Chore(id=new_id(c.id for c in self.chores), name=name, time=time)
        self.chores.append(chore)
        self.save()
        logger.info("Added chore %s (%d min)", chore.name, chore.time)
        return chore

    def edit(self, chore_id: str, name: str, time: int) -> Chore | None:
        """Rename and re-time a chore. Unknown ids are ignored."""
        chore = self.find(chore_id)
        if chore is None:
            return None
        chore.name = self._validate(name, time, exclude_id=chore_id)
        chore.time = time
        self.save()
        logger.info("Updated chore %s (%d min)", chore.name, chore.time)
        return chore

    def delete(self, chore_id: str) -> bool:
        chore = self.find(chore_id)
        if chore is None:
            return False
        self.chores.remove(chore)
        self.save()
        logger.info("Deleted chore %s", chore.name)
        return True

    def grant(self, chore_id: str, child_id: str) -> Child | None:
        """Credit a child with the chore's time."""
        chore = self.find(chore_id)
        if chore is None:
            return None
        return self._ledger.adjust_time(child_id, Direction.INCREASE, chore.time)

    def load(self, chores: Iterable[Chore]) -> None:
        self._context.ledger.chores = list(chores)

    def save(self) -> None:
        self._context.gateway.save_chores(self.chores)

    def _validate(self, name: str, time: int, exclude_id: str | None = None) -> str:
        name = name.strip()
        if not name:
            raise ValidationError("Please enter a chore name")
        if time not in CHORE_TIMES:
            raise ValidationError(f"Chore time must be one of {', '.join(map(str, CHORE_TIMES))} minutes")
        if any(c.id != exclude_id and c.name.lower() == name.lower() for c in self.chores):
            raise ValidationError("A chore with this name already exists")
        return name
