"""Application context shared by the ledger, scheduler and reconciler."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from tvtime_shared import Child, Chore

from .persistence import PersistenceGateway

logger = logging.getLogger(__name__)

ChangeListener = Callable[[], None]


@dataclass
class FamilyLedger:
    """The in-memory family aggregate: children in insertion order and chores."""

    children: list[Child] = field(default_factory=list)
    chores: list[Chore] = field(default_factory=list)


class AppContext:
    """Owns the family ledger and the bonus-in-progress flag.

    is_processing_bonus is raised and lowered only by the bonus scheduler
    and read only by the reconciler, at the moment it handles a push.
    """

    def __init__(self, gateway: PersistenceGateway):
        self.gateway = gateway
        self.ledger = FamilyLedger()
        self.is_processing_bonus = False
        self._listeners: list[ChangeListener] = []

    @property
    def last_midnight_check(self) -> str | None:
        """Raw stored date through which the daily bonus was applied."""
        return self.gateway.load_last_midnight_check()

    def add_listener(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def notify_changed(self) -> None:
        """Ask the display layer to re-render. Listener failures are logged."""
        for listener in self._listeners:
            try:
                listener()
            except Exception:
                logger.exception("Change listener failed")
