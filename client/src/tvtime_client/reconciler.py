"""Reconciles remote family snapshots with local state."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from tvtime_shared import FamilyDocument

from . import dates
from .chores import ChoreBook
from .context import AppContext
from .ledger import TimeLedger

logger = logging.getLogger(__name__)


class Decision(StrEnum):
    ACCEPTED = "accepted"
    IGNORED_PROCESSING = "ignored_processing"
    IGNORED_STALE = "ignored_stale"
    IGNORED_EMPTY = "ignored_empty"


@dataclass(frozen=True)
class RemoteSnapshot:
    document: FamilyDocument


@dataclass(frozen=True)
class RemoteError:
    error: Exception


RemoteEvent = RemoteSnapshot | RemoteError


class Reconciler:
    """Sole consumer of remote events; decides whether a push overwrites local state.

    Accepting a push only updates local state. It never writes back to the
    remote document.
    """

    def __init__(
        self,
        context: AppContext,
        ledger: TimeLedger,
        chores: ChoreBook,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._context = context
        self._ledger = ledger
        self._chores = chores
        self._clock = clock

    async def consume(self, channel: "asyncio.Queue[RemoteEvent]") -> None:
        """Handle events one at a time until cancelled."""
        while True:
            event = await channel.get()
            try:
                self.handle(event)
            except Exception:
                logger.exception("Failed to reconcile remote event")
            finally:
                channel.task_done()

    def handle(self, event: RemoteEvent) -> Decision | None:
        if isinstance(event, RemoteError):
            logger.warning("Firestore sync error: %s", event.error)
            self._context.gateway.mark_offline()
            return None

        self._context.gateway.mark_online()
        self.handle_chores(event.document)
        return self.handle_children(event.document)

    def handle_chores(self, document: FamilyDocument) -> bool:
        """Take the remote chores whenever present; last writer wins."""
        if document.custom_chores is None:
            return False
        self._chores.load(document.custom_chores)
        self._context.gateway.save_local_chores(document.custom_chores)
        self._context.notify_changed()
        return True

    def handle_children(self, document: FamilyDocument) -> Decision:
        if document.children is None:
            return Decision.IGNORED_EMPTY

        if self._context.is_processing_bonus:
            logger.info("Ignoring cloud sync - processing daily bonus")
            return Decision.IGNORED_PROCESSING

        today = dates.today(self._clock())
        local_check = dates.parse_optional_check_date(self._context.last_midnight_check)
        remote_check = dates.parse_optional_check_date(document.last_midnight_check)

        if local_check == today and (remote_check is None or remote_check < today):
            logger.info("Ignoring cloud sync - local data has today's bonus, cloud data is older")
            return Decision.IGNORED_STALE

        self._ledger.load(document.children)
        self._context.gateway.save_local_children(document.children)

        # Remote children already include bonuses through remote_check.
        if remote_check is not None and remote_check <= today and (
            local_check is None or remote_check > local_check
        ):
            self._context.gateway.save_last_midnight_check(remote_check.isoformat(), sync=False)

        self._context.notify_changed()
        logger.info("Synced %d children from cloud", len(document.children))
        return Decision.ACCEPTED
