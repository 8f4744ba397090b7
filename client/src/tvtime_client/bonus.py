"""Daily bonus: credit every child once per calendar day.

The check runs from three independent sources (once at startup, on a
fixed poll, and at every local midnight) and is idempotent within a day,
so redundant triggers are harmless.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import date, datetime
from typing import Any

from . import dates
from .context import AppContext
from .errors import DateParseError
from .ledger import TimeLedger

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60

CallLater = Callable[[float, Callable[[], None]], Any]


def days_owed(last_applied: date, today: date, max_days: int) -> int:
    """Whole days between the last applied date and today, capped at max_days.

    Zero or negative when the last applied date is today or later.
    """
    return min((today - last_applied).days, max_days)


class BonusScheduler:
    """Applies owed daily bonuses and guards the window around the write.

    While a bonus is being applied the context's is_processing_bonus flag is
    raised. After a bonus write it stays raised for settle_delay seconds so
    the remote write can land before remote pushes are trusted again.
    """

    def __init__(
        self,
        context: AppContext,
        ledger: TimeLedger,
        bonus_minutes: int = 30,
        max_days: int = 365,
        poll_interval_seconds: float = 60,
        settle_delay_seconds: float = 2.0,
        clock: Callable[[], datetime] = datetime.now,
        call_later: CallLater | None = None,
    ):
        self._context = context
        self._ledger = ledger
        self._bonus_minutes = bonus_minutes
        self._max_days = max_days
        self._poll_interval = poll_interval_seconds
        self._settle_delay = settle_delay_seconds
        self._clock = clock
        self._call_later = call_later
        self._settling = 0

    def check_daily_bonus(self) -> int:
        """Apply any owed bonus. Returns the minutes granted to each child.

        Never raises; the display is notified whatever happens.
        """
        granted = 0
        try:
            granted = self._apply_owed_bonus()
        except Exception:
            logger.exception("Error in daily bonus check")
            self._settling = 0
            self._context.is_processing_bonus = False
        self._context.notify_changed()
        return granted

    def _apply_owed_bonus(self) -> int:
        self._context.is_processing_bonus = True

        today = dates.today(self._clock())
        last_applied = self._load_last_applied()

        if last_applied is None:
            # First run: nothing is owed for days before tracking started.
            self._context.gateway.save_last_midnight_check(today.isoformat())
            logger.info("First bonus check, tracking from %s", today)
            self._lower_flag()
            return 0

        if last_applied == today:
            self._lower_flag()
            return 0

        days = days_owed(last_applied, today, self._max_days)
        if days <= 0:
            logger.warning("Last bonus date %s is after today %s, skipping", last_applied, today)
            self._lower_flag()
            return 0

        bonus = self._bonus_minutes * days
        # The local store is the truth; other processes may have edited it.
        self._ledger.reload()
        self._ledger.grant_all(bonus)
        self._context.gateway.save_last_midnight_check(today.isoformat())
        self._ledger.save()
        logger.info(
            "Granted %d minutes (%d day(s)) to %d children",
            bonus,
            days,
            len(self._ledger.children),
        )
        self._lower_flag_after_settle()
        return bonus

    def _load_last_applied(self) -> date | None:
        raw = self._context.gateway.load_last_midnight_check()
        if not raw:
            return None
        try:
            return dates.parse_check_date(raw)
        except DateParseError:
            logger.warning("Discarding invalid last check date %r", raw)
            self._context.gateway.clear_last_midnight_check()
            return None

    def _lower_flag(self) -> None:
        # A bonus write from an earlier check may still be settling.
        if self._settling == 0:
            self._context.is_processing_bonus = False

    def _lower_flag_after_settle(self) -> None:
        call_later = self._call_later
        if call_later is None:
            try:
                call_later = asyncio.get_running_loop().call_later
            except RuntimeError:
                # No event loop, so no subscription is delivering pushes.
                self._lower_flag()
                return
        self._settling += 1
        call_later(self._settle_delay, self._settled)

    def _settled(self) -> None:
        self._settling = max(0, self._settling - 1)
        self._lower_flag()
        logger.debug("Bonus write settled, accepting remote updates")

    async def run(self) -> None:
        """Check now, then keep checking on the poll and at each midnight."""
        self.check_daily_bonus()
        await asyncio.gather(self._poll_loop(), self._midnight_loop())

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            self.check_daily_bonus()

    async def _midnight_loop(self) -> None:
        await asyncio.sleep(dates.seconds_until_midnight(self._clock()))
        while True:
            logger.info("Midnight reached, checking daily bonus")
            self.check_daily_bonus()
            await asyncio.sleep(SECONDS_PER_DAY)
