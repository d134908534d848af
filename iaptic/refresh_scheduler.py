"""Time-triggered purchase refreshes around subscription expiration.

Each known expiring purchase gets a check shortly before and shortly after
its expiration date. Checks for the same subscription never run
concurrently, and a failed check is retried once after a fixed delay.

All mutation happens on the event loop thread, so the ``in_progress``
scan followed by the flag set has no race window. A multi-threaded caller
would need a per-subscription lock instead.

Timers cannot be cancelled. ``clear_schedules`` only drops bookkeeping;
a timer that fires afterwards is made harmless by the ``completed`` and
staleness checks and by the manager having no credential left.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable

from .models import Purchase
from .timers import LoopTimer, Timer
from .utils import now_ms, to_epoch_ms

log = logging.getLogger(__name__)

EXPIRATION_MARGIN_MS = 10_000
RETRY_DELAY_MS = 30_000
POST_CHANGE_DELAY_MS = 10_000
# A timer firing this much earlier than planned is treated as bogus
EARLY_FIRE_TOLERANCE_MS = 10_000

RETRY_PREFIX = "retry-"


@dataclass
class ScheduledRefresh:
    id: str
    subscription_id: str
    scheduled_at: int           # epoch ms
    reason: str
    completed: bool = False
    in_progress: bool = False

    @property
    def is_retry(self) -> bool:
        return self.reason.startswith(RETRY_PREFIX)


def schedule_id(subscription_id: str, scheduled_at: int) -> str:
    return f"{subscription_id}-{scheduled_at}"


class RefreshScheduler:
    def __init__(
        self,
        refresh_purchases: Callable[[], Awaitable[object]],
        timer: Timer | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        self._refresh_purchases = refresh_purchases
        self._timer = timer or LoopTimer()
        self._clock = clock
        self._schedules: dict[str, ScheduledRefresh] = {}

    @property
    def schedules(self) -> list[ScheduledRefresh]:
        return list(self._schedules.values())

    def get(self, refresh_id: str) -> ScheduledRefresh | None:
        return self._schedules.get(refresh_id)

    def __len__(self) -> int:
        return len(self._schedules)

    def schedule_refresh(self, subscription_id: str, date: datetime | int, reason: str) -> ScheduledRefresh:
        """Record a refresh for ``subscription_id`` at ``date`` and arm its timer.

        ``date`` is a datetime or epoch milliseconds. Re-scheduling the same
        subscription for the same instant returns the existing entry.
        Past-due entries are recorded but never armed. Without an event loop
        to arm on, nothing is recorded, so the same call can be repeated
        once a loop is running.
        """
        scheduled_at = date if isinstance(date, int) else to_epoch_ms(date)
        refresh_id = schedule_id(subscription_id, scheduled_at)
        existing = self._schedules.get(refresh_id)
        if existing is not None:
            return existing

        schedule = ScheduledRefresh(
            id=refresh_id,
            subscription_id=subscription_id,
            scheduled_at=scheduled_at,
            reason=reason,
        )
        self._schedules[refresh_id] = schedule
        try:
            self._arm(schedule)
        except RuntimeError:
            del self._schedules[refresh_id]
            log.warning(
                "No running event loop, refresh for %s (%s) not scheduled",
                subscription_id, reason,
            )
        return schedule

    def schedule_purchase_refreshes(self, purchase: Purchase):
        if purchase.expiration_date is None:
            return
        expiration = to_epoch_ms(purchase.expiration_date)
        now = self._clock()
        checks = (
            (expiration - EXPIRATION_MARGIN_MS, "pre-expiration"),
            (expiration + EXPIRATION_MARGIN_MS, "post-expiration"),
        )
        for scheduled_at, reason in checks:
            if scheduled_at > now:
                self.schedule_refresh(purchase.purchase_id, scheduled_at, reason)

    def schedule_post_change_verification(self, subscription_id: str) -> ScheduledRefresh:
        return self.schedule_refresh(
            subscription_id,
            self._clock() + POST_CHANGE_DELAY_MS,
            "post-change-verification",
        )

    def clear_schedules(self):
        self._schedules = {}
        log.debug("Refresh schedules cleared")

    # ── Timer plumbing ─────────────────────────────────────

    def _arm(self, schedule: ScheduledRefresh):
        delay = schedule.scheduled_at - self._clock()
        if delay <= 0:
            return
        if delay > self._timer.max_delay_ms:
            log.debug(
                "Refresh for %s (%s) is too far in the future: %dms",
                schedule.subscription_id, schedule.reason, delay,
            )
            return

        async def fire():
            await self._run(schedule)

        self._timer.arm(delay, fire)

    def _sibling_in_progress(self, subscription_id: str) -> bool:
        return any(
            s.subscription_id == subscription_id and s.in_progress
            for s in self._schedules.values()
        )

    async def _run(self, schedule: ScheduledRefresh):
        if schedule.completed:
            return
        if schedule.scheduled_at - EARLY_FIRE_TOLERANCE_MS > self._clock():
            return

        if self._sibling_in_progress(schedule.subscription_id):
            log.warning(
                "Skipping refresh for %s (%s): another refresh in progress",
                schedule.subscription_id, schedule.reason,
            )
            return

        try:
            log.info("Refreshing subscription %s (%s)", schedule.subscription_id, schedule.reason)
            schedule.in_progress = True
            await self._refresh_purchases()
            schedule.completed = True
        except Exception:
            log.exception("Error refreshing subscription %s", schedule.subscription_id)
            if not schedule.is_retry:
                self.schedule_refresh(
                    schedule.subscription_id,
                    self._clock() + RETRY_DELAY_MS,
                    f"{RETRY_PREFIX}{schedule.reason}",
                )
        finally:
            schedule.in_progress = False
