"""
ProjectFlow — Work Timer Service.

Drives the single ActiveTimer slot in the store: start, stop (turning the
elapsed interval into a TimeEntry), and a periodic tick that keeps
`state.timer_elapsed` current while a timer runs.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable

from projectflow.core.actions import (
    AddTimeEntry,
    StartTimer,
    StopTimer,
    TimerTick,
    UpdateTimerDescription,
)
from projectflow.core.billing import DEFAULT_HOURLY_RATE, customer_hourly_rate, with_time_entry_totals
from projectflow.data.models import ActiveTimer, TimeEntry

if TYPE_CHECKING:
    from projectflow.core.store import Store

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimerService:
    def __init__(
        self,
        store: Store,
        clock: Callable[[], datetime] | None = None,
        tick_seconds: float | None = None,
    ) -> None:
        if tick_seconds is None:
            from projectflow.config import settings
            tick_seconds = settings.TIMER_TICK_SECONDS
        self._store = store
        self._clock = clock or _utcnow
        self._tick_seconds = tick_seconds
        self._ticker: asyncio.Task | None = None

    @property
    def active(self) -> ActiveTimer | None:
        return self._store.state.active_timer

    def start(
        self,
        customer_id: str,
        project_id: str,
        task_id: str | None = None,
        description: str = "",
    ) -> ActiveTimer:
        """Start a timer. A timer already running is replaced, not logged."""
        if self.active is not None:
            logger.info("Replacing running timer %s", self.active.id)
        user = self._store.state.user
        timer = ActiveTimer(
            id=f"timer-{uuid.uuid4().hex[:12]}",
            customer_id=customer_id,
            project_id=project_id,
            task_id=task_id,
            description=description,
            start_time=self._clock(),
            user_id=user.id if user else "",
        )
        self._store.dispatch(StartTimer(timer))
        return timer

    def stop(self, hourly_rate: float | None = None) -> TimeEntry | None:
        """Stop the running timer and log the interval as a time entry.

        Without an explicit rate, the customer's billing model decides it.
        Returns None if no timer was running.
        """
        timer = self.active
        if timer is None:
            return None

        end_time = self._clock()
        if hourly_rate is None:
            hourly_rate = self._rate_for(timer.customer_id)
        entry = with_time_entry_totals(TimeEntry(
            id=f"time-{uuid.uuid4().hex[:12]}",
            customer_id=timer.customer_id,
            project_id=timer.project_id,
            task_id=timer.task_id,
            description=timer.description,
            start_time=timer.start_time,
            end_time=end_time,
            hourly_rate=hourly_rate,
            user_id=timer.user_id,
            created_at=end_time,
            updated_at=end_time,
        ))
        self._store.dispatch(StopTimer())
        self._store.dispatch(AddTimeEntry(entry))
        logger.info("Logged %ds for customer %s", entry.duration, entry.customer_id)
        return entry

    def _rate_for(self, customer_id: str) -> float:
        for customer in self._store.state.customers:
            if customer.id == customer_id:
                return customer_hourly_rate(customer)
        return DEFAULT_HOURLY_RATE

    def update_description(self, description: str) -> None:
        self._store.dispatch(UpdateTimerDescription(description))

    def clear(self) -> None:
        """Discard the running timer without logging anything."""
        self._store.dispatch(StopTimer())

    def elapsed_seconds(self) -> int:
        timer = self.active
        if timer is None:
            return 0
        return max(0, int((self._clock() - timer.start_time).total_seconds()))

    def tick(self) -> int:
        elapsed = self.elapsed_seconds()
        self._store.dispatch(TimerTick(elapsed))
        return elapsed

    # ------------------------------------------------------------------
    # Background ticking
    # ------------------------------------------------------------------

    def start_ticking(self) -> None:
        if self._ticker is None or self._ticker.done():
            self._ticker = asyncio.get_running_loop().create_task(self._tick_loop())

    async def _tick_loop(self) -> None:
        while True:
            self.tick()
            await asyncio.sleep(self._tick_seconds)

    async def stop_ticking(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._ticker
            self._ticker = None
