"""
app/scheduler/recurring.py

Timer-independent recurring task abstraction.

A RecurringTask pairs a cron schedule (stored as data) with a plain action.
Due-ness is computed from an explicit clock value, so tasks can be driven by
APScheduler in production and invoked directly under a fixed clock in tests.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from apscheduler.triggers.cron import CronTrigger

Clock = Callable[[], datetime]

_ONE_MICROSECOND = timedelta(microseconds=1)


def system_clock() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def build_cron_trigger(expression: str, *, timezone_name: str = "UTC") -> CronTrigger:
    """Parse a standard 5-field cron string. Raises ValueError if invalid."""
    return CronTrigger.from_crontab(expression, timezone=timezone_name)


@dataclass(frozen=True)
class RecurringTask:
    name: str
    schedule: str
    action: Callable[[], Any]
    timezone_name: str = "UTC"

    def trigger(self) -> CronTrigger:
        return build_cron_trigger(self.schedule, timezone_name=self.timezone_name)

    def next_run_after(self, moment: datetime) -> datetime | None:
        """First fire time strictly after ``moment``."""
        return self.trigger().get_next_fire_time(None, as_utc(moment) + _ONE_MICROSECOND)

    def is_due(self, *, last_run: datetime | None, now: datetime) -> bool:
        """True when a fire time falls in (last_run, now]; always due if never run."""
        if last_run is None:
            return True
        next_fire = self.next_run_after(last_run)
        return next_fire is not None and next_fire <= as_utc(now)

    def run(self) -> Any:
        return self.action()
