from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta

from django.conf import settings
from django.utils import timezone

logger = logging.getLogger(__name__)

WEEKDAYS = ("MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN")

MODE_DAILY = "daily"
MODE_WEEKLY = "weekly"


@dataclass(frozen=True)
class ReminderSchedule:
    """A wall-clock trigger in the local time zone; ``weekday`` is ``None`` for daily ticks."""

    mode: str
    hour: int
    minute: int
    weekday: int | None = None

    @classmethod
    def parse(cls, mode: str, spec: str) -> "ReminderSchedule":
        """Build a schedule from ``"HH:MM"`` or ``"DAY HH:MM"`` (``DAY`` in MON..SUN)."""

        parts = spec.strip().upper().split()
        weekday = None
        if len(parts) == 2:
            if parts[0] not in WEEKDAYS:
                raise ValueError(f"Unknown weekday in schedule {spec!r}.")
            weekday = WEEKDAYS.index(parts[0])
            clock = parts[1]
        elif len(parts) == 1:
            clock = parts[0]
        else:
            raise ValueError(f"Invalid schedule {spec!r}.")

        try:
            hour_text, minute_text = clock.split(":", 1)
            hour, minute = int(hour_text), int(minute_text)
        except ValueError as exc:
            raise ValueError(f"Invalid time in schedule {spec!r}.") from exc
        if not (0 <= hour < 24 and 0 <= minute < 60):
            raise ValueError(f"Time out of range in schedule {spec!r}.")
        return cls(mode=mode, hour=hour, minute=minute, weekday=weekday)

    def next_run_after(self, moment: datetime) -> datetime:
        local = timezone.localtime(moment)
        candidate = local.replace(hour=self.hour, minute=self.minute, second=0, microsecond=0)
        if self.weekday is not None:
            candidate += timedelta(days=(self.weekday - candidate.weekday()) % 7)
        step = timedelta(days=7 if self.weekday is not None else 1)
        while candidate <= local:
            candidate += step
        return candidate


def configured_schedules() -> list[ReminderSchedule]:
    return [
        ReminderSchedule.parse(MODE_DAILY, getattr(settings, "POLICY_REMINDER_DAILY_AT", "09:00")),
        ReminderSchedule.parse(MODE_WEEKLY, getattr(settings, "POLICY_REMINDER_WEEKLY_AT", "MON 08:00")),
    ]


class ReminderScheduler:
    """Timestamp-tracking loop that fires each schedule once per due time.

    ``run_tick`` receives the schedule mode and is expected to handle its own
    errors; anything it raises is logged and the loop keeps going.
    """

    def __init__(self, *, schedules, run_tick, clock=timezone.now, sleep=None, poll_seconds=None):
        self.schedules = list(schedules)
        self.run_tick = run_tick
        self.clock = clock
        self.sleep = sleep or time.sleep
        self.poll_seconds = poll_seconds or int(
            getattr(settings, "POLICY_REMINDER_SCHEDULER_POLL_SECONDS", 30)
        )
        started = self.clock()
        self.next_runs = {schedule.mode: schedule.next_run_after(started) for schedule in self.schedules}

    def due(self, now: datetime) -> list[ReminderSchedule]:
        return [schedule for schedule in self.schedules if self.next_runs[schedule.mode] <= now]

    def step(self) -> list[str]:
        """Run every schedule that is due now. Returns the modes that fired."""

        now = self.clock()
        fired = []
        for schedule in self.due(now):
            try:
                self.run_tick(schedule.mode)
            except Exception:
                logger.exception("reminder tick failed", extra={"mode": schedule.mode})
            fired.append(schedule.mode)
            self.next_runs[schedule.mode] = schedule.next_run_after(now)
        return fired

    def seconds_until_next(self) -> float:
        upcoming = min(self.next_runs.values())
        remaining = (upcoming - self.clock()).total_seconds()
        return max(0.0, min(remaining, float(self.poll_seconds)))

    def run_forever(self, *, max_iterations: int | None = None) -> None:
        iterations = 0
        while max_iterations is None or iterations < max_iterations:
            self.step()
            self.sleep(self.seconds_until_next())
            iterations += 1
