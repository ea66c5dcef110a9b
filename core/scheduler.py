"""Background scheduler that triggers automated generation runs."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional
from zoneinfo import ZoneInfo


@dataclass
class SchedulerConfig:
    enabled: bool = False
    timezone: str = "UTC"
    interval_minutes: Optional[float] = None
    cron: Optional[str] = "0 6 * * *"

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "SchedulerConfig":
        data = data or {}
        interval = data.get("interval_minutes")
        return cls(
            enabled=bool(data.get("enabled", False)),
            timezone=str(data.get("timezone") or "UTC"),
            interval_minutes=float(interval) if interval not in (None, "") else None,
            cron=(str(data["cron"]).strip() or None) if data.get("cron") else None,
        )


class RunScheduler:
    """Triggers ``RunController.start`` on a cron expression or a fixed interval."""

    def __init__(self, controller, config: SchedulerConfig, logger=None) -> None:
        self.controller = controller
        self.config = config
        self.logger = logger
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.next_run_at: Optional[datetime] = None
        self._tzinfo = self._resolve_timezone(config.timezone)

    def start(self) -> None:
        if not self.config.enabled:
            return
        if self._thread and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self._run_forever, daemon=True)
        self._thread.start()
        if self.logger:
            mode = (
                f"every {self.config.interval_minutes} minute(s)"
                if self.config.interval_minutes
                else f"cron '{self.config.cron}' ({self.config.timezone})"
            )
            self.logger.info("Scheduler enabled (%s).", mode)

    def stop(self) -> None:
        if not self._thread:
            return
        self._stop_event.set()
        self._thread.join(timeout=1)

    def _run_forever(self) -> None:
        while not self._stop_event.is_set():
            wait_seconds = self._next_interval_seconds()
            if wait_seconds <= 0:
                wait_seconds = 1
            self.next_run_at = datetime.now(self._tzinfo) + timedelta(seconds=wait_seconds)
            if self.logger:
                self.logger.debug("Next scheduled run at %s.", self.next_run_at.isoformat())
            if self._stop_event.wait(wait_seconds):
                break
            self._trigger_run()
        self.next_run_at = None

    def _trigger_run(self) -> None:
        started = self.controller.start(trigger="scheduler")
        if self.logger:
            if started:
                self.logger.info("Scheduler triggered an article generation run.")
            else:
                self.logger.info("Scheduler skip: a run is already in progress.")

    def _next_interval_seconds(self, now: Optional[datetime] = None) -> float:
        if self.config.interval_minutes and self.config.interval_minutes > 0:
            return float(self.config.interval_minutes) * 60.0
        now = now or datetime.now(self._tzinfo)
        if self.config.cron:
            try:
                next_time = SimpleCron(self.config.cron).next_after(now)
                return (next_time - now).total_seconds()
            except ValueError as exc:
                if self.logger:
                    self.logger.error("Invalid cron expression '%s': %s", self.config.cron, exc)
                return 3600
        # fallback daily at 06:00
        target = now.replace(hour=6, minute=0, second=0, microsecond=0)
        if target <= now:
            target += timedelta(days=1)
        return (target - now).total_seconds()

    @staticmethod
    def _resolve_timezone(name: str):
        try:
            return ZoneInfo(name)
        except Exception:  # pragma: no cover - fallback when tz data is missing
            return timezone.utc


# (name, lowest, highest) per cron position
CRON_FIELDS = (
    ("minute", 0, 59),
    ("hour", 0, 23),
    ("day", 1, 31),
    ("month", 1, 12),
    ("weekday", 0, 7),
)


class SimpleCron:
    """Five-field cron expressions (minute hour day month weekday) with ``*``, lists, ranges and steps.

    Weekdays count from Sunday=0; 7 is accepted as Sunday too. Out-of-range
    values raise ``ValueError`` instead of being clamped.
    """

    def __init__(self, expr: str) -> None:
        parts = expr.split()
        if len(parts) != len(CRON_FIELDS):
            raise ValueError(f"Cron expression must have {len(CRON_FIELDS)} fields, got {len(parts)}.")
        allowed = {}
        for text, (name, low, high) in zip(parts, CRON_FIELDS):
            allowed[name] = self._parse_field(text, low, high)
        weekdays = allowed["weekday"]
        if weekdays is not None and 7 in weekdays:
            weekdays = (weekdays - {7}) | {0}
        self.minutes = allowed["minute"]
        self.hours = allowed["hour"]
        self.days = allowed["day"]
        self.months = allowed["month"]
        self.weekdays = weekdays

    def next_after(self, now: datetime) -> datetime:
        """First matching minute strictly after ``now``, searching at most a year ahead."""
        candidate = now.replace(second=0, microsecond=0) + timedelta(minutes=1)
        horizon = candidate + timedelta(days=366)
        while candidate < horizon:
            if not self._day_matches(candidate):
                candidate = (candidate + timedelta(days=1)).replace(hour=0, minute=0)
            elif self.hours is not None and candidate.hour not in self.hours:
                candidate = (candidate + timedelta(hours=1)).replace(minute=0)
            elif self.minutes is not None and candidate.minute not in self.minutes:
                candidate += timedelta(minutes=1)
            else:
                return candidate
        raise ValueError("Cron expression did not match within a year.")

    def _day_matches(self, dt: datetime) -> bool:
        if self.months is not None and dt.month not in self.months:
            return False
        if self.days is not None and dt.day not in self.days:
            return False
        # datetime counts from Monday=0
        weekday = (dt.weekday() + 1) % 7
        return self.weekdays is None or weekday in self.weekdays

    @staticmethod
    def _parse_field(text: str, low: int, high: int) -> Optional[set[int]]:
        if text == "*":
            return None
        values: set[int] = set()
        for part in text.split(","):
            base, _, step_text = part.partition("/")
            try:
                step = int(step_text) if step_text else 1
                if base == "*":
                    start, end = low, high
                elif "-" in base:
                    start_text, end_text = base.split("-", 1)
                    start, end = int(start_text), int(end_text)
                else:
                    start = int(base)
                    end = high if step_text else start
            except ValueError as exc:
                raise ValueError(f"Invalid cron field '{text}'.") from exc
            if step < 1 or not low <= start <= end <= high:
                raise ValueError(f"Cron field '{text}' is outside {low}-{high}.")
            values.update(range(start, end + 1, step))
        return values
