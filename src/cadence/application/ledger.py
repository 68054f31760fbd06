"""
Clock & counter ledger.

Tracks per-project consumption of the daily new-card and review quotas and
resets them at the project's local midnight. This is the only shared mutable
state in the engine, so every read-modify-write runs under a per-project lock.
"""

import logging
import threading
from dataclasses import replace
from datetime import date, datetime, timezone as dt_timezone
from zoneinfo import ZoneInfo

from cadence.domain.constants import DEFAULT_TIMEZONE
from cadence.domain.models import Card, CardState, DailyCounters

logger = logging.getLogger(__name__)


def as_utc(now: datetime) -> datetime:
    """Attach UTC to a naive datetime; aware datetimes pass through."""
    if now.tzinfo is None:
        return now.replace(tzinfo=dt_timezone.utc)
    return now


def local_day(now: datetime, timezone: str = DEFAULT_TIMEZONE) -> date:
    """
    Calendar date of `now` in the given IANA timezone.

    Naive datetimes are taken as UTC.
    """
    return as_utc(now).astimezone(ZoneInfo(timezone)).date()


class CounterLedger:
    """
    In-process DailyCounters store with at most one writer per project.

    Within a local day every caller for a project receives the same
    DailyCounters object; the first access on a new day replaces it with
    zeroed counters.
    """

    def __init__(self):
        self._counters: dict[str, DailyCounters] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def get_or_reset(
        self, project_id: str, now: datetime, timezone: str = DEFAULT_TIMEZONE
    ) -> DailyCounters:
        with self._lock_for(project_id):
            return self._current(project_id, now, timezone)

    def record_shown(
        self,
        project_id: str,
        card: Card,
        now: datetime,
        timezone: str = DEFAULT_TIMEZONE,
    ) -> DailyCounters:
        """
        Consume one unit of quota for a card that was actually shown.

        New cards count against new_cards_introduced, review cards against
        reviews_shown. Learning and relearning cards consume nothing.
        """
        with self._lock_for(project_id):
            counters = self._current(project_id, now, timezone)
            if card.state == CardState.NEW:
                counters.new_cards_introduced += 1
            elif card.state == CardState.REVIEW:
                counters.reviews_shown += 1
            return counters

    def release(
        self,
        project_id: str,
        card: Card,
        now: datetime,
        timezone: str = DEFAULT_TIMEZONE,
    ) -> DailyCounters:
        """Give back quota consumed by `card` (undo). Never goes below zero."""
        with self._lock_for(project_id):
            counters = self._current(project_id, now, timezone)
            if card.state == CardState.NEW:
                counters.new_cards_introduced = max(0, counters.new_cards_introduced - 1)
            elif card.state == CardState.REVIEW:
                counters.reviews_shown = max(0, counters.reviews_shown - 1)
            return counters

    def snapshot(self, project_id: str) -> DailyCounters | None:
        """Detached copy of the stored counters, for persistence."""
        with self._lock_for(project_id):
            counters = self._counters.get(project_id)
            return replace(counters) if counters else None

    def restore(self, counters: DailyCounters) -> None:
        """Seed the ledger with counters loaded by the persistence layer."""
        with self._lock_for(counters.project_id):
            self._counters[counters.project_id] = replace(counters)

    def _lock_for(self, project_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(project_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[project_id] = lock
            return lock

    def _current(self, project_id: str, now: datetime, timezone: str) -> DailyCounters:
        # Caller holds the project lock.
        today = local_day(now, timezone)
        counters = self._counters.get(project_id)

        if counters is not None and today < counters.day:
            # A skewed clock must not reopen a day whose quota is already counted.
            logger.debug(
                f"Project {project_id}: clock at {today} is behind counters for "
                f"{counters.day}, keeping them"
            )
            return counters

        if counters is None or today > counters.day:
            if counters is not None:
                logger.info(
                    f"Project {project_id}: day rollover {counters.day} -> {today}, "
                    "resetting counters"
                )
            counters = DailyCounters(project_id=project_id, day=today)
            self._counters[project_id] = counters

        return counters
