"""Forward and backfill window calculation.

A script's first run fetches only a short initial window so new data
sources produce results quickly. Every later run continues forward from
the high-water mark and, until the script's retention window is
covered, steps the low-water mark back one bounded chunk at a time.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tenant_sync.config import OrchestratorConfig
from tenant_sync.db.repositories import DataSourceRunRepository
from tenant_sync.db.types import utc_now

DEFAULT_INITIAL_WINDOW = timedelta(days=7)
DEFAULT_BACKFILL_CHUNK = timedelta(days=7)


@dataclass(frozen=True)
class DateRange:
    """Half-open fetch window ``[start, end)`` in UTC."""

    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass(frozen=True)
class DateRanges:
    """Windows to fetch on the next run of a script."""

    forward: DateRange | None
    """New data since the last successful fetch."""

    backfill: DateRange | None
    """Older history to fetch, or None when there is nothing to backfill."""

    backfill_complete: bool
    """True once history reaches the retention boundary."""

    def segments(self) -> list[DateRange]:
        """Ranges to fetch, forward first."""
        return [r for r in (self.forward, self.backfill) if r is not None]


def compute_date_ranges(
    *,
    now: datetime,
    target_window: timedelta,
    last_fetched_at: datetime | None,
    earliest_fetched_at: datetime | None,
    initial_window: timedelta = DEFAULT_INITIAL_WINDOW,
    backfill_chunk: timedelta = DEFAULT_BACKFILL_CHUNK,
) -> DateRanges:
    """Compute forward and backfill windows from the watermarks.

    Args:
        now: Current instant, captured once by the caller
        target_window: Retention window the script wants covered
        last_fetched_at: High-water mark, or None if never completed
        earliest_fetched_at: Low-water mark, or None for legacy records
        initial_window: Forward window for a first run
        backfill_chunk: Maximum span of one backfill step

    Returns:
        DateRanges for the next run
    """
    if last_fetched_at is None:
        return DateRanges(
            forward=DateRange(start=now - initial_window, end=now),
            backfill=None,
            backfill_complete=False,
        )

    forward = DateRange(start=last_fetched_at, end=now)
    boundary = now - target_window

    # Records written before backfill existed only carry the high-water mark
    earliest = earliest_fetched_at
    if earliest is None:
        earliest = last_fetched_at - initial_window

    if earliest <= boundary:
        return DateRanges(forward=forward, backfill=None, backfill_complete=True)

    backfill = DateRange(start=max(boundary, earliest - backfill_chunk), end=earliest)
    return DateRanges(forward=forward, backfill=backfill, backfill_complete=False)


class DateRangeCalculator:
    """Look up a script's watermarks and compute its next windows."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        initial_window: timedelta = DEFAULT_INITIAL_WINDOW,
        backfill_chunk: timedelta = DEFAULT_BACKFILL_CHUNK,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._initial_window = initial_window
        self._backfill_chunk = backfill_chunk
        self._clock = clock

    @classmethod
    def from_config(
        cls,
        session_factory: async_sessionmaker[AsyncSession],
        config: OrchestratorConfig,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> DateRangeCalculator:
        return cls(
            session_factory,
            initial_window=config.initial_window,
            backfill_chunk=config.backfill_chunk,
            clock=clock,
        )

    async def calculate(
        self,
        data_source_id: str,
        script_name: str,
        target_window: timedelta,
        now: datetime | None = None,
    ) -> DateRanges:
        """Compute the next windows for a (data source, script) pair.

        Only watermarks written by a successful completion count as
        history, so a record reset to RUNNING for the current attempt
        still resumes from its last completed state.

        Args:
            data_source_id: Data source identifier
            script_name: Script identity
            target_window: Retention window the script wants covered
            now: Current instant (defaults to the injected clock)

        Returns:
            DateRanges for this attempt
        """
        now = now or self._clock()
        async with self._session_factory() as session:
            run = await DataSourceRunRepository(session).get_by_key(data_source_id, script_name)

        last_fetched_at = run.last_fetched_data_at if run is not None else None
        earliest_fetched_at = run.earliest_fetched_data_at if run is not None else None
        return compute_date_ranges(
            now=now,
            target_window=target_window,
            last_fetched_at=last_fetched_at,
            earliest_fetched_at=earliest_fetched_at,
            initial_window=self._initial_window,
            backfill_chunk=self._backfill_chunk,
        )
