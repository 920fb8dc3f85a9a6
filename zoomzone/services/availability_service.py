"""Free/busy reconciliation.

``overlaps`` is the one conflict predicate. Slot display and the pre-booking
recheck both go through it so they can never disagree.
"""

import logging
from collections.abc import Iterable
from datetime import date, datetime, tzinfo
from typing import Protocol

from zoomzone.models.slot import Slot, TimeInterval
from zoomzone.services.slot_service import generate_slots

logger = logging.getLogger(__name__)


class BusySource(Protocol):
    async def list_busy(self, range_start: datetime, range_end: datetime) -> list[TimeInterval]: ...


def overlaps(start: datetime, end: datetime, interval: TimeInterval) -> bool:
    """Strict half-open overlap of ``[start, end)`` with ``interval``; touching edges do not overlap."""
    return start < interval.end and end > interval.start


def overlaps_any(candidate: TimeInterval, busy: Iterable[TimeInterval]) -> bool:
    return any(overlaps(candidate.start, candidate.end, b) for b in busy)


def reconcile(slots: Iterable[Slot], busy: Iterable[TimeInterval]) -> list[Slot]:
    """Copies of ``slots`` in the same order with ``busy`` set."""
    busy = list(busy)
    return [s.model_copy(update={"busy": overlaps_any(s.interval, busy)}) for s in slots]


class AvailabilityService:
    def __init__(
        self,
        busy_source: BusySource,
        tz: tzinfo,
        start_hour: int | None = None,
        end_hour: int | None = None,
    ):
        self.busy_source = busy_source
        self.tz = tz
        self.start_hour = start_hour
        self.end_hour = end_hour

    async def get_slots(
        self, day: date | str, duration_minutes: int | str, now: datetime | None = None
    ) -> list[Slot]:
        slots = generate_slots(
            day,
            duration_minutes,
            self.tz,
            start_hour=self.start_hour,
            end_hour=self.end_hour,
            now=now,
        )
        if not slots:
            return []
        busy = await self.busy_source.list_busy(slots[0].start_utc, slots[-1].end_utc)
        annotated = reconcile(slots, busy)
        logger.debug(
            "Slots for %s (%s min): %d total, %d busy",
            day,
            duration_minutes,
            len(annotated),
            sum(1 for s in annotated if s.busy),
        )
        return annotated

    async def is_busy(self, candidate: TimeInterval) -> bool:
        """Fresh check of one interval against the calendar, right before booking."""
        busy = await self.busy_source.list_busy(candidate.start, candidate.end)
        return overlaps_any(candidate, busy)
