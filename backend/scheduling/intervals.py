"""Time interval value types shared by the matching pipeline."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone


STATUS_PROPOSED = 'proposed'
STATUS_CONFIRMED = 'confirmed'
STATUS_CANCELLED = 'cancelled'
STATUS_COMPLETED = 'completed'
STATUS_RESCHEDULED = 'rescheduled'
INTERVIEW_STATUSES = (
    STATUS_PROPOSED,
    STATUS_CONFIRMED,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_RESCHEDULED,
)
# Only these block new candidate slots.
ACTIVE_STATUSES = frozenset({STATUS_PROPOSED, STATUS_CONFIRMED})


class InvalidMatchingInput(ValueError):
    """Raised before any matching work when the request cannot be computed."""


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True, order=True)
class TimeInterval:
    """Half-open range ``[start, end)`` in UTC."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, 'start', as_utc(self.start))
        object.__setattr__(self, 'end', as_utc(self.end))
        if self.end <= self.start:
            raise InvalidMatchingInput(
                f'Interval end {self.end.isoformat()} must be after start {self.start.isoformat()}.'
            )

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def key(self) -> tuple[datetime, datetime]:
        return self.start, self.end

    def overlaps(self, other: 'TimeInterval') -> bool:
        # Touching edges do not overlap.
        return self.start < other.end and other.start < self.end

    def contains(self, other: 'TimeInterval') -> bool:
        return self.start <= other.start and other.end <= self.end

    def intersection(self, other: 'TimeInterval') -> 'TimeInterval | None':
        start = max(self.start, other.start)
        end = min(self.end, other.end)
        if end <= start:
            return None
        return TimeInterval(start, end)


@dataclass(frozen=True)
class AvailabilityRecord:
    """Read-only snapshot of one stored availability batch."""

    user_id: int
    intervals: tuple[TimeInterval, ...] = ()


@dataclass(frozen=True)
class BookedInterview:
    candidate_id: int
    interviewer_id: int
    scheduled_time: TimeInterval
    status: str


@dataclass(frozen=True)
class RankedSlot:
    start: datetime
    end: datetime
    score: int

    def to_dict(self) -> dict:
        return {'start': self.start, 'end': self.end, 'score': self.score}
