"""Availability matching and slot ranking.

The pipeline runs in four pure stages:

1. ``flatten_availability`` turns stored availability batches into one sorted
   interval list per user.
2. ``generate_candidate_slots`` intersects two interval lists and walks each
   overlap in fixed steps, emitting windows of the requested duration.
3. ``filter_conflicts`` drops windows that overlap an active booking of
   either party.
4. ``rank_slots`` scores the survivors and keeps the best ``max_slots``.

``find_optimal_slots`` wires the stages to the availability and booking
lookups. Nothing here reads the wall clock unless the caller omits ``now``.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Sequence

from backend.core import config
from backend.scheduling.intervals import (
    ACTIVE_STATUSES,
    AvailabilityRecord,
    BookedInterview,
    InvalidMatchingInput,
    RankedSlot,
    TimeInterval,
    as_utc,
)

logger = logging.getLogger(__name__)

AvailabilityLookup = Callable[[int, datetime, datetime], Iterable[AvailabilityRecord]]
BookingLookup = Callable[[int, int, datetime, datetime], Iterable[BookedInterview]]


@dataclass(frozen=True)
class PreferredTimes:
    """Hour-of-day window ``[start_hour, end_hour)`` evaluated in UTC."""

    start_hour: int
    end_hour: int

    def __post_init__(self) -> None:
        if not 0 <= self.start_hour < self.end_hour <= 24:
            raise InvalidMatchingInput('Preferred times must satisfy 0 <= start_hour < end_hour <= 24.')

    def contains(self, hour: int) -> bool:
        return self.start_hour <= hour < self.end_hour


BUSINESS_HOURS = PreferredTimes(9, 17)


@dataclass(frozen=True)
class ScoringPolicy:
    """Weights for the slot desirability heuristic.

    Every adjustment is applied independently on top of ``base_score`` and the
    total is never clamped.
    """

    base_score: int = 100
    default_preferred_times: PreferredTimes = BUSINESS_HOURS
    preferred_hours_bonus: int = 20
    # Monday is 0.
    midweek_days: tuple[int, ...] = (1, 2, 3)
    midweek_bonus: int = 15
    morning_hours: PreferredTimes = PreferredTimes(9, 12)
    morning_bonus: int = 10
    early_before_hour: int = 8
    late_from_hour: int = 18
    off_hours_penalty: int = 20
    soon_within_days: float = 3
    soon_bonus: int = 5
    distant_after_days: float = 7
    distant_penalty: int = 5


DEFAULT_SCORING_POLICY = ScoringPolicy()


@dataclass
class MatchingOptions:
    duration_minutes: int = config.MATCHING_DEFAULT_DURATION_MINUTES
    max_slots: int = config.MATCHING_DEFAULT_MAX_SLOTS
    start_date: datetime | None = None
    end_date: datetime | None = None
    preferred_times: PreferredTimes | None = None
    slot_step_minutes: int = config.MATCHING_SLOT_STEP_MINUTES

    def validate(self) -> None:
        if isinstance(self.duration_minutes, bool) or not isinstance(self.duration_minutes, int):
            raise InvalidMatchingInput('Duration must be a whole number of minutes.')
        if not config.MATCHING_MIN_DURATION_MINUTES <= self.duration_minutes <= config.MATCHING_MAX_DURATION_MINUTES:
            raise InvalidMatchingInput(
                f'Duration must be between {config.MATCHING_MIN_DURATION_MINUTES} '
                f'and {config.MATCHING_MAX_DURATION_MINUTES} minutes.'
            )
        if self.max_slots < 1:
            raise InvalidMatchingInput('At least one slot must be requested.')
        if self.slot_step_minutes <= 0:
            raise InvalidMatchingInput('Slot step must be positive.')

    def resolve_window(self, now: datetime) -> TimeInterval:
        start = as_utc(self.start_date) if self.start_date else now
        end = as_utc(self.end_date) if self.end_date else now + timedelta(days=config.MATCHING_SEARCH_WINDOW_DAYS)
        if end <= start:
            raise InvalidMatchingInput('Search window end must be after its start.')
        return TimeInterval(start, end)


def flatten_availability(
    records: Iterable[AvailabilityRecord],
    bound: TimeInterval | None = None,
) -> list[TimeInterval]:
    """Collect every interval of ``records`` into one list sorted by start.

    With a ``bound``, only intervals lying wholly inside it are kept. Nothing
    is clipped and intervals from different records are not merged.
    """
    intervals = [
        interval
        for record in records
        for interval in record.intervals
        if bound is None or bound.contains(interval)
    ]
    return sorted(intervals, key=lambda interval: interval.start)


def generate_candidate_slots(
    first: Sequence[TimeInterval],
    second: Sequence[TimeInterval],
    duration_minutes: int,
    step_minutes: int = config.MATCHING_SLOT_STEP_MINUTES,
) -> list[TimeInterval]:
    if step_minutes <= 0:
        raise InvalidMatchingInput('Slot step must be positive.')

    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=step_minutes)

    slots: list[TimeInterval] = []
    seen: set[tuple[datetime, datetime]] = set()

    for a in first:
        for b in second:
            overlap = a.intersection(b)
            if overlap is None or overlap.duration < duration:
                continue

            cursor = overlap.start
            while cursor + duration <= overlap.end:
                slot = TimeInterval(cursor, cursor + duration)
                if slot.key not in seen:
                    seen.add(slot.key)
                    slots.append(slot)
                cursor += step

    return slots


def has_conflict(slot: TimeInterval, bookings: Iterable[BookedInterview]) -> bool:
    return any(
        booking.status in ACTIVE_STATUSES and slot.overlaps(booking.scheduled_time)
        for booking in bookings
    )


def filter_conflicts(
    slots: Iterable[TimeInterval],
    bookings: Iterable[BookedInterview],
) -> list[TimeInterval]:
    bookings = list(bookings)
    return [slot for slot in slots if not has_conflict(slot, bookings)]


def score_slot(
    slot: TimeInterval,
    now: datetime,
    preferred_times: PreferredTimes | None = None,
    policy: ScoringPolicy = DEFAULT_SCORING_POLICY,
) -> int:
    start = slot.start
    hour = start.hour
    window = preferred_times or policy.default_preferred_times
    score = policy.base_score

    if window.contains(hour):
        score += policy.preferred_hours_bonus

    if start.weekday() in policy.midweek_days:
        score += policy.midweek_bonus

    if policy.morning_hours.contains(hour):
        score += policy.morning_bonus

    if hour < policy.early_before_hour or hour >= policy.late_from_hour:
        score -= policy.off_hours_penalty

    days_from_now = (start - as_utc(now)) / timedelta(days=1)
    if days_from_now <= policy.soon_within_days:
        score += policy.soon_bonus
    elif days_from_now > policy.distant_after_days:
        score -= policy.distant_penalty

    return score


def rank_slots(
    slots: Iterable[TimeInterval],
    now: datetime,
    max_slots: int = config.MATCHING_DEFAULT_MAX_SLOTS,
    preferred_times: PreferredTimes | None = None,
    policy: ScoringPolicy = DEFAULT_SCORING_POLICY,
) -> list[RankedSlot]:
    scored = [
        RankedSlot(start=slot.start, end=slot.end, score=score_slot(slot, now, preferred_times, policy))
        for slot in slots
    ]
    # sorted() is stable with reverse=True, so equal scores keep generation order.
    scored = sorted(scored, key=lambda ranked: ranked.score, reverse=True)
    return scored[:max_slots]


def find_optimal_slots(
    candidate_id: int,
    interviewer_id: int,
    options: MatchingOptions | None,
    availability_lookup: AvailabilityLookup,
    booking_lookup: BookingLookup,
    now: datetime | None = None,
    policy: ScoringPolicy = DEFAULT_SCORING_POLICY,
) -> list[RankedSlot]:
    """Return up to ``options.max_slots`` conflict-free slots, best first.

    An empty list means no sufficiently long shared window survived; it is not
    an error. ``InvalidMatchingInput`` is raised before any lookup runs.
    """
    options = options or MatchingOptions()
    options.validate()
    now = as_utc(now) if now else datetime.now(timezone.utc)
    window = options.resolve_window(now)

    candidate_intervals = flatten_availability(
        availability_lookup(candidate_id, window.start, window.end), window
    )
    interviewer_intervals = flatten_availability(
        availability_lookup(interviewer_id, window.start, window.end), window
    )

    candidates = generate_candidate_slots(
        candidate_intervals,
        interviewer_intervals,
        options.duration_minutes,
        options.slot_step_minutes,
    )
    bookings = booking_lookup(candidate_id, interviewer_id, window.start, window.end)
    available = filter_conflicts(candidates, bookings)
    ranked = rank_slots(available, now, options.max_slots, options.preferred_times, policy)

    logger.info(
        'Matched candidate %s with interviewer %s between %s and %s: %d generated, %d free, %d returned',
        candidate_id,
        interviewer_id,
        window.start.isoformat(),
        window.end.isoformat(),
        len(candidates),
        len(available),
        len(ranked),
    )
    return ranked
