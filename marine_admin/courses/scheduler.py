"""
Course availability scheduling for the Marine Admin course detail page.

Problem:

Given the availability slots of a course, show admins which slots are still bookable and where they fall on a month calendar.

Slot status:
A slot may carry a status from the backend. If it doesn't, derive one from its start date and bookings:
    1. start date (local midnight) before now -> expired
    2. booked >= available -> full
    3. otherwise -> available
Expiry wins over fullness so an old, sold-out slot shows as expired.

Calendar:
One entry per day of the selected month (no padding to full weeks) with the number of slots whose date range covers that day.

Filtering / sorting:
Filter by derived status, sort by start date, remaining spots or status. Every sort is stable and nothing here mutates its input.

All date-relative functions take `now` explicitly, nothing reads the clock on its own.
"""
import calendar
from datetime import date, datetime, time, timedelta
from typing import Iterable, NamedTuple, Optional

from .slot import AvailabilitySlot, DAYS_OF_WEEK

AVAILABLE = 'available'
FULL = 'full'
EXPIRED = 'expired'

FILTER_ALL = 'all'
FILTER_CRITERIA = (FILTER_ALL, AVAILABLE, FULL, EXPIRED)

SORT_BY_DATE = 'date'
SORT_BY_SPOTS = 'spots'
SORT_BY_STATUS = 'status'
SORT_CRITERIA = (SORT_BY_DATE, SORT_BY_SPOTS, SORT_BY_STATUS)

STATUS_PRIORITY = {AVAILABLE: 0, FULL: 1, EXPIRED: 2}


class MonthGridDay(NamedTuple):
    date: date
    is_current_month: bool
    is_today: bool
    slot_count: int


def _local_naive(now) -> datetime:
    # A bare date means midnight of that day
    if not isinstance(now, datetime):
        return datetime.combine(now, time.min)
    if now.tzinfo is not None:
        return now.astimezone().replace(tzinfo=None)
    return now


def derive_status(slot: AvailabilitySlot, now) -> str:
    """
    Returns the backend status when the slot has one, otherwise classifies the slot against now.
    A start date that can't be parsed counts as not in the past.
    """
    if slot.status:
        return slot.status

    start = slot.start
    if start is not None and datetime.combine(start, time.min) < _local_naive(now):
        return EXPIRED
    if slot.spots_booked >= slot.spots_available:
        return FULL
    return AVAILABLE


def filter_slots(slots: Iterable[AvailabilitySlot], now, filter_criterion: str) -> list[AvailabilitySlot]:
    # Unknown criteria behave like 'all'
    if filter_criterion not in STATUS_PRIORITY:
        return list(slots)
    return [slot for slot in slots if derive_status(slot, now) == filter_criterion]


def _date_key(slot: AvailabilitySlot):
    start = slot.start
    # Unparseable dates go after every real date
    return (start is None, start or date.min)


def filter_and_sort(slots: Iterable[AvailabilitySlot], now, filter_criterion: str = FILTER_ALL,
                    sort_criterion: str = SORT_BY_DATE) -> list[AvailabilitySlot]:
    """
    Filters slots by derived status and orders them for display.

    Input: slots, reference time, filter criterion (all / available / full / expired),
           sort criterion (date / spots / status).

    Returns: new list. Ties keep their input order. An unknown sort criterion keeps input order.
    """
    filtered = filter_slots(slots, now, filter_criterion)

    if sort_criterion == SORT_BY_DATE:
        return sorted(filtered, key=_date_key)
    if sort_criterion == SORT_BY_SPOTS:
        return sorted(filtered, key=lambda slot: slot.remaining_spots, reverse=True)
    if sort_criterion == SORT_BY_STATUS:
        return sorted(filtered, key=lambda slot: STATUS_PRIORITY.get(derive_status(slot, now), len(STATUS_PRIORITY)))
    return filtered


def slots_for_date(slots: Iterable[AvailabilitySlot], day: date, *, respect_days_of_week: bool = False) -> list[AvailabilitySlot]:
    """
    Slots whose [start_date, end_date] range contains day, both ends inclusive.

    The range check ignores days_of_week unless respect_days_of_week is set, then the weekday
    of day must also be one of the slot's days.
    """
    if isinstance(day, datetime):
        day = day.date()
    weekday_name = DAYS_OF_WEEK[day.weekday()]

    matching = []
    for slot in slots:
        start, end = slot.start, slot.end
        if start is None or end is None:
            continue
        if not start <= day <= end:
            continue
        if respect_days_of_week and weekday_name not in slot.days_of_week:
            continue
        matching.append(slot)
    return matching


def build_month_grid(month: date, slots: Iterable[AvailabilitySlot], filter_criterion: str, now, *,
                     respect_days_of_week: bool = False) -> list[MonthGridDay]:
    """
    Builds the calendar for the month containing `month`.

    Returns: one MonthGridDay per day from the 1st to the last day of the month. slot_count counts
    the filtered (not sorted) slots covering each day.
    """
    filtered = filter_slots(slots, now, filter_criterion)
    today = _local_naive(now).date()

    _, days_in_month = calendar.monthrange(month.year, month.month)
    first_day = date(month.year, month.month, 1)

    grid = []
    for offset in range(days_in_month):
        day = first_day + timedelta(days=offset)
        count = len(slots_for_date(filtered, day, respect_days_of_week=respect_days_of_week))
        grid.append(MonthGridDay(date=day, is_current_month=True, is_today=(day == today), slot_count=count))
    return grid


def shift_month(month: date, delta: int) -> date:
    """First day of the month `delta` months away from `month`. Used for prev/next navigation."""
    index = month.year * 12 + (month.month - 1) + delta
    return date(index // 12, index % 12 + 1, 1)


def parse_month(value: Optional[str]) -> Optional[date]:
    """Parses a 'YYYY-MM' query value into the first day of that month, None if invalid."""
    if not value:
        return None
    try:
        return datetime.strptime(value, '%Y-%m').date()
    except ValueError:
        return None
