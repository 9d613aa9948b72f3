# Availability slot record used by the course scheduling views
from datetime import date, datetime
from typing import Optional
from .error_utils import MissingIdentifierError

DAYS_OF_WEEK = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']


def parse_slot_date(value) -> Optional[date]:
    """
    Parses a slot date given as an ISO 'YYYY-MM-DD' string, a date or a datetime.

    Returns None for anything else so one bad record can't break the page.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    try:
        # Backend sometimes sends full ISO timestamps, only the date part matters
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def _to_count(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def parse_bool(value, default: bool = False) -> bool:
    # Form checkboxes send 'on', the API may send real booleans or 'true' / 'false' strings
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ('on', 'true', '1', 'yes')
    return bool(value)


def _as_iso(value):
    if isinstance(value, date):
        return value.isoformat()
    return value


"""
One bookable window for a course. Recurs on days_of_week between start_date and end_date.
Dates are kept as received from the API, use start / end for the parsed values.
"""
class AvailabilitySlot:

    def __init__(self, id: str, start_date, end_date, start_time: str = '', end_time: str = '',
                 days_of_week: list[str] = None, is_online: bool = True, location: str = '',
                 spots_available: int = 0, spots_booked: int = 0, notes: str = '', status: str = None):
        self.id = id
        self.start_date = start_date
        self.end_date = end_date
        self.start_time = start_time
        self.end_time = end_time
        self.days_of_week = list(days_of_week or [])
        self.is_online = is_online
        self.location = location or ''
        self.spots_available = spots_available
        self.spots_booked = spots_booked
        self.notes = notes or ''
        self.status = status or None

    @classmethod
    def from_record(cls, record: dict) -> 'AvailabilitySlot':
        """
        Builds a slot from an API record (camelCase keys).

        Raises MissingIdentifierError when the record has no id.
        """
        slot_id = record.get('id')
        if slot_id is None or not str(slot_id).strip():
            raise MissingIdentifierError(record)
        return cls(
            id=str(slot_id),
            start_date=record.get('startDate'),
            end_date=record.get('endDate'),
            start_time=record.get('startTime') or '',
            end_time=record.get('endTime') or '',
            days_of_week=record.get('daysOfWeek') or [],
            is_online=parse_bool(record.get('isOnline'), default=True),
            location=record.get('location'),
            spots_available=_to_count(record.get('spotsAvailable')),
            spots_booked=_to_count(record.get('spotsBooked')),
            notes=record.get('notes'),
            status=record.get('status'),
        )

    @property
    def start(self) -> Optional[date]:
        return parse_slot_date(self.start_date)

    @property
    def end(self) -> Optional[date]:
        return parse_slot_date(self.end_date)

    @property
    def remaining_spots(self) -> int:
        return self.spots_available - self.spots_booked

    def to_payload(self) -> dict:
        """Editable fields only, in the shape the API expects on create/update."""
        return {
            'startDate': _as_iso(self.start_date),
            'endDate': _as_iso(self.end_date),
            'startTime': self.start_time,
            'endTime': self.end_time,
            'daysOfWeek': list(self.days_of_week),
            'location': self.location,
            'isOnline': self.is_online,
            'spotsAvailable': self.spots_available,
            'notes': self.notes,
        }

    def __repr__(self):
        return f"AvailabilitySlot(id={self.id!r}, start_date={self.start_date!r}, end_date={self.end_date!r})"
