# Utility functions for course and course availability forms
# Import MultiDict for form input handling
from werkzeug.datastructures import MultiDict
import re
from datetime import date
from .slot import AvailabilitySlot, DAYS_OF_WEEK, parse_bool

TIME_PATTERN = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')

# Values shown in an empty "Add slot" form
DEFAULT_SLOT_FORM = {
    'startDate': '',
    'endDate': '',
    'startTime': '09:00',
    'endTime': '17:00',
    'daysOfWeek': [],
    'location': '',
    'isOnline': True,
    'spotsAvailable': 20,
    'notes': '',
}


def _ordered_days(days: list[str]) -> list[str]:
    # Week order regardless of the order the browser sent, unknown names last for validation to report
    unique_days = list(dict.fromkeys(day.strip() for day in days if day.strip()))
    return sorted(unique_days, key=lambda day: DAYS_OF_WEEK.index(day) if day in DAYS_OF_WEEK else len(DAYS_OF_WEEK))


def parse_availability_form(form: MultiDict) -> dict:
    """
    Reads the availability form submission into the API payload shape.

    Input: request.form. daysOfWeek is multi-valued, one entry per checked day. isOnline is a checkbox so it is only present when checked.

    Returns: dict with the editable slot fields. spotsAvailable is None if it isn't a whole number.
    """
    try:
        spots = int(form.get('spotsAvailable', '').strip())
    except ValueError:
        spots = None

    is_online = parse_bool(form.get('isOnline'))
    location = form.get('location', '').strip()

    return {
        'startDate': form.get('startDate', '').strip(),
        'endDate': form.get('endDate', '').strip(),
        'startTime': form.get('startTime', '').strip(),
        'endTime': form.get('endTime', '').strip(),
        'daysOfWeek': _ordered_days(form.getlist('daysOfWeek')),
        # Venue is meaningless for online sessions
        'location': '' if is_online else location,
        'isOnline': is_online,
        'spotsAvailable': spots,
        'notes': form.get('notes', '').strip(),
    }


def _parse_iso_date(value: str):
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def validate_availability_input(data: dict) -> list[str]:
    """
    Checks a parsed availability form before it is sent to the API.

    Returns a list of error messages, empty if the input is valid.
    """
    errors = []

    start_date = _parse_iso_date(data.get('startDate'))
    end_date = _parse_iso_date(data.get('endDate'))
    if not data.get('startDate'):
        errors.append("Start date is required.")
    elif start_date is None:
        errors.append("Start date must be in YYYY-MM-DD format.")
    if not data.get('endDate'):
        errors.append("End date is required.")
    elif end_date is None:
        errors.append("End date must be in YYYY-MM-DD format.")
    if start_date and end_date and start_date > end_date:
        errors.append("End date cannot be before start date.")

    start_time = data.get('startTime') or ''
    end_time = data.get('endTime') or ''
    if not TIME_PATTERN.match(start_time) or not TIME_PATTERN.match(end_time):
        errors.append("Start and end time must be in HH:MM format.")
    # Zero-padded HH:MM strings compare in time order
    elif start_time >= end_time:
        errors.append("End time must be after start time.")

    days = data.get('daysOfWeek') or []
    if not days:
        errors.append("Select at least one day of the week.")
    unknown_days = [day for day in days if day not in DAYS_OF_WEEK]
    if unknown_days:
        errors.append(f"Unknown day of week: {', '.join(unknown_days)}")

    spots = data.get('spotsAvailable')
    if spots is None or spots <= 0:
        errors.append("Available spots must be greater than 0.")

    return errors


def form_from_slot(slot: AvailabilitySlot) -> dict:
    """Pre-fills the edit form with an existing slot's values."""
    form = dict(DEFAULT_SLOT_FORM)
    form.update(slot.to_payload())
    return form


COURSE_LEVELS = ['beginner', 'intermediate', 'advanced']

CURRENCIES = sorted([
    'USD', 'EUR', 'GBP', 'JPY', 'AUD', 'CAD', 'CHF', 'CNY', 'INR', 'SGD',
    'HKD', 'NZD', 'SEK', 'NOK', 'DKK', 'PLN', 'ZAR', 'BRL', 'MXN', 'AED',
    'SAR', 'QAR', 'KWD', 'BHD', 'OMR', 'JOD', 'EGP', 'TRY', 'RUB', 'KRW',
    'THB', 'MYR', 'IDR', 'PHP', 'VND', 'PKR', 'BDT', 'LKR', 'NPR', 'KES',
    'NGN', 'GHS', 'UGX', 'TZS', 'ETB', 'MAD', 'TND', 'DZD', 'ILS', 'CZK',
    'HUF', 'RON', 'BGN', 'HRK', 'RSD', 'ISK', 'UAH', 'BYN',
])

# Values shown in an empty "Create course" form
DEFAULT_COURSE_FORM = {
    'title': '',
    'description': '',
    'categoryIds': [],
    'level': 'beginner',
    'duration': 0,
    'maxParticipants': 20,
    'price': 0,
    'currency': 'USD',
    'instructor': '',
    'syllabus': [],
    'requirements': [],
    'certificationProvided': False,
    'certificationName': '',
    'featured': False,
    'images': [],
}


def _lines(text: str) -> list[str]:
    # Textareas hold one syllabus item / requirement / image URL per line
    return [line.strip() for line in (text or '').splitlines() if line.strip()]


def _to_number(value: str, cast):
    try:
        return cast(value.strip())
    except (AttributeError, ValueError):
        return None


def parse_course_form(form: MultiDict) -> dict:
    """
    Reads the create / edit course form into the API payload shape.

    Numbers that don't parse become None for validation to report.
    """
    certification_provided = parse_bool(form.get('certificationProvided'))
    return {
        'title': form.get('title', '').strip(),
        'description': form.get('description', '').strip(),
        'categoryIds': list(dict.fromkeys(value for value in form.getlist('categoryIds') if value)),
        'level': form.get('level', '').strip(),
        'duration': _to_number(form.get('duration', ''), float),
        'maxParticipants': _to_number(form.get('maxParticipants', ''), int),
        'price': _to_number(form.get('price', ''), float),
        'currency': form.get('currency', '').strip().upper(),
        'instructor': form.get('instructor', '').strip(),
        'syllabus': _lines(form.get('syllabus')),
        'requirements': _lines(form.get('requirements')),
        'certificationProvided': certification_provided,
        # Only a certified course has a certification name
        'certificationName': form.get('certificationName', '').strip() if certification_provided else '',
        'featured': parse_bool(form.get('featured')),
        'images': _lines(form.get('images')),
    }


def validate_course_input(data: dict) -> list[str]:
    """
    Checks a parsed course form before it is sent to the API.

    Returns a list of error messages, empty if the input is valid.
    """
    errors = []

    if not data.get('title'):
        errors.append("Course title is required.")
    if not data.get('description'):
        errors.append("Description is required.")
    if not data.get('categoryIds'):
        errors.append("Select at least one category.")
    if data.get('level') not in COURSE_LEVELS:
        errors.append("Level must be beginner, intermediate or advanced.")

    duration = data.get('duration')
    if duration is None or duration < 0:
        errors.append("Duration must be 0 hours or more.")
    max_participants = data.get('maxParticipants')
    if max_participants is None or max_participants < 1:
        errors.append("Max participants must be at least 1.")
    price = data.get('price')
    if price is None or price < 0:
        errors.append("Price must be 0 or more.")
    if data.get('currency') not in CURRENCIES:
        errors.append("Select a supported currency.")

    return errors


def form_from_course(course: dict) -> dict:
    """Pre-fills the edit course form with an existing course's values."""
    form = dict(DEFAULT_COURSE_FORM)
    form.update({key: course[key] for key in DEFAULT_COURSE_FORM if course.get(key) is not None})
    return form
