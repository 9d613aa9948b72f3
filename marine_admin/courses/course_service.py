import logging
import requests
from typing import Callable, Dict, List, Optional
from .slot import AvailabilitySlot
from .error_utils import CourseApiError
from . import mock_data

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:3000/api"
DEFAULT_TIMEOUT = 10

# Transport failures that trigger the mock fallback on reads
UNREACHABLE_ERRORS = (requests.exceptions.ConnectionError, requests.exceptions.Timeout)

STATS_KEYS = ("total", "active", "inactive", "featured")


def _to_int(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class CourseService:
    """
    Client for the marketplace REST API: courses, course categories and course availability.

    Reads fall back to mock_data when the API can't be reached and use_mock_fallback is set.
    Writes never fall back since there is nothing to write to.

    May raise CourseApiError from any call.
    """

    def __init__(self, base_url: str = None, token: str = None, timeout: float = DEFAULT_TIMEOUT, use_mock_fallback: bool = False):
        self.base_url = (base_url or DEFAULT_API_URL).rstrip('/')
        self._token = token
        self.timeout = timeout
        self.use_mock_fallback = use_mock_fallback

    @classmethod
    def from_config(cls, config) -> 'CourseService':
        return cls(base_url=config.get('MARINE_API_URL'),
                   token=config.get('MARINE_API_TOKEN'),
                   timeout=config.get('MARINE_API_TIMEOUT', DEFAULT_TIMEOUT),
                   use_mock_fallback=config.get('MOCK_FALLBACK', False))

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    @staticmethod
    def _error_message(response) -> str:
        try:
            body = response.json()
        except ValueError:
            return f"Course API request failed with status {response.status_code}"
        if isinstance(body, dict) and body.get('message'):
            return body['message']
        return f"Course API request failed with status {response.status_code}"

    @staticmethod
    def _unwrap(body):
        """
        Strips the {"success": ..., "data": ...} envelope. A body with success=false is an error even on HTTP 200.
        """
        if not isinstance(body, dict):
            return body
        if body.get('success') is False:
            raise CourseApiError(body.get('message') or "Course API reported a failure")
        if 'data' in body:
            return body['data']
        return body

    @staticmethod
    def _as_list(data) -> list:
        # Either a bare array or a paginated {"data": [...], "pagination": {...}}
        if isinstance(data, list):
            return data
        if isinstance(data, dict) and isinstance(data.get('data'), list):
            return data['data']
        return []

    def _request(self, method: str, path: str, **kwargs):
        url = f"{self.base_url}{path}"
        logger.info("Requesting %s %s", method, url)
        try:
            response = requests.request(method, url, headers=self._headers(), timeout=self.timeout, **kwargs)
        except UNREACHABLE_ERRORS:
            # _read / _write decide between mock fallback and failure
            raise
        except requests.exceptions.RequestException as e:
            # Bad base URL, broken transfer, too many redirects...
            logger.error(f"Course API request {method} {url} failed: {e}")
            raise CourseApiError(f"Course API request failed: {e.__class__.__name__}") from e
        logger.info(f"HTTP Response code: {response.status_code}")
        if response.status_code >= 300:
            message = self._error_message(response)
            logger.error(f"Course API error {response.status_code}: {message}")
            raise CourseApiError(message, response.status_code)
        if response.status_code == 204 or not response.content:
            return None
        try:
            body = response.json()
        except ValueError:
            raise CourseApiError("Course API returned an invalid response", response.status_code)
        return self._unwrap(body)

    def _read(self, path: str, fallback: Callable, **kwargs):
        try:
            return self._request("GET", path, **kwargs)
        except UNREACHABLE_ERRORS as e:
            if not self.use_mock_fallback:
                logger.error(f"Course API unreachable: {e}")
                raise CourseApiError("Course API is unreachable. Please re-try.") from e
            logger.warning(f"Course API unreachable, serving mock data for {path}: {e}")
            return fallback()

    def _write(self, method: str, path: str, **kwargs):
        try:
            return self._request(method, path, **kwargs)
        except UNREACHABLE_ERRORS as e:
            logger.error(f"Course API unreachable during {method} {path}: {e}")
            raise CourseApiError("Course API is unreachable. Changes were not saved.") from e

    # Courses

    def list_courses(self, level: str = None, status: str = None, search: str = None) -> List[dict]:
        params = {"page": 1, "limit": 100}
        if level and level != 'all':
            params["level"] = level
        if status and status != 'all':
            params["status"] = status
        if search:
            params["search"] = search
        data = self._read("/courses", lambda: self._mock_courses(level, status, search), params=params)
        return self._as_list(data)

    def get_course(self, course_id: str) -> dict:
        def fallback():
            course = mock_data.get_mock_course(course_id)
            if course is None:
                raise CourseApiError(f"Course {course_id} not found", 404)
            return course
        course = self._read(f"/courses/{course_id}", fallback)
        if not course:
            raise CourseApiError(f"Course {course_id} not found", 404)
        return course

    @staticmethod
    def _mock_courses(level: Optional[str], status: Optional[str], search: Optional[str]) -> List[dict]:
        courses = mock_data.MOCK_COURSES
        if level and level != 'all':
            courses = [course for course in courses if course.get('level') == level]
        if status and status != 'all':
            courses = [course for course in courses if course.get('status') == status]
        if search:
            needle = search.lower()
            courses = [course for course in courses if needle in course.get('title', '').lower()]
        return list(courses)

    def get_stats(self) -> Dict[str, int]:
        """
        Course counts for the summary cards: total, active, inactive and featured.
        Missing counts read as 0.
        """
        data = self._read("/courses/stats", mock_data.mock_course_stats)
        data = data if isinstance(data, dict) else {}
        return {key: _to_int(data.get(key)) for key in STATS_KEYS}

    def list_categories(self) -> List[dict]:
        data = self._read("/categories", lambda: list(mock_data.MOCK_CATEGORIES))
        return self._as_list(data)

    def create_course(self, payload: dict) -> Optional[dict]:
        logger.info(f"Creating course {payload.get('title')!r}")
        return self._write("POST", "/courses", json=payload)

    def update_course(self, course_id: str, payload: dict) -> Optional[dict]:
        logger.info(f"Updating course {course_id}")
        return self._write("PUT", f"/courses/{course_id}", json=payload)

    def delete_course(self, course_id: str):
        logger.info(f"Deleting course {course_id}")
        return self._write("DELETE", f"/courses/{course_id}")

    def publish_course(self, course_id: str):
        logger.info(f"Publishing course {course_id}")
        return self._write("PATCH", f"/courses/{course_id}/publish")

    def unpublish_course(self, course_id: str):
        logger.info(f"Unpublishing course {course_id}")
        return self._write("PATCH", f"/courses/{course_id}/unpublish")

    def set_featured(self, course_id: str, featured: bool):
        logger.info(f"Setting featured={featured} for course {course_id}")
        return self._write("PATCH", f"/courses/{course_id}/featured", json={"featured": featured})

    # Course availability

    def list_availability(self, course_id: str) -> List[AvailabilitySlot]:
        """
        Returns the course's availability slots.

        Raises MissingIdentifierError if a record has no id, since such a slot can't be edited or deleted.
        """
        data = self._read(f"/courses/{course_id}/availability", lambda: mock_data.mock_availability(course_id))
        return [AvailabilitySlot.from_record(record) for record in self._as_list(data)]

    def create_availability(self, course_id: str, payload: dict):
        logger.info(f"Creating availability slot for course {course_id}")
        return self._write("POST", f"/courses/{course_id}/availability", json=payload)

    def update_availability(self, course_id: str, slot_id: str, payload: dict):
        logger.info(f"Updating availability slot {slot_id} for course {course_id}")
        return self._write("PUT", f"/courses/{course_id}/availability/{slot_id}", json=payload)

    def delete_availability(self, course_id: str, slot_id: str):
        logger.info(f"Deleting availability slot {slot_id} for course {course_id}")
        return self._write("DELETE", f"/courses/{course_id}/availability/{slot_id}")
