# Custom exceptions to be used throughout the project.

class CourseApiError(Exception):
    """
    To be raised when the marketplace REST API cannot serve a course request.
    May be raised under the following circumstances:
        1. The API answered with a non-2xx status code
        2. The API could not be reached and mock fallback is disabled
        3. The response body was not valid JSON
    """
    def __init__(self, message: str, status_code: int = None):
        super().__init__(message, status_code)
        self.message = message
        self.status_code = status_code


class MissingIdentifierError(Exception):
    """
    Raised when an availability record from the API has no id. Edit and delete
    both address slots by id, so such a record cannot be managed.
    """
    def __init__(self, record: dict):
        self.record = record
        self.message = "Availability record is missing its identifier."
        super().__init__(self.message)
