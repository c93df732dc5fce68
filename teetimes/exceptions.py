"""
Exception taxonomy for the tee time aggregator.

Upstream errors never reach API callers: strategies convert them into a
failed FetchResult and the dispatcher degrades to an empty result. Only
CourseNotFound and request validation errors surface as HTTP errors.
"""


class TeeTimesError(Exception):
    """Base class for all application errors."""


class UpstreamUnavailable(TeeTimesError):
    """A booking platform could not be reached or returned unusable data."""


class RenderTimeout(UpstreamUnavailable):
    """Headless navigation or rendering exceeded its timeout."""


class LocatorParseError(UpstreamUnavailable):
    """A course's booking URL does not have the shape its booking system expects."""


class RendererUnavailable(TeeTimesError):
    """The headless browser could not be started or is not running."""


class CacheUnavailable(TeeTimesError):
    """The cache backend failed to serve a read or write."""


class CourseNotFound(TeeTimesError):
    def __init__(self, course_id: str) -> None:
        super().__init__(f"Course not found: {course_id}")
        self.course_id = course_id
