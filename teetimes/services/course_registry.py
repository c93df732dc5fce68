"""
Static registry of the golf courses the service knows about.

Courses are loaded once at startup, from settings.courses_file when it is
set (a JSON array of course objects) and otherwise from the built-in list
of Salt Lake area courses.
"""

import logging
from pathlib import Path

from pydantic import TypeAdapter

from teetimes.exceptions import CourseNotFound
from teetimes.models.schemas import BookingSystem, Course

logger = logging.getLogger(__name__)

UTAH_COURSES: tuple[Course, ...] = (
    Course(
        id="bonneville",
        name="Bonneville Golf Course",
        booking_url="https://foreupsoftware.com/index.php/booking/20287/5495",
        booking_system=BookingSystem.FOREUP,
        city="Salt Lake City",
    ),
    Course(
        id="mountain-dell-canyon",
        name="Mountain Dell Golf Course - Canyon",
        booking_url="https://foreupsoftware.com/index.php/booking/20287/5496",
        booking_system=BookingSystem.FOREUP,
        city="Salt Lake City",
    ),
    Course(
        id="river-oaks",
        name="River Oaks Golf Course",
        booking_url="https://www.golfnow.com/tee-times/facility/19765-river-oaks-golf-course/search",
        booking_system=BookingSystem.GOLFNOW,
        city="Sandy",
    ),
    Course(
        id="thanksgiving-point",
        name="Thanksgiving Point Golf Club",
        booking_url="https://www.golfnow.com/tee-times/facility/1126-thanksgiving-point-golf-club/search",
        booking_system=BookingSystem.GOLFNOW,
        city="Lehi",
    ),
    Course(
        id="meadowbrook",
        name="Meadowbrook Golf Course",
        booking_url="https://www.chronogolf.com/course/meadowbrook-golf-course",
        booking_system=BookingSystem.CHRONOGOLF,
        city="Taylorsville",
    ),
)

_courses_adapter = TypeAdapter(list[Course])


class CourseRegistry:
    """Read-only, ordered collection of courses keyed by id."""

    def __init__(self, courses: tuple[Course, ...] | list[Course] = UTAH_COURSES) -> None:
        self._courses: dict[str, Course] = {}
        for course in courses:
            if course.id in self._courses:
                raise ValueError(f"Duplicate course id in registry: {course.id}")
            self._courses[course.id] = course

    @classmethod
    def from_file(cls, path: str | Path) -> "CourseRegistry":
        courses = _courses_adapter.validate_json(Path(path).read_bytes())
        logger.info(f"Loaded {len(courses)} course(s) from {path}")
        return cls(courses)

    def all(self) -> list[Course]:
        return list(self._courses.values())

    def ids(self) -> list[str]:
        return list(self._courses)

    def find(self, course_id: str) -> Course | None:
        return self._courses.get(course_id)

    def get(self, course_id: str) -> Course:
        course = self._courses.get(course_id)
        if course is None:
            raise CourseNotFound(course_id)
        return course

    def __len__(self) -> int:
        return len(self._courses)


def load_registry(courses_file: str = "") -> CourseRegistry:
    if courses_file:
        return CourseRegistry.from_file(courses_file)
    return CourseRegistry()
