from fastapi import APIRouter, Depends, HTTPException

from teetimes.exceptions import CourseNotFound
from teetimes.models.schemas import Course
from teetimes.services.context import ServiceContext, get_context

router = APIRouter(prefix="/courses", tags=["courses"])


def lookup_course(course_id: str, ctx: ServiceContext = Depends(get_context)) -> Course:
    """Resolve a course id from the path, answering 404 for unknown ids."""
    try:
        return ctx.registry.get(course_id)
    except CourseNotFound:
        raise HTTPException(status_code=404, detail="Course not found")


@router.get("", response_model=list[Course])
async def list_courses(ctx: ServiceContext = Depends(get_context)) -> list[Course]:
    return ctx.registry.all()


@router.get("/{course_id}", response_model=Course)
async def get_course(course: Course = Depends(lookup_course)) -> Course:
    return course
