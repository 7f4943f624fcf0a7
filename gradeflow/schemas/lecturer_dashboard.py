from pydantic import BaseModel


class LecturerCourseStats(BaseModel):
    course_id: int
    course_title: str
    total_students: int
    total_assignments: int
    total_submissions: int
    awaiting_grading: int
    awaiting_review: int
    needs_attention: int
    average_percentage: float | None
