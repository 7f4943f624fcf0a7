from pydantic import BaseModel


class AssignmentStatsRow(BaseModel):
    assignment_id: int
    assignment_title: str
    max_score: int
    total_students: int
    submitted: int
    pending: int
    graded: int
    reviewed: int
    missing: int
    average_score: float | None


class CourseAnalytics(BaseModel):
    course_id: int
    course_title: str
    total_students: int
    total_assignments: int
    total_submissions: int
    completion_rate: float
    average_percentage: float | None
    assignments: list[AssignmentStatsRow]
