from datetime import datetime
from typing import Optional

from pydantic import BaseModel, computed_field

from gradeflow.services.grade_resolution import resolve_grade


class SubmissionRead(BaseModel):
    id: int
    assignment_id: int
    student_id: int
    content_text: Optional[str] = None
    file_url: Optional[str] = None
    status: str
    ai_score: Optional[int] = None
    ai_feedback: Optional[str] = None
    manual_score: Optional[int] = None
    manual_feedback: Optional[str] = None
    needs_attention: bool = False
    submitted_at: datetime
    graded_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @computed_field
    @property
    def effective_score(self) -> Optional[int]:
        return resolve_grade(self).score

    @computed_field
    @property
    def effective_feedback(self) -> Optional[str]:
        return resolve_grade(self).feedback

    @computed_field
    @property
    def grade_source(self) -> str:
        return resolve_grade(self).source


class SubmissionDetail(SubmissionRead):
    """Submission with the joined student and assignment fields."""

    student_name: Optional[str] = None
    student_email: Optional[str] = None
    assignment_title: Optional[str] = None
    max_score: Optional[int] = None
    course_id: Optional[int] = None


class SubmitResult(BaseModel):
    submission: SubmissionRead
    graded: bool
    grading_error: Optional[str] = None
    grading_error_kind: Optional[str] = None
    upload_error: Optional[str] = None


class SubmissionReview(BaseModel):
    score: int
    feedback: str
