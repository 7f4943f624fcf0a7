from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class AssignmentCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    max_score: int = Field(default=100, gt=0)
    grading_rubric: Optional[str] = None
    allow_file_upload: bool = True


class AssignmentRead(BaseModel):
    id: int
    course_id: int
    lecturer_id: int
    title: str
    description: Optional[str]
    due_date: Optional[datetime]
    max_score: int
    grading_rubric: Optional[str]
    allow_file_upload: bool
    created_at: datetime

    class Config:
        from_attributes = True
