from datetime import datetime

from pydantic import BaseModel, Field


class CourseCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    course_code: str | None = Field(default=None, max_length=50)
    description: str | None = None


class CourseRead(BaseModel):
    id: int
    title: str
    course_code: str | None = None
    description: str | None = None
    lecturer_id: int

    class Config:
        from_attributes = True


class EnrollmentRead(BaseModel):
    id: int
    student_id: int
    course_id: int
    enrolled_at: datetime

    class Config:
        from_attributes = True


class MaterialRead(BaseModel):
    course_id: int
    filename: str
    content_type: str
    size: int
    url: str
