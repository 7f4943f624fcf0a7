from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class GradingFunctionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    assignment_title: str = Field(default="", alias="assignmentTitle")
    assignment_context: str = Field(default="", alias="assignmentContext")
    student_answer: str = Field(default="", alias="studentAnswer")
    max_score: int = Field(default=100, gt=0, alias="maxScore")


class GradingFunctionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    score: float
    feedback: str
    processing_time_ms: Optional[int] = Field(default=None, alias="processingTimeMs")
