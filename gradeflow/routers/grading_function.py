import logging
import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gradeflow.core.config import GRADING_MODEL
from gradeflow.core.current_user import get_current_user
from gradeflow.core.deps import get_db
from gradeflow.models.ai_grading_log import AIGradingLog
from gradeflow.models.user import User
from gradeflow.schemas.grading import GradingFunctionRequest, GradingFunctionResponse
from gradeflow.services import llm_grader

logger = logging.getLogger(__name__)

router = APIRouter(tags=["functions"])


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "score": None, "feedback": None},
    )


@router.post(
    "/functions/v1/grade-submission",
    response_model=GradingFunctionResponse,
    responses={400: {"description": "Missing fields"}, 500: {"description": "Grading error"}},
)
def grade_submission_function(
    payload: GradingFunctionRequest,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    start = time.monotonic()

    if not payload.student_answer.strip() or not payload.assignment_context.strip():
        return _error("Missing required fields: studentAnswer and assignmentContext", 400)

    try:
        raw_score, feedback = llm_grader.grade_with_openai(
            payload.assignment_title,
            payload.assignment_context,
            payload.student_answer,
            payload.max_score,
        )
    except llm_grader.LLMGradingError as e:
        logger.error("Grading error: %s", e)
        return _error(str(e), 500)

    processing_time_ms = int((time.monotonic() - start) * 1000)

    # this function owns the bound; the workflow only checks it
    score = min(max(0, round(raw_score)), payload.max_score)

    db.add(
        AIGradingLog(
            user_id=me.id,
            assignment_title=payload.assignment_title,
            student_answer=payload.student_answer[:5000],
            rubric_context=payload.assignment_context[:2000],
            ai_score=score,
            ai_feedback=feedback,
            model_used=GRADING_MODEL,
            processing_time_ms=processing_time_ms,
        )
    )
    try:
        db.commit()
    except SQLAlchemyError as e:
        # a lost log row must not fail the grading
        db.rollback()
        logger.error("Failed to log grading: %s", e)

    return GradingFunctionResponse(
        score=score,
        feedback=feedback,
        processing_time_ms=processing_time_ms,
    )
