from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session

from gradeflow.core.config import SUBMISSION_MAX_FILE_BYTES
from gradeflow.core.current_user import get_access_token, get_current_user
from gradeflow.core.deps import get_db, get_grader, get_object_store
from gradeflow.core.permissions import require_lecturer
from gradeflow.models.submission import Submission
from gradeflow.models.user import User
from gradeflow.schemas.submission import (
    SubmissionDetail,
    SubmissionRead,
    SubmissionReview,
    SubmitResult,
)
from gradeflow.services import workflow
from gradeflow.services.intake import read_upload

router = APIRouter()


def to_detail(sub: Submission) -> SubmissionDetail:
    base = SubmissionRead.model_validate(sub).model_dump(
        exclude={"effective_score", "effective_feedback", "grade_source"}
    )
    assignment = sub.assignment
    student = sub.student
    return SubmissionDetail(
        **base,
        student_name=(student.full_name or "Unknown") if student else "Unknown",
        student_email=student.email if student else None,
        assignment_title=assignment.title,
        max_score=assignment.max_score,
        course_id=assignment.course_id,
    )


@router.post(
    "/assignments/{assignment_id}/submissions",
    response_model=SubmitResult,
    status_code=status.HTTP_201_CREATED,
)
def submit_assignment(
    assignment_id: int,
    content_text: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
    access_token: str = Depends(get_access_token),
    store=Depends(get_object_store),
    grader=Depends(get_grader),
):
    upload = read_upload(file, SUBMISSION_MAX_FILE_BYTES)
    outcome = workflow.submit_and_grade(
        db,
        me,
        assignment_id,
        content_text,
        upload,
        store,
        grader,
        access_token=access_token,
    )
    return SubmitResult(
        submission=SubmissionRead.model_validate(outcome.submission),
        graded=outcome.graded,
        grading_error=outcome.grading_error,
        grading_error_kind=outcome.grading_error_kind,
        upload_error=outcome.upload_error,
    )


@router.get(
    "/assignments/{assignment_id}/submissions/me",
    response_model=Optional[SubmissionRead],
)
def my_submission_for_assignment(
    assignment_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    return workflow.get_my_submission(db, me, assignment_id)


@router.get(
    "/assignments/{assignment_id}/submissions",
    response_model=list[SubmissionDetail],
)
def list_submissions_for_assignment(
    assignment_id: int,
    db: Session = Depends(get_db),
    lecturer: User = Depends(require_lecturer),
):
    subs = workflow.list_for_assignment(db, lecturer, assignment_id)
    return [to_detail(s) for s in subs]


@router.get("/submissions/me", response_model=list[SubmissionDetail])
def my_submissions(
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    return [to_detail(s) for s in workflow.list_my_submissions(db, me)]


@router.get("/submissions/{submission_id}", response_model=SubmissionDetail)
def read_submission(
    submission_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    return to_detail(workflow.get_submission(db, me, submission_id))


@router.post("/submissions/{submission_id}/grade", response_model=SubmissionRead)
def retry_grading(
    submission_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
    access_token: str = Depends(get_access_token),
    grader=Depends(get_grader),
):
    """Grade a pending submission again without resubmitting its content."""
    return workflow.grade(db, me, submission_id, grader, access_token=access_token)


@router.patch("/submissions/{submission_id}/review", response_model=SubmissionRead)
def review_submission(
    submission_id: int,
    payload: SubmissionReview,
    db: Session = Depends(get_db),
    lecturer: User = Depends(require_lecturer),
):
    return workflow.override(db, lecturer, submission_id, payload.score, payload.feedback)
