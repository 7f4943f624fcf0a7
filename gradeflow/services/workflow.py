"""
Submission workflow engine.

State machine for a submission::

    (none) --submit--> pending --grade--> graded --override--> reviewed
                                                               reviewed --override--> reviewed

Every operation takes the acting user explicitly. The submission row is
committed before grading is attempted, and a failed grading call never
touches the stored row: it stays ``pending`` and can be graded again later.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gradeflow.models.assignment import Assignment
from gradeflow.models.enrollment import Enrollment
from gradeflow.models.submission import GRADED, PENDING, REVIEWED, Submission
from gradeflow.models.user import User
from gradeflow.services.errors import (
    DuplicateSubmissionError,
    GradingContractViolation,
    GradingUnavailableError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    UploadError,
    ValidationError,
)
from gradeflow.services.grading_client import GradingRequest, GradingResult
from gradeflow.services.intake import UploadedFile, answer_text_for_grading, validate_submission
from gradeflow.services.storage import build_object_path

logger = logging.getLogger(__name__)

AWAITING_REVIEW = (PENDING, GRADED)


@dataclass
class SubmitOutcome:
    submission: Submission
    graded: bool = False
    grading_error: Optional[str] = None
    grading_error_kind: Optional[str] = None
    upload_error: Optional[str] = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; treat them as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _later_than(previous: datetime | None) -> datetime:
    now = _now()
    if previous is not None and _as_utc(previous) >= now:
        return _as_utc(previous) + timedelta(microseconds=1)
    return now


def check_status_invariants(sub: Submission) -> None:
    """Status must agree with the score fields before anything is committed."""
    if sub.status == PENDING and sub.ai_score is not None:
        raise InvalidTransitionError("pending submission cannot carry an AI score")
    if sub.status == GRADED and sub.ai_score is None:
        raise InvalidTransitionError("graded submission needs an AI score")
    if sub.status == REVIEWED and sub.manual_score is None:
        raise InvalidTransitionError("reviewed submission needs a manual score")
    if sub.status not in (PENDING, GRADED, REVIEWED):
        raise InvalidTransitionError(f"unknown submission status {sub.status!r}")


def _commit(db: Session) -> None:
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise


# ---- lookups ----

def get_assignment(db: Session, assignment_id: int) -> Assignment:
    a = db.query(Assignment).filter(Assignment.id == assignment_id).first()
    if not a:
        raise NotFoundError("Assignment not found")
    return a


def _get_submission(db: Session, submission_id: int) -> Submission:
    sub = db.query(Submission).filter(Submission.id == submission_id).first()
    if not sub:
        raise NotFoundError("Submission not found")
    return sub


def _find_submission(db: Session, assignment_id: int, student_id: int) -> Submission | None:
    return (
        db.query(Submission)
        .filter(
            Submission.assignment_id == assignment_id,
            Submission.student_id == student_id,
        )
        .first()
    )


def _ensure_student_enrolled(db: Session, assignment: Assignment, actor: User) -> None:
    if actor.is_lecturer:
        raise PermissionDeniedError("Only students can submit assignments")
    enrolled = (
        db.query(Enrollment)
        .filter(
            Enrollment.course_id == assignment.course_id,
            Enrollment.student_id == actor.id,
        )
        .first()
        is not None
    )
    if not enrolled:
        raise PermissionDeniedError("Not enrolled in this course")


def _ensure_assignment_lecturer(assignment: Assignment, actor: User) -> None:
    if assignment.lecturer_id != actor.id:
        raise PermissionDeniedError("Only the assignment's lecturer can do this")


# ---- (none) -> pending ----

def _discard_object(store, path: str | None) -> None:
    """Remove an object uploaded for a submission that was never stored."""
    if path is None:
        return
    try:
        store.delete(path)
    except UploadError as e:
        logger.error("Orphaned upload %s could not be removed: %s", path, e.detail)


def submit(
    db: Session,
    actor: User,
    assignment_id: int,
    content_text: str | None,
    upload: UploadedFile | None,
    store,
) -> SubmitOutcome:
    assignment = get_assignment(db, assignment_id)
    _ensure_student_enrolled(db, assignment, actor)

    if upload is not None and not assignment.allow_file_upload:
        raise ValidationError("This assignment does not accept file uploads", field="file")
    validate_submission(content_text, upload)

    if _find_submission(db, assignment.id, actor.id) is not None:
        raise DuplicateSubmissionError()

    has_text = bool(content_text and content_text.strip())
    file_url = None
    object_path = None
    upload_error = None
    if upload is not None:
        path = build_object_path(actor.id, f"assignment-{assignment.id}", upload.extension)
        try:
            file_url = store.upload(upload.data, path)
            object_path = path
        except UploadError as e:
            if not has_text:
                raise
            logger.warning(
                "Upload failed for assignment %s student %s, submitting text only: %s",
                assignment.id,
                actor.id,
                e.detail,
            )
            upload_error = e.detail

    sub = Submission(
        assignment_id=assignment.id,
        student_id=actor.id,
        content_text=content_text if has_text else None,
        file_url=file_url,
        answer_text=answer_text_for_grading(content_text, upload if file_url else None),
        status=PENDING,
        needs_attention=False,
        submitted_at=_now(),
    )
    check_status_invariants(sub)
    db.add(sub)

    try:
        db.commit()
    except IntegrityError:
        # lost a race against a concurrent submit for the same pair
        db.rollback()
        _discard_object(store, object_path)
        raise DuplicateSubmissionError()
    except Exception:
        db.rollback()
        _discard_object(store, object_path)
        raise

    db.refresh(sub)
    logger.info("Submission %s created for assignment %s by student %s", sub.id, assignment.id, actor.id)
    return SubmitOutcome(submission=sub, upload_error=upload_error)


# ---- pending -> graded ----

def _check_contract(result: GradingResult, max_score: int) -> GradingContractViolation | None:
    if result.score < 0 or result.score > max_score:
        return GradingContractViolation(
            f"AI score {result.score} outside [0, {max_score}]"
        )
    if not result.feedback or not result.feedback.strip():
        return GradingContractViolation("AI feedback is empty")
    return None


def _stored_answer(sub: Submission) -> str:
    if sub.answer_text:
        return sub.answer_text
    if sub.content_text:
        return sub.content_text
    return f"[Submitted file: {sub.file_url}]"


def grade(
    db: Session,
    actor: User,
    submission_id: int,
    grader,
    access_token: str | None = None,
) -> Submission:
    sub = _get_submission(db, submission_id)
    assignment = sub.assignment

    if actor.id not in (sub.student_id, assignment.lecturer_id):
        raise PermissionDeniedError("Not allowed to grade this submission")
    if sub.status != PENDING:
        raise InvalidTransitionError(f"Submission is already {sub.status}")

    request = GradingRequest(
        assignment_title=assignment.title,
        assignment_context=assignment.grading_context(),
        student_answer=_stored_answer(sub),
        max_score=assignment.max_score,
    )

    try:
        result = grader.grade(request, access_token=access_token)
    except GradingUnavailableError as e:
        logger.warning("Grading failed for submission %s (%s): %s", sub.id, e.kind, e.detail)
        raise

    violation = _check_contract(result, assignment.max_score)
    if violation is not None:
        logger.warning("Grading contract violation on submission %s: %s", sub.id, violation.detail)

    # conditional on status so two concurrent graders cannot both apply
    updated = (
        db.query(Submission)
        .filter(Submission.id == sub.id, Submission.status == PENDING)
        .update(
            {
                Submission.ai_score: result.score,
                Submission.ai_feedback: result.feedback,
                Submission.status: GRADED,
                Submission.graded_at: _now(),
                Submission.needs_attention: violation is not None,
            },
            synchronize_session=False,
        )
    )
    _commit(db)

    if not updated:
        raise InvalidTransitionError("Submission was graded concurrently")

    db.refresh(sub)
    check_status_invariants(sub)
    logger.info("Submission %s graded: ai_score=%s", sub.id, sub.ai_score)
    return sub


def submit_and_grade(
    db: Session,
    actor: User,
    assignment_id: int,
    content_text: str | None,
    upload: UploadedFile | None,
    store,
    grader,
    access_token: str | None = None,
) -> SubmitOutcome:
    """Submit, then try to grade. A grading failure is reported, not raised."""
    outcome = submit(db, actor, assignment_id, content_text, upload, store)

    try:
        outcome.submission = grade(
            db,
            actor,
            outcome.submission.id,
            grader,
            access_token=access_token,
        )
        outcome.graded = True
    except GradingUnavailableError as e:
        outcome.grading_error = e.detail
        outcome.grading_error_kind = e.kind
        db.refresh(outcome.submission)

    return outcome


# ---- graded -> reviewed, reviewed -> reviewed ----

def validate_override(score, feedback: str | None, max_score: int) -> None:
    if isinstance(score, bool) or not isinstance(score, int):
        raise ValidationError("score must be an integer", field="score")
    if score < 0 or score > max_score:
        raise ValidationError(f"score must be between 0 and {max_score}", field="score")
    if feedback is None or not feedback.strip():
        raise ValidationError("feedback is required", field="feedback")


def override(
    db: Session,
    actor: User,
    submission_id: int,
    score: int,
    feedback: str,
) -> Submission:
    sub = _get_submission(db, submission_id)
    assignment = sub.assignment
    _ensure_assignment_lecturer(assignment, actor)

    if sub.status not in (GRADED, REVIEWED):
        raise InvalidTransitionError("Submission has not been graded yet")
    validate_override(score, feedback, assignment.max_score)

    sub.manual_score = score
    sub.manual_feedback = feedback
    sub.status = REVIEWED
    sub.reviewed_at = _later_than(sub.reviewed_at)
    sub.needs_attention = False
    check_status_invariants(sub)

    _commit(db)
    db.refresh(sub)
    logger.info("Submission %s reviewed by lecturer %s: manual_score=%s", sub.id, actor.id, score)
    return sub


# ---- queries ----

def get_submission(db: Session, actor: User, submission_id: int) -> Submission:
    sub = _get_submission(db, submission_id)
    if actor.id not in (sub.student_id, sub.assignment.lecturer_id):
        raise PermissionDeniedError("Not allowed to view this submission")
    return sub


def get_my_submission(db: Session, actor: User, assignment_id: int) -> Submission | None:
    get_assignment(db, assignment_id)
    return _find_submission(db, assignment_id, actor.id)


def list_my_submissions(db: Session, actor: User) -> list[Submission]:
    return (
        db.query(Submission)
        .filter(Submission.student_id == actor.id)
        .order_by(Submission.submitted_at.desc(), Submission.id.desc())
        .all()
    )


def list_for_assignment(db: Session, actor: User, assignment_id: int) -> list[Submission]:
    assignment = get_assignment(db, assignment_id)
    _ensure_assignment_lecturer(assignment, actor)
    return (
        db.query(Submission)
        .filter(Submission.assignment_id == assignment_id)
        .order_by(Submission.submitted_at.asc(), Submission.id.asc())
        .all()
    )


def list_pending_for_lecturer(
    db: Session,
    actor: User,
    statuses: tuple[str, ...] = AWAITING_REVIEW,
) -> list[Submission]:
    """Submissions on the lecturer's assignments still waiting for a review."""
    if not actor.is_lecturer:
        raise PermissionDeniedError("Lecturer role required")
    return (
        db.query(Submission)
        .join(Assignment, Submission.assignment_id == Assignment.id)
        .filter(
            Assignment.lecturer_id == actor.id,
            Submission.status.in_(statuses),
        )
        .order_by(Submission.submitted_at.asc(), Submission.id.asc())
        .all()
    )
