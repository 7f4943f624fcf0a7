from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gradeflow.core.deps import get_db
from gradeflow.core.permissions import require_lecturer
from gradeflow.models.assignment import Assignment
from gradeflow.models.course import Course
from gradeflow.models.enrollment import Enrollment
from gradeflow.models.submission import GRADED, PENDING, Submission
from gradeflow.models.user import User
from gradeflow.routers.submissions import to_detail
from gradeflow.schemas.lecturer_dashboard import LecturerCourseStats
from gradeflow.schemas.submission import SubmissionDetail
from gradeflow.services import workflow
from gradeflow.services.grade_resolution import average_percentage

router = APIRouter(tags=["lecturer"])


@router.get("/lecturer/grading-queue", response_model=list[SubmissionDetail])
def grading_queue(
    db: Session = Depends(get_db),
    me: User = Depends(require_lecturer),
):
    return [to_detail(s) for s in workflow.list_pending_for_lecturer(db, me)]


@router.get("/lecturer/dashboard", response_model=list[LecturerCourseStats])
def lecturer_dashboard(
    db: Session = Depends(get_db),
    me: User = Depends(require_lecturer),
):
    courses = db.query(Course).filter(Course.lecturer_id == me.id).order_by(Course.id.asc()).all()

    rows: list[LecturerCourseStats] = []

    for course in courses:
        total_students = (
            db.query(Enrollment).filter(Enrollment.course_id == course.id).count()
        )

        total_assignments = (
            db.query(Assignment).filter(Assignment.course_id == course.id).count()
        )

        pairs = (
            db.query(Submission, Assignment.max_score)
            .join(Assignment, Submission.assignment_id == Assignment.id)
            .filter(Assignment.course_id == course.id)
            .all()
        )
        subs = [s for s, _ in pairs]

        rows.append(
            LecturerCourseStats(
                course_id=course.id,
                course_title=course.title,
                total_students=total_students,
                total_assignments=total_assignments,
                total_submissions=len(subs),
                awaiting_grading=sum(1 for s in subs if s.status == PENDING),
                awaiting_review=sum(1 for s in subs if s.status == GRADED),
                needs_attention=sum(1 for s in subs if s.needs_attention),
                average_percentage=average_percentage(pairs),
            )
        )

    return rows
