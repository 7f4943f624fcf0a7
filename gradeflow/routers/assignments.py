from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from gradeflow.core.current_user import get_current_user
from gradeflow.core.deps import get_db
from gradeflow.core.permissions import require_lecturer
from gradeflow.models.assignment import Assignment
from gradeflow.models.course import Course
from gradeflow.models.enrollment import Enrollment
from gradeflow.models.user import User
from gradeflow.schemas.assignment import AssignmentCreate, AssignmentRead
from gradeflow.services.workflow import get_assignment

router = APIRouter()


def _ensure_course_exists(db: Session, course_id: int) -> Course:
    course = db.query(Course).filter(Course.id == course_id).first()
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    return course


def _ensure_can_view_course_assignments(db: Session, course: Course, user: User) -> None:
    # Lecturer of the course can view
    if course.lecturer_id == user.id:
        return

    # Enrolled student can view
    is_enrolled = db.query(Enrollment).filter(
        Enrollment.course_id == course.id,
        Enrollment.student_id == user.id
    ).first() is not None

    if not is_enrolled:
        raise HTTPException(status_code=403, detail="Not enrolled in this course")


@router.get("/courses/{course_id}/assignments", response_model=list[AssignmentRead])
def list_assignments(
    course_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    course = _ensure_course_exists(db, course_id)
    _ensure_can_view_course_assignments(db, course, current_user)

    return (
        db.query(Assignment)
        .filter(Assignment.course_id == course_id)
        .order_by(Assignment.due_date.is_(None), Assignment.due_date.asc(), Assignment.id.asc())
        .all()
    )


@router.post(
    "/courses/{course_id}/assignments",
    response_model=AssignmentRead,
    status_code=status.HTTP_201_CREATED,
)
def create_assignment(
    course_id: int,
    payload: AssignmentCreate,
    db: Session = Depends(get_db),
    lecturer: User = Depends(require_lecturer),
):
    course = _ensure_course_exists(db, course_id)

    if course.lecturer_id != lecturer.id:
        raise HTTPException(status_code=403, detail="Only the course lecturer can create assignments")

    a = Assignment(
        course_id=course_id,
        lecturer_id=lecturer.id,
        title=payload.title,
        description=payload.description,
        due_date=payload.due_date,
        max_score=payload.max_score,
        grading_rubric=payload.grading_rubric,
        allow_file_upload=payload.allow_file_upload,
    )
    db.add(a)
    db.commit()
    db.refresh(a)
    return a


@router.get("/assignments/{assignment_id}", response_model=AssignmentRead)
def read_assignment(
    assignment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    a = get_assignment(db, assignment_id)
    _ensure_can_view_course_assignments(db, a.course, current_user)
    return a


@router.delete("/assignments/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_assignment(
    assignment_id: int,
    db: Session = Depends(get_db),
    lecturer: User = Depends(require_lecturer),
):
    a = get_assignment(db, assignment_id)
    if a.lecturer_id != lecturer.id:
        raise HTTPException(status_code=403, detail="Only the assignment's lecturer can delete it")

    db.delete(a)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
