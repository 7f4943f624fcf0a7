from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gradeflow.core.config import COURSE_MATERIAL_MAX_FILE_BYTES
from gradeflow.core.current_user import get_current_user
from gradeflow.core.deps import get_db, get_object_store
from gradeflow.core.permissions import require_lecturer
from gradeflow.models.assignment import Assignment
from gradeflow.models.course import Course
from gradeflow.models.enrollment import Enrollment
from gradeflow.models.submission import GRADED, PENDING, REVIEWED, Submission
from gradeflow.models.user import User
from gradeflow.schemas.assignment_stats import AssignmentStatsRow, CourseAnalytics
from gradeflow.schemas.course import CourseCreate, CourseRead, EnrollmentRead, MaterialRead
from gradeflow.services.errors import ValidationError
from gradeflow.services.grade_resolution import average_percentage, average_score, completion_rate
from gradeflow.services.intake import read_upload, validate_material
from gradeflow.services.storage import build_object_path

router = APIRouter()


def _ensure_course_exists(db: Session, course_id: int) -> Course:
    course = db.query(Course).filter(Course.id == course_id).first()
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    return course


def _ensure_course_lecturer(course: Course, user: User) -> None:
    if course.lecturer_id != user.id:
        raise HTTPException(status_code=403, detail="Not course lecturer")


@router.get("", response_model=list[CourseRead])
def list_courses(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return db.query(Course).order_by(Course.id.asc()).all()


@router.post("", response_model=CourseRead, status_code=status.HTTP_201_CREATED)
def create_course(
    payload: CourseCreate,
    db: Session = Depends(get_db),
    lecturer: User = Depends(require_lecturer),
):
    course = Course(
        title=payload.title,
        course_code=payload.course_code,
        description=payload.description,
        lecturer_id=lecturer.id,
    )
    db.add(course)
    db.commit()
    db.refresh(course)
    return course


@router.get("/me", response_model=list[CourseRead])
def my_courses(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    # lecturers see the courses they teach, students the ones they're enrolled in
    if current_user.is_lecturer:
        return db.query(Course).filter(Course.lecturer_id == current_user.id).all()
    return (
        db.query(Course)
        .join(Enrollment, Enrollment.course_id == Course.id)
        .filter(Enrollment.student_id == current_user.id)
        .all()
    )


@router.post(
    "/{course_id}/enroll",
    response_model=EnrollmentRead,
    status_code=status.HTTP_201_CREATED,
)
def enroll(
    course_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    _ensure_course_exists(db, course_id)
    if me.is_lecturer:
        raise HTTPException(status_code=403, detail="Only students can enroll")

    enrollment = Enrollment(student_id=me.id, course_id=course_id)
    db.add(enrollment)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Already enrolled")

    db.refresh(enrollment)
    return enrollment


@router.post(
    "/{course_id}/materials",
    response_model=MaterialRead,
    status_code=status.HTTP_201_CREATED,
)
def upload_material(
    course_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    lecturer: User = Depends(require_lecturer),
    store=Depends(get_object_store),
):
    course = _ensure_course_exists(db, course_id)
    _ensure_course_lecturer(course, lecturer)

    upload = read_upload(file, COURSE_MATERIAL_MAX_FILE_BYTES)
    if upload is None:
        raise ValidationError("A file is required", field="file")
    validate_material(upload)

    path = build_object_path(lecturer.id, f"course-{course.id}", upload.extension)
    url = store.upload(upload.data, path)
    return MaterialRead(
        course_id=course.id,
        filename=upload.filename,
        content_type=upload.content_type,
        size=upload.size,
        url=url,
    )


@router.get("/{course_id}/analytics", response_model=CourseAnalytics)
def course_analytics(
    course_id: int,
    db: Session = Depends(get_db),
    lecturer: User = Depends(require_lecturer),
):
    course = _ensure_course_exists(db, course_id)
    _ensure_course_lecturer(course, lecturer)

    total_students = (
        db.query(Enrollment).filter(Enrollment.course_id == course_id).count()
    )
    assignments = (
        db.query(Assignment)
        .filter(Assignment.course_id == course_id)
        .order_by(Assignment.id.asc())
        .all()
    )

    rows: list[AssignmentStatsRow] = []
    scored: list[tuple[Submission, int]] = []
    total_submissions = 0

    for a in assignments:
        subs = db.query(Submission).filter(Submission.assignment_id == a.id).all()
        statuses = [s.status for s in subs]
        total_submissions += len(subs)
        scored.extend((s, a.max_score) for s in subs)

        rows.append(
            AssignmentStatsRow(
                assignment_id=a.id,
                assignment_title=a.title,
                max_score=a.max_score,
                total_students=total_students,
                submitted=len(subs),
                pending=statuses.count(PENDING),
                graded=statuses.count(GRADED),
                reviewed=statuses.count(REVIEWED),
                missing=max(total_students - len(subs), 0),
                average_score=average_score(subs),
            )
        )

    return CourseAnalytics(
        course_id=course.id,
        course_title=course.title,
        total_students=total_students,
        total_assignments=len(assignments),
        total_submissions=total_submissions,
        completion_rate=completion_rate(total_submissions, total_students * len(assignments)),
        average_percentage=average_percentage(scored),
        assignments=rows,
    )
