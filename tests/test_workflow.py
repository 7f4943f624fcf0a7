import pytest

from gradeflow.models.submission import GRADED, PENDING, REVIEWED, Submission
from gradeflow.models.user import User
from gradeflow.services import workflow
from gradeflow.services.errors import (
    DuplicateSubmissionError,
    GradingAuthError,
    GradingTimeoutError,
    GradingUnavailableError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    UploadError,
    ValidationError,
)
from gradeflow.services.grading_client import GradingResult
from gradeflow.services.intake import PDF, TXT, UploadedFile

ANSWER = "DNA replication involves helicase and polymerase."


class FailingObjectStore:
    def upload(self, data, path):
        raise UploadError("storage is down")


def user(db, user_id) -> User:
    return db.query(User).filter(User.id == user_id).one()


def count_rows(db, assignment_id, student_id) -> int:
    return (
        db.query(Submission)
        .filter(Submission.assignment_id == assignment_id, Submission.student_id == student_id)
        .count()
    )


def assert_status_consistent(sub):
    if sub.status == PENDING:
        assert sub.ai_score is None
    elif sub.status == GRADED:
        assert sub.ai_score is not None
    elif sub.status == REVIEWED:
        assert sub.manual_score is not None


def test_scenario_submit_grade_override(db, seed_data, store, grader):
    student = user(db, seed_data["student_id"])
    lecturer = user(db, seed_data["lecturer_id"])

    outcome = workflow.submit(db, student, seed_data["assignment_id"], ANSWER, None, store)
    sub = outcome.submission
    assert sub.status == PENDING
    assert sub.ai_score is None
    assert sub.file_url is None

    sub = workflow.grade(db, student, sub.id, grader)
    assert sub.status == GRADED
    assert sub.ai_score == 72
    assert sub.graded_at is not None

    sub = workflow.override(db, lecturer, sub.id, 80, "Good, but add Okazaki fragments.")
    assert sub.status == REVIEWED
    assert sub.manual_score == 80
    assert sub.ai_score == 72
    assert sub.manual_feedback == "Good, but add Okazaki fragments."
    assert_status_consistent(sub)


def test_grading_request_carries_assignment_context(db, seed_data, store, grader):
    student = user(db, seed_data["student_id"])

    workflow.submit_and_grade(db, student, seed_data["assignment_id"], ANSWER, None, store, grader, access_token="t")

    request, token = grader.calls[0]
    assert token == "t"
    assert request.assignment_title == "DNA Replication"
    assert request.assignment_context == (
        "Explain how DNA is replicated.\n\nGrading Rubric: "
        "Mentions helicase, polymerase and Okazaki fragments."
    )
    assert request.student_answer == ANSWER
    assert request.max_score == 100


def test_duplicate_submission_rejected_and_original_untouched(db, seed_data, store):
    student = user(db, seed_data["student_id"])
    first = workflow.submit(db, student, seed_data["assignment_id"], ANSWER, None, store).submission

    with pytest.raises(DuplicateSubmissionError):
        workflow.submit(db, student, seed_data["assignment_id"], "a different answer", None, store)

    db.refresh(first)
    assert first.content_text == ANSWER
    assert count_rows(db, seed_data["assignment_id"], student.id) == 1


def test_constraint_violation_translated_to_duplicate(db, seed_data, store, monkeypatch):
    student = user(db, seed_data["student_id"])
    workflow.submit(db, student, seed_data["assignment_id"], ANSWER, None, store)

    # simulate the race: the pre-check sees nothing, the unique constraint fires
    monkeypatch.setattr(workflow, "_find_submission", lambda *args: None)
    with pytest.raises(DuplicateSubmissionError):
        workflow.submit(db, student, seed_data["assignment_id"], "second", None, store)

    assert count_rows(db, seed_data["assignment_id"], student.id) == 1


def test_lost_insert_race_removes_uploaded_object(db, seed_data, store, monkeypatch):
    student = user(db, seed_data["student_id"])
    workflow.submit(db, student, seed_data["assignment_id"], ANSWER, None, store)

    monkeypatch.setattr(workflow, "_find_submission", lambda *args: None)
    f = UploadedFile(filename="answer.pdf", content_type=PDF, data=b"%PDF-1.4")
    with pytest.raises(DuplicateSubmissionError):
        workflow.submit(db, student, seed_data["assignment_id"], None, f, store)

    assert list(store.root.rglob("*.pdf")) == []


def test_empty_submission_rejected_before_any_write(db, seed_data, store):
    student = user(db, seed_data["student_id"])

    with pytest.raises(ValidationError):
        workflow.submit(db, student, seed_data["assignment_id"], "  ", None, store)

    assert count_rows(db, seed_data["assignment_id"], student.id) == 0


def test_file_rejected_when_assignment_disallows_uploads(db, seed_data, store):
    student = user(db, seed_data["student_id"])
    assignment = workflow.get_assignment(db, seed_data["assignment_id"])
    assignment.allow_file_upload = False
    db.commit()

    f = UploadedFile(filename="a.pdf", content_type=PDF, data=b"%PDF")
    with pytest.raises(ValidationError):
        workflow.submit(db, student, assignment.id, ANSWER, f, store)


def test_file_submission_stored_under_student_and_assignment(db, seed_data, store):
    student = user(db, seed_data["student_id"])
    f = UploadedFile(filename="answer.pdf", content_type=PDF, data=b"%PDF-1.4")

    sub = workflow.submit(db, student, seed_data["assignment_id"], None, f, store).submission

    prefix = f"http://testserver/files/{student.id}/assignment-{seed_data['assignment_id']}/"
    assert sub.file_url.startswith(prefix)
    assert sub.file_url.endswith(".pdf")
    assert sub.content_text is None


def test_upload_failure_falls_back_to_text(db, seed_data):
    student = user(db, seed_data["student_id"])
    f = UploadedFile(filename="answer.pdf", content_type=PDF, data=b"%PDF")

    outcome = workflow.submit(db, student, seed_data["assignment_id"], ANSWER, f, FailingObjectStore())

    assert outcome.upload_error == "storage is down"
    assert outcome.submission.file_url is None
    assert outcome.submission.content_text == ANSWER


def test_upload_failure_without_text_fails_whole_submit(db, seed_data):
    student = user(db, seed_data["student_id"])
    f = UploadedFile(filename="answer.pdf", content_type=PDF, data=b"%PDF")

    with pytest.raises(UploadError):
        workflow.submit(db, student, seed_data["assignment_id"], None, f, FailingObjectStore())

    assert count_rows(db, seed_data["assignment_id"], student.id) == 0


@pytest.mark.parametrize(
    "error,kind",
    [
        (GradingUnavailableError("model error"), "unavailable"),
        (GradingTimeoutError("timed out"), "timeout"),
        (GradingAuthError("Unauthorized"), "auth"),
    ],
)
def test_grading_failure_keeps_submission_pending(db, seed_data, store, grader, error, kind):
    student = user(db, seed_data["student_id"])
    grader.error = error

    outcome = workflow.submit_and_grade(db, student, seed_data["assignment_id"], ANSWER, None, store, grader)

    assert outcome.graded is False
    assert outcome.grading_error_kind == kind
    sub = workflow.get_my_submission(db, student, seed_data["assignment_id"])
    assert sub.status == PENDING
    assert sub.ai_score is None
    assert sub.ai_feedback is None
    assert sub.content_text == ANSWER


def test_retry_after_failure_grades_without_resubmitting(db, seed_data, store, grader):
    student = user(db, seed_data["student_id"])
    grader.error = GradingTimeoutError("timed out")
    outcome = workflow.submit_and_grade(db, student, seed_data["assignment_id"], ANSWER, None, store, grader)

    grader.error = None
    sub = workflow.grade(db, student, outcome.submission.id, grader)

    assert sub.status == GRADED
    assert sub.ai_score == 72
    assert grader.calls[-1][0].student_answer == ANSWER


def test_retry_of_file_submission_grades_the_same_answer(db, seed_data, store, grader):
    student = user(db, seed_data["student_id"])
    f = UploadedFile(filename="answer.txt", content_type=TXT, data=b"Helicase unwinds the helix.")
    grader.error = GradingTimeoutError("timed out")
    outcome = workflow.submit_and_grade(db, student, seed_data["assignment_id"], None, f, store, grader)

    grader.error = None
    sub = workflow.grade(db, student, outcome.submission.id, grader)

    first, retry = grader.calls[0][0], grader.calls[1][0]
    assert first.student_answer == "Helicase unwinds the helix."
    assert retry.student_answer == first.student_answer
    assert sub.status == GRADED
    assert sub.content_text is None


def test_grading_failure_leaves_file_submission_untouched(db, seed_data, store, grader):
    student = user(db, seed_data["student_id"])
    f = UploadedFile(filename="answer.pdf", content_type=PDF, data=b"%PDF-1.4")
    grader.error = GradingUnavailableError("model error")

    outcome = workflow.submit_and_grade(db, student, seed_data["assignment_id"], None, f, store, grader)
    file_url = outcome.submission.file_url
    assert file_url is not None

    sub = workflow.get_my_submission(db, student, seed_data["assignment_id"])
    assert sub.status == PENDING
    assert sub.file_url == file_url
    assert sub.content_text is None
    assert sub.ai_score is None



def test_out_of_range_ai_score_stored_with_flag(db, seed_data, store, grader):
    student = user(db, seed_data["student_id"])
    grader.result = GradingResult(score=130, feedback="Excellent")

    outcome = workflow.submit_and_grade(db, student, seed_data["assignment_id"], ANSWER, None, store, grader)

    sub = outcome.submission
    assert sub.status == GRADED
    assert sub.ai_score == 130
    assert sub.needs_attention is True


def test_empty_ai_feedback_stored_with_flag(db, seed_data, store, grader):
    student = user(db, seed_data["student_id"])
    grader.result = GradingResult(score=50, feedback="")

    sub = workflow.submit_and_grade(db, student, seed_data["assignment_id"], ANSWER, None, store, grader).submission

    assert sub.status == GRADED
    assert sub.needs_attention is True


def test_grading_twice_is_rejected(db, seed_data, store, grader):
    student = user(db, seed_data["student_id"])
    sub = workflow.submit_and_grade(db, student, seed_data["assignment_id"], ANSWER, None, store, grader).submission

    with pytest.raises(InvalidTransitionError):
        workflow.grade(db, student, sub.id, grader)


def test_override_twice_second_wins_and_ai_kept(db, seed_data, store, grader):
    student = user(db, seed_data["student_id"])
    lecturer = user(db, seed_data["lecturer_id"])
    sub = workflow.submit_and_grade(db, student, seed_data["assignment_id"], ANSWER, None, store, grader).submission

    first = workflow.override(db, lecturer, sub.id, 80, "Good")
    first_reviewed_at = first.reviewed_at

    second = workflow.override(db, lecturer, sub.id, 65, "Missing Okazaki fragments")

    assert second.manual_score == 65
    assert second.manual_feedback == "Missing Okazaki fragments"
    assert second.reviewed_at > first_reviewed_at
    assert second.ai_score == 72
    assert second.ai_feedback == "Solid answer, mention Okazaki fragments."


def test_override_clears_attention_flag(db, seed_data, store, grader):
    student = user(db, seed_data["student_id"])
    lecturer = user(db, seed_data["lecturer_id"])
    grader.result = GradingResult(score=130, feedback="Excellent")
    sub = workflow.submit_and_grade(db, student, seed_data["assignment_id"], ANSWER, None, store, grader).submission

    sub = workflow.override(db, lecturer, sub.id, 100, "Capped at max")

    assert sub.needs_attention is False


def test_override_pending_submission_is_invalid(db, seed_data, store):
    student = user(db, seed_data["student_id"])
    lecturer = user(db, seed_data["lecturer_id"])
    sub = workflow.submit(db, student, seed_data["assignment_id"], ANSWER, None, store).submission

    with pytest.raises(InvalidTransitionError):
        workflow.override(db, lecturer, sub.id, 80, "Good")


@pytest.mark.parametrize("score,feedback", [(-1, "x"), (101, "x"), (50, ""), (50, "   ")])
def test_override_validation(db, seed_data, store, grader, score, feedback):
    student = user(db, seed_data["student_id"])
    lecturer = user(db, seed_data["lecturer_id"])
    sub = workflow.submit_and_grade(db, student, seed_data["assignment_id"], ANSWER, None, store, grader).submission

    with pytest.raises(ValidationError):
        workflow.override(db, lecturer, sub.id, score, feedback)

    db.refresh(sub)
    assert sub.status == GRADED
    assert sub.manual_score is None


def test_override_bounds_are_inclusive(db, seed_data, store, grader):
    student = user(db, seed_data["student_id"])
    lecturer = user(db, seed_data["lecturer_id"])
    sub = workflow.submit_and_grade(db, student, seed_data["assignment_id"], ANSWER, None, store, grader).submission

    assert workflow.override(db, lecturer, sub.id, 0, "zero").manual_score == 0
    assert workflow.override(db, lecturer, sub.id, 100, "full").manual_score == 100


def test_only_assignment_lecturer_can_override(db, seed_data, store, grader):
    student = user(db, seed_data["student_id"])
    other_lecturer = user(db, seed_data["other_lecturer_id"])
    sub = workflow.submit_and_grade(db, student, seed_data["assignment_id"], ANSWER, None, store, grader).submission

    with pytest.raises(PermissionDeniedError):
        workflow.override(db, other_lecturer, sub.id, 80, "Good")
    with pytest.raises(PermissionDeniedError):
        workflow.override(db, student, sub.id, 100, "I deserve it")


def test_unenrolled_or_lecturer_cannot_submit(db, seed_data, store):
    lecturer = user(db, seed_data["lecturer_id"])
    with pytest.raises(PermissionDeniedError):
        workflow.submit(db, lecturer, seed_data["assignment_id"], ANSWER, None, store)


def test_submit_to_missing_assignment(db, seed_data, store):
    student = user(db, seed_data["student_id"])
    with pytest.raises(NotFoundError):
        workflow.submit(db, student, 999999, ANSWER, None, store)


def test_other_student_cannot_view_or_grade(db, seed_data, store, grader):
    student = user(db, seed_data["student_id"])
    other = user(db, seed_data["other_student_id"])
    sub = workflow.submit(db, student, seed_data["assignment_id"], ANSWER, None, store).submission

    with pytest.raises(PermissionDeniedError):
        workflow.get_submission(db, other, sub.id)
    with pytest.raises(PermissionDeniedError):
        workflow.grade(db, other, sub.id, grader)


def test_pending_queue_joins_through_assignment_ownership(db, seed_data, store, grader):
    student = user(db, seed_data["student_id"])
    other = user(db, seed_data["other_student_id"])
    lecturer = user(db, seed_data["lecturer_id"])
    other_lecturer = user(db, seed_data["other_lecturer_id"])

    graded = workflow.submit_and_grade(db, student, seed_data["assignment_id"], ANSWER, None, store, grader).submission
    pending = workflow.submit(db, other, seed_data["assignment_id"], ANSWER, None, store).submission

    queue = workflow.list_pending_for_lecturer(db, lecturer)
    assert [s.id for s in queue] == [graded.id, pending.id]
    assert workflow.list_pending_for_lecturer(db, other_lecturer) == []

    workflow.override(db, lecturer, graded.id, 90, "Great")
    assert [s.id for s in workflow.list_pending_for_lecturer(db, lecturer)] == [pending.id]


def test_check_status_invariants():
    with pytest.raises(InvalidTransitionError):
        workflow.check_status_invariants(Submission(status=PENDING, ai_score=10))
    with pytest.raises(InvalidTransitionError):
        workflow.check_status_invariants(Submission(status=GRADED, ai_score=None))
    with pytest.raises(InvalidTransitionError):
        workflow.check_status_invariants(Submission(status=REVIEWED, ai_score=10, manual_score=None))
    workflow.check_status_invariants(Submission(status=REVIEWED, ai_score=10, manual_score=12))
