"""
Error taxonomy for the submission workflow.

Every error carries the HTTP status it maps to and a short ``kind`` string.
Routers let these propagate; ``gradeflow.main`` turns them into JSON
responses with a single exception handler.
"""


class WorkflowError(Exception):
    status_code = 400
    kind = "workflow_error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(WorkflowError):
    """Bad input shape. Never persisted, never retried automatically."""

    status_code = 422
    kind = "validation_error"

    def __init__(self, detail: str, field: str | None = None):
        super().__init__(detail)
        self.field = field


class DuplicateSubmissionError(WorkflowError):
    status_code = 409
    kind = "duplicate_submission"

    def __init__(self, detail: str = "You already submitted this assignment"):
        super().__init__(detail)


class NotFoundError(WorkflowError):
    status_code = 404
    kind = "not_found"


class PermissionDeniedError(WorkflowError):
    status_code = 403
    kind = "permission_denied"


class InvalidTransitionError(WorkflowError):
    status_code = 409
    kind = "invalid_transition"


class UploadError(WorkflowError):
    status_code = 502
    kind = "upload_error"


class GradingUnavailableError(WorkflowError):
    """Grading did not complete. The submission stays pending and can be retried."""

    status_code = 503
    kind = "unavailable"


class GradingTimeoutError(GradingUnavailableError):
    status_code = 504
    kind = "timeout"


class GradingAuthError(GradingUnavailableError):
    """The caller is not allowed to use AI grading."""

    status_code = 403
    kind = "auth"


class GradingContractViolation(WorkflowError):
    """
    The grading function answered, but outside its contract (score outside
    [0, max_score] or empty feedback). Logged and flagged, never raised to
    the caller.
    """

    kind = "contract_violation"
