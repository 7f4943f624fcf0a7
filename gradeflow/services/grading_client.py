"""
Client for the grading function.

The grading function is reached over HTTP and speaks the JSON contract

    request:  {assignmentTitle, assignmentContext, studentAnswer, maxScore}
    success:  {score, feedback, processingTimeMs?}
    failure:  {error}

Every way the call can fail (timeout, network, non-2xx, unparseable body)
comes back as a ``GradingUnavailableError`` subclass so the workflow can
leave the submission pending.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

import requests

from gradeflow.core.config import GRADING_FUNCTION_URL, GRADING_TIMEOUT_SECONDS
from gradeflow.services.errors import (
    GradingAuthError,
    GradingTimeoutError,
    GradingUnavailableError,
)

logger = logging.getLogger(__name__)


@dataclass
class GradingRequest:
    assignment_title: str
    assignment_context: str
    student_answer: str
    max_score: int

    def to_json(self) -> dict:
        return {
            "assignmentTitle": self.assignment_title,
            "assignmentContext": self.assignment_context,
            "studentAnswer": self.student_answer,
            "maxScore": self.max_score,
        }


@dataclass
class GradingResult:
    score: int
    feedback: Optional[str]
    processing_time_ms: Optional[int] = None


def parse_grading_response(data) -> GradingResult:
    if not isinstance(data, dict):
        raise GradingUnavailableError("Invalid grading response format")
    if data.get("error"):
        raise GradingUnavailableError(str(data["error"]))

    score = data.get("score")
    # bool is an int subclass, but never a score
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise GradingUnavailableError("Grading response has no numeric score")
    if not math.isfinite(score):
        raise GradingUnavailableError("Grading response has no numeric score")

    feedback = data.get("feedback")
    if feedback is not None and not isinstance(feedback, str):
        feedback = str(feedback)

    elapsed = data.get("processingTimeMs")
    return GradingResult(
        score=int(round(score)),
        feedback=feedback,
        processing_time_ms=int(elapsed) if isinstance(elapsed, (int, float)) else None,
    )


class GradingClient:
    def __init__(
        self,
        url: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ):
        self.url = url or GRADING_FUNCTION_URL
        self.timeout = timeout if timeout is not None else GRADING_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    def close(self) -> None:
        self.session.close()

    def grade(self, request: GradingRequest, access_token: str | None = None) -> GradingResult:
        headers = {"Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"

        try:
            response = self.session.post(
                self.url,
                json=request.to_json(),
                headers=headers,
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            logger.warning("Grading call timed out after %.1fs", self.timeout)
            raise GradingTimeoutError("Grading did not complete in time. Please retry.") from e
        except requests.RequestException as e:
            logger.warning("Grading call failed: %s", e)
            raise GradingUnavailableError(f"Grading service unreachable: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.status_code in (401, 403):
            detail = None
            if isinstance(data, dict):
                detail = data.get("error") or data.get("detail")
            raise GradingAuthError(
                detail or "Not authenticated. Please log in to use AI features."
            )

        if not response.ok:
            detail = None
            if isinstance(data, dict):
                detail = data.get("error") or data.get("detail")
            logger.warning("Grading function returned %s: %s", response.status_code, detail)
            raise GradingUnavailableError(detail or "Failed to grade submission")

        return parse_grading_response(data)
