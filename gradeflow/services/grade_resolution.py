"""
Effective grade resolution.

``resolve_grade`` is the only place that decides what "the grade" of a
submission is: the lecturer's manual grade wins over the AI grade, which
wins over nothing. Aggregates in this module and every response schema that
shows a grade go through it.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

SOURCE_NONE = "none"
SOURCE_AI = "ai"
SOURCE_MANUAL = "manual"


@dataclass(frozen=True)
class EffectiveGrade:
    score: Optional[int]
    feedback: Optional[str]
    source: str


def resolve_grade(submission) -> EffectiveGrade:
    if submission.manual_score is not None:
        source = SOURCE_MANUAL
    elif submission.ai_score is not None:
        source = SOURCE_AI
    else:
        source = SOURCE_NONE

    score = submission.manual_score if submission.manual_score is not None else submission.ai_score
    feedback = (
        submission.manual_feedback
        if submission.manual_feedback is not None
        else submission.ai_feedback
    )
    return EffectiveGrade(score=score, feedback=feedback, source=source)


def average_score(submissions: Iterable) -> float | None:
    """Mean effective score, ignoring submissions with no grade yet."""
    scores = [g.score for g in map(resolve_grade, submissions) if g.score is not None]
    if not scores:
        return None
    return sum(scores) / len(scores)


def average_percentage(graded: Iterable[tuple]) -> float | None:
    """
    Mean of effective score as a percentage of max score.

    ``graded`` yields ``(submission, max_score)`` pairs, which lets one call
    span assignments with different max scores.
    """
    pcts = []
    for submission, max_score in graded:
        score = resolve_grade(submission).score
        if score is None or not max_score:
            continue
        pcts.append(score * 100.0 / max_score)
    if not pcts:
        return None
    return round(sum(pcts) / len(pcts), 2)


def completion_rate(submitted: int, expected: int) -> float:
    if expected <= 0:
        return 0.0
    return round(min(submitted, expected) * 100.0 / expected, 2)
