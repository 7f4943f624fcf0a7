import json
import logging
import math

from openai import OpenAI, OpenAIError

from gradeflow.core.config import GRADING_MODEL, OPENAI_API_KEY

logger = logging.getLogger(__name__)


class LLMGradingError(Exception):
    pass


def build_system_prompt(max_score: int) -> str:
    return f"""You are an expert academic grader. Your task is to evaluate student submissions fairly and provide constructive feedback.

You will receive:
1. An assignment context/rubric describing what a good answer should include
2. A student's submitted answer

Evaluate the submission and respond with a JSON object containing:
- "score": A number from 0 to {max_score} representing the grade
- "feedback": A constructive feedback paragraph (2-3 sentences) explaining the score and how to improve

Be fair but rigorous. Acknowledge what the student did well, then explain what could be improved."""


def build_user_prompt(title: str, context: str, answer: str) -> str:
    return f"""## Assignment: {title}

## Grading Rubric/Context:
{context}

## Student's Answer:
{answer}

Please grade this submission and provide feedback in JSON format."""


def grade_with_openai(title: str, context: str, answer: str, max_score: int) -> tuple[float, str]:
    """
    Ask the model for a grade.

    Returns ``(score, feedback)`` exactly as the model produced them; bounding
    the score is left to the caller.
    """
    if not OPENAI_API_KEY:
        raise LLMGradingError("OpenAI API key not configured")

    client = OpenAI(api_key=OPENAI_API_KEY)
    try:
        response = client.chat.completions.create(
            model=GRADING_MODEL,
            messages=[
                {"role": "system", "content": build_system_prompt(max_score)},
                {"role": "user", "content": build_user_prompt(title, context, answer)},
            ],
            temperature=0.3,
            max_tokens=500,
            response_format={"type": "json_object"},
        )
    except OpenAIError as e:
        logger.error("OpenAI API error: %s", e)
        raise LLMGradingError("Failed to get AI grading response") from e

    content = response.choices[0].message.content or ""
    try:
        result = json.loads(content)
        score = float(result["score"])
    except (ValueError, KeyError, TypeError) as e:
        logger.error("Failed to parse AI response: %s", content)
        raise LLMGradingError("Invalid AI response format") from e

    if not math.isfinite(score):
        logger.error("AI returned a non-finite score: %s", content)
        raise LLMGradingError("Invalid AI response format")

    feedback = result.get("feedback") or "No feedback provided."
    return score, str(feedback)
