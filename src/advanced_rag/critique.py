"""Answer critique; a failed critique degrades to a neutral score."""

import logging

from pydantic import BaseModel, Field, ValidationError

from advanced_rag.llm_client import LLMClient
from advanced_rag.models import CritiqueResult

logger = logging.getLogger(__name__)

FALLBACK_SCORE = 0.5
FALLBACK_ERROR = "Failed to parse critique"

_TEMPERATURE = 0.1

_SYSTEM_PROMPT = "You are an expert evaluator. Respond only with valid JSON."


class _CritiquePayload(BaseModel):
    score: float | None = None
    details: dict | None = Field(default=None)


def fallback_critique() -> CritiqueResult:
    """The neutral result used when an answer cannot be scored."""
    return CritiqueResult(score=FALLBACK_SCORE, details={"error": FALLBACK_ERROR})


def build_critique_prompt(
    query: str, answer: str, context: list[str] | None = None
) -> str:
    context_info = f"\nContext used: {' | '.join(context)}" if context else ""
    return (
        "Critically evaluate the following response to the user query. "
        "Rate it from 0.0 to 1.0 and provide detailed feedback.\n\n"
        f'Query: "{query}"\n'
        f'Response: "{answer}"{context_info}\n\n'
        "Evaluate on these criteria:\n"
        "1. Relevance to the query (0.0-1.0)\n"
        "2. Factual accuracy (0.0-1.0)\n"
        "3. Completeness of answer (0.0-1.0)\n"
        "4. Clarity and coherence (0.0-1.0)\n\n"
        "Respond in this exact JSON format:\n"
        "{\n"
        '  "score": 0.85,\n'
        '  "details": {\n'
        '    "relevance": 0.9,\n'
        '    "accuracy": 0.8,\n'
        '    "completeness": 0.85,\n'
        '    "clarity": 0.85,\n'
        '    "feedback": "Detailed feedback here"\n'
        "  }\n"
        "}"
    )


def critique_answer(
    query: str,
    answer: str,
    client: LLMClient,
    context: list[str] | None = None,
) -> CritiqueResult:
    """Score *answer* for relevance, accuracy, completeness and clarity.

    The model's reply must be a JSON object with ``score`` and ``details``.
    A failed generation call or an unparseable reply yields
    :func:`fallback_critique` instead of raising.

    Args:
        query: The user's question.
        answer: The answer being evaluated.
        client: Generation client.
        context: Passage texts the answer was synthesized from.

    Returns:
        A CritiqueResult; ``score`` is nominally in ``[0, 1]``.
    """
    prompt = build_critique_prompt(query, answer, context)
    try:
        raw = client.generate(
            [
                {"role": "system", "content": _SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=_TEMPERATURE,
            response_format="json",
        )
    except Exception as exc:
        logger.warning("Critique generation failed, using neutral score: %s", exc)
        return fallback_critique()

    try:
        payload = _CritiquePayload.model_validate_json(raw)
    except ValidationError as exc:
        logger.warning("Unparseable critique, using neutral score: %s", exc)
        return fallback_critique()

    return CritiqueResult(score=payload.score or 0.0, details=payload.details or {})
