"""Answer synthesizer — writes a grounded answer from ranked passages."""

import logging

from advanced_rag.config import SynthesisConfig
from advanced_rag.llm_client import LLMClient

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = (
    "You are a careful, document-grounded research assistant. Provide "
    "accurate, well-reasoned answers based on the given context."
)


def build_synthesis_prompt(
    query: str, passages: list[str], include_citations: bool = True
) -> str:
    """Build the user prompt embedding each passage with a 1-based index.

    Args:
        query: The user's question.
        passages: Passage texts already limited to the context window.
        include_citations: Ask the model to cite passage numbers.

    Returns:
        The prompt text.
    """
    context = "\n\n".join(f"[{i}] {text}" for i, text in enumerate(passages, 1))
    lines = [
        "Using the context below, provide a comprehensive and accurate answer "
        "to the user's question.",
        "",
        f"Context ({len(passages)} documents):",
        context,
        "",
        f"Question: {query}",
        "",
        "Instructions:",
        "- Base your answer primarily on the provided context",
        "- If the context doesn't contain enough information, acknowledge "
        "this limitation instead of guessing",
        "- Be precise and refer to specific parts of the context when relevant",
    ]
    if include_citations:
        lines.append(
            "- Include citations to specific document numbers, like [1], "
            "when referencing information"
        )
    lines.extend(["", "Answer:"])
    return "\n".join(lines)


def synthesize_answer(
    query: str,
    passages: list[str],
    client: LLMClient,
    config: SynthesisConfig | None = None,
    context_limit: int | None = None,
) -> str:
    """Generate an answer from the first passages of *passages*.

    Only the first ``min(len(passages), context_limit)`` passages are used,
    in the given order. An empty reply is returned as-is.

    Args:
        query: The user's question.
        passages: Passage texts, best first.
        client: Generation client.
        config: Synthesis settings. Uses defaults if not provided.
        context_limit: Overrides ``config.max_context_documents``.

    Returns:
        The stripped answer text.

    Raises:
        GenerationError: If the generation call fails.
    """
    cfg = config or SynthesisConfig()
    limit = cfg.max_context_documents if context_limit is None else context_limit
    selected = passages[: min(len(passages), limit)]

    prompt = build_synthesis_prompt(query, selected, cfg.include_citations)
    answer = client.generate(
        [
            {"role": "system", "content": _SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ],
        temperature=cfg.temperature,
        max_tokens=cfg.max_tokens,
    )
    logger.info(
        "Synthesized answer from %d passage(s) (%d chars)", len(selected), len(answer)
    )
    return answer
