"""Paraphrase a question into alternative search queries."""

import logging

from advanced_rag.config import QueryExpansionConfig
from advanced_rag.llm_client import LLMClient

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = (
    "You are an expert at expanding queries for comprehensive information "
    "retrieval. Generate diverse, focused queries."
)


def _build_prompt(query: str, n: int) -> str:
    return (
        f"Given the following user query, generate {n} different but related "
        "queries that would help retrieve comprehensive information.\n"
        "Make each query focus on different aspects or perspectives of the "
        "original question.\n\n"
        f'Original Query: "{query}"\n\n'
        f"Generate {n} expanded queries (one per line):"
    )


def _parse_lines(response: str, n: int) -> list[str]:
    lines = (line.strip() for line in response.splitlines())
    return [line for line in lines if line][:n]


def expand_query(
    query: str,
    client: LLMClient,
    n: int | None = None,
    config: QueryExpansionConfig | None = None,
) -> list[str]:
    """Return the original query followed by up to *n* reformulations.

    The original query is always element 0, unmodified. When expansion is
    disabled (or *n* is zero) no generation call is made and a singleton
    list is returned. Duplicate reformulations are kept as produced.

    Args:
        query: The user's question.
        client: Generation client.
        n: Maximum number of reformulations. Defaults to
            ``config.num_queries``.
        config: Expansion settings. Uses defaults if not provided.

    Returns:
        ``[query, *reformulations]``.

    Raises:
        GenerationError: If the generation call fails.
    """
    cfg = config or QueryExpansionConfig()
    n = cfg.num_queries if n is None else n

    if not cfg.enabled or n <= 0:
        return [query]

    response = client.generate(
        [
            {"role": "system", "content": _SYSTEM_PROMPT},
            {"role": "user", "content": _build_prompt(query, n)},
        ],
        temperature=cfg.temperature,
    )
    expansions = _parse_lines(response, n)
    logger.debug("Expanded %r into %d queries", query[:80], len(expansions))
    return [query, *expansions]
