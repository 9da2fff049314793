"""Relevance ranker — annotates passages with positional relevance scores.

Candidate passages arrive already ordered by the upstream vector search
(and its reranker). This module does not recompute semantic relevance:
it attaches a strictly decreasing score by position, ``1.0 - 0.1 * i``
floored at zero. Any threshold applied to these scores downstream is
therefore a rank-position cutoff.
"""

import dataclasses
import logging

from advanced_rag.config import RerankingConfig
from advanced_rag.models import Passage

logger = logging.getLogger(__name__)

_SCORE_STEP = 0.1


def positional_score(position: int) -> float:
    """Score for the passage at zero-based *position*."""
    return max(0.0, round(1.0 - position * _SCORE_STEP, 4))


def rank_passages(
    query: str,
    passages: list[Passage],
    top_n: int = 5,
    config: RerankingConfig | None = None,
) -> list[Passage]:
    """Return *passages* in their given order with relevance scores set.

    All passages are returned; *top_n* is not used to truncate. With
    reranking enabled the upstream order is trusted; with it disabled the
    caller's order is kept as the fallback order. Both paths produce the
    same positional scores.

    Args:
        query: The user's question (unused by positional scoring).
        passages: Candidate passages, best first.
        top_n: Requested result count.
        config: Ranking settings. Uses defaults if not provided.

    Returns:
        New Passage objects with ``relevance_score`` populated.
    """
    cfg = config or RerankingConfig()
    if not cfg.enabled:
        logger.debug("Reranking disabled, keeping input order")

    ranked = [
        dataclasses.replace(passage, relevance_score=positional_score(i))
        for i, passage in enumerate(passages)
    ]
    logger.debug("Ranked %d passages (top_n=%d)", len(ranked), top_n)
    return ranked
