"""Advanced RAG pipeline — expansion, ranking, synthesis and self-critique.

One call to :meth:`AdvancedRAGPipeline.run` takes a question plus the
candidate passages already fetched by vector search and returns a
:class:`~advanced_rag.models.RAGResult`. When the critique score of the
first answer is below the configured threshold, synthesis is retried a
bounded number of times against the high-confidence passages only, and
the best-scoring answer is kept.
"""

import hashlib
import json
import logging
import threading
from collections import OrderedDict
from collections.abc import Iterable, Mapping

from advanced_rag.config import AppConfig
from advanced_rag.critique import FALLBACK_SCORE, critique_answer
from advanced_rag.llm_client import LLMClient
from advanced_rag.models import Passage, RAGResult
from advanced_rag.query_expander import expand_query
from advanced_rag.ranker import rank_passages
from advanced_rag.synthesizer import synthesize_answer

logger = logging.getLogger(__name__)

INSUFFICIENT_INFORMATION_ANSWER = (
    "I don't have enough information in my knowledge base to answer this "
    "question accurately."
)

# Positional score above which a passage is used for improvement attempts.
HIGH_CONFIDENCE_CUTOFF = 0.7


def _chunk_index(value) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def extract_passages(candidates: Iterable[Mapping]) -> list[Passage]:
    """Convert raw search hits into passages, dropping hits with no text.

    Each hit is a mapping with a ``text`` key and an optional ``metadata``
    mapping carrying ``source`` and ``chunk_index``.
    """
    passages: list[Passage] = []
    for hit in candidates:
        text = hit.get("text") or ""
        if not text.strip():
            continue
        meta = hit.get("metadata") or {}
        passages.append(
            Passage(
                text=text,
                source=meta.get("source") or "unknown",
                chunk_index=_chunk_index(meta.get("chunk_index")),
            )
        )
    return passages


class _ResultCache:
    """Bounded LRU of pipeline results keyed by request fingerprint."""

    def __init__(self, max_size: int) -> None:
        self._max_size = max_size
        self._entries: OrderedDict[str, RAGResult] = OrderedDict()
        self._lock = threading.Lock()

    @staticmethod
    def fingerprint(query: str, top_k: int, passages: list[Passage]) -> str:
        payload = json.dumps([query, top_k, [p.text for p in passages]])
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    def get(self, key: str) -> RAGResult | None:
        with self._lock:
            result = self._entries.get(key)
            if result is not None:
                self._entries.move_to_end(key)
            return result

    def put(self, key: str, result: RAGResult) -> None:
        with self._lock:
            self._entries[key] = result
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_size:
                self._entries.popitem(last=False)

    def __len__(self) -> int:
        return len(self._entries)


class AdvancedRAGPipeline:
    """Orchestrates one question-answering request end to end.

    The pipeline holds only read-only configuration, the shared generation
    client and (when enabled) a result cache, so a single instance can
    serve concurrent requests.
    """

    def __init__(self, client: LLMClient, config: AppConfig | None = None) -> None:
        self.client = client
        self.config = config or AppConfig()
        perf = self.config.performance
        self._cache = _ResultCache(perf.cache_size) if perf.cache_enabled else None

    def run(
        self,
        query: str,
        candidates: Iterable[Mapping],
        top_k: int = 5,
    ) -> RAGResult:
        """Answer *query* from the pre-fetched *candidates*.

        Args:
            query: The user's question.
            candidates: Search hits, best first, as ``{text, metadata}``.
            top_k: Requested number of ranked passages.

        Returns:
            The RAGResult. ``critique_score`` reports the first answer's
            score and ``confidence`` the best score over all attempts.

        Raises:
            GenerationError: If query expansion or synthesis fails.
        """
        logger.info("Starting advanced RAG processing for query: %s", query[:80])
        passages = extract_passages(candidates)
        logger.debug("Extracted %d passage(s) from candidates", len(passages))

        if not passages:
            logger.info("No usable passages, returning insufficient-information answer")
            return RAGResult(
                query=query,
                expanded_queries=[query],
                passages=[],
                ranked_passages=[],
                final_answer=INSUFFICIENT_INFORMATION_ANSWER,
                critique_score=0.0,
                confidence=0.0,
            )

        cache_key = None
        if self._cache is not None:
            cache_key = _ResultCache.fingerprint(query, top_k, passages)
            cached = self._cache.get(cache_key)
            if cached is not None:
                logger.debug("Result cache hit for query: %s", query[:80])
                return cached

        result = self._answer(query, passages, top_k)

        if self._cache is not None:
            self._cache.put(cache_key, result)
        return result

    def _answer(self, query: str, passages: list[Passage], top_k: int) -> RAGResult:
        cfg = self.config

        # Expanded queries are reported but not re-submitted to retrieval.
        expanded = expand_query(query, self.client, config=cfg.query_expansion)
        logger.info("Generated %d expanded queries", len(expanded) - 1)

        ranked = rank_passages(query, passages, top_k, cfg.reranking)
        ranked_texts = [p.text for p in ranked]

        initial_answer = synthesize_answer(query, ranked_texts, self.client, cfg.synthesis)

        if not cfg.self_critique.enabled:
            return RAGResult(
                query=query,
                expanded_queries=expanded,
                passages=passages,
                ranked_passages=ranked,
                final_answer=initial_answer,
                critique_score=FALLBACK_SCORE,
                confidence=FALLBACK_SCORE,
            )

        initial = critique_answer(query, initial_answer, self.client, ranked_texts)
        logger.info("Critique score: %.2f", initial.score)

        best_answer, best_score = initial_answer, initial.score
        if initial.score < cfg.self_critique.threshold:
            best_answer, best_score = self._improve(
                query, ranked, initial_answer, initial.score
            )

        return RAGResult(
            query=query,
            expanded_queries=expanded,
            passages=passages,
            ranked_passages=ranked,
            final_answer=best_answer,
            critique_score=initial.score,
            confidence=best_score,
        )

    def _improve(
        self,
        query: str,
        ranked: list[Passage],
        best_answer: str,
        best_score: float,
    ) -> tuple[str, float]:
        """Retry synthesis on high-confidence passages, keeping the best answer."""
        cfg = self.config
        threshold = cfg.self_critique.threshold
        logger.info(
            "Low critique score (%.2f), attempting to improve answer", best_score
        )

        focused = [p.text for p in ranked if p.relevance_score > HIGH_CONFIDENCE_CUTOFF]

        for attempt in range(1, cfg.self_critique.max_improvement_attempts + 1):
            if focused:
                candidate = synthesize_answer(
                    query, focused, self.client, cfg.synthesis
                )
                critique = critique_answer(query, candidate, self.client, focused)
                if critique.score > best_score:
                    best_answer, best_score = candidate, critique.score
                    logger.info(
                        "Answer improved on attempt %d, new score: %.2f",
                        attempt,
                        best_score,
                    )
                else:
                    logger.debug(
                        "Attempt %d scored %.2f, keeping best %.2f",
                        attempt,
                        critique.score,
                        best_score,
                    )
            if best_score >= threshold:
                break

        return best_answer, best_score
