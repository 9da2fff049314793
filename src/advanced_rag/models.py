"""Domain models for the advanced RAG pipeline."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Document:
    """A source document and its full extracted text."""

    source_id: str
    content: str


@dataclass(frozen=True)
class Chunk:
    """A word-aligned segment of a document.

    ``index`` is zero-based and monotonic within ``source_id``.
    """

    text: str
    index: int
    source_id: str

    @property
    def metadata(self) -> dict:
        return {"source": self.source_id, "chunk_index": self.index}


@dataclass(frozen=True)
class Passage:
    """A retrieved chunk annotated with a relevance score."""

    text: str
    relevance_score: float = 0.0
    source: str = "unknown"
    chunk_index: int = 0


@dataclass(frozen=True)
class CritiqueResult:
    """Scalar quality score plus a free-form breakdown by dimension."""

    score: float
    details: dict = field(default_factory=dict)


@dataclass(frozen=True)
class RAGResult:
    """The terminal artifact of one pipeline run.

    ``critique_score`` is the score of the first synthesized answer, while
    ``confidence`` is the best score reached across all attempts.
    """

    query: str
    expanded_queries: list[str]
    passages: list[Passage]
    ranked_passages: list[Passage]
    final_answer: str
    critique_score: float
    confidence: float

    def to_dict(self) -> dict:
        return {
            "query": self.query,
            "expanded_queries": list(self.expanded_queries),
            "passages": [p.text for p in self.passages],
            "ranked_passages": [
                {"text": p.text, "relevance_score": p.relevance_score}
                for p in self.ranked_passages
            ],
            "final_answer": self.final_answer,
            "critique_score": self.critique_score,
            "confidence": self.confidence,
        }
