"""Shared fixtures for the test suite."""

import json
import tempfile
from dataclasses import dataclass
from pathlib import Path

import pytest

from advanced_rag.models import Chunk, Document


@dataclass
class Call:
    kind: str
    messages: list[dict]
    temperature: float
    response_format: str | None
    max_tokens: int | None

    @property
    def prompt(self) -> str:
        return self.messages[-1]["content"]


class ScriptedLLM:
    """Stand-in for LLMClient that routes calls by purpose.

    JSON-format calls are critiques, calls whose system prompt mentions
    query expansion are expansions, everything else is synthesis. Answers
    and scores are consumed in order; the last one repeats. A score given
    as a string is returned verbatim, an exception is raised.
    """

    def __init__(self, expansion="", answers=("An answer.",), scores=(0.9,)):
        self.expansion = expansion
        self.answers = list(answers)
        self.scores = list(scores)
        self.calls: list[Call] = []

    def _classify(self, messages, response_format) -> str:
        if response_format == "json":
            return "critique"
        if "expanding queries" in messages[0]["content"]:
            return "expand"
        return "synthesize"

    @staticmethod
    def _next(items: list):
        return items.pop(0) if len(items) > 1 else items[0]

    def generate(self, messages, temperature, response_format=None, max_tokens=None):
        kind = self._classify(messages, response_format)
        self.calls.append(Call(kind, messages, temperature, response_format, max_tokens))

        if kind == "expand":
            value = self.expansion
        elif kind == "synthesize":
            value = self._next(self.answers)
        else:
            score = self._next(self.scores)
            if isinstance(score, (str, Exception)):
                value = score
            else:
                value = json.dumps(
                    {
                        "score": score,
                        "details": {
                            "relevance": score,
                            "accuracy": score,
                            "completeness": score,
                            "clarity": score,
                            "feedback": "ok",
                        },
                    }
                )
        if isinstance(value, Exception):
            raise value
        return value

    def count(self, kind: str) -> int:
        return sum(1 for c in self.calls if c.kind == kind)

    def prompts(self, kind: str) -> list[str]:
        return [c.prompt for c in self.calls if c.kind == kind]


@pytest.fixture
def make_llm():
    return ScriptedLLM


@pytest.fixture
def sample_text() -> str:
    return (
        "Prime matter is the substrate of change in Aristotelian physics. "
        "It has no form of its own and is pure potentiality. "
        "Substantial form actualizes prime matter into a definite substance. "
        "Aquinas follows Aristotle in holding that matter cannot exist without form."
    )


@pytest.fixture
def sample_document(sample_text: str) -> Document:
    return Document(source_id="physics.txt", content=sample_text)


@pytest.fixture
def sample_documents() -> list[Document]:
    return [
        Document(source_id="doc1.txt", content="First document about prime matter."),
        Document(source_id="doc2.txt", content="Second document about substantial form."),
    ]


@pytest.fixture
def sample_chunks() -> list[Chunk]:
    return [
        Chunk(text="Prime matter is pure potentiality.", index=0, source_id="a.pdf"),
        Chunk(text="Form actualizes matter.", index=1, source_id="a.pdf"),
    ]


@pytest.fixture
def candidates() -> list[dict]:
    return [
        {"text": "A", "metadata": {"source": "a.pdf", "chunk_index": 0}},
        {"text": "B", "metadata": {"source": "a.pdf", "chunk_index": 1}},
        {"text": "C", "metadata": {"source": "b.pdf", "chunk_index": 0}},
    ]


@pytest.fixture
def tmp_docs_dir() -> Path:
    """Create a temporary directory with sample documents."""
    with tempfile.TemporaryDirectory() as tmpdir:
        d = Path(tmpdir)

        (d / "sample.txt").write_text(
            "This is a sample text document about prime matter.",
            encoding="utf-8",
        )
        (d / "notes.md").write_text(
            "# Notes\n\nThis is a **markdown** document about form.",
            encoding="utf-8",
        )
        # Unsupported file — should be skipped.
        (d / "image.png").write_bytes(b"\x89PNG\r\n")

        yield d


@pytest.fixture
def empty_docs_dir() -> Path:
    """Create an empty temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)
