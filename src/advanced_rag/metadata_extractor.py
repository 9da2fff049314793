"""Structured metadata extraction for chunks at ingestion time."""

import logging
from typing import Literal

from pydantic import BaseModel, Field, ValidationError

from advanced_rag.errors import GenerationError
from advanced_rag.llm_client import LLMClient

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = "You are a metadata extraction specialist. Always return valid JSON."


class ChunkMetadata(BaseModel):
    summary: str
    topics: list[str] = Field(default_factory=list)
    entities: list[str] = Field(default_factory=list)
    document_type: Literal[
        "technical", "legal", "academic", "business", "creative", "news", "other"
    ] = "other"
    key_points: list[str] = Field(default_factory=list)
    sentiment: Literal["positive", "negative", "neutral"] = "neutral"
    complexity: Literal["simple", "moderate", "complex"] = "moderate"

    def to_store_metadata(self) -> dict[str, str]:
        """Flatten to scalar values accepted by the vector store."""
        return {
            "summary": self.summary,
            "topics": ", ".join(self.topics),
            "entities": ", ".join(self.entities),
            "document_type": self.document_type,
            "key_points": " | ".join(self.key_points),
            "sentiment": self.sentiment,
            "complexity": self.complexity,
        }


def _build_prompt(text: str) -> str:
    return (
        "Analyze the following text and extract structured metadata. Return "
        "ONLY a valid JSON object with these exact fields:\n\n"
        "{\n"
        '  "summary": "2-3 sentence summary of the main content",\n'
        '  "topics": ["array of 3-5 main topics or themes"],\n'
        '  "entities": ["array of 3-7 key entities like people, organizations, '
        'places, dates"],\n'
        '  "document_type": "one of: technical, legal, academic, business, '
        'creative, news, other",\n'
        '  "key_points": ["array of 3-5 key points or insights"],\n'
        '  "sentiment": "one of: positive, negative, neutral",\n'
        '  "complexity": "one of: simple, moderate, complex"\n'
        "}\n\n"
        f"Text to analyze:\n{text}\n\nJSON:"
    )


def fallback_metadata(text: str) -> ChunkMetadata:
    return ChunkMetadata(
        summary=text[:150] + "...",
        topics=["general"],
        key_points=[text[:100] + "..."],
    )


def extract_chunk_metadata(text: str, client: LLMClient) -> ChunkMetadata:
    """Ask the model for summary, topics, entities and tone of *text*.

    Failures (generation errors or replies that do not match the schema)
    fall back to metadata derived from the text itself.
    """
    try:
        raw = client.generate(
            [
                {"role": "system", "content": _SYSTEM_PROMPT},
                {"role": "user", "content": _build_prompt(text)},
            ],
            temperature=0.1,
            response_format="json",
        )
        return ChunkMetadata.model_validate_json(raw)
    except (GenerationError, ValidationError) as exc:
        logger.warning("Metadata extraction failed, using fallback: %s", exc)
        return fallback_metadata(text)
