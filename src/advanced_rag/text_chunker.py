"""Text chunker — splits documents into overlapping, word-aligned chunks."""

import re

from advanced_rag.config import ChunkConfig
from advanced_rag.models import Chunk, Document

# Rough characters-per-word ratio used to turn a character overlap into words.
_CHARS_PER_WORD = 6

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]+")
_TRAILING_WS_RE = re.compile(r"[ \t]+$", re.MULTILINE)


def normalize_text(text: str) -> str:
    """Clean raw extracted text before chunking.

    Normalizes line endings, turns tabs into spaces, replaces runs of
    control characters with a single space, strips trailing whitespace
    from each line and trims the result.
    """
    text = text.replace("\r\n", "\n").replace("\t", " ")
    text = _CONTROL_CHARS_RE.sub(" ", text)
    text = _TRAILING_WS_RE.sub("", text)
    return text.strip()


def chunk_text(
    text: str, chunk_size: int = 1200, chunk_overlap: int = 200
) -> list[str]:
    """Split text into chunks of roughly *chunk_size* characters.

    Words are packed greedily: a word joins the current chunk while the
    running length (each word counted with one trailing separator) stays
    within *chunk_size*. When a word would overflow a non-empty chunk, the
    chunk is closed and the next one is seeded with its last
    ``chunk_overlap // 6`` words. Words are never split, so a single word
    longer than *chunk_size* gets a chunk of its own.

    Args:
        text: The source text to split.
        chunk_size: Soft maximum number of characters per chunk.
        chunk_overlap: Approximate number of characters shared between
            adjacent chunks. ``0`` disables overlap.

    Returns:
        Ordered list of chunks. Empty if the text has no words.
    """
    words = normalize_text(text).split()
    if not words:
        return []

    overlap_words = max(0, chunk_overlap // _CHARS_PER_WORD)

    chunks: list[str] = []
    current: list[str] = []
    current_length = 0

    for word in words:
        length = len(word) + 1
        if current_length + length > chunk_size and current:
            chunks.append(" ".join(current))
            if chunk_overlap > 0 and overlap_words > 0:
                current = current[-overlap_words:]
                current_length = sum(len(w) + 1 for w in current)
            else:
                current = []
                current_length = 0
        current.append(word)
        current_length += length

    if current:
        chunks.append(" ".join(current))
    return chunks


def chunk_documents(
    documents: list[Document],
    config: ChunkConfig | None = None,
) -> list[Chunk]:
    """Chunk all documents and return a flat list of Chunk objects.

    Chunk indices restart at zero for every document so that the source
    position of each chunk can be reconstructed after retrieval.

    Args:
        documents: Source documents to chunk.
        config: Chunking parameters (size, overlap). Uses defaults
            if not provided.

    Returns:
        Flat list of Chunk objects preserving document order.
    """
    if config is None:
        config = ChunkConfig()

    result: list[Chunk] = []
    for doc in documents:
        texts = chunk_text(doc.content, config.size, config.overlap)
        result.extend(
            Chunk(text=text, index=idx, source_id=doc.source_id)
            for idx, text in enumerate(texts)
        )
    return result
