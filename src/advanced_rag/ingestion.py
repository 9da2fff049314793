"""Chunk documents and append them to the vector store."""

import logging

import chromadb

from advanced_rag import vector_store as vs
from advanced_rag.config import AppConfig, ChunkConfig
from advanced_rag.llm_client import LLMClient
from advanced_rag.metadata_extractor import extract_chunk_metadata
from advanced_rag.models import Document
from advanced_rag.text_chunker import chunk_documents

logger = logging.getLogger(__name__)


def ingest_documents(
    documents: list[Document],
    collection: chromadb.Collection,
    config: AppConfig,
    namespace: str = vs.DEFAULT_NAMESPACE,
    chunk_config: ChunkConfig | None = None,
    client: LLMClient | None = None,
) -> int:
    """Chunk *documents* and append them to *collection*.

    When ``config.ingest.extract_metadata`` is set and a generation client
    is given, each chunk is enriched with LLM-extracted metadata.

    Args:
        documents: Documents with extracted text.
        collection: Target ChromaDB collection.
        config: Application configuration.
        namespace: Namespace recorded on every chunk.
        chunk_config: Overrides ``config.chunk``.
        client: Generation client used for metadata extraction.

    Returns:
        Number of chunks stored.
    """
    chunks = chunk_documents(documents, chunk_config or config.chunk)
    logger.info("Created %d chunks from %d document(s)", len(chunks), len(documents))
    if not chunks:
        return 0

    extra = None
    if config.ingest.extract_metadata and client is not None:
        extra = [
            extract_chunk_metadata(chunk.text, client).to_store_metadata()
            for chunk in chunks
        ]

    return vs.add_chunks(
        collection,
        chunks,
        namespace=namespace,
        batch_size=config.vector_store.batch_size,
        extra_metadata=extra,
    )
