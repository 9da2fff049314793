"""Vector store — manages ChromaDB collections and semantic search."""

import logging
import uuid

import chromadb
from chromadb.errors import NotFoundError
from chromadb.utils import embedding_functions

from advanced_rag.config import VectorStoreConfig
from advanced_rag.models import Chunk

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "default"

# Module-level cache to avoid re-creating the embedding function repeatedly.
_embedding_fn_cache: dict[str, object] = {}


def get_client(config: VectorStoreConfig | None = None) -> chromadb.PersistentClient:
    """Return a ChromaDB persistent client.

    Args:
        config: Vector store settings (db path, etc.).
            Uses defaults if not provided.

    Returns:
        A ChromaDB PersistentClient connected to the configured path.
    """
    cfg = config or VectorStoreConfig()
    return chromadb.PersistentClient(path=cfg.db_path)


def get_embedding_function(
    model_name: str = "all-MiniLM-L6-v2",
) -> embedding_functions.SentenceTransformerEmbeddingFunction:
    """Return a cached SentenceTransformer embedding function.

    The model is loaded only once per model name.
    """
    if model_name not in _embedding_fn_cache:
        _embedding_fn_cache[model_name] = (
            embedding_functions.SentenceTransformerEmbeddingFunction(
                model_name=model_name,
            )
        )
    return _embedding_fn_cache[model_name]  # type: ignore[return-value]


def get_or_create_collection(
    client: chromadb.PersistentClient,
    config: VectorStoreConfig | None = None,
) -> chromadb.Collection:
    """Get or create a ChromaDB collection with cosine similarity."""
    cfg = config or VectorStoreConfig()
    ef = get_embedding_function(cfg.embedding_model)
    return client.get_or_create_collection(
        name=cfg.collection_name,
        embedding_function=ef,
        metadata={"hnsw:space": "cosine"},
    )


def add_chunks(
    collection: chromadb.Collection,
    chunks: list[Chunk],
    namespace: str = DEFAULT_NAMESPACE,
    batch_size: int = 96,
    extra_metadata: list[dict] | None = None,
) -> int:
    """Append chunks to the collection in batches.

    Every record stores ``source``, ``chunk_index`` and ``namespace`` so
    that provenance survives retrieval. IDs are random, so repeated
    uploads of the same file never overwrite earlier records.

    Args:
        collection: The target ChromaDB collection.
        chunks: Chunks to add.
        namespace: Logical partition used to filter searches.
        batch_size: Maximum number of records per ChromaDB add call.
        extra_metadata: Optional per-chunk metadata merged into each
            record; must be the same length as *chunks*.

    Returns:
        Number of chunks added (0 if the list is empty).
    """
    if not chunks:
        return 0
    if extra_metadata is not None and len(extra_metadata) != len(chunks):
        raise ValueError("extra_metadata must have one entry per chunk")

    ids = [f"chunk_{uuid.uuid4().hex}" for _ in chunks]
    texts = [c.text for c in chunks]
    metadatas = [{**c.metadata, "namespace": namespace} for c in chunks]
    if extra_metadata is not None:
        metadatas = [{**extra, **meta} for meta, extra in zip(metadatas, extra_metadata)]

    batches = (len(chunks) + batch_size - 1) // batch_size
    for number, start in enumerate(range(0, len(chunks), batch_size), 1):
        end = start + batch_size
        logger.debug(
            "Adding batch %d/%d (%d records)", number, batches, len(texts[start:end])
        )
        collection.add(
            documents=texts[start:end],
            metadatas=metadatas[start:end],
            ids=ids[start:end],
        )

    logger.info("Added %d chunks to namespace %r.", len(chunks), namespace)
    return len(chunks)


def search(
    collection: chromadb.Collection,
    query_text: str,
    n_results: int = 10,
    namespace: str | None = None,
) -> list[dict]:
    """Return the most similar chunks as ``{text, metadata, score}`` hits.

    Hits are ordered best first. ``score`` is the cosine similarity
    (1 - distance).

    Args:
        collection: The ChromaDB collection to search.
        query_text: The natural-language query string.
        n_results: Maximum number of hits.
        namespace: Restrict the search to one namespace.

    Returns:
        List of hit mappings, empty if the collection is empty.
    """
    total = collection.count()
    if total == 0:
        return []

    kwargs = {"query_texts": [query_text], "n_results": min(n_results, total)}
    if namespace:
        kwargs["where"] = {"namespace": namespace}
    results = collection.query(**kwargs)

    documents = (results.get("documents") or [[]])[0]
    metadatas = (results.get("metadatas") or [[]])[0]
    distances = (results.get("distances") or [[]])[0]

    hits: list[dict] = []
    for doc, meta, dist in zip(documents, metadatas, distances):
        meta = meta or {}
        hits.append(
            {
                "text": doc,
                "metadata": {
                    **meta,
                    "source": meta.get("source") or "unknown",
                    "chunk_index": meta.get("chunk_index") or 0,
                },
                "score": round(1 - dist, 4),
            }
        )
    return hits


def reset_collection(
    client: chromadb.PersistentClient,
    config: VectorStoreConfig | None = None,
) -> chromadb.Collection:
    """Delete and recreate the collection (useful for re-ingestion).

    If the collection does not exist yet, the delete is ignored.
    """
    cfg = config or VectorStoreConfig()
    try:
        client.delete_collection(cfg.collection_name)
    except (ValueError, NotFoundError):
        logger.debug("Collection %r did not exist", cfg.collection_name)
    return get_or_create_collection(client, cfg)


def search_candidates(
    collection: chromadb.Collection,
    query_text: str,
    top_k: int,
    namespace: str | None = None,
    factor: int = 2,
    minimum: int = 10,
    limit: int = 10,
) -> list[dict]:
    """Over-fetch ``max(top_k * factor, minimum)`` hits and keep at most *limit*.

    The surplus gives the downstream ranker a wider pool than *top_k*.
    """
    search_top_k = max(top_k * factor, minimum)
    hits = search(collection, query_text, n_results=search_top_k, namespace=namespace)
    return hits[: min(search_top_k, limit)]
