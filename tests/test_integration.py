"""Integration tests: load, chunk, store, then answer over the stored chunks.

The vector store is replaced with an in-memory collection double so the
tests do not need an embedding model download.
"""

import pytest

from advanced_rag import vector_store as vs
from advanced_rag.config import AppConfig, SelfCritiqueConfig
from advanced_rag.document_loader import load_documents
from advanced_rag.ingestion import ingest_documents
from advanced_rag.pipeline import AdvancedRAGPipeline


class _MemoryCollection:
    """Records added records and returns them, in insertion order, as hits."""

    def __init__(self) -> None:
        self.documents: list[str] = []
        self.metadatas: list[dict] = []
        self.ids: list[str] = []

    def add(self, ids, documents, metadatas) -> None:
        self.ids.extend(ids)
        self.documents.extend(documents)
        self.metadatas.extend(metadatas)

    def count(self) -> int:
        return len(self.documents)

    def query(self, query_texts, n_results, where=None):
        rows = [
            (doc, meta)
            for doc, meta in zip(self.documents, self.metadatas)
            if where is None or meta.get("namespace") == where["namespace"]
        ][:n_results]
        return {
            "documents": [[doc for doc, _ in rows]],
            "metadatas": [[meta for _, meta in rows]],
            "distances": [[0.1 * i for i in range(len(rows))]],
        }


@pytest.fixture
def docs_dir(tmp_path):
    d = tmp_path / "docs"
    d.mkdir()
    (d / "matter.txt").write_text(
        "Prime matter is the substrate of change. It is pure potentiality.",
        encoding="utf-8",
    )
    (d / "form.md").write_text(
        "# Form\n\nSubstantial form actualizes matter into a **substance**.",
        encoding="utf-8",
    )
    return d


class TestIngestAndAnswer:
    def test_documents_flow_into_answer(self, docs_dir, make_llm) -> None:
        collection = _MemoryCollection()
        stored = ingest_documents(load_documents(docs_dir), collection, AppConfig())
        assert stored == 2
        assert {m["source"] for m in collection.metadatas} == {"matter.txt", "form.md"}
        assert all(m["namespace"] == "default" for m in collection.metadatas)

        hits = vs.search_candidates(collection, "What is prime matter?", top_k=5)
        llm = make_llm(expansion="Define prime matter", answers=["Potentiality [2]."])
        result = AdvancedRAGPipeline(llm).run("What is prime matter?", hits)

        assert result.final_answer == "Potentiality [2]."
        assert len(result.ranked_passages) == 2
        assert "Prime matter is the substrate" in llm.prompts("synthesize")[0]
        assert "Substantial form actualizes" in llm.prompts("synthesize")[0]

    def test_namespaces_are_isolated(self, docs_dir, make_llm) -> None:
        collection = _MemoryCollection()
        documents = load_documents(docs_dir)
        ingest_documents(documents[:1], collection, AppConfig(), namespace="a")
        ingest_documents(documents[1:], collection, AppConfig(), namespace="b")

        hits = vs.search_candidates(collection, "q", top_k=5, namespace="b")
        assert [h["metadata"]["source"] for h in hits] == [documents[1].source_id]

    def test_empty_namespace_answers_insufficient(self, docs_dir, make_llm) -> None:
        collection = _MemoryCollection()
        ingest_documents(load_documents(docs_dir), collection, AppConfig())
        llm = make_llm()

        hits = vs.search_candidates(collection, "q", top_k=5, namespace="missing")
        result = AdvancedRAGPipeline(llm).run("q", hits)

        assert result.final_answer.startswith("I don't have enough information")
        assert llm.calls == []

    def test_low_critique_retries_over_stored_chunks(self, docs_dir, make_llm) -> None:
        collection = _MemoryCollection()
        ingest_documents(load_documents(docs_dir), collection, AppConfig())
        hits = vs.search_candidates(collection, "q", top_k=5)

        llm = make_llm(answers=["weak", "strong"], scores=[0.2, 0.95])
        cfg = AppConfig(self_critique=SelfCritiqueConfig(max_improvement_attempts=3))
        result = AdvancedRAGPipeline(llm, cfg).run("q", hits)

        assert result.final_answer == "strong"
        assert result.critique_score == 0.2
        assert result.confidence == 0.95
        assert llm.count("synthesize") == 2
