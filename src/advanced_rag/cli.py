"""CLI interface for the advanced RAG pipeline."""

import argparse
import logging
import sys

import uvicorn

from advanced_rag import vector_store as vs
from advanced_rag.config import AppConfig, LLMConfig
from advanced_rag.document_loader import load_documents
from advanced_rag.errors import GenerationError
from advanced_rag.ingestion import ingest_documents
from advanced_rag.llm_client import LLMClient
from advanced_rag.pipeline import AdvancedRAGPipeline


def _setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def ingest(
    folder_path: str,
    config: AppConfig | None = None,
    namespace: str = vs.DEFAULT_NAMESPACE,
    reset: bool = False,
) -> None:
    """Ingest documents from a folder into the vector store.

    Loads all supported files (.txt, .pdf, .md), splits them into chunks
    and appends them to the ChromaDB collection under *namespace*. With
    *reset* the collection is dropped first, across all namespaces.
    """
    cfg = config or AppConfig()

    print(f"\n📂 Loading documents from: {folder_path}")
    documents = load_documents(folder_path)

    if not documents:
        print("No supported documents found (.txt, .pdf, .md)")
        return

    print(f"\n✂️  Chunking {len(documents)} document(s)...")
    client = vs.get_client(cfg.vector_store)
    if reset:
        print("🗑️  Resetting collection...")
        collection = vs.reset_collection(client, cfg.vector_store)
    else:
        collection = vs.get_or_create_collection(client, cfg.vector_store)
    llm_client = LLMClient.from_app_config(cfg) if cfg.ingest.extract_metadata else None
    added = ingest_documents(
        documents, collection, cfg, namespace=namespace, client=llm_client
    )

    print(f"\n✅ Ingestion complete! ({added} chunks stored)")


def ask(
    question: str,
    pipeline: AdvancedRAGPipeline,
    collection,
    top_k: int = 5,
    namespace: str = vs.DEFAULT_NAMESPACE,
):
    """Search the collection and run the pipeline for one question."""
    hits = vs.search_candidates(
        collection,
        question,
        top_k,
        namespace=namespace,
        limit=pipeline.config.reranking.top_n,
    )
    return pipeline.run(question, hits, top_k)


def _answer_and_print(
    question: str, pipeline: AdvancedRAGPipeline, collection, top_k: int
) -> None:
    try:
        result = ask(question, pipeline, collection, top_k=top_k)
    except GenerationError as exc:
        print(f"\n❌ Generation failed: {exc}\n")
        return
    _print_result(result)


def _print_result(result) -> None:
    print(f"\nAssistant:\n{result.final_answer}\n")
    print(
        f"  (critique {result.critique_score:.2f}, "
        f"confidence {result.confidence:.2f}, "
        f"{len(result.ranked_passages)} passages)\n"
    )


def _build(cfg: AppConfig):
    client = vs.get_client(cfg.vector_store)
    collection = vs.get_or_create_collection(client, cfg.vector_store)
    pipeline = AdvancedRAGPipeline(LLMClient.from_app_config(cfg), cfg)
    return pipeline, collection


def ask_once(question: str, config: AppConfig | None = None, top_k: int = 5) -> None:
    cfg = config or AppConfig()
    pipeline, collection = _build(cfg)
    _answer_and_print(question, pipeline, collection, top_k)


def chat(config: AppConfig | None = None, top_k: int = 5) -> None:
    """Start an interactive chat session.

    Exits on 'quit', 'exit', 'q', EOF, or KeyboardInterrupt.
    """
    cfg = config or AppConfig()
    pipeline, collection = _build(cfg)

    if collection.count() == 0:
        print("No documents in the vector store. Run ingestion first:")
        print("  python -m advanced_rag ingest --folder ./documents")
        return

    print(f"\n📚 Advanced RAG Chat ({collection.count()} chunks indexed)")
    print(f"🤖 Using Ollama model: {cfg.llm.model}")
    print("\nType your question (or 'quit' to exit):\n")

    while True:
        try:
            query = input("You: ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nGoodbye!")
            break

        if not query:
            continue
        if query.lower() in ("quit", "exit", "q"):
            print("Goodbye!")
            break

        _answer_and_print(query, pipeline, collection, top_k)


def serve(config: AppConfig | None = None) -> None:
    """Run the HTTP API with uvicorn, over TLS when enabled."""
    cfg = config or AppConfig()
    kwargs = {"host": cfg.server.host, "port": cfg.server.port}
    if cfg.server.ssl_enabled:
        kwargs["ssl_certfile"] = cfg.server.certfile
        kwargs["ssl_keyfile"] = cfg.server.keyfile
    uvicorn.run("advanced_rag.web:app", **kwargs)


def main() -> None:
    """CLI entry point — parse arguments and dispatch to a subcommand."""
    parser = argparse.ArgumentParser(
        description="Advanced RAG — query expansion, synthesis and self-critique",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    ingest_p = subparsers.add_parser("ingest", help="Ingest documents from a folder")
    ingest_p.add_argument(
        "--folder", type=str, default="./documents", help="Documents folder path"
    )
    ingest_p.add_argument(
        "--namespace", type=str, default=vs.DEFAULT_NAMESPACE, help="Target namespace"
    )
    ingest_p.add_argument(
        "--reset", action="store_true", help="Drop the collection before ingesting"
    )

    ask_p = subparsers.add_parser("ask", help="Answer a single question")
    ask_p.add_argument("question", type=str, help="Question to answer")
    ask_p.add_argument("--top-k", type=int, default=5, help="Passages to rank")

    chat_p = subparsers.add_parser("chat", help="Start interactive chat")
    chat_p.add_argument("--model", type=str, default=None, help="Ollama model name")

    subparsers.add_parser("serve", help="Run the HTTP API")

    args = parser.parse_args()
    _setup_logging(args.verbose)

    if args.command == "ingest":
        ingest(args.folder, namespace=args.namespace, reset=args.reset)
    elif args.command == "ask":
        ask_once(args.question, top_k=args.top_k)
    elif args.command == "chat":
        cfg = AppConfig(llm=LLMConfig(model=args.model)) if args.model else None
        chat(cfg)
    elif args.command == "serve":
        serve()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
