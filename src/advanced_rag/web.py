"""FastAPI web interface for the advanced RAG pipeline."""

import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import APIRouter, Depends, FastAPI, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from pypdf.errors import PdfReadError

from advanced_rag import vector_store as vs
from advanced_rag.config import AppConfig, ChunkConfig
from advanced_rag.document_loader import extract_pdf_text
from advanced_rag.errors import GenerationError
from advanced_rag.ingestion import ingest_documents
from advanced_rag.llm_client import LLMClient
from advanced_rag.models import Document
from advanced_rag.pipeline import INSUFFICIENT_INFORMATION_ANSWER, AdvancedRAGPipeline

logger = logging.getLogger(__name__)

_config = AppConfig()

PDF_MIME_TYPE = "application/pdf"
ERROR_ANSWER = "An error occurred while processing your request."
NO_DOCUMENTS_MESSAGE = "No relevant documents found"

# Advanced queries over-fetch more candidates than plain queries.
_ADVANCED_SEARCH_FACTOR = 3
_ADVANCED_SEARCH_MIN = 15
_RAW_MATCH_PREVIEW = 5


@asynccontextmanager
async def lifespan(application: FastAPI):
    """Build the vector store, generation client and pipeline on startup."""
    client = vs.get_client(_config.vector_store)
    collection = vs.get_or_create_collection(client, _config.vector_store)
    llm_client = LLMClient.from_app_config(_config)
    application.state.chroma_client = client
    application.state.chroma_collection = collection
    application.state.llm_client = llm_client
    application.state.pipeline = AdvancedRAGPipeline(llm_client, _config)
    logger.info("ChromaDB initialized (%d chunks indexed)", collection.count())
    yield


app = FastAPI(
    title="Advanced RAG",
    lifespan=lifespan,
    docs_url="/api/docs",
    openapi_url="/api/openapi.json",
)

router = APIRouter(prefix="/api/v1")


@app.exception_handler(GenerationError)
@app.exception_handler(Exception)
async def _internal_error_handler(request: Request, exc: Exception):
    logger.exception("Request to %s failed", request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def get_collection(request: Request):
    """Return the ChromaDB collection stored on app state, if any."""
    return getattr(request.app.state, "chroma_collection", None)


def get_llm_client(request: Request) -> LLMClient | None:
    return getattr(request.app.state, "llm_client", None)


def get_pipeline(request: Request) -> AdvancedRAGPipeline | None:
    return getattr(request.app.state, "pipeline", None)


class QueryRequest(BaseModel):
    query: str = Field(min_length=1)
    top_k: int = Field(default=5, ge=1, le=50)
    namespace: str = Field(default=vs.DEFAULT_NAMESPACE, min_length=1, max_length=128)
    with_answer: bool = True


class AdvancedSummary(BaseModel):
    expanded_queries: list[str]
    critique_score: float
    confidence: float
    ranked_passages: int


class QueryResponse(BaseModel):
    ok: bool
    matches: list[dict]
    answer: str | None = None
    advanced_rag: AdvancedSummary | None = None


class AdvancedQueryResponse(BaseModel):
    ok: bool
    query: str
    message: str | None = None
    advanced_rag: dict
    raw_matches: list[dict] = Field(default_factory=list)


class UploadResponse(BaseModel):
    ok: bool
    upserted: int
    namespace: str


class HealthResponse(BaseModel):
    status: str
    ollama_connected: bool
    documents: int


class StatusResponse(BaseModel):
    documents: int
    model: str
    query_expansion: bool
    self_critique: bool
    reranking: bool
    critique_threshold: float
    max_context_documents: int


def _require_collection(collection):
    if collection is None:
        raise HTTPException(
            status_code=503,
            detail="Vector store not initialized. Upload documents first.",
        )
    return collection


def _require_pipeline(pipeline: AdvancedRAGPipeline | None) -> AdvancedRAGPipeline:
    if pipeline is None:
        raise HTTPException(status_code=503, detail="Pipeline not initialized.")
    return pipeline


@router.get("/health", response_model=HealthResponse)
def api_health(collection=Depends(get_collection), llm_client=Depends(get_llm_client)):
    connected = llm_client.ping() if llm_client else False
    return HealthResponse(
        status="healthy" if connected else "degraded",
        ollama_connected=connected,
        documents=collection.count() if collection else 0,
    )


@router.get("/status", response_model=StatusResponse)
def api_status(collection=Depends(get_collection)):
    return StatusResponse(
        documents=collection.count() if collection else 0,
        model=_config.llm.model,
        query_expansion=_config.query_expansion.enabled,
        self_critique=_config.self_critique.enabled,
        reranking=_config.reranking.enabled,
        critique_threshold=_config.self_critique.threshold,
        max_context_documents=_config.synthesis.max_context_documents,
    )


def _read_limited(file: UploadFile, max_bytes: int) -> bytes | None:
    """Read an upload in 1 MB chunks, returning None if it exceeds *max_bytes*."""
    read_chunk = 1024 * 1024
    total = 0
    parts: list[bytes] = []
    while True:
        chunk = file.file.read(read_chunk)
        if not chunk:
            break
        total += len(chunk)
        if total > max_bytes:
            return None
        parts.append(chunk)
    return b"".join(parts)


@router.post("/upload", response_model=UploadResponse)
def api_upload(
    files: list[UploadFile],
    namespace: Annotated[str, Form(min_length=1, max_length=128)] = vs.DEFAULT_NAMESPACE,
    chunk_size: Annotated[int, Form(ge=200, le=4000)] = 1200,
    chunk_overlap: Annotated[int, Form(ge=0, le=1000)] = 200,
    collection=Depends(get_collection),
    llm_client=Depends(get_llm_client),
):
    if not files:
        raise HTTPException(status_code=400, detail="No files uploaded")
    if len(files) > _config.ingest.max_files:
        raise HTTPException(
            status_code=400,
            detail=f"Too many files (max {_config.ingest.max_files})",
        )
    if chunk_overlap >= chunk_size:
        raise HTTPException(
            status_code=400, detail="chunk_overlap must be less than chunk_size"
        )
    if collection is None:
        raise HTTPException(status_code=503, detail="Vector store not initialized.")

    max_bytes = _config.ingest.max_file_mb * 1024 * 1024
    documents: list[Document] = []
    for file in files:
        if file.content_type != PDF_MIME_TYPE:
            raise HTTPException(
                status_code=400,
                detail=f"Unsupported mimetype: {file.content_type}. Only PDF allowed.",
            )
        data = _read_limited(file, max_bytes)
        if data is None:
            raise HTTPException(
                status_code=400, detail=f"File too large: {file.filename}"
            )
        try:
            text = extract_pdf_text(data)
        except PdfReadError:
            raise HTTPException(
                status_code=400, detail=f"Unreadable PDF: {file.filename}"
            ) from None
        if not text.strip():
            logger.warning("No text extracted from %s", file.filename)
            continue
        documents.append(Document(source_id=file.filename or "unknown", content=text))

    if not documents:
        raise HTTPException(
            status_code=400, detail="No embeddable text extracted from PDFs"
        )

    upserted = ingest_documents(
        documents,
        collection,
        _config,
        namespace=namespace,
        chunk_config=ChunkConfig(size=chunk_size, overlap=chunk_overlap),
        client=llm_client,
    )
    if upserted == 0:
        raise HTTPException(
            status_code=400, detail="No embeddable text extracted from PDFs"
        )
    return UploadResponse(ok=True, upserted=upserted, namespace=namespace)


@router.post("/query", response_model=QueryResponse)
def api_query(
    body: QueryRequest,
    collection=Depends(get_collection),
    pipeline=Depends(get_pipeline),
):
    logger.info("Searching for query %r in namespace %r", body.query, body.namespace)
    matches = vs.search_candidates(
        _require_collection(collection),
        body.query,
        body.top_k,
        namespace=body.namespace,
        limit=_config.reranking.top_n,
    )

    if not body.with_answer:
        return QueryResponse(ok=True, matches=matches)
    if not matches:
        return QueryResponse(
            ok=True, matches=matches, answer=INSUFFICIENT_INFORMATION_ANSWER
        )

    pipeline = _require_pipeline(pipeline)
    try:
        result = pipeline.run(body.query, matches, body.top_k)
    except Exception:
        logger.exception("Advanced RAG failed for query %r", body.query)
        return QueryResponse(ok=True, matches=matches, answer=ERROR_ANSWER)

    return QueryResponse(
        ok=True,
        matches=matches,
        answer=result.final_answer,
        advanced_rag=AdvancedSummary(
            expanded_queries=result.expanded_queries,
            critique_score=result.critique_score,
            confidence=result.confidence,
            ranked_passages=len(result.ranked_passages),
        ),
    )


@router.post("/query/advanced", response_model=AdvancedQueryResponse)
def api_query_advanced(
    body: QueryRequest,
    collection=Depends(get_collection),
    pipeline=Depends(get_pipeline),
):
    logger.info("Advanced RAG query %r in namespace %r", body.query, body.namespace)
    matches = vs.search_candidates(
        _require_collection(collection),
        body.query,
        body.top_k,
        namespace=body.namespace,
        factor=_ADVANCED_SEARCH_FACTOR,
        minimum=_ADVANCED_SEARCH_MIN,
        limit=_ADVANCED_SEARCH_MIN,
    )

    if not matches:
        return AdvancedQueryResponse(
            ok=True,
            query=body.query,
            message=NO_DOCUMENTS_MESSAGE,
            advanced_rag={
                "expanded_queries": [body.query],
                "critique_score": 0.0,
                "confidence": 0.0,
                "ranked_passages": [],
                "passages": [],
            },
        )

    result = _require_pipeline(pipeline).run(body.query, matches, body.top_k)
    return AdvancedQueryResponse(
        ok=True,
        query=body.query,
        advanced_rag=result.to_dict(),
        raw_matches=matches[:_RAW_MATCH_PREVIEW],
    )


app.include_router(router)
