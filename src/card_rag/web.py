"""FastAPI web interface for the credit card assistant."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, UploadFile
from pydantic import BaseModel, Field

from card_rag.config import AppConfig
from card_rag.document_index import DocumentIndex
from card_rag.errors import ExtractionError
from card_rag.ingest import ingest_bytes
from card_rag.rag_engine import RAGEngine, build_engine

logger = logging.getLogger(__name__)

_config = AppConfig()


@asynccontextmanager
async def lifespan(application: FastAPI):
    """Build the document index and the engine on startup."""
    index = DocumentIndex(_config.scorer)
    if _config.load_seed_documents:
        index.load_seed_documents()
    engine = build_engine(_config, index)
    application.state.index = index
    application.state.engine = engine
    logger.info("Document index initialized (%d chunks indexed)", len(index))
    yield
    engine.close()


app = FastAPI(
    title="Credit Card Assistant",
    lifespan=lifespan,
    docs_url="/api/docs",
    openapi_url="/api/openapi.json",
)

router = APIRouter(prefix="/api/v1")


def get_index(request: Request) -> DocumentIndex | None:
    """FastAPI dependency — return the document index from app state."""
    return getattr(request.app.state, "index", None)


def get_engine(request: Request) -> RAGEngine | None:
    """FastAPI dependency — return the RAG engine from app state."""
    return getattr(request.app.state, "engine", None)


def _require(component, name: str):
    if component is None:
        raise HTTPException(status_code=503, detail=f"{name} not initialized.")
    return component


class AskRequest(BaseModel):
    question: str = Field(min_length=1, max_length=2000)


class SourceResponse(BaseModel):
    id: str
    text: str
    card_name: str | None = None
    bank_name: str | None = None
    section: str | None = None
    similarity: float


class CardResponse(BaseModel):
    card_name: str | None = None
    bank_name: str | None = None
    annual_fee: str | None = None
    joining_fee: str | None = None
    key_features: str | None = None
    reward_rate: str | None = None
    eligibility: str | None = None


class AskResponse(BaseModel):
    answer: str
    source: str
    confidence: int
    category: str | None = None
    sources: list[SourceResponse]
    cards: list[CardResponse]


class FileResult(BaseModel):
    filename: str
    status: str
    chunks: int = 0
    detail: str | None = None


class UploadResponse(BaseModel):
    status: str
    files: list[FileResult]
    chunks: int


class StatsResponse(BaseModel):
    totalDocuments: int
    sources: dict[str, int]
    banks: dict[str, int]
    cards: dict[str, int]


class ClearResponse(BaseModel):
    status: str
    totalDocuments: int


class HealthResponse(BaseModel):
    status: str
    ollama_connected: bool
    documents: int


@router.get("/health", response_model=HealthResponse)
def api_health(index=Depends(get_index), engine=Depends(get_engine)):
    connected = engine.generator.is_available() if engine else False
    return HealthResponse(
        status="healthy" if connected else "degraded",
        ollama_connected=connected,
        documents=len(index) if index is not None else 0,
    )


@router.post("/ask", response_model=AskResponse)
def api_ask(body: AskRequest, engine=Depends(get_engine)):
    engine = _require(engine, "RAG engine")
    if not body.question.strip():
        raise HTTPException(status_code=422, detail="Question must not be blank.")

    response = engine.ask(body.question)

    sources = [
        SourceResponse(
            id=result.chunk.id,
            text=result.chunk.content,
            card_name=result.chunk.metadata.card_name,
            bank_name=result.chunk.metadata.bank_name,
            section=result.chunk.metadata.section,
            similarity=round(result.similarity, 4),
        )
        for result in response.source_documents
    ]
    cards = [
        CardResponse(
            card_name=card.card_name,
            bank_name=card.bank_name,
            annual_fee=card.annual_fee,
            joining_fee=card.joining_fee,
            key_features=card.key_features,
            reward_rate=card.reward_rate,
            eligibility=card.eligibility,
        )
        for card in response.data
    ]

    return AskResponse(
        answer=response.text,
        source=response.source.value,
        confidence=response.confidence,
        category=response.mapping.category if response.mapping else None,
        sources=sources,
        cards=cards,
    )


ALLOWED_EXTENSIONS = {".pdf", ".txt", ".md"}


def _read_limited(file: UploadFile, max_size: int) -> bytes | None:
    """Read an upload in 1 MB pieces; return None if it exceeds *max_size*."""
    read_chunk = 1024 * 1024
    total = 0
    parts: list[bytes] = []
    while True:
        chunk = file.file.read(read_chunk)
        if not chunk:
            break
        total += len(chunk)
        if total > max_size:
            return None
        parts.append(chunk)
    return b"".join(parts)


@router.post("/upload", response_model=UploadResponse)
def api_upload(files: list[UploadFile], index=Depends(get_index)):
    index = _require(index, "Document index")
    max_size = _config.ingest.max_upload_mb * 1024 * 1024

    results: list[FileResult] = []
    total_chunks = 0
    for file in files:
        safe_name = Path(file.filename or "").name
        if not safe_name:
            continue
        if Path(safe_name).suffix.lower() not in ALLOWED_EXTENSIONS:
            results.append(
                FileResult(filename=safe_name, status="rejected", detail="Unsupported file type")
            )
            continue

        data = _read_limited(file, max_size)
        if data is None:
            results.append(
                FileResult(filename=safe_name, status="rejected", detail="File too large")
            )
            continue

        try:
            document = ingest_bytes(data, safe_name, index, _config.ingest)
        except ExtractionError as exc:
            logger.warning("Ingestion failed for %s: %s", safe_name, exc)
            results.append(FileResult(filename=safe_name, status="failed", detail=str(exc)))
            continue

        total_chunks += len(document.chunks)
        results.append(
            FileResult(filename=safe_name, status="ok", chunks=len(document.chunks))
        )

    indexed = any(r.status == "ok" for r in results)
    return UploadResponse(
        status="ok" if indexed else "no_valid_files",
        files=results,
        chunks=total_chunks,
    )


@router.get("/documents/stats", response_model=StatsResponse)
def api_stats(index=Depends(get_index)):
    index = _require(index, "Document index")
    return StatsResponse(**index.get_index_stats().to_dict())


@router.post("/documents/seed", response_model=StatsResponse)
def api_seed(index=Depends(get_index)):
    index = _require(index, "Document index")
    index.load_seed_documents()
    return StatsResponse(**index.get_index_stats().to_dict())


@router.delete("/documents", response_model=ClearResponse)
def api_clear(index=Depends(get_index)):
    index = _require(index, "Document index")
    index.clear()
    return ClearResponse(status="ok", totalDocuments=len(index))


app.include_router(router)
