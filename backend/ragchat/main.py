import logging
from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.engine.url import make_url

from ragchat.analysis.router import router as analysis_router
from ragchat.chat.router import router as chat_router
from ragchat.core.config import settings
from ragchat.core.deps import get_document_service
from ragchat.db.init_db import init_db
from ragchat.db.session import engine
from ragchat.openai_compat.router import router as openai_router
from ragchat.rag.router import router as documents_router
from ragchat.rag.schemas import UploadStatus

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
for noisy in ("openai", "httpx"):
    logging.getLogger(noisy).setLevel(getattr(logging, settings.OPENAI_LOG_LEVEL, logging.WARNING))
logger = logging.getLogger(__name__)

app = FastAPI(
    title="RAG Chat Service",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)


@app.on_event("startup")
def on_startup() -> None:
    db_url = make_url(settings.DATABASE_URL)
    logger.info(
        "Config sanity: env=%s db_host=%s cors_origins=%s chat_model=%s embedding_model=%s",
        settings.ENV,
        db_url.host or "local",
        len(settings.CORS_ORIGINS),
        settings.CHAT_MODEL,
        settings.EMBEDDING_MODEL,
    )
    init_db()

    if settings.SAMPLE_DOCS_DIR:
        results = get_document_service().load_sample_documents(Path(settings.SAMPLE_DOCS_DIR))
        ok = sum(1 for r in results if r.status == UploadStatus.SUCCESS)
        if results:
            logger.info("Sample documents ingested: %d of %d", ok, len(results))

    prefix = settings.API_PREFIX
    logger.info("Endpoints:")
    logger.info("  POST %s/chat | GET %s/chat/stream | GET %s/chat/simple", prefix, prefix, prefix)
    logger.info("  POST %s/documents | DELETE %s/documents/{documentId}", prefix, prefix)
    logger.info("  GET /v1/models | POST /v1/chat/completions")


# --- Routers ---
app.include_router(chat_router, prefix=f"{settings.API_PREFIX}/chat", tags=["chat"])
app.include_router(documents_router, prefix=f"{settings.API_PREFIX}/documents", tags=["documents"])
app.include_router(analysis_router, prefix=f"{settings.API_PREFIX}/analysis", tags=["analysis"])
app.include_router(openai_router, prefix="/v1", tags=["openai"])


# --- System ---
@app.get("/health", tags=["system"])
def health():
    return {"status": "ok"}


@app.get("/ready", tags=["system"])
def readiness():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception:
        raise HTTPException(status_code=503, detail="Database not ready")
    return {"status": "ready"}
