from functools import lru_cache

from ragchat.analysis.service import AnalysisService
from ragchat.chat.memory_service import ChatMemory
from ragchat.chat.service import ChatService, build_rag_pipeline, build_simple_pipeline
from ragchat.core.config import settings
from ragchat.db.session import SessionLocal
from ragchat.llm.client import get_llm_client
from ragchat.rag.service import DocumentService
from ragchat.rag.splitter import TokenTextSplitter
from ragchat.rag.vector_store import PgVectorStore
from ragchat.tools.document_tools import build_document_tools


@lru_cache(maxsize=1)
def get_vector_store() -> PgVectorStore:
    return PgVectorStore(SessionLocal)


@lru_cache(maxsize=1)
def get_chat_memory() -> ChatMemory:
    return ChatMemory(SessionLocal, max_messages=settings.CHAT_MEMORY_MAX_MESSAGES)


@lru_cache(maxsize=1)
def get_document_service() -> DocumentService:
    splitter = TokenTextSplitter(
        settings.CHUNK_SIZE_TOKENS,
        overlap=settings.CHUNK_OVERLAP_TOKENS,
        min_chunk_chars=settings.CHUNK_MIN_CHARS,
        min_chunk_length_to_embed=settings.CHUNK_MIN_LENGTH_TO_EMBED,
        max_num_chunks=settings.CHUNK_MAX_CHUNKS,
        encoding_name=settings.CHUNK_ENCODING,
    )
    return DocumentService(
        get_vector_store(),
        splitter,
        max_upload_bytes=settings.MAX_UPLOAD_BYTES,
    )


@lru_cache(maxsize=1)
def get_chat_service() -> ChatService:
    llm = get_llm_client()
    memory = get_chat_memory()
    store = get_vector_store()
    return ChatService(
        rag_pipeline=build_rag_pipeline(
            llm,
            memory,
            store,
            settings,
            tools=build_document_tools(store),
        ),
        simple_pipeline=build_simple_pipeline(llm, memory),
    )


@lru_cache(maxsize=1)
def get_analysis_service() -> AnalysisService:
    return AnalysisService(get_llm_client(), get_vector_store())
