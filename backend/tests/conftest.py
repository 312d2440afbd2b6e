import re
import uuid

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ragchat.chat.memory_models import ChatMessage, Conversation
from ragchat.chat.memory_service import ChatMemory
from ragchat.chat.service import ChatService, build_rag_pipeline, build_simple_pipeline
from ragchat.core.config import Settings
from ragchat.db.base import Base
from ragchat.llm.client import Completion
from ragchat.rag.filters import parse_filter
from ragchat.rag.service import DocumentService
from ragchat.rag.splitter import TokenTextSplitter
from ragchat.rag.vector_store import Document
from ragchat.tools.document_tools import build_document_tools


def _words(text: str) -> set[str]:
    return set(re.findall(r"[a-z0-9]+", text.lower()))


def metadata_matches(expr, metadata) -> bool:
    """In-memory evaluation of a parsed filter, mirroring the SQL the pgvector store emits."""
    for condition in expr.conditions:
        actual = metadata.get(condition.key)
        equal = actual is not None and str(actual) == condition.value
        if equal != (condition.op == "=="):
            return False
    return True


class FakeLLM:
    """Scripted stand-in for LLMClient; replies are consumed in order, then `default`."""

    def __init__(self, replies=None, default: str = "ok") -> None:
        self.replies = list(replies or [])
        self.default = default
        self.calls: list[dict] = []
        self.stream_calls: list[dict] = []

    def _next(self):
        return self.replies.pop(0) if self.replies else self.default

    def complete(self, messages, *, tools=None, options=None) -> Completion:
        self.calls.append({"messages": list(messages), "tools": tools, "options": options})
        reply = self._next()
        if isinstance(reply, Completion):
            return reply
        return Completion(content=reply)

    def stream(self, messages, *, options=None):
        self.stream_calls.append({"messages": list(messages), "options": options})
        reply = self._next()
        for piece in re.findall(r"\S+\s*|\s+", reply):
            yield piece


class FakeVectorStore:
    """In-memory store scoring documents by the share of query words they contain."""

    def __init__(self) -> None:
        self.docs: list[Document] = []
        self.searches: list[dict] = []

    def add(self, documents) -> None:
        for doc in documents:
            doc.id = doc.id or uuid.uuid4().hex
            self.docs.append(Document(content=doc.content, metadata=dict(doc.metadata), id=doc.id))

    def similarity_search(
        self,
        query,
        *,
        top_k=4,
        similarity_threshold=0.0,
        filter_expression=None,
    ):
        self.searches.append(
            {
                "query": query,
                "top_k": top_k,
                "similarity_threshold": similarity_threshold,
                "filter_expression": filter_expression,
            }
        )
        expr = parse_filter(filter_expression) if filter_expression else None
        query_words = _words(query)
        results = []
        for doc in self.docs:
            if expr is not None and not metadata_matches(expr, doc.metadata):
                continue
            overlap = len(query_words & _words(doc.content))
            score = overlap / len(query_words) if query_words else 0.0
            if similarity_threshold > 0 and score < similarity_threshold:
                continue
            results.append(
                Document(content=doc.content, metadata=dict(doc.metadata), id=doc.id, score=score)
            )
        results.sort(key=lambda d: d.score, reverse=True)
        return results[:top_k]

    def delete(self, filter_expression) -> int:
        expr = parse_filter(filter_expression)
        before = len(self.docs)
        self.docs = [d for d in self.docs if not metadata_matches(expr, d.metadata)]
        return before - len(self.docs)


class FakeEncoding:
    """Whitespace-delimited "tokens"; decode(encode(text)) == text."""

    def __init__(self) -> None:
        self._ids: dict[str, int] = {}
        self._pieces: list[str] = []

    def encode(self, text: str) -> list[int]:
        tokens = []
        for piece in re.findall(r"\S+\s*|\s+", text):
            if piece not in self._ids:
                self._ids[piece] = len(self._pieces)
                self._pieces.append(piece)
            tokens.append(self._ids[piece])
        return tokens

    def decode(self, tokens: list[int]) -> str:
        return "".join(self._pieces[t] for t in tokens)


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine, tables=[Conversation.__table__, ChatMessage.__table__])
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    engine.dispose()


@pytest.fixture
def memory(session_factory):
    return ChatMemory(session_factory, max_messages=20)


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def vector_store():
    return FakeVectorStore()


@pytest.fixture
def test_settings():
    return Settings(
        QUERY_REWRITE_ENABLED=False,
        TOOLS_ENABLED=False,
        RAG_TOP_K=5,
        RAG_SIMILARITY_THRESHOLD=0.5,
    )


@pytest.fixture
def chat_service(llm, memory, vector_store, test_settings):
    return ChatService(
        rag_pipeline=build_rag_pipeline(
            llm,
            memory,
            vector_store,
            test_settings,
            tools=build_document_tools(vector_store),
        ),
        simple_pipeline=build_simple_pipeline(llm, memory),
    )


@pytest.fixture
def splitter():
    return TokenTextSplitter(encoding=FakeEncoding())


@pytest.fixture
def document_service(vector_store, splitter):
    return DocumentService(vector_store, splitter, max_upload_bytes=1_000)


@pytest.fixture
def client(chat_service, document_service, vector_store, llm):
    from fastapi.testclient import TestClient

    from ragchat.analysis.service import AnalysisService
    from ragchat.core.deps import get_analysis_service, get_chat_service, get_document_service
    from ragchat.main import app

    app.dependency_overrides[get_chat_service] = lambda: chat_service
    app.dependency_overrides[get_document_service] = lambda: document_service
    app.dependency_overrides[get_analysis_service] = lambda: AnalysisService(llm, vector_store)
    yield TestClient(app)
    app.dependency_overrides.clear()


def read_sse(body: str) -> list[str]:
    """Event payloads of a text/event-stream body, multi-line data rejoined."""
    events = []
    for block in body.split("\n\n"):
        if not block:
            continue
        lines = [line[len("data: "):] for line in block.split("\n") if line.startswith("data: ")]
        events.append("\n".join(lines))
    return events
