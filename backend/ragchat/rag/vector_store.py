import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol, Sequence

from sqlalchemy import delete, or_, select
from sqlalchemy.orm import Session

from ragchat.rag.embeddings import embed_texts
from ragchat.rag.filters import FilterExpression, parse_filter
from ragchat.rag.models import VectorChunk

logger = logging.getLogger(__name__)


@dataclass
class Document:
    """A span of text plus metadata, as stored in or returned by the store."""

    content: str
    metadata: dict[str, Any] = field(default_factory=dict)
    id: str | None = None
    score: float | None = None  # cosine similarity, set on search results


class VectorStore(Protocol):
    def add(self, documents: Sequence[Document]) -> None: ...

    def similarity_search(
        self,
        query: str,
        *,
        top_k: int = 4,
        similarity_threshold: float = 0.0,
        filter_expression: str | None = None,
    ) -> list[Document]: ...

    def delete(self, filter_expression: str) -> int: ...


def _metadata_clause(expr: FilterExpression):
    clauses = []
    for c in expr.conditions:
        field_value = VectorChunk.metadata_[c.key].as_string()
        if c.op == "==":
            clauses.append(field_value == c.value)
        else:
            clauses.append(or_(field_value.is_(None), field_value != c.value))
    return clauses


class PgVectorStore:
    """pgvector-backed document store using cosine distance."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        embed: Callable[[list[str]], list[list[float]]] = embed_texts,
    ) -> None:
        self._session_factory = session_factory
        self._embed = embed

    def add(self, documents: Sequence[Document]) -> None:
        if not documents:
            return
        vectors = self._embed([d.content for d in documents])
        with self._session_factory() as db:
            for doc, vec in zip(documents, vectors, strict=True):
                doc.id = doc.id or uuid.uuid4().hex
                db.add(
                    VectorChunk(
                        id=doc.id,
                        content=doc.content,
                        metadata_=dict(doc.metadata),
                        embedding=vec,
                    )
                )
            db.commit()
        logger.info("Stored %d chunk(s) in vector store", len(documents))

    def similarity_search(
        self,
        query: str,
        *,
        top_k: int = 4,
        similarity_threshold: float = 0.0,
        filter_expression: str | None = None,
    ) -> list[Document]:
        qvec = self._embed([query])[0]
        distance = VectorChunk.embedding.cosine_distance(qvec)

        stmt = select(VectorChunk, distance.label("distance"))
        if similarity_threshold > 0:
            # similarity = 1 - cosine distance
            stmt = stmt.where(distance <= 1 - similarity_threshold)
        if filter_expression:
            stmt = stmt.where(*_metadata_clause(parse_filter(filter_expression)))
        stmt = stmt.order_by(distance).limit(top_k)

        with self._session_factory() as db:
            rows = db.execute(stmt).all()
            return [
                Document(
                    id=chunk.id,
                    content=chunk.content,
                    metadata=dict(chunk.metadata_ or {}),
                    score=1.0 - float(dist),
                )
                for chunk, dist in rows
            ]

    def delete(self, filter_expression: str) -> int:
        clauses = _metadata_clause(parse_filter(filter_expression))
        with self._session_factory() as db:
            result = db.execute(
                delete(VectorChunk)
                .where(*clauses)
                .execution_options(synchronize_session=False)
            )
            db.commit()
        return result.rowcount or 0
