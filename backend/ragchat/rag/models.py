from datetime import datetime

from pgvector.sqlalchemy import Vector
from sqlalchemy import JSON, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ragchat.core.config import settings
from ragchat.db.base import Base


class VectorChunk(Base):
    __tablename__ = "vector_store"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)  # uuid4 hex
    content: Mapped[str] = mapped_column(Text, nullable=False)

    # document_id, filename, source, chunk_index, page_number, title, ...
    metadata_: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)

    embedding: Mapped[list[float]] = mapped_column(
        Vector(settings.EMBEDDING_DIMENSIONS), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
