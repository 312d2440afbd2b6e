import logging
import uuid
from pathlib import Path

from ragchat.rag import filters
from ragchat.rag.file_extract import read_document
from ragchat.rag.schemas import DocumentUploadResponse
from ragchat.rag.splitter import TokenTextSplitter
from ragchat.rag.vector_store import VectorStore

logger = logging.getLogger(__name__)


def _make_document_id() -> str:
    return str(uuid.uuid4())


class DocumentService:
    """
    Ingests uploads into the vector store and removes them again.

    Ingestion never raises: parse, embedding and store errors come back as a
    FAILED DocumentUploadResponse carrying the error text.
    """

    def __init__(
        self,
        vector_store: VectorStore,
        splitter: TokenTextSplitter,
        max_upload_bytes: int | None = None,
    ) -> None:
        self.vector_store = vector_store
        self.splitter = splitter
        self.max_upload_bytes = max_upload_bytes

    def ingest(self, *, filename: str, raw: bytes) -> DocumentUploadResponse:
        document_id = _make_document_id()
        try:
            if self.max_upload_bytes is not None and len(raw) > self.max_upload_bytes:
                raise ValueError(
                    f"File too large ({len(raw)} bytes, max {self.max_upload_bytes})."
                )

            units = read_document(filename=filename, raw=raw)
            for unit in units:
                unit.metadata["document_id"] = document_id
                unit.metadata["filename"] = filename
                unit.metadata["source"] = filename

            chunks = self.splitter.split_documents(units)
            if not chunks:
                raise ValueError("Document produced no chunks to index.")
            self.vector_store.add(chunks)
        except Exception as exc:
            logger.exception("Failed to ingest document: %s", filename)
            return DocumentUploadResponse.failure(filename, str(exc))

        logger.info("Successfully ingested document: %s with %d chunks", filename, len(chunks))
        return DocumentUploadResponse.success(document_id, filename, len(chunks))

    def ingest_resource(self, path: Path, filename: str | None = None) -> DocumentUploadResponse:
        """Ingests a file from disk (sample documents, CLI use)."""
        name = filename or path.name
        try:
            raw = path.read_bytes()
        except OSError as exc:
            logger.exception("Failed to read resource: %s", path)
            return DocumentUploadResponse.failure(name, str(exc))
        return self.ingest(filename=name, raw=raw)

    def ingest_batch(self, files: list[tuple[str, bytes]]) -> list[DocumentUploadResponse]:
        return [self.ingest(filename=name, raw=raw) for name, raw in files]

    def delete(self, document_id: str) -> None:
        removed = self.vector_store.delete(filters.eq("document_id", document_id))
        logger.info("Deleted document: %s (%d chunks)", document_id, removed)

    def is_store_empty(self) -> bool:
        try:
            probe = self.vector_store.similarity_search("test", top_k=1, similarity_threshold=0.0)
        except Exception:
            logger.exception("Error checking document store contents")
            return True
        return not probe

    def load_sample_documents(self, directory: Path) -> list[DocumentUploadResponse]:
        """Ingests every file under `directory`, but only into an empty store."""
        if not directory.is_dir():
            logger.warning("Sample documents directory not found: %s", directory)
            return []
        if not self.is_store_empty():
            logger.info("Document store already contains data. Skipping sample ingestion.")
            return []

        logger.info("Document store is empty. Ingesting sample documents from %s", directory)
        return [
            self.ingest_resource(path)
            for path in sorted(directory.iterdir())
            if path.is_file() and not path.name.startswith(".")
        ]
