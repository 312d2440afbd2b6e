import logging
from typing import Protocol, Sequence

import tiktoken

from ragchat.rag.vector_store import Document

logger = logging.getLogger(__name__)

_SENTENCE_BREAKS = (".", "?", "!", "\n")


class Encoding(Protocol):
    def encode(self, text: str) -> list[int]: ...

    def decode(self, tokens: list[int]) -> str: ...


class TokenTextSplitter:
    """
    Splits text into chunks of at most `chunk_size` tokens, preferring to end a
    chunk at the last sentence break once it holds at least `min_chunk_chars`
    characters.
    """

    def __init__(
        self,
        chunk_size: int = 800,
        *,
        overlap: int = 0,
        min_chunk_chars: int = 350,
        min_chunk_length_to_embed: int = 5,
        max_num_chunks: int = 10000,
        encoding: Encoding | None = None,
        encoding_name: str = "cl100k_base",
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 <= overlap < chunk_size:
            raise ValueError("overlap must be in [0, chunk_size)")
        self.chunk_size = chunk_size
        self.overlap = overlap
        self.min_chunk_chars = min_chunk_chars
        self.min_chunk_length_to_embed = min_chunk_length_to_embed
        self.max_num_chunks = max_num_chunks
        self._encoding = encoding
        self._encoding_name = encoding_name

    @property
    def encoding(self) -> Encoding:
        # tiktoken fetches its BPE ranks on first use; defer until needed
        if self._encoding is None:
            self._encoding = tiktoken.get_encoding(self._encoding_name)
        return self._encoding

    def split_text(self, text: str) -> list[str]:
        if not text or not text.strip():
            return []

        tokens = self.encoding.encode(text)
        chunks: list[str] = []
        start = 0

        while start < len(tokens) and len(chunks) < self.max_num_chunks:
            window = tokens[start : start + self.chunk_size]
            chunk_text = self.encoding.decode(window)

            if start + len(window) < len(tokens):
                cut = max(chunk_text.rfind(p) for p in _SENTENCE_BREAKS)
                if cut != -1 and cut >= self.min_chunk_chars:
                    chunk_text = chunk_text[: cut + 1]

            consumed = len(self.encoding.encode(chunk_text)) if chunk_text else len(window)
            consumed = max(1, min(consumed, len(window)))

            stripped = chunk_text.strip()
            if len(stripped) > self.min_chunk_length_to_embed:
                chunks.append(stripped)

            if start + consumed >= len(tokens):
                break
            start += max(1, consumed - self.overlap)

        return chunks

    def split_documents(self, documents: Sequence[Document]) -> list[Document]:
        """Splits each document, copying its metadata onto every chunk."""
        out: list[Document] = []
        for doc in documents:
            for index, piece in enumerate(self.split_text(doc.content)):
                metadata = dict(doc.metadata)
                metadata["chunk_index"] = index
                out.append(Document(content=piece, metadata=metadata))
        logger.info("Split %d document unit(s) into %d chunk(s)", len(documents), len(out))
        return out
