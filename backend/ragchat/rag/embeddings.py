import logging
from typing import List

from ragchat.core.config import settings
from ragchat.llm.client import get_openai_client

logger = logging.getLogger(__name__)


def embed_texts(texts: List[str], batch_size: int | None = None) -> List[List[float]]:
    """Embeds texts in provider-sized batches, preserving input order."""
    batch_size = batch_size or settings.EMBEDDING_BATCH_SIZE
    vectors: List[List[float]] = []
    for i in range(0, len(texts), batch_size):
        batch = texts[i : i + batch_size]
        resp = get_openai_client().embeddings.create(
            model=settings.EMBEDDING_MODEL,
            input=batch,
        )
        vectors.extend(d.embedding for d in sorted(resp.data, key=lambda d: d.index))
        logger.debug("Embedded batch %d (%d texts)", i // batch_size + 1, len(batch))
    return vectors
