from typing import Iterable

from ragchat.rag.vector_store import Document

SOURCES_SEPARATOR = "\n\n---\n**Sources:** "


def source_name(document: Document) -> str | None:
    """`source` (or `filename`) metadata with any directory prefix removed."""
    raw = document.metadata.get("source") or document.metadata.get("filename")
    if raw is None:
        return None
    name = str(raw).replace("\\", "/").rsplit("/", 1)[-1]
    return name or None


def extract_sources(documents: Iterable[Document]) -> list[str]:
    """Sorted, duplicate-free file names across every supplied chunk."""
    names = {n for n in (source_name(d) for d in documents) if n}
    return sorted(names)


def sources_footer(sources: list[str]) -> str:
    if not sources:
        return ""
    return SOURCES_SEPARATOR + ", ".join(sources)
