from __future__ import annotations

import re
from io import BytesIO
from pathlib import Path

from docx import Document as DocxDocument
from pypdf import PdfReader

from ragchat.rag.vector_store import Document

PDF_EXTENSIONS = {".pdf"}
MARKDOWN_EXTENSIONS = {".md", ".markdown"}
DOCX_EXTENSIONS = {".docx"}

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")
_FENCE_RE = re.compile(r"^(```|~~~)\s*([\w+-]*)")


def read_pdf(raw: bytes) -> list[Document]:
    """One document per page with extractable text, tagged with its 1-based page number."""
    try:
        reader = PdfReader(BytesIO(raw))
        pages: list[Document] = []
        for number, page in enumerate(reader.pages, start=1):
            page_text = (page.extract_text() or "").strip()
            if page_text:
                pages.append(Document(content=page_text, metadata={"page_number": number}))
    except Exception as exc:
        raise ValueError(f"Could not parse PDF: {exc}") from exc
    if not pages:
        raise ValueError("PDF contains no extractable text.")
    return pages


def read_markdown(raw: bytes) -> list[Document]:
    """
    Groups markdown into one document per heading section. Fenced code blocks
    become documents of their own so prose and code are retrieved separately.
    """
    text = raw.decode("utf-8", errors="replace")
    docs: list[Document] = []

    section_meta: dict = {}
    buffer: list[str] = []

    def flush_section() -> None:
        content = "\n".join(buffer).strip()
        if content:
            docs.append(Document(content=content, metadata=dict(section_meta)))
        buffer.clear()

    lines = text.splitlines()
    i = 0
    while i < len(lines):
        line = lines[i]
        fence = _FENCE_RE.match(line.strip())
        if fence:
            marker, lang = fence.group(1), fence.group(2)
            code: list[str] = []
            i += 1
            while i < len(lines) and not lines[i].strip().startswith(marker):
                code.append(lines[i])
                i += 1
            i += 1  # closing fence
            body = "\n".join(code).strip()
            if body:
                meta = {"category": "code_block", "lang": lang}
                if "title" in section_meta:
                    meta["title"] = section_meta["title"]
                docs.append(Document(content=body, metadata=meta))
            continue

        heading = _HEADING_RE.match(line)
        if heading:
            flush_section()
            section_meta = {
                "title": heading.group(2),
                "category": f"header_{len(heading.group(1))}",
            }
        else:
            buffer.append(line)
        i += 1

    flush_section()
    if not docs:
        raise ValueError("Markdown file is empty.")
    return docs


def read_docx(raw: bytes) -> list[Document]:
    try:
        doc = DocxDocument(BytesIO(raw))
        lines = [p.text.strip() for p in doc.paragraphs if p.text and p.text.strip()]
        text = "\n".join(lines).strip()
    except Exception as exc:
        raise ValueError(f"Could not parse DOCX: {exc}") from exc
    if not text:
        raise ValueError("DOCX contains no extractable text.")
    return [Document(content=text)]


def read_text(raw: bytes) -> list[Document]:
    text = raw.decode("utf-8", errors="replace").strip()
    if not text:
        raise ValueError("Uploaded text file is empty.")
    return [Document(content=text)]


def read_document(*, filename: str, raw: bytes) -> list[Document]:
    """
    Parses an upload into (text, metadata) units, choosing the reader by
    extension: .pdf, .md/.markdown, .docx, anything else as plain text.
    Raises ValueError for unreadable or empty files.
    """
    ext = Path(filename or "").suffix.lower()
    if ext in PDF_EXTENSIONS:
        return read_pdf(raw)
    if ext in MARKDOWN_EXTENSIONS:
        return read_markdown(raw)
    if ext in DOCX_EXTENSIONS:
        return read_docx(raw)
    return read_text(raw)
