from typing import Sequence

from ragchat.rag.vector_store import Document

RAG_SYSTEM_PROMPT = """You are a helpful AI assistant with access to a knowledge base of documents.
When answering questions:
1. Use information from the provided context when available
2. Be precise and cite specific details from documents
3. If the context doesn't contain relevant information, say so clearly
4. Provide structured, easy-to-read responses
"""

SIMPLE_SYSTEM_PROMPT = "You are a helpful AI assistant."

REWRITE_QUERY_PROMPT = """Given a user query, rewrite it to provide better results when querying a {target}.
Remove any irrelevant information, and ensure the query is concise and specific.

Original query:
{query}

Rewritten query:
"""

CONTEXT_PROMPT = """Context information is below.

---------------------
{context}
---------------------

Given the context information and no prior knowledge, answer the query.

Follow these rules:

1. If the answer is not in the context, just say that you don't know.
2. Avoid statements like "Based on the context..." or "The provided information...".

Query: {query}

Answer:
"""

EMPTY_CONTEXT_PROMPT = """The user query is outside your knowledge base.
Politely inform the user that you can't answer it.
"""


def build_rewrite_prompt(query: str, target: str = "vector store") -> str:
    return REWRITE_QUERY_PROMPT.format(target=target, query=query)


def format_context(documents: Sequence[Document]) -> str:
    return "\n".join(d.content for d in documents)


def build_augmented_query(
    query: str,
    documents: Sequence[Document],
    *,
    allow_empty_context: bool = False,
) -> str:
    """Folds retrieved chunks into the user turn sent to the model."""
    if not documents:
        return query if allow_empty_context else EMPTY_CONTEXT_PROMPT
    return CONTEXT_PROMPT.format(context=format_context(documents), query=query)
