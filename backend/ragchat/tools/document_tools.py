from ragchat.chat.citations import source_name
from ragchat.rag import filters
from ragchat.rag.vector_store import VectorStore
from ragchat.tools.registry import ToolParam, ToolRegistry, ToolSpec

SEARCH_DOCUMENTS = ToolSpec(
    name="search_documents",
    description=(
        "Search the document knowledge base for information. "
        "Use this when you need to find specific details from uploaded documents."
    ),
    params=(
        ToolParam(
            name="query",
            type="string",
            description="The search query - describe what information you're looking for",
        ),
        ToolParam(
            name="max_results",
            type="integer",
            description="Maximum number of results to return",
            required=False,
        ),
    ),
)

LIST_DOCUMENTS = ToolSpec(
    name="list_documents",
    description=(
        "List all documents available in the knowledge base. "
        "Use this to see what documents have been uploaded."
    ),
)

SUMMARIZE_DOCUMENT = ToolSpec(
    name="summarize_document",
    description=(
        "Get a summary of key points from a specific document. "
        "Provide the document filename."
    ),
    params=(
        ToolParam(
            name="document_name",
            type="string",
            description="The filename of the document to summarize",
        ),
    ),
)


class DocumentTools:
    def __init__(self, vector_store: VectorStore) -> None:
        self.vector_store = vector_store

    def search_documents(self, query: str, max_results: int = 5) -> str:
        results = self.vector_store.similarity_search(query, top_k=int(max_results))
        if not results:
            return f"No relevant documents found for: {query}"

        lines = [f"Found {len(results)} relevant documents:", ""]
        for i, doc in enumerate(results, start=1):
            lines.append(f"--- Document {i} ({source_name(doc) or 'unknown'}) ---")
            lines.append(doc.content)
            lines.append("")
        return "\n".join(lines)

    def list_documents(self) -> str:
        results = self.vector_store.similarity_search("document", top_k=100)
        if not results:
            return "No documents have been uploaded to the knowledge base."

        seen: list[str] = []
        for doc in results:
            name = source_name(doc) or "unknown"
            if name not in seen:
                seen.append(name)
        return "Documents in knowledge base:\n" + "".join(f"- {name}\n" for name in seen)

    def summarize_document(self, document_name: str) -> str:
        results = self.vector_store.similarity_search(
            f"summary overview key points {document_name}",
            top_k=10,
            filter_expression=filters.eq("source", document_name),
        )
        if not results:
            return f"Document not found: {document_name}"
        body = "\n\n".join(doc.content for doc in results)
        return f"Content from {document_name}:\n\n{body}\n"


def build_document_tools(vector_store: VectorStore) -> ToolRegistry:
    tools = DocumentTools(vector_store)
    registry = ToolRegistry()
    registry.register(SEARCH_DOCUMENTS, tools.search_documents)
    registry.register(LIST_DOCUMENTS, tools.list_documents)
    registry.register(SUMMARIZE_DOCUMENT, tools.summarize_document)
    return registry
