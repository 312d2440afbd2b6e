import json

import pytest

from ragchat.rag.vector_store import Document
from ragchat.tools.document_tools import build_document_tools
from ragchat.tools.registry import ToolParam, ToolRegistry, ToolSpec

ECHO = ToolSpec(
    name="echo",
    description="Echo a word back",
    params=(
        ToolParam(name="word", type="string", description="Word to echo"),
        ToolParam(name="times", type="integer", description="Repeat count", required=False),
    ),
)


@pytest.fixture
def registry():
    reg = ToolRegistry()
    reg.register(ECHO, lambda word, times=1: word * times)
    return reg


def test_schema_lists_params_and_required_ones():
    schema = ECHO.to_openai()

    assert schema["type"] == "function"
    params = schema["function"]["parameters"]
    assert params["properties"]["times"]["type"] == "integer"
    assert params["required"] == ["word"]


def test_dispatch_accepts_json_and_dict_arguments(registry):
    assert registry.dispatch("echo", json.dumps({"word": "ab", "times": 2})) == "abab"
    assert registry.dispatch("echo", {"word": "x"}) == "x"


def test_dispatch_ignores_unknown_arguments(registry):
    assert registry.dispatch("echo", '{"word": "x", "colour": "red"}') == "x"


@pytest.mark.parametrize(
    "name, arguments, fragment",
    [
        ("nope", "{}", "unknown tool"),
        ("echo", "{not json", "not valid JSON"),
        ("echo", "[1, 2]", "must be a JSON object"),
        ("echo", "{}", "missing required argument(s) for 'echo': word"),
        ("echo", '{"word": "x", "times": "twice"}', "invalid arguments for 'echo'"),
    ],
)
def test_dispatch_errors_are_returned_as_text(registry, name, arguments, fragment):
    result = registry.dispatch(name, arguments)

    assert result.startswith("Error:")
    assert fragment in result


def test_duplicate_registration_raises(registry):
    with pytest.raises(ValueError):
        registry.register(ECHO, lambda word: word)


def test_document_tools_are_registered(vector_store):
    registry = build_document_tools(vector_store)

    assert len(registry) == 3
    assert {"search_documents", "list_documents", "summarize_document"} <= {
        s.name for s in registry.specs()
    }


def test_search_documents_formats_hits(vector_store):
    vector_store.add([Document(content="Refunds within 30 days.", metadata={"source": "kb/faq.txt"})])
    registry = build_document_tools(vector_store)

    out = registry.dispatch("search_documents", '{"query": "refunds", "max_results": 3}')

    assert out.startswith("Found 1 relevant documents:")
    assert "--- Document 1 (faq.txt) ---" in out
    assert vector_store.searches[-1]["top_k"] == 3


def test_search_documents_on_empty_store(vector_store):
    out = build_document_tools(vector_store).dispatch("search_documents", '{"query": "refunds"}')

    assert out == "No relevant documents found for: refunds"


def test_list_documents_names_each_source_once(vector_store):
    vector_store.add(
        [
            Document(content="part one", metadata={"source": "faq.txt"}),
            Document(content="part two", metadata={"source": "faq.txt"}),
            Document(content="guide", metadata={"source": "guide.md"}),
        ]
    )

    out = build_document_tools(vector_store).dispatch("list_documents", "{}")

    assert out.count("- faq.txt") == 1
    assert "- guide.md" in out


def test_summarize_document_filters_by_source(vector_store):
    vector_store.add(
        [
            Document(content="faq body", metadata={"source": "faq.txt"}),
            Document(content="guide body", metadata={"source": "guide.md"}),
        ]
    )
    registry = build_document_tools(vector_store)

    out = registry.dispatch("summarize_document", '{"document_name": "faq.txt"}')

    assert "faq body" in out
    assert "guide body" not in out
    assert vector_store.searches[-1]["filter_expression"] == "source == 'faq.txt'"
    assert (
        registry.dispatch("summarize_document", '{"document_name": "missing.pdf"}')
        == "Document not found: missing.pdf"
    )


def test_search_documents_with_non_numeric_limit_returns_error_text(vector_store):
    registry = build_document_tools(vector_store)

    out = registry.dispatch("search_documents", '{"query": "x", "max_results": "many"}')

    assert out.startswith("Error: invalid arguments for 'search_documents':")
    assert vector_store.searches == []
