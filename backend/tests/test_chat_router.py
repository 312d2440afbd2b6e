from conftest import read_sse

from ragchat.chat.prompting import SIMPLE_SYSTEM_PROMPT
from ragchat.chat.router import sse_event
from ragchat.rag.vector_store import Document

POLICY = "The return policy is simple: refunds are accepted within 30 days."


def test_blank_message_is_rejected_before_the_model(client, llm):
    response = client.post("/chat", json={"message": "   "})

    assert response.status_code == 422
    assert llm.calls == []


def test_post_defaults_to_plain_chat_and_default_conversation(client, llm, memory):
    response = client.post("/chat", json={"message": "hi"})

    assert response.status_code == 200
    body = response.json()
    assert body["content"] == "ok"
    assert body["conversationId"] == "default"
    assert body["sources"] == []
    assert "timestamp" in body
    assert llm.calls[0]["messages"][0]["content"] == SIMPLE_SYSTEM_PROMPT
    assert len(memory.get("default")) == 2


def test_post_with_rag_returns_sources(client, vector_store):
    vector_store.add([Document(content=POLICY, metadata={"source": "uploads/faq.txt"})])

    response = client.post(
        "/chat",
        json={"message": "What is the return policy?", "conversationId": "c1", "useRag": True},
    )

    assert response.json()["sources"] == ["faq.txt"]
    assert response.json()["conversationId"] == "c1"


def test_get_alias_uses_rag(client, vector_store):
    vector_store.add([Document(content=POLICY, metadata={"source": "faq.txt"})])

    response = client.get(
        "/chat", params={"message": "What is the return policy?", "conversationId": "c2"}
    )

    assert response.status_code == 200
    assert response.json()["sources"] == ["faq.txt"]


def test_simple_endpoint_skips_retrieval(client, vector_store):
    vector_store.add([Document(content=POLICY, metadata={"source": "faq.txt"})])

    response = client.get("/chat/simple", params={"message": "What is the return policy?"})

    assert response.json()["sources"] == []
    assert vector_store.searches == []


def test_stream_emits_sse_and_records_turn(client, llm, memory):
    llm.default = "Line one.\nLine two."

    response = client.get("/chat/stream", params={"message": "hi", "conversationId": "s1"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert "".join(read_sse(response.text)) == "Line one.\nLine two."
    assert memory.get("s1")[-1].content == "Line one.\nLine two."


def test_stream_rejects_blank_message(client):
    assert client.get("/chat/stream", params={"message": " "}).status_code == 422


def test_sse_event_splits_embedded_newlines():
    assert sse_event("a\nb") == "data: a\ndata: b\n\n"


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
