import json

from ragchat.chat.citations import SOURCES_SEPARATOR
from ragchat.chat.prompting import SIMPLE_SYSTEM_PROMPT
from ragchat.openai_compat.service import derive_conversation_id
from ragchat.rag.vector_store import Document

POLICY = "The return policy is simple: refunds are accepted within 30 days."
QUESTION = {"role": "user", "content": "What is the return policy?"}


def _seed(vector_store):
    vector_store.add([Document(content=POLICY, metadata={"source": "faq.txt"})])


def _chunks(body: str) -> list:
    payloads = [line[len("data: "):] for line in body.split("\n\n") if line.startswith("data: ")]
    assert payloads[-1] == "[DONE]"
    return [json.loads(p) for p in payloads[:-1]]


def test_models_endpoint(client):
    body = client.get("/v1/models").json()

    assert body["object"] == "list"
    assert {m["id"] for m in body["data"]} == {"spring-ai-chat", "spring-ai-rag"}
    assert all(isinstance(m["created"], int) for m in body["data"])


def test_rag_completion_appends_sources(client, llm, vector_store):
    _seed(vector_store)
    llm.default = "You can get a refund within 30 days."

    response = client.post(
        "/v1/chat/completions",
        json={"model": "spring-ai-rag", "messages": [QUESTION]},
        headers={"Authorization": "Bearer sk-test"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["object"] == "chat.completion"
    assert body["id"].startswith("chatcmpl-")
    assert body["model"] == "spring-ai-rag"
    assert body["usage"] == {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}
    choice = body["choices"][0]
    assert choice["finish_reason"] == "stop"
    assert choice["message"]["role"] == "assistant"
    assert choice["message"]["content"] == (
        "You can get a refund within 30 days." + SOURCES_SEPARATOR + "faq.txt"
    )


def test_same_token_continues_the_same_conversation(client, memory):
    for _ in range(2):
        client.post(
            "/v1/chat/completions",
            json={"model": "spring-ai-chat", "messages": [{"role": "user", "content": "hi"}]},
            headers={"Authorization": "Bearer sk-test"},
        )

    assert len(memory.get(derive_conversation_id("Bearer sk-test"))) == 4
    assert memory.get("default-session") == []


def test_unknown_model_falls_back_to_plain_chat(client, llm, vector_store):
    _seed(vector_store)

    body = client.post(
        "/v1/chat/completions",
        json={"model": "gpt-4o", "messages": [QUESTION], "temperature": 0.3, "max_tokens": 64},
    ).json()

    assert body["model"] == "gpt-4o"
    assert body["choices"][0]["message"]["content"] == "ok"
    assert llm.calls[0]["messages"][0]["content"] == SIMPLE_SYSTEM_PROMPT
    assert llm.calls[0]["options"] == {"temperature": 0.3, "max_tokens": 64}
    assert vector_store.searches == []


def test_missing_model_defaults_to_chat_model(client):
    body = client.post("/v1/chat/completions", json={"messages": [QUESTION]}).json()

    assert body["model"] == "spring-ai-chat"


def test_stream_matches_non_streaming_content(client, llm, vector_store):
    _seed(vector_store)
    llm.default = 'Refunds: "30 days".\nThanks!'
    request = {"model": "spring-ai-rag", "messages": [QUESTION], "stream": True}

    response = client.post("/v1/chat/completions", json=request)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    chunks = _chunks(response.text)
    assert len({c["id"] for c in chunks}) == 1
    assert all(c["object"] == "chat.completion.chunk" for c in chunks)
    streamed = "".join(c["choices"][0]["delta"].get("content", "") for c in chunks)
    assert streamed == 'Refunds: "30 days".\nThanks!' + SOURCES_SEPARATOR + "faq.txt"
    assert chunks[-1]["choices"][0]["finish_reason"] == "stop"


def test_stream_flag_in_query_string(client, llm):
    llm.default = "streamed reply"

    response = client.post(
        "/v1/chat/completions?stream=true",
        json={"model": "spring-ai-chat", "messages": [{"role": "user", "content": "hi"}]},
    )

    chunks = _chunks(response.text)
    assert "".join(c["choices"][0]["delta"].get("content", "") for c in chunks) == "streamed reply"


def test_faq_scenario_end_to_end(client, llm):
    upload = client.post(
        "/documents",
        files={"file": ("faq.txt", POLICY.encode("utf-8"), "text/plain")},
    ).json()
    assert upload["status"] == "SUCCESS"
    llm.default = "Within 30 days."

    body = client.post(
        "/v1/chat/completions",
        json={"model": "spring-ai-rag", "messages": [QUESTION]},
        headers={"Authorization": "Bearer sk-faq"},
    ).json()

    assert body["choices"][0]["message"]["content"].endswith("**Sources:** faq.txt")
    assert POLICY in llm.calls[0]["messages"][-1]["content"]
