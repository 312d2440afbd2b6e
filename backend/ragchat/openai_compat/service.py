"""
Helpers for the OpenAI-compatible facade.

The facade maps its two model names onto the chat service: MODEL_RAG runs the
retrieval pipeline, anything else (unknown or missing names included) runs the
plain chat pipeline. Conversations are keyed by a digest of the Authorization
header, so one API key keeps one history.
"""
import hashlib
import json
import time
import uuid
from typing import Any, Protocol, Sequence

MODEL_RAG = "spring-ai-rag"
MODEL_CHAT = "spring-ai-chat"
OWNED_BY = "spring-ai"
DEFAULT_SESSION_ID = "default-session"


class _HasRoleAndText(Protocol):
    role: str

    def text(self) -> str: ...


def select_rag(model: str | None) -> bool:
    return model is not None and model.lower() == MODEL_RAG


def derive_conversation_id(authorization: str | None) -> str:
    if authorization is None or not authorization.strip():
        return DEFAULT_SESSION_ID
    digest = hashlib.sha256(authorization.encode("utf-8")).hexdigest()
    return "session-" + digest[:16]


def extract_last_user_message(messages: Sequence[_HasRoleAndText]) -> str:
    """Last `user` message, else the last message of any role, else ''."""
    for message in reversed(messages):
        if message.role == "user":
            return message.text()
    if messages:
        return messages[-1].text()
    return ""


def new_completion_id() -> str:
    return "chatcmpl-" + uuid.uuid4().hex[:8]


def now_epoch() -> int:
    return int(time.time())


def list_models() -> dict[str, Any]:
    created = now_epoch()
    return {
        "object": "list",
        "data": [
            {"id": MODEL_CHAT, "object": "model", "created": created, "owned_by": OWNED_BY},
            {"id": MODEL_RAG, "object": "model", "created": created, "owned_by": OWNED_BY},
        ],
    }


def _chunk_line(completion_id: str, model: str, created: int, choice: dict[str, Any]) -> str:
    chunk = {
        "id": completion_id,
        "object": "chat.completion.chunk",
        "created": created,
        "model": model,
        "choices": [choice],
    }
    return "data: " + json.dumps(chunk, ensure_ascii=False) + "\n\n"


def format_stream_chunk(completion_id: str, model: str, created: int, content: str) -> str:
    choice = {"index": 0, "delta": {"content": content}, "finish_reason": None}
    return _chunk_line(completion_id, model, created, choice)


def format_stream_end(completion_id: str, model: str, created: int) -> str:
    return _chunk_line(completion_id, model, created, {"index": 0, "delta": {}, "finish_reason": "stop"})


STREAM_DONE = "data: [DONE]\n\n"
