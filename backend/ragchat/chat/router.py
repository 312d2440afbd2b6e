from typing import Generator, Iterator

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from ragchat.chat.schemas import ChatRequest, ChatResponse
from ragchat.chat.service import DEFAULT_CONVERSATION_ID, ChatService
from ragchat.core.deps import get_chat_service

router = APIRouter()

SSE_HEADERS = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}


def _build_request(message: str, conversation_id: str, use_rag: bool) -> ChatRequest:
    try:
        return ChatRequest(message=message, conversation_id=conversation_id, use_rag=use_rag)
    except ValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail=exc.errors(include_url=False, include_context=False),
        )


def sse_event(data: str) -> str:
    """Frames one text increment as an SSE event; embedded newlines become extra data lines."""
    return "".join(f"data: {line}\n" for line in data.split("\n")) + "\n"


def _event_stream(chunks: Generator[str, None, None]) -> Iterator[str]:
    try:
        for chunk in chunks:
            yield sse_event(chunk)
    finally:
        # A client disconnect closes us early; close the provider stream with us.
        chunks.close()


def _respond(payload: ChatRequest, chat_service: ChatService) -> ChatResponse:
    result = chat_service.answer(
        payload.message,
        payload.conversation_id,
        use_rag=payload.use_rag,
    )
    return ChatResponse(
        content=result.content,
        conversation_id=result.conversation_id,
        sources=result.sources,
    )


@router.post("", response_model=ChatResponse)
def chat(
    payload: ChatRequest,
    chat_service: ChatService = Depends(get_chat_service),
):
    return _respond(payload, chat_service)


@router.get("", response_model=ChatResponse)
def chat_get(
    message: str = Query(...),
    conversation_id: str = Query(DEFAULT_CONVERSATION_ID, alias="conversationId"),
    chat_service: ChatService = Depends(get_chat_service),
):
    return _respond(_build_request(message, conversation_id, use_rag=True), chat_service)


@router.get("/stream")
def chat_stream(
    message: str = Query(...),
    conversation_id: str = Query(DEFAULT_CONVERSATION_ID, alias="conversationId"),
    chat_service: ChatService = Depends(get_chat_service),
):
    payload = _build_request(message, conversation_id, use_rag=True)
    turn = chat_service.stream(payload.message, payload.conversation_id, use_rag=True)
    return StreamingResponse(
        _event_stream(turn.chunks),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/simple", response_model=ChatResponse)
def chat_simple(
    message: str = Query(...),
    conversation_id: str = Query(DEFAULT_CONVERSATION_ID, alias="conversationId"),
    chat_service: ChatService = Depends(get_chat_service),
):
    return _respond(_build_request(message, conversation_id, use_rag=False), chat_service)
