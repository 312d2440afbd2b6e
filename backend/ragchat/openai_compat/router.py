import logging
from typing import Generator, Iterator

from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import StreamingResponse

from ragchat.chat.citations import sources_footer
from ragchat.chat.router import SSE_HEADERS
from ragchat.chat.service import ChatService
from ragchat.core.deps import get_chat_service
from ragchat.openai_compat.schemas import (
    AssistantMessage,
    ChatCompletionRequest,
    ChatCompletionResponse,
    Choice,
    ModelList,
)
from ragchat.openai_compat.service import (
    MODEL_CHAT,
    STREAM_DONE,
    derive_conversation_id,
    extract_last_user_message,
    format_stream_chunk,
    format_stream_end,
    list_models,
    new_completion_id,
    now_epoch,
    select_rag,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _completion_stream(
    chunks: Generator[str, None, None],
    *,
    completion_id: str,
    model: str,
    footer: str,
) -> Iterator[str]:
    created = now_epoch()
    try:
        for chunk in chunks:
            yield format_stream_chunk(completion_id, model, created, chunk)
    finally:
        chunks.close()
    if footer:
        yield format_stream_chunk(completion_id, model, created, footer)
    yield format_stream_end(completion_id, model, created)
    yield STREAM_DONE


@router.get("/models", response_model=ModelList)
def models():
    return list_models()


@router.post("/chat/completions")
def chat_completions(
    payload: ChatCompletionRequest,
    stream: bool = Query(False),
    authorization: str | None = Header(None),
    chat_service: ChatService = Depends(get_chat_service),
):
    model = payload.model or MODEL_CHAT
    use_rag = select_rag(payload.model)
    conversation_id = derive_conversation_id(authorization)
    message = extract_last_user_message(payload.messages)
    options = {"temperature": payload.temperature, "max_tokens": payload.max_tokens}

    logger.info(
        "OpenAI-compatible request model=%s rag=%s stream=%s conversation=%s",
        model,
        use_rag,
        payload.stream or stream,
        conversation_id,
    )

    if payload.stream or stream:
        turn = chat_service.stream(message, conversation_id, use_rag=use_rag, options=options)
        return StreamingResponse(
            _completion_stream(
                turn.chunks,
                completion_id=new_completion_id(),
                model=model,
                footer=sources_footer(turn.sources) if use_rag else "",
            ),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    result = chat_service.answer(message, conversation_id, use_rag=use_rag, options=options)
    content = result.content
    if use_rag:
        content += sources_footer(result.sources)
    return ChatCompletionResponse(
        id=new_completion_id(),
        created=now_epoch(),
        model=model,
        choices=[Choice(message=AssistantMessage(content=content))],
    )
