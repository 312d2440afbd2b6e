import logging
from dataclasses import dataclass, field
from typing import Any, Generator

from ragchat.chat.advisors import (
    ChatContext,
    ChatPipeline,
    LoggingAdvisor,
    MemoryAdvisor,
    QueryRewriter,
    RetrievalAugmentationAdvisor,
)
from ragchat.chat.citations import extract_sources
from ragchat.chat.memory_service import ChatMemory
from ragchat.chat.prompting import RAG_SYSTEM_PROMPT, SIMPLE_SYSTEM_PROMPT
from ragchat.core.config import Settings
from ragchat.llm.client import LLMClient
from ragchat.rag.vector_store import VectorStore
from ragchat.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

DEFAULT_CONVERSATION_ID = "default"


@dataclass
class ChatResult:
    content: str
    conversation_id: str
    sources: list[str] = field(default_factory=list)


@dataclass
class StreamingTurn:
    """A turn whose retrieval is done and whose reply is still to be streamed."""

    conversation_id: str
    sources: list[str]
    chunks: Generator[str, None, None]


def normalize_conversation_id(conversation_id: str | None) -> str:
    if conversation_id is None or not conversation_id.strip():
        return DEFAULT_CONVERSATION_ID
    return conversation_id


def build_rag_pipeline(
    llm: LLMClient,
    memory: ChatMemory,
    vector_store: VectorStore,
    settings: Settings,
    tools: ToolRegistry | None = None,
) -> ChatPipeline:
    rewriter = (
        QueryRewriter(llm, temperature=settings.QUERY_REWRITE_TEMPERATURE)
        if settings.QUERY_REWRITE_ENABLED
        else None
    )
    return ChatPipeline(
        llm,
        system_prompt=RAG_SYSTEM_PROMPT,
        advisors=[
            MemoryAdvisor(memory),
            RetrievalAugmentationAdvisor(
                vector_store,
                top_k=settings.RAG_TOP_K,
                similarity_threshold=settings.RAG_SIMILARITY_THRESHOLD,
                query_rewriter=rewriter,
                allow_empty_context=settings.RAG_ALLOW_EMPTY_CONTEXT,
            ),
            LoggingAdvisor(),
        ],
        tools=tools if settings.TOOLS_ENABLED else None,
        max_tool_rounds=settings.TOOLS_MAX_ROUNDS,
    )


def build_simple_pipeline(llm: LLMClient, memory: ChatMemory) -> ChatPipeline:
    return ChatPipeline(
        llm,
        system_prompt=SIMPLE_SYSTEM_PROMPT,
        advisors=[MemoryAdvisor(memory), LoggingAdvisor()],
    )


class ChatService:
    def __init__(self, rag_pipeline: ChatPipeline, simple_pipeline: ChatPipeline) -> None:
        self.rag_pipeline = rag_pipeline
        self.simple_pipeline = simple_pipeline

    def _pipeline(self, use_rag: bool) -> ChatPipeline:
        return self.rag_pipeline if use_rag else self.simple_pipeline

    def _context(
        self,
        message: str,
        conversation_id: str | None,
        use_rag: bool,
        options: dict[str, Any] | None,
    ) -> tuple[ChatPipeline, ChatContext]:
        pipeline = self._pipeline(use_rag)
        ctx = pipeline.new_context(
            message,
            normalize_conversation_id(conversation_id),
            options=options,
        )
        return pipeline, ctx

    def answer(
        self,
        message: str,
        conversation_id: str | None = None,
        *,
        use_rag: bool = True,
        options: dict[str, Any] | None = None,
    ) -> ChatResult:
        pipeline, ctx = self._context(message, conversation_id, use_rag, options)
        ctx = pipeline.call(ctx)
        return ChatResult(
            content=ctx.reply,
            conversation_id=ctx.conversation_id,
            sources=extract_sources(ctx.documents) if use_rag else [],
        )

    def stream(
        self,
        message: str,
        conversation_id: str | None = None,
        *,
        use_rag: bool = True,
        options: dict[str, Any] | None = None,
    ) -> StreamingTurn:
        """Runs history loading and retrieval now; the reply is produced lazily."""
        pipeline, ctx = self._context(message, conversation_id, use_rag, options)
        ctx = pipeline.before(ctx)
        return StreamingTurn(
            conversation_id=ctx.conversation_id,
            sources=extract_sources(ctx.documents) if use_rag else [],
            chunks=pipeline.stream(ctx),
        )
