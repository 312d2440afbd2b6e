"""
Request/response pipeline for a chat turn.

A ChatPipeline holds an ordered list of advisors around one model call:

    before: advisors[0] -> advisors[1] -> ... -> model call
    after:  ... -> advisors[1] -> advisors[0]

Each hook receives the shared ChatContext, may read or rewrite it, and returns
it for the next stage. For streamed replies the `after` hooks run only once the
provider stream has ended normally.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Generator, Sequence

from ragchat.chat.memory_service import ChatMemory, Turn
from ragchat.chat.prompting import build_augmented_query, build_rewrite_prompt
from ragchat.llm.client import Completion, LLMClient
from ragchat.rag.vector_store import Document, VectorStore
from ragchat.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


@dataclass
class ChatContext:
    conversation_id: str
    user_message: str  # as the caller sent it; this is what memory stores
    system_prompt: str = ""
    prompt_message: str = ""  # user turn actually sent to the model
    history: list[Turn] = field(default_factory=list)
    query: str = ""  # retrieval query, possibly rewritten
    documents: list[Document] = field(default_factory=list)
    options: dict[str, Any] = field(default_factory=dict)
    reply: str = ""

    def __post_init__(self) -> None:
        if not self.prompt_message:
            self.prompt_message = self.user_message
        if not self.query:
            self.query = self.user_message

    def to_messages(self) -> list[dict[str, Any]]:
        messages: list[dict[str, Any]] = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.extend({"role": t.role, "content": t.content} for t in self.history)
        messages.append({"role": "user", "content": self.prompt_message})
        return messages


class Advisor:
    name = "advisor"

    def before(self, ctx: ChatContext) -> ChatContext:
        return ctx

    def after(self, ctx: ChatContext) -> ChatContext:
        return ctx


class MemoryAdvisor(Advisor):
    """Loads the conversation window before the call, appends the new pair after."""

    name = "memory"

    def __init__(self, memory: ChatMemory) -> None:
        self.memory = memory

    def before(self, ctx: ChatContext) -> ChatContext:
        self.memory.get_or_create(ctx.conversation_id)
        ctx.history = self.memory.get(ctx.conversation_id)
        return ctx

    def after(self, ctx: ChatContext) -> ChatContext:
        self.memory.add(
            ctx.conversation_id,
            [
                Turn(role="user", content=ctx.user_message),
                Turn(role="assistant", content=ctx.reply),
            ],
        )
        return ctx


class QueryRewriter:
    """Asks the model for a retrieval-friendly version of the user query."""

    def __init__(
        self,
        llm: LLMClient,
        temperature: float | None = 0.0,
        target: str = "vector store",
    ) -> None:
        self.llm = llm
        self.temperature = temperature
        self.target = target

    def rewrite(self, query: str) -> str:
        completion = self.llm.complete(
            [{"role": "user", "content": build_rewrite_prompt(query, self.target)}],
            options={"temperature": self.temperature},
        )
        rewritten = completion.content.strip()
        if not rewritten:
            return query
        logger.info("Rewrote query %r -> %r", query, rewritten)
        return rewritten


class RetrievalAugmentationAdvisor(Advisor):
    """Retrieves similar chunks and folds them into the user turn."""

    name = "retrieval"

    def __init__(
        self,
        vector_store: VectorStore,
        *,
        top_k: int = 5,
        similarity_threshold: float = 0.5,
        query_rewriter: QueryRewriter | None = None,
        allow_empty_context: bool = False,
    ) -> None:
        self.vector_store = vector_store
        self.top_k = top_k
        self.similarity_threshold = similarity_threshold
        self.query_rewriter = query_rewriter
        self.allow_empty_context = allow_empty_context

    def before(self, ctx: ChatContext) -> ChatContext:
        if self.query_rewriter is not None:
            ctx.query = self.query_rewriter.rewrite(ctx.query)

        ctx.documents = self.vector_store.similarity_search(
            ctx.query,
            top_k=self.top_k,
            similarity_threshold=self.similarity_threshold,
        )
        ctx.prompt_message = build_augmented_query(
            ctx.prompt_message,
            ctx.documents,
            allow_empty_context=self.allow_empty_context,
        )
        return ctx


class LoggingAdvisor(Advisor):
    name = "logging"

    def before(self, ctx: ChatContext) -> ChatContext:
        logger.debug(
            "Chat request conversation=%s history=%d documents=%d message=%r",
            ctx.conversation_id,
            len(ctx.history),
            len(ctx.documents),
            ctx.user_message[:200],
        )
        return ctx

    def after(self, ctx: ChatContext) -> ChatContext:
        logger.info(
            "Chat reply conversation=%s chars=%d documents=%d",
            ctx.conversation_id,
            len(ctx.reply),
            len(ctx.documents),
        )
        return ctx


class ChatPipeline:
    def __init__(
        self,
        llm: LLMClient,
        *,
        system_prompt: str,
        advisors: Sequence[Advisor] = (),
        tools: ToolRegistry | None = None,
        max_tool_rounds: int = 3,
    ) -> None:
        self.llm = llm
        self.system_prompt = system_prompt
        self.advisors = list(advisors)
        self.tools = tools
        self.max_tool_rounds = max_tool_rounds

    def new_context(
        self,
        user_message: str,
        conversation_id: str,
        *,
        system_prompt: str | None = None,
        options: dict[str, Any] | None = None,
    ) -> ChatContext:
        return ChatContext(
            conversation_id=conversation_id,
            user_message=user_message,
            system_prompt=system_prompt if system_prompt is not None else self.system_prompt,
            options=dict(options or {}),
        )

    def before(self, ctx: ChatContext) -> ChatContext:
        for advisor in self.advisors:
            ctx = advisor.before(ctx)
        return ctx

    def after(self, ctx: ChatContext) -> ChatContext:
        for advisor in reversed(self.advisors):
            ctx = advisor.after(ctx)
        return ctx

    def _complete(self, ctx: ChatContext) -> Completion:
        messages = ctx.to_messages()
        schemas = self.tools.schemas() if self.tools else None

        completion = self.llm.complete(messages, tools=schemas, options=ctx.options)
        rounds = 0
        while completion.tool_calls and self.tools and rounds < self.max_tool_rounds:
            rounds += 1
            messages.append(completion.assistant_message())
            for call in completion.tool_calls:
                messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": call.id,
                        "content": self.tools.dispatch(call.name, call.arguments),
                    }
                )
            # Last round withholds tools so the model has to answer in text.
            last_round = rounds >= self.max_tool_rounds
            completion = self.llm.complete(
                messages,
                tools=None if last_round else schemas,
                options=ctx.options,
            )
        return completion

    def call(self, ctx: ChatContext) -> ChatContext:
        ctx = self.before(ctx)
        ctx.reply = self._complete(ctx).content
        return self.after(ctx)

    def stream(self, ctx: ChatContext) -> Generator[str, None, None]:
        """
        Yields reply increments for a context that has already been through
        `before`. The full reply is recorded (and `after` run) only when the
        provider stream completes; closing the generator early records nothing.
        """
        parts: list[str] = []
        for delta in self.llm.stream(ctx.to_messages(), options=ctx.options):
            parts.append(delta)
            yield delta
        ctx.reply = "".join(parts)
        self.after(ctx)
