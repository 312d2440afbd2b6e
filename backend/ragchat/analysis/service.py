from dataclasses import dataclass

from ragchat.analysis.prompts import USER_PREFIX, QueryType, prompt_for
from ragchat.chat.advisors import ChatPipeline, LoggingAdvisor, RetrievalAugmentationAdvisor
from ragchat.chat.citations import extract_sources
from ragchat.llm.client import LLMClient
from ragchat.rag.vector_store import VectorStore

ANALYSIS_TOP_K = 4


@dataclass
class AnalysisResult:
    content: str
    query_type: QueryType
    sources: list[str]


class AnalysisService:
    """Single-shot, memory-less document Q&A with a per-query-type system prompt."""

    def __init__(self, llm: LLMClient, vector_store: VectorStore) -> None:
        self.pipeline = ChatPipeline(
            llm,
            system_prompt="",
            advisors=[
                RetrievalAugmentationAdvisor(
                    vector_store,
                    top_k=ANALYSIS_TOP_K,
                    similarity_threshold=0.0,
                    allow_empty_context=True,
                ),
                LoggingAdvisor(),
            ],
        )

    def analyze(self, query: str, query_type: QueryType) -> AnalysisResult:
        ctx = self.pipeline.new_context(
            USER_PREFIX + query,
            f"analysis-{query_type.value}",
            system_prompt=prompt_for(query_type),
        )
        ctx = self.pipeline.call(ctx)
        return AnalysisResult(
            content=ctx.reply,
            query_type=query_type,
            sources=extract_sources(ctx.documents),
        )
