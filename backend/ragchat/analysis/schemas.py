from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ragchat.analysis.prompts import QueryType


class AnalysisResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    query: str
    query_type: QueryType
    content: str
    sources: list[str] = []
