from fastapi import APIRouter, Depends, Query

from ragchat.analysis.prompts import QueryType
from ragchat.analysis.schemas import AnalysisResponse
from ragchat.analysis.service import AnalysisService
from ragchat.core.deps import get_analysis_service

router = APIRouter()


@router.get("/{query_type}", response_model=AnalysisResponse)
def analyze(
    query_type: QueryType,
    query: str = Query(..., min_length=1, max_length=20000),
    analysis_service: AnalysisService = Depends(get_analysis_service),
):
    result = analysis_service.analyze(query, query_type)
    return AnalysisResponse(
        query=query,
        query_type=result.query_type,
        content=result.content,
        sources=result.sources,
    )
