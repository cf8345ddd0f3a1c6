from fastapi import APIRouter, Depends
import logging

from fainatic.core.deps import get_analytics_service, get_recommendation_service
from fainatic.schemas.analytics import AnalysisResult
from fainatic.schemas.transaction import TransactionList
from fainatic.services.ai_service import RecommendationService
from fainatic.services.analytics_service import AnalyticsService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/base", response_model=AnalysisResult)
async def base_analysis(
    request: TransactionList,
    analytics: AnalyticsService = Depends(get_analytics_service),
):
    """Totals, category breakdowns, time series, cash flow and baseline forecasts"""
    return analytics.analyze(request.transactions)


@router.post("/recommendations", response_model=AnalysisResult)
async def recommendations_analysis(
    request: TransactionList,
    analytics: AnalyticsService = Depends(get_analytics_service),
    recommender: RecommendationService = Depends(get_recommendation_service),
):
    """Base analysis plus AI recommendations and their wealth forecasts"""
    analysis = analytics.analyze(request.transactions)
    logger.info(f"🤖 Requesting recommendations for {len(request.transactions)} transactions")
    return await recommender.enrich(analysis)
