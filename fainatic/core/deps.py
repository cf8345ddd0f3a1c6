from fastapi import Depends

from fainatic.core.config import Settings, get_settings
from fainatic.services.ai_service import RecommendationService
from fainatic.services.analytics_service import AnalyticsService
from fainatic.services.statement_parser import StatementParser
from fainatic.services.upload_store import UploadStore


def get_statement_parser(settings: Settings = Depends(get_settings)) -> StatementParser:
    return StatementParser(settings)


def get_analytics_service(settings: Settings = Depends(get_settings)) -> AnalyticsService:
    return AnalyticsService(settings)


def get_recommendation_service(settings: Settings = Depends(get_settings)) -> RecommendationService:
    """Raises ConfigurationError when no OpenAI key is configured"""
    return RecommendationService(settings)


def get_upload_store(settings: Settings = Depends(get_settings)) -> UploadStore:
    return UploadStore(settings.UPLOAD_DIR)
