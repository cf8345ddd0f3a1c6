import csv
import io
import json
import logging
from decimal import Decimal
from typing import Dict, List, Sequence

import openai
from pydantic import ValidationError as PydanticValidationError

from fainatic.core.config import Settings
from fainatic.core.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    RecommendationTimeoutError,
)
from fainatic.schemas.analytics import AnalysisResult
from fainatic.schemas.recommendation import DIFFICULTY_LEVELS, Recommendation, RecommendationSet
from fainatic.schemas.transaction import Transaction
from fainatic.services.analytics_service import AnalyticsService

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a financial advisor analyzing transaction data to provide personalized recommendations.
Focus on:
1. Identifying spending patterns and potential areas for optimization
2. Suggesting specific, actionable steps to improve financial health
3. Providing realistic estimates of potential savings

For each difficulty level (easy, moderate, significant):
- Provide exactly 3 recommendations
- Each recommendation should include a clear title, a detailed description,
  the estimated monthly and yearly impact, specific implementation steps and
  relevant resources or links

Return the analysis in this JSON format:
{
  "recommendations": {
    "easy": [{
      "id": string,
      "title": string,
      "description": string,
      "impact": {"monthly": number, "yearly": number},
      "steps": [string],
      "links": [{"title": string, "url": string}]
    }],
    "moderate": [...],
    "significant": [...]
  }
}"""


def transactions_to_csv(transactions: Sequence[Transaction]) -> str:
    """date,amount,currency,counterparty,category rows for the prompt"""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["date", "amount", "currency", "counterparty", "category"])
    for t in transactions:
        writer.writerow([t.date.isoformat(), t.amount, t.currency or "", t.counterparty, t.category.value])
    return buffer.getvalue()


class RecommendationService:
    """Asks the language model for savings recommendations on top of a base analysis"""

    def __init__(self, settings: Settings):
        if not settings.OPENAI_API_KEY:
            raise ConfigurationError(
                "Recommendations are not configured",
                details="OPENAI_API_KEY is not set",
            )
        self.settings = settings
        self.client = openai.AsyncOpenAI(
            api_key=settings.OPENAI_API_KEY,
            timeout=settings.OPENAI_TIMEOUT_SECONDS,
            max_retries=settings.OPENAI_MAX_RETRIES,
        )
        self.analytics = AnalyticsService(settings)

    def _build_prompt(self, analysis: AnalysisResult) -> str:
        summary = analysis.summary
        return (
            "Analyze these transactions and provide personalized recommendations.\n\n"
            f"Period: {analysis.report_info.first_transaction_date} to "
            f"{analysis.report_info.last_transaction_date} ({analysis.report_info.period_in_days} days)\n"
            f"Total income: {summary.income.total}\n"
            f"Total expenses: {summary.expenses.total}\n"
            f"Monthly cash flow: {summary.cash_flow.monthly}\n\n"
            f"{transactions_to_csv(analysis.transactions)}"
        )

    async def generate(self, analysis: AnalysisResult) -> Dict[str, List[Recommendation]]:
        """
        Recommendations grouped by difficulty.

        Raises:
            RecommendationTimeoutError: the model did not answer in time
            ExternalServiceError: API failure or a reply that is not the expected JSON
        """
        try:
            response = await self.client.chat.completions.create(
                model=self.settings.OPENAI_MODEL,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": self._build_prompt(analysis)},
                ],
                response_format={"type": "json_object"},
                temperature=0.1,
            )
        except openai.APITimeoutError as e:
            logger.error(f"Recommendation request timed out: {e}")
            raise RecommendationTimeoutError("Recommendation service timed out", details=str(e))
        except openai.APIError as e:
            logger.error(f"Recommendation request failed: {e}")
            raise ExternalServiceError("Recommendation service failed", details=str(e))

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ExternalServiceError("Empty response from recommendation service")

        try:
            parsed = RecommendationSet.model_validate(json.loads(content))
        except (json.JSONDecodeError, PydanticValidationError) as e:
            logger.error(f"Unexpected recommendation payload: {e}")
            raise ExternalServiceError("Recommendation service returned an invalid response", details=str(e))

        recommendations = {
            level: parsed.recommendations.get(level, [])
            for level in DIFFICULTY_LEVELS
        }
        logger.info(
            "Received recommendations: "
            + ", ".join(f"{level}={len(items)}" for level, items in recommendations.items())
        )
        return recommendations

    async def enrich(self, analysis: AnalysisResult) -> AnalysisResult:
        """Copy of the analysis with recommendations and their wealth forecasts filled in"""
        recommendations = await self.generate(analysis)
        baseline_monthly = analysis.summary.cash_flow.monthly

        with_recommendations = {}
        for level, items in recommendations.items():
            extra = sum((item.impact.monthly for item in items), Decimal("0"))
            with_recommendations[level] = self.analytics.forecast(baseline_monthly + extra)

        forecasts = analysis.wealth_forecasts.model_copy(update={"with_recommendations": with_recommendations})
        return analysis.model_copy(update={
            "recommendations": recommendations,
            "wealth_forecasts": forecasts,
        })
