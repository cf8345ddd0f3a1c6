from pydantic import BaseModel, Field
from typing import Dict, List
from datetime import date
from enum import Enum

from fainatic.schemas.transaction import Category, Money, Transaction
from fainatic.schemas.recommendation import Recommendation


class Trend(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class CounterpartyTotal(BaseModel):
    name: str
    total: Money


class CategoryGroup(BaseModel):
    name: Category
    total: Money
    percentage: float
    trend: Trend
    counterparties: List[CounterpartyTotal]


class MonthlyAmount(BaseModel):
    month: str  # YYYY-MM
    label: str  # "Jan 2024"
    amount: Money


class WeeklyAmount(BaseModel):
    week: str  # ISO week, YYYY-Www
    start_date: date
    amount: Money


class PartitionTrends(BaseModel):
    monthly: List[MonthlyAmount]
    weekly: List[WeeklyAmount]


class PartitionSummary(BaseModel):
    total: Money
    monthly_average: Money
    categories: List[CategoryGroup]
    trends: PartitionTrends


class CashFlow(BaseModel):
    daily: Money
    monthly: Money
    annual: Money


class ReportInfo(BaseModel):
    generated_at: date
    first_transaction_date: date
    last_transaction_date: date
    period_in_days: int
    period_in_months: int


class AnalysisSummary(BaseModel):
    total_transactions: int
    income: PartitionSummary
    expenses: PartitionSummary
    cash_flow: CashFlow


class WealthForecast(BaseModel):
    years: int
    amount: Money
    monthly_contribution: Money


class WealthForecasts(BaseModel):
    baseline: List[WealthForecast]
    with_recommendations: Dict[str, List[WealthForecast]] = Field(default_factory=dict)


class AnalysisResult(BaseModel):
    transactions: List[Transaction]
    report_info: ReportInfo
    summary: AnalysisSummary
    wealth_forecasts: WealthForecasts
    recommendations: Dict[str, List[Recommendation]] = Field(default_factory=dict)
