"""
Statement analytics: income / expense partitions, category breakdowns,
time series, cash flow and linear wealth forecasts.
"""

import logging
from collections import defaultdict
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Dict, List, Optional, Sequence

from dateutil.relativedelta import relativedelta

from fainatic.core.config import Settings
from fainatic.core.exceptions import AnalysisPreconditionError
from fainatic.schemas.analytics import (
    AnalysisResult,
    AnalysisSummary,
    CashFlow,
    CategoryGroup,
    CounterpartyTotal,
    MonthlyAmount,
    PartitionSummary,
    PartitionTrends,
    ReportInfo,
    Trend,
    WealthForecast,
    WealthForecasts,
    WeeklyAmount,
)
from fainatic.schemas.transaction import Transaction
from fainatic.services.categorization_service import reconcile_category

logger = logging.getLogger(__name__)

AVERAGE_DAYS_PER_MONTH = Decimal("30.44")
TREND_THRESHOLD = Decimal("0.1")
CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_cents(value: Decimal) -> Decimal:
    try:
        return value.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise AnalysisPreconditionError("Amounts are too large to analyze", details=f"{value:.6E}")


def calculate_trend(transactions: Sequence[Transaction]) -> Trend:
    """
    Compare the signed average of the chronologically first and second halves.
    A change within 10% of the first-half average magnitude is stable, so
    growing expenses (more negative) read as "down".
    """
    if len(transactions) < 2:
        return Trend.STABLE

    ordered = sorted(transactions, key=lambda t: t.date)
    middle = len(ordered) // 2
    first_half, second_half = ordered[:middle], ordered[middle:]

    first_avg = sum((t.amount for t in first_half), ZERO) / len(first_half)
    second_avg = sum((t.amount for t in second_half), ZERO) / len(second_half)
    difference = second_avg - first_avg

    if abs(difference) <= abs(first_avg) * TREND_THRESHOLD:
        return Trend.STABLE
    return Trend.UP if difference > 0 else Trend.DOWN


def group_by_category(transactions: Sequence[Transaction]) -> List[CategoryGroup]:
    partition_total = sum((abs(t.amount) for t in transactions), ZERO)

    by_category: Dict[str, List[Transaction]] = defaultdict(list)
    for transaction in transactions:
        by_category[transaction.category].append(transaction)

    groups = []
    for category, members in by_category.items():
        total = sum((abs(t.amount) for t in members), ZERO)

        by_counterparty: Dict[str, Decimal] = defaultdict(lambda: ZERO)
        for t in members:
            by_counterparty[t.counterparty] += abs(t.amount)
        counterparties = [
            CounterpartyTotal(name=name, total=amount)
            for name, amount in sorted(by_counterparty.items(), key=lambda item: (-item[1], item[0]))
        ]

        percentage = float(total / partition_total * 100) if partition_total else 0.0
        groups.append(CategoryGroup(
            name=category,
            total=total,
            percentage=round(percentage, 2),
            trend=calculate_trend(members),
            counterparties=counterparties,
        ))

    groups.sort(key=lambda group: (-group.total, group.name.value))
    return groups


def monthly_series(transactions: Sequence[Transaction]) -> List[MonthlyAmount]:
    """Signed amounts summed per calendar month, oldest first"""
    buckets: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    for t in transactions:
        buckets[t.date.strftime("%Y-%m")] += t.amount

    series = []
    for month in sorted(buckets):
        first_day = date(int(month[:4]), int(month[5:]), 1)
        series.append(MonthlyAmount(month=month, label=first_day.strftime("%b %Y"), amount=buckets[month]))
    return series


def weekly_series(transactions: Sequence[Transaction]) -> List[WeeklyAmount]:
    """Signed amounts summed per ISO week, oldest first"""
    buckets: Dict[tuple, Decimal] = defaultdict(lambda: ZERO)
    for t in transactions:
        iso_year, iso_week, _ = t.date.isocalendar()
        buckets[(iso_year, iso_week)] += t.amount

    return [
        WeeklyAmount(
            week=f"{iso_year}-W{iso_week:02d}",
            start_date=date.fromisocalendar(iso_year, iso_week, 1),
            amount=buckets[(iso_year, iso_week)],
        )
        for iso_year, iso_week in sorted(buckets)
    ]


class AnalyticsService:
    def __init__(self, settings: Settings):
        self.settings = settings

    def analyze(self, transactions: Sequence[Transaction], generated_at: Optional[date] = None) -> AnalysisResult:
        """
        Build the full analysis for one statement. A positive amount filed under
        any other category is counted as Income.

        Raises:
            AnalysisPreconditionError: no transactions were given
        """
        if not transactions:
            raise AnalysisPreconditionError(
                "No transactions to analyze",
                details="At least one transaction is required",
            )

        transactions = [reconcile_category(t) for t in transactions]
        ordered = sorted(transactions, key=lambda t: t.date)
        first_date, last_date = ordered[0].date, ordered[-1].date
        span = relativedelta(last_date, first_date)
        report_info = ReportInfo(
            generated_at=generated_at or date.today(),
            first_transaction_date=first_date,
            last_transaction_date=last_date,
            period_in_days=(last_date - first_date).days + 1,
            period_in_months=span.years * 12 + span.months + 1,
        )

        income = [t for t in ordered if t.amount > 0]
        expenses = [t for t in ordered if t.amount < 0]
        income_summary = self._partition(income, report_info.period_in_days)
        expense_summary = self._partition(expenses, report_info.period_in_days)

        days = Decimal(report_info.period_in_days)
        daily = (income_summary.total - expense_summary.total) / days
        monthly = daily * AVERAGE_DAYS_PER_MONTH
        cash_flow = CashFlow(
            daily=to_cents(daily),
            monthly=to_cents(monthly),
            annual=to_cents(monthly * 12),
        )

        logger.info(
            f"Analyzed {len(ordered)} transactions over {report_info.period_in_days} days: "
            f"income {income_summary.total}, expenses {expense_summary.total}"
        )

        return AnalysisResult(
            transactions=list(transactions),
            report_info=report_info,
            summary=AnalysisSummary(
                total_transactions=len(ordered),
                income=income_summary,
                expenses=expense_summary,
                cash_flow=cash_flow,
            ),
            wealth_forecasts=WealthForecasts(baseline=self.forecast(monthly)),
        )

    def forecast(self, monthly_contribution: Decimal) -> List[WealthForecast]:
        """Undiscounted linear projection at each configured horizon"""
        return [
            WealthForecast(
                years=years,
                amount=to_cents(monthly_contribution * 12 * years),
                monthly_contribution=to_cents(monthly_contribution),
            )
            for years in self.settings.FORECAST_HORIZONS_YEARS
        ]

    @staticmethod
    def _partition(transactions: List[Transaction], period_in_days: int) -> PartitionSummary:
        total = sum((abs(t.amount) for t in transactions), ZERO)
        monthly_average = total / Decimal(period_in_days) * AVERAGE_DAYS_PER_MONTH
        return PartitionSummary(
            total=total,
            monthly_average=to_cents(monthly_average),
            categories=group_by_category(transactions),
            trends=PartitionTrends(
                monthly=monthly_series(transactions),
                weekly=weekly_series(transactions),
            ),
        )
