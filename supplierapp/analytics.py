"""
Derived metrics and rule-based insights for the analytics and dashboard pages.

Every function here is pure: rows in, display-ready values out, no AWS calls.
All ratios are guarded so an empty or zero denominator yields 0, never an
exception or NaN.
"""
import math
from collections import OrderedDict, defaultdict
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Iterable, List, Optional

from .models import ACTIVE_STATUSES, CONTRACT_STATUSES, AuditLog, Contract, ContractIssue, ContractStatus, Severity


def ratio(numerator, denominator) -> float:
    if not denominator:
        return 0.0
    return numerator / denominator


def percent(numerator, denominator) -> float:
    return ratio(numerator, denominator) * 100


def round_half_up(value) -> int:
    """Round .5 upwards, the way the dashboard always displayed percentages."""
    if value is None or math.isnan(value) or math.isinf(value):
        return 0
    return int(math.floor(value + 0.5))


@dataclass
class AnalyticsSummary:
    total_contracts: int = 0
    total_items_shipped: int = 0
    total_weight_shipped: float = 0.0
    avg_weight_per_contract: float = 0.0
    avg_items_per_box: float = 0.0
    delivered_contracts: int = 0
    active_contracts: int = 0
    cancelled_contracts: int = 0
    avg_progress_percentage: float = 0.0

    @property
    def completion_rate(self) -> float:
        return percent(self.delivered_contracts, self.total_contracts)

    @property
    def cancellation_rate(self) -> float:
        return percent(self.cancelled_contracts, self.total_contracts)

    @property
    def active_rate(self) -> float:
        return percent(self.active_contracts, self.total_contracts)


@dataclass
class StatusDistribution:
    status: str
    count: int
    percentage: int
    total_items: int
    avg_progress: float


@dataclass
class MonthlyTrend:
    month: str
    month_label: str
    contract_count: int
    total_items: int
    total_weight: float
    delivered_count: int


@dataclass
class IssueMetrics:
    total_issues: int = 0
    resolved_issues: int = 0
    open_issues: int = 0
    critical_issues: int = 0
    major_issues: int = 0
    minor_issues: int = 0
    resolution_rate: int = 0

    def share(self, count) -> float:
        return percent(count, self.total_issues)

    @property
    def resolution_status(self) -> str:
        if self.resolution_rate >= 80:
            return "Excellent"
        if self.resolution_rate >= 60:
            return "Good"
        if self.resolution_rate >= 40:
            return "Needs Improvement"
        return "Critical"

    @property
    def recommendation(self) -> str:
        if self.critical_issues > 0:
            return f"{self.critical_issues} critical issues require immediate attention"
        if self.open_issues > self.resolved_issues:
            return "Focus on resolving open issues to improve resolution rate"
        if self.resolution_rate >= 80:
            return "Excellent issue management - maintain current processes"
        return "Increase focus on issue resolution to improve quality metrics"


@dataclass
class WeeklyActivity:
    week_start: str
    week_label: str
    activity_count: int
    active_users: int
    affected_contracts: int


@dataclass
class Insight:
    type: str
    title: str
    description: str
    recommendation: str


# -------------------------------------------------------------------
# Aggregates
# -------------------------------------------------------------------

def summarize_contracts(contracts: Iterable[Contract]) -> AnalyticsSummary:
    contracts = list(contracts)
    total = len(contracts)
    total_items = sum(c.total_quantity for c in contracts)
    total_weight = float(sum(c.total_weight_kg for c in contracts))
    return AnalyticsSummary(
        total_contracts=total,
        total_items_shipped=total_items,
        total_weight_shipped=total_weight,
        avg_weight_per_contract=ratio(total_weight, total),
        avg_items_per_box=ratio(sum(c.items_per_box for c in contracts), total),
        delivered_contracts=sum(1 for c in contracts if c.status == ContractStatus.DELIVERED.value),
        active_contracts=sum(1 for c in contracts if c.status in ACTIVE_STATUSES),
        cancelled_contracts=sum(1 for c in contracts if c.status == ContractStatus.CANCELLED.value),
        avg_progress_percentage=ratio(sum(c.progress for c in contracts), total),
    )


def count_by_status(contracts: Iterable[Contract]) -> dict:
    counts = defaultdict(int)
    for contract in contracts:
        counts[contract.status] += 1
    return dict(counts)


def status_distribution(contracts: Iterable[Contract]) -> List[StatusDistribution]:
    """One bucket per status present, in lifecycle order.

    Percentages are rounded per bucket and are not forced to add up to 100.
    """
    contracts = list(contracts)
    total = len(contracts)
    buckets = defaultdict(list)
    for contract in contracts:
        buckets[contract.status].append(contract)

    order = CONTRACT_STATUSES + sorted(s for s in buckets if s not in CONTRACT_STATUSES)
    result = []
    for status in order:
        rows = buckets.get(status)
        if not rows:
            continue
        result.append(StatusDistribution(
            status=status,
            count=len(rows),
            percentage=round_half_up(percent(len(rows), total)),
            total_items=sum(c.total_quantity for c in rows),
            avg_progress=ratio(sum(c.progress for c in rows), len(rows)),
        ))
    return result


def monthly_trends(contracts: Iterable[Contract], limit: int = 12) -> List[MonthlyTrend]:
    """Contracts grouped by calendar month of creation, most recent month first."""
    months = defaultdict(list)
    for contract in contracts:
        created = contract.created
        if created is None:
            continue
        months[(created.year, created.month)].append(contract)

    trends = []
    for year, month in sorted(months, reverse=True)[:limit]:
        rows = months[(year, month)]
        first = rows[0].created
        trends.append(MonthlyTrend(
            month=f"{year:04d}-{month:02d}",
            month_label=first.strftime("%b %Y"),
            contract_count=len(rows),
            total_items=sum(c.total_quantity for c in rows),
            total_weight=float(sum(c.total_weight_kg for c in rows)),
            delivered_count=sum(1 for c in rows if c.status == ContractStatus.DELIVERED.value),
        ))
    return trends


def chronological(series: List) -> List:
    """Reversed copy of a most-recent-first series so charts read oldest to newest."""
    return list(reversed(series))


def issue_metrics(issues: Iterable[ContractIssue]) -> IssueMetrics:
    issues = list(issues)
    total = len(issues)
    resolved = sum(1 for i in issues if i.resolved)
    return IssueMetrics(
        total_issues=total,
        resolved_issues=resolved,
        open_issues=total - resolved,
        critical_issues=sum(1 for i in issues if i.severity == Severity.CRITICAL.value),
        major_issues=sum(1 for i in issues if i.severity == Severity.MAJOR.value),
        minor_issues=sum(1 for i in issues if i.severity == Severity.MINOR.value),
        resolution_rate=round_half_up(percent(resolved, total)),
    )


def weekly_activity(logs: Iterable[AuditLog], limit: int = 12) -> List[WeeklyActivity]:
    """Audit activity grouped by week (weeks start on Monday), most recent week first."""
    weeks = OrderedDict()
    for log in logs:
        created = log.created
        if created is None:
            continue
        start = (created - timedelta(days=created.weekday())).date()
        weeks.setdefault(start, []).append(log)

    result = []
    for start in sorted(weeks, reverse=True)[:limit]:
        rows = weeks[start]
        result.append(WeeklyActivity(
            week_start=start.isoformat(),
            week_label=start.strftime("%b %d"),
            activity_count=len(rows),
            active_users=len({r.user_id for r in rows if r.user_id}),
            affected_contracts=len({r.resource_id for r in rows if r.resource_id and r.resource == "contract"}),
        ))
    return result


# -------------------------------------------------------------------
# Insight rules, evaluated in order; each yields at most one card
# -------------------------------------------------------------------

def completion_rule(summary: AnalyticsSummary, issues: Optional[IssueMetrics]) -> Optional[Insight]:
    rate = summary.completion_rate
    if rate >= 70:
        return Insight(
            type="success",
            title="Excellent Delivery Performance",
            description=(
                f"{round_half_up(rate)}% completion rate demonstrates strong operational "
                "efficiency and reliable supply chain execution."
            ),
            recommendation="Maintain current processes and consider documenting best practices for scaling.",
        )
    if rate < 40:
        return Insight(
            type="danger",
            title="Low Completion Rate Alert",
            description=(
                f"Only {round_half_up(rate)}% of contracts have been delivered. "
                "This indicates significant operational bottlenecks."
            ),
            recommendation=(
                "Conduct root cause analysis on delayed contracts. "
                "Review supplier capacity and streamline approval processes."
            ),
        )
    return None


def cancellation_rule(summary: AnalyticsSummary, issues: Optional[IssueMetrics]) -> Optional[Insight]:
    rate = summary.cancellation_rate
    if rate <= 15:
        return None
    return Insight(
        type="warning",
        title="High Cancellation Rate",
        description=(
            f"{round_half_up(rate)}% of contracts are being cancelled, representing "
            "potential revenue loss and inefficiency."
        ),
        recommendation=(
            "Investigate cancellation reasons. Consider implementing stricter contract "
            "validation and supplier vetting."
        ),
    )


def pipeline_rule(summary: AnalyticsSummary, issues: Optional[IssueMetrics]) -> Optional[Insight]:
    rate = summary.active_rate
    if rate <= 50:
        return None
    return Insight(
        type="info",
        title="High Pipeline Volume",
        description=(
            f"{round_half_up(rate)}% of contracts are currently active, indicating strong "
            "business pipeline and growth."
        ),
        recommendation="Ensure adequate resources are allocated to handle the volume. Monitor progress metrics closely.",
    )


def heavy_shipment_rule(summary: AnalyticsSummary, issues: Optional[IssueMetrics]) -> Optional[Insight]:
    if summary.avg_weight_per_contract <= 1000:
        return None
    return Insight(
        type="info",
        title="Heavy Shipment Profile",
        description=(
            f"Average shipment weight of {round_half_up(summary.avg_weight_per_contract)}kg "
            "per contract indicates bulk operations."
        ),
        recommendation=(
            "Optimize logistics partnerships for heavy freight. "
            "Consider negotiating volume-based shipping rates."
        ),
    )


def critical_issue_rule(summary: AnalyticsSummary, issues: Optional[IssueMetrics]) -> Optional[Insight]:
    if issues is None or issues.critical_issues <= 0:
        return None
    return Insight(
        type="danger",
        title="Critical Issues Detected",
        description=(
            f"{issues.critical_issues} critical issues require immediate attention "
            "to prevent delivery delays."
        ),
        recommendation=(
            "Prioritize critical issue resolution. Assign dedicated resources and "
            "establish escalation protocols."
        ),
    )


def resolution_rule(summary: AnalyticsSummary, issues: Optional[IssueMetrics]) -> Optional[Insight]:
    if issues is None or issues.resolution_rate < 80:
        return None
    return Insight(
        type="success",
        title="Strong Issue Resolution",
        description=(
            f"{issues.resolution_rate}% resolution rate shows effective quality "
            "management and problem-solving capabilities."
        ),
        recommendation="Continue current issue management practices. Consider sharing learnings with the team.",
    )


def volume_rule(summary: AnalyticsSummary, issues: Optional[IssueMetrics]) -> Optional[Insight]:
    if summary.total_items_shipped <= 10000:
        return None
    return Insight(
        type="success",
        title="High Volume Operations",
        description=f"{summary.total_items_shipped:,} items shipped demonstrates scale and operational maturity.",
        recommendation=(
            "Leverage volume for better supplier negotiations. "
            "Consider automation investments for continued growth."
        ),
    )


InsightRule = Callable[[AnalyticsSummary, Optional[IssueMetrics]], Optional[Insight]]

INSIGHT_RULES = (
    completion_rule,
    cancellation_rule,
    pipeline_rule,
    heavy_shipment_rule,
    critical_issue_rule,
    resolution_rule,
    volume_rule,
)


def generate_insights(summary: AnalyticsSummary, issues: Optional[IssueMetrics] = None,
                      rules=INSIGHT_RULES) -> List[Insight]:
    insights = []
    for rule in rules:
        card = rule(summary, issues)
        if card is not None:
            insights.append(card)
    return insights


# -------------------------------------------------------------------
# Efficiency text
# -------------------------------------------------------------------

def items_per_kg(total_items, total_weight) -> float:
    return round(ratio(total_items, total_weight), 2)


def efficiency_insight(total_items, total_weight) -> str:
    per_kg = items_per_kg(total_items, total_weight)
    if per_kg > 10:
        return f"High packing efficiency: {per_kg:.2f} items per kg suggests lightweight, well-optimized packaging."
    if per_kg > 5:
        return f"Balanced packing ratio: {per_kg:.2f} items per kg indicates standard packaging efficiency."
    if per_kg > 0:
        return f"Heavy items detected: {per_kg:.2f} items per kg may indicate opportunities for packaging optimization."
    return "Insufficient data for efficiency analysis."


def box_optimization_insight(avg_items_per_box) -> str:
    if avg_items_per_box > 100:
        return "Large box capacity allows for bulk shipping, reducing per-unit shipping costs."
    if avg_items_per_box > 50:
        return "Moderate box capacity provides balance between protection and efficiency."
    if avg_items_per_box > 0:
        return "Small box packing may increase handling costs but ensures better item protection."
    return "No packing data available."
