"""Rule-based waste detection over per-resource cost summaries."""

import logging
from datetime import UTC, date, datetime

from pydantic import BaseModel, Field

from finops_cost_intelligence.analysis.waste_rules import (
    WASTE_RULES,
    WasteEvidence,
    WasteRecommendation,
    WasteRule,
    WasteSeverity,
)
from finops_cost_intelligence.config.schema import WasteAnalysisConfig, WasteCategory
from finops_cost_intelligence.models import DailyCost, DateRange, ResourceAnalysis

logger = logging.getLogger(__name__)

SEVERITIES: tuple[WasteSeverity, ...] = ("critical", "high", "medium", "low")
TOP_SERVICES_LIMIT = 10
TOP_OPPORTUNITIES_LIMIT = 20

CATEGORY_LABELS: dict[str, str] = {
    "idle": "Idle Resources",
    "underutilized": "Underutilized",
    "orphaned": "Orphaned",
    "oversized": "Oversized",
    "zombie": "Zombie Resources",
    "untagged": "Untagged",
    "stale-snapshot": "Stale Snapshots",
    "unused-storage": "Unused Storage",
    "detached-disk": "Detached Disks",
    "idle-database": "Idle Databases",
    "unused-ip": "Unused IPs",
    "old-generation": "Old Generation",
}


class WasteOpportunity(BaseModel):
    """A waste finding for one (rule, resource) pair."""

    id: str
    category: WasteCategory
    severity: WasteSeverity
    resource_id: str
    resource_name: str
    resource_type: str
    service_name: str
    service_category: str
    region: str

    current_cost: float
    potential_savings: float = Field(ge=0)
    savings_percent: float = Field(ge=0)
    currency: str
    daily_costs: list[DailyCost]

    detection_method: str
    confidence: float = Field(ge=0, le=100)
    reason: str
    evidence: list[WasteEvidence]
    recommendations: list[WasteRecommendation]

    detected_at: date
    days_since_activity: int
    tags: dict[str, str]

    model_config = {"frozen": True}


class CategoryStats(BaseModel):
    """Count and savings for one grouping."""

    count: int = 0
    savings: float = 0.0


class ServiceStats(BaseModel):
    """Count and savings for one service."""

    name: str
    count: int
    savings: float


class WasteSummary(BaseModel):
    """Aggregate view over a set of waste opportunities."""

    total_opportunities: int
    total_potential_savings: float
    by_category: dict[str, CategoryStats]
    by_severity: dict[str, CategoryStats]
    by_service: list[ServiceStats]
    top_opportunities: list[WasteOpportunity]
    analysis_date: date
    data_range: DateRange


def category_label(category: str) -> str:
    """Display label for a waste category."""
    return CATEGORY_LABELS.get(category, category)


class WasteHunter:
    """
    Find waste opportunities in cloud resources.

    Every rule in the fixed rule table is evaluated independently against
    each resource above the minimum cost threshold, so one resource can
    yield several opportunities.
    """

    def __init__(
        self,
        config: WasteAnalysisConfig | None = None,
        rules: tuple[WasteRule, ...] = WASTE_RULES,
    ):
        """
        Initialize the waste hunter.

        Args:
            config: Waste analysis configuration. Defaults apply if None.
            rules: Ordered rule table to evaluate. Pass
                WASTE_RULES + EXTENDED_WASTE_RULES to also run the
                underutilized and detached-disk rules.
        """
        self.config = config or WasteAnalysisConfig()
        self.rules = tuple(r for r in rules if r.category in self.config.categories)

    def analyze_resources(
        self,
        resources: list[ResourceAnalysis],
        as_of: date | None = None,
    ) -> list[WasteOpportunity]:
        """
        Analyze resources for waste opportunities.

        Args:
            resources: Per-resource summaries over the analysis window.
            as_of: Analysis date used for detected_at and days_since_activity.
                Defaults to today (UTC).

        Returns:
            Opportunities sorted by potential savings, highest first.
        """
        as_of = as_of or datetime.now(UTC).date()
        opportunities: list[WasteOpportunity] = []
        skipped = 0

        for resource in resources:
            if resource.total_cost < self.config.min_cost_threshold:
                skipped += 1
                continue

            for rule in self.rules:
                try:
                    opportunity = self._evaluate_rule(rule, resource, as_of)
                except (ArithmeticError, ValueError) as e:
                    logger.warning(
                        "Rule %s failed for %s: %s", rule.category, resource.resource_id, e
                    )
                    continue

                if opportunity:
                    opportunities.append(opportunity)

        logger.info(
            "Waste analysis found %d opportunities across %d resources (%d below cost threshold)",
            len(opportunities),
            len(resources),
            skipped,
        )
        return sorted(opportunities, key=lambda o: o.potential_savings, reverse=True)

    def _evaluate_rule(
        self,
        rule: WasteRule,
        resource: ResourceAnalysis,
        as_of: date,
    ) -> WasteOpportunity | None:
        """Run one rule against one resource."""
        result = rule.detect(resource, self.config)
        if result is None:
            return None

        savings_percent = (
            result.potential_savings / resource.total_cost * 100 if resource.total_cost > 0 else 0
        )

        return WasteOpportunity(
            id=f"{rule.category}-{resource.resource_id}",
            category=rule.category,
            severity=result.severity,
            resource_id=resource.resource_id,
            resource_name=resource.resource_name,
            resource_type=resource.resource_type,
            service_name=resource.service_name,
            service_category=resource.service_category,
            region=resource.region,
            current_cost=resource.total_cost,
            potential_savings=result.potential_savings,
            savings_percent=savings_percent,
            currency=resource.currency,
            daily_costs=resource.daily_costs,
            detection_method=rule.name,
            confidence=result.confidence,
            reason=result.reason,
            evidence=result.evidence,
            recommendations=result.recommendations,
            detected_at=as_of,
            days_since_activity=self._days_since_activity(resource, as_of),
            tags=resource.tags,
        )

    def _days_since_activity(self, resource: ResourceAnalysis, as_of: date) -> int:
        """Days between the last day with cost and the analysis date."""
        for day in reversed(resource.sorted_daily_costs):
            if day.cost > 0:
                return max((as_of - day.date).days, 0)
        return self.config.analysis_window_days

    def generate_summary(
        self,
        opportunities: list[WasteOpportunity],
        data_range: DateRange,
        as_of: date | None = None,
    ) -> WasteSummary:
        """
        Generate summary statistics.

        Args:
            opportunities: Opportunities from analyze_resources.
            data_range: Date range the analysis covered.
            as_of: Analysis date. Defaults to today (UTC).

        Returns:
            Totals with per-category, per-severity and top-10 per-service breakdowns.
        """
        by_category = {cat: CategoryStats() for cat in self.config.categories}
        by_severity = {sev: CategoryStats() for sev in SEVERITIES}
        by_service: dict[str, CategoryStats] = {}

        total_savings = 0.0
        for opp in opportunities:
            total_savings += opp.potential_savings

            if opp.category in by_category:
                by_category[opp.category].count += 1
                by_category[opp.category].savings += opp.potential_savings

            by_severity[opp.severity].count += 1
            by_severity[opp.severity].savings += opp.potential_savings

            service_stats = by_service.setdefault(opp.service_name, CategoryStats())
            service_stats.count += 1
            service_stats.savings += opp.potential_savings

        top_services = sorted(
            (
                ServiceStats(name=name, count=stats.count, savings=stats.savings)
                for name, stats in by_service.items()
            ),
            key=lambda s: s.savings,
            reverse=True,
        )[:TOP_SERVICES_LIMIT]

        return WasteSummary(
            total_opportunities=len(opportunities),
            total_potential_savings=total_savings,
            by_category=by_category,
            by_severity=by_severity,
            by_service=top_services,
            top_opportunities=opportunities[:TOP_OPPORTUNITIES_LIMIT],
            analysis_date=as_of or datetime.now(UTC).date(),
            data_range=data_range,
        )
