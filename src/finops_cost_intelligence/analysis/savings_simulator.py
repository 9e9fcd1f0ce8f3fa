"""Savings scenario generation and ranking."""

import hashlib
import logging
from datetime import UTC, date, datetime

from pydantic import BaseModel, Field

from finops_cost_intelligence.analysis.simulation_templates import (
    SIMULATION_TEMPLATES,
    TIME_TO_IMPLEMENT,
    Effort,
    RiskLevel,
    ScenarioParameters,
    SimulationTemplate,
    SimulationType,
)
from finops_cost_intelligence.models import ResourceAnalysis

logger = logging.getLogger(__name__)

MIN_TEMPLATE_COST = 50.0  # Skip templates whose matched spend is trivial
MIN_SCENARIO_SAVINGS = 10.0
OBSERVATION_WINDOW_DAYS = 30  # Input costs are treated as a 30-day window

# Scenarios can target overlapping resources, so summing their savings
# overstates the total. Flagged for product review; kept for compatibility.
CONSERVATISM_FACTOR = 0.6

HIGH_IMPACT_SAVINGS_PERCENT = 30

TYPE_LABELS: dict[str, str] = {
    "reserved-instances": "Reserved Instances",
    "spot-instances": "Spot Instances",
    "rightsizing": "Right-sizing",
    "region-migration": "Region Migration",
    "commitment": "Commitment Discounts",
    "scheduled-scaling": "Scheduled Scaling",
    "storage-tiering": "Storage Tiering",
    "license-optimization": "License Optimization",
    "custom": "Custom Scenario",
}


class SimulationScenario(BaseModel):
    """Projected outcome of applying one optimization strategy."""

    id: str
    name: str
    type: SimulationType
    description: str

    target_services: list[str]
    target_resources: list[str]
    parameters: ScenarioParameters

    current_cost: float
    projected_cost: float
    savings: float = Field(ge=0)
    savings_percent: float = Field(ge=0, le=100)

    risk_level: RiskLevel
    risk_factors: list[str]

    effort: Effort
    time_to_implement: str
    prerequisites: list[str]

    break_even_months: int | None = None
    annual_savings: float
    three_year_savings: float

    model_config = {"frozen": True}


class TypeStats(BaseModel):
    """Scenario count and savings for one simulation type."""

    count: int = 0
    savings: float = 0.0


class SimulationRecommendation(BaseModel):
    """A prioritized group of scenarios."""

    priority: int
    title: str
    description: str
    savings: float
    effort: Effort
    risk: RiskLevel
    scenarios: list[str]  # Scenario ids


class SimulationSummary(BaseModel):
    """Roll-up of a scenario set with prioritized recommendations."""

    total_current_cost: float
    total_projected_cost: float
    total_savings: float
    savings_percent: float
    scenarios: list[SimulationScenario]
    by_type: dict[str, TypeStats]
    recommendations: list[SimulationRecommendation]
    generated_on: date


def _scenario_id(prefix: str, resource_ids: list[str]) -> str:
    digest = hashlib.sha1("\n".join(resource_ids).encode("utf-8")).hexdigest()[:10]
    return f"{prefix}-{digest}"


def annualize(savings: float) -> float:
    """Extrapolate savings over the observation window to a year."""
    return savings / OBSERVATION_WINDOW_DAYS * 365


def type_label(simulation_type: str) -> str:
    """Display label for a simulation type."""
    return TYPE_LABELS.get(simulation_type, simulation_type)


class SavingsSimulator:
    """
    Model what-if savings for optimization strategies.

    Each template is matched against resources by service name or category;
    a scenario is produced when the matched spend and resulting savings are
    both meaningful.
    """

    def __init__(self, templates: tuple[SimulationTemplate, ...] = SIMULATION_TEMPLATES):
        self.templates = templates

    def generate_scenarios(self, resources: list[ResourceAnalysis]) -> list[SimulationScenario]:
        """
        Generate simulation scenarios for the given resources.

        Args:
            resources: Per-resource cost summaries.

        Returns:
            Scenarios sorted by savings, highest first.
        """
        scenarios: list[SimulationScenario] = []

        for template in self.templates:
            applicable = [
                r for r in resources if template.matches(r.service_name, r.service_category)
            ]
            if not applicable:
                continue

            current_cost = sum(r.total_cost for r in applicable)
            if current_cost < MIN_TEMPLATE_COST:
                logger.debug(
                    "Skipping %s: matched cost %.2f below %.2f",
                    template.type,
                    current_cost,
                    MIN_TEMPLATE_COST,
                )
                continue

            scenario = self._create_scenario(template, applicable, current_cost)
            if scenario.savings > MIN_SCENARIO_SAVINGS:
                scenarios.append(scenario)

        logger.info("Generated %d savings scenarios", len(scenarios))
        return sorted(scenarios, key=lambda s: s.savings, reverse=True)

    def _create_scenario(
        self,
        template: SimulationTemplate,
        resources: list[ResourceAnalysis],
        current_cost: float,
    ) -> SimulationScenario:
        """Apply a template's savings model to its matched resources."""
        params = template.default_params
        estimate = template.estimate(params)
        savings_percent = min(max(estimate.savings_percent, 0), 100)

        projected_cost = current_cost * (1 - savings_percent / 100)
        savings = current_cost - projected_cost
        annual_savings = annualize(savings)
        resource_ids = [r.resource_id for r in resources]

        return SimulationScenario(
            id=_scenario_id(template.type, resource_ids),
            name=template.name,
            type=template.type,
            description=template.description,
            target_services=list(dict.fromkeys(r.service_name for r in resources)),
            target_resources=resource_ids,
            parameters=params,
            current_cost=current_cost,
            projected_cost=projected_cost,
            savings=savings,
            savings_percent=savings_percent,
            risk_level=template.risk_level,
            risk_factors=estimate.risk_factors,
            effort=template.effort,
            time_to_implement=TIME_TO_IMPLEMENT[template.effort],
            prerequisites=estimate.prerequisites,
            break_even_months=estimate.break_even_months,
            annual_savings=annual_savings,
            three_year_savings=annual_savings * 3,
        )

    def generate_summary(
        self,
        scenarios: list[SimulationScenario],
        as_of: date | None = None,
    ) -> SimulationSummary:
        """
        Summarize scenarios and build prioritized recommendations.

        Total savings are discounted by CONSERVATISM_FACTOR because
        scenarios may target the same resources.
        """
        total_current_cost = sum(s.current_cost for s in scenarios)
        total_savings = sum(s.savings for s in scenarios) * CONSERVATISM_FACTOR
        total_projected_cost = total_current_cost - total_savings

        by_type = {t.type: TypeStats() for t in self.templates}
        by_type.setdefault("custom", TypeStats())
        for scenario in scenarios:
            stats = by_type.setdefault(scenario.type, TypeStats())
            stats.count += 1
            stats.savings += scenario.savings

        return SimulationSummary(
            total_current_cost=total_current_cost,
            total_projected_cost=total_projected_cost,
            total_savings=total_savings,
            savings_percent=(
                total_savings / total_current_cost * 100 if total_current_cost > 0 else 0
            ),
            scenarios=scenarios,
            by_type=by_type,
            recommendations=self._generate_recommendations(scenarios),
            generated_on=as_of or datetime.now(UTC).date(),
        )

    def _generate_recommendations(
        self, scenarios: list[SimulationScenario]
    ) -> list[SimulationRecommendation]:
        """Fixed-priority recommendation groups, skipping empty ones."""
        recommendations = []

        quick_wins = [s for s in scenarios if s.effort == "low" and s.risk_level == "low"]
        if quick_wins:
            recommendations.append(
                SimulationRecommendation(
                    priority=1,
                    title="Start with Quick Wins",
                    description=f"{len(quick_wins)} low-effort, low-risk opportunities available",
                    savings=sum(s.savings for s in quick_wins),
                    effort="low",
                    risk="low",
                    scenarios=[s.id for s in quick_wins],
                )
            )

        high_impact = [s for s in scenarios if s.savings_percent >= HIGH_IMPACT_SAVINGS_PERCENT]
        if high_impact:
            recommendations.append(
                SimulationRecommendation(
                    priority=2,
                    title="Focus on High-Impact Areas",
                    description=(
                        f"{len(high_impact)} scenarios with "
                        f"{HIGH_IMPACT_SAVINGS_PERCENT}%+ savings potential"
                    ),
                    savings=sum(s.savings for s in high_impact),
                    effort="medium",
                    risk="medium",
                    scenarios=[s.id for s in high_impact],
                )
            )

        reserved = [s for s in scenarios if s.type == "reserved-instances"]
        if reserved:
            recommendations.append(
                SimulationRecommendation(
                    priority=3,
                    title="Consider Reserved Instances",
                    description="Commit to reservations for predictable workloads",
                    savings=sum(s.savings for s in reserved),
                    effort="medium",
                    risk="medium",
                    scenarios=[s.id for s in reserved],
                )
            )

        scheduled = [s for s in scenarios if s.type == "scheduled-scaling"]
        if scheduled:
            recommendations.append(
                SimulationRecommendation(
                    priority=4,
                    title="Implement Dev/Test Scheduling",
                    description="Stop non-production resources outside business hours",
                    savings=sum(s.savings for s in scheduled),
                    effort="low",
                    risk="low",
                    scenarios=[s.id for s in scheduled],
                )
            )

        return recommendations

    def create_custom_scenario(
        self,
        name: str,
        description: str,
        resources: list[ResourceAnalysis],
        discount_percent: float,
    ) -> SimulationScenario:
        """
        Build a scenario from a user-supplied flat discount.

        Raises:
            ValueError: If discount_percent is outside [0, 100].
        """
        if not 0 <= discount_percent <= 100:
            raise ValueError(f"discount_percent must be between 0 and 100, got {discount_percent}")

        current_cost = sum(r.total_cost for r in resources)
        projected_cost = current_cost * (1 - discount_percent / 100)
        savings = current_cost - projected_cost
        annual_savings = annualize(savings)
        resource_ids = [r.resource_id for r in resources]

        return SimulationScenario(
            id=_scenario_id("custom", [name, *resource_ids]),
            name=name,
            type="custom",
            description=description,
            target_services=[],
            target_resources=resource_ids,
            parameters=ScenarioParameters(
                custom_discount=discount_percent,
                custom_description=description,
            ),
            current_cost=current_cost,
            projected_cost=projected_cost,
            savings=savings,
            savings_percent=discount_percent,
            risk_level="medium",
            risk_factors=["Custom scenario - verify assumptions"],
            effort="medium",
            time_to_implement="Varies",
            prerequisites=[],
            annual_savings=annual_savings,
            three_year_savings=annual_savings * 3,
        )

    def get_templates(self) -> list[SimulationTemplate]:
        """All templates, in evaluation order."""
        return list(self.templates)

    def get_template(self, simulation_type: str) -> SimulationTemplate | None:
        """Template for a simulation type, if any."""
        return next((t for t in self.templates if t.type == simulation_type), None)
