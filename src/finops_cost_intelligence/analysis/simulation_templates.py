"""
Optimization templates for the savings simulator.

Templates are read-only lookup data. Each pairs the services it applies
to with a pure `estimate` function that turns the template's parameters
into a savings percentage plus its risk factors and prerequisites.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Literal

from pydantic import BaseModel

SimulationType = Literal[
    "reserved-instances",
    "spot-instances",
    "rightsizing",
    "region-migration",
    "commitment",
    "scheduled-scaling",
    "storage-tiering",
    "license-optimization",
    "custom",
]

RiskLevel = Literal["low", "medium", "high"]
Effort = Literal["low", "medium", "high"]

HOURS_PER_WEEK = 168


class ScenarioParameters(BaseModel):
    """Tunable inputs for a scenario. Only fields relevant to its type are set."""

    # Reserved instances
    reservation_term: Literal["1-year", "3-year"] | None = None
    payment_option: Literal["all-upfront", "partial-upfront", "no-upfront"] | None = None
    reservation_discount: float | None = None

    # Spot instances
    spot_discount: float | None = None
    interruption_rate: float | None = None

    # Rightsizing
    downsize_percent: float | None = None
    target_utilization: float | None = None

    # Region
    target_region: str | None = None
    region_price_diff: float | None = None

    # Scheduling
    weekday_hours: float | None = None
    weekend_hours: float | None = None

    # Storage
    cold_storage_percent: float | None = None
    archive_percent: float | None = None

    # Custom
    custom_discount: float | None = None
    custom_description: str | None = None

    model_config = {"frozen": True}


@dataclass(frozen=True)
class ScenarioEstimate:
    """Savings model output for one template."""

    savings_percent: float
    risk_factors: list[str] = field(default_factory=list)
    prerequisites: list[str] = field(default_factory=list)
    break_even_months: int | None = None


def estimate_reserved_instances(params: ScenarioParameters) -> ScenarioEstimate:
    """35% for a 1-year term, 55% for 3-year, plus 10% when paid all upfront."""
    three_year = params.reservation_term == "3-year"
    savings_percent = 55 if three_year else 35
    if params.payment_option == "all-upfront":
        savings_percent += 10

    return ScenarioEstimate(
        savings_percent=savings_percent,
        risk_factors=["Commitment lock-in", "Changing requirements"],
        prerequisites=["Stable workload analysis", "Usage forecast"],
        break_even_months=8 if three_year else 5,
    )


def estimate_spot_instances(params: ScenarioParameters) -> ScenarioEstimate:
    return ScenarioEstimate(
        savings_percent=params.spot_discount or 70,
        risk_factors=["Instance interruption", "Requires fault-tolerant architecture"],
        prerequisites=["Stateless workloads", "Auto-scaling setup", "Checkpoint mechanism"],
    )


def estimate_rightsizing(params: ScenarioParameters) -> ScenarioEstimate:
    return ScenarioEstimate(
        savings_percent=params.downsize_percent or 30,
        risk_factors=["Performance impact if undersized"],
        prerequisites=["Utilization monitoring", "Performance baselines"],
    )


def estimate_scheduled_scaling(params: ScenarioParameters) -> ScenarioEstimate:
    """Savings from the share of the week a resource is switched off."""
    weekday_hours = params.weekday_hours if params.weekday_hours is not None else 10
    weekend_hours = params.weekend_hours if params.weekend_hours is not None else 0
    total_week_hours = weekday_hours * 5 + weekend_hours * 2

    return ScenarioEstimate(
        savings_percent=round((1 - total_week_hours / HOURS_PER_WEEK) * 100),
        risk_factors=["Requires consistent schedule"],
        prerequisites=["Identify non-production workloads", "Automation setup"],
    )


def estimate_storage_tiering(params: ScenarioParameters) -> ScenarioEstimate:
    """Cold tier is ~50% cheaper, archive ~90% cheaper."""
    cold_percent = params.cold_storage_percent if params.cold_storage_percent is not None else 40
    archive_percent = params.archive_percent if params.archive_percent is not None else 20

    return ScenarioEstimate(
        savings_percent=round((cold_percent * 0.5 + archive_percent * 0.9) / 2),
        risk_factors=["Access latency for archived data"],
        prerequisites=["Data lifecycle analysis", "Access pattern review"],
    )


def estimate_region_migration(params: ScenarioParameters) -> ScenarioEstimate:
    return ScenarioEstimate(
        savings_percent=params.region_price_diff or 20,
        risk_factors=["Data residency compliance", "Latency changes", "Migration complexity"],
        prerequisites=["Compliance review", "Latency testing", "Migration plan"],
    )


def estimate_license_optimization(params: ScenarioParameters) -> ScenarioEstimate:
    return ScenarioEstimate(
        savings_percent=params.custom_discount or 40,
        risk_factors=["License compliance"],
        prerequisites=["Existing license inventory", "SA agreement review"],
    )


@dataclass(frozen=True)
class SimulationTemplate:
    """An optimization strategy the simulator can apply to matching resources."""

    type: SimulationType
    name: str
    description: str
    default_params: ScenarioParameters
    discount_range: tuple[float, float]  # Hint for UI sliders (min, max)
    risk_level: RiskLevel
    effort: Effort
    applicable_services: tuple[str, ...]
    estimate: Callable[[ScenarioParameters], ScenarioEstimate]

    def matches(self, service_name: str, service_category: str) -> bool:
        """Check whether a resource's service or category is covered (case-insensitive)."""
        if "*" in self.applicable_services:
            return True

        service = service_name.lower()
        category = service_category.lower()
        return any(s.lower() in service or s.lower() in category for s in self.applicable_services)


SIMULATION_TEMPLATES: tuple[SimulationTemplate, ...] = (
    SimulationTemplate(
        type="reserved-instances",
        name="Reserved Instances",
        description="Commit to 1 or 3 years for significant discounts on compute",
        default_params=ScenarioParameters(
            reservation_term="1-year",
            payment_option="no-upfront",
            reservation_discount=35,
        ),
        discount_range=(20, 72),
        risk_level="medium",
        effort="medium",
        applicable_services=("Virtual Machine", "Compute", "EC2", "SQL Database", "RDS"),
        estimate=estimate_reserved_instances,
    ),
    SimulationTemplate(
        type="spot-instances",
        name="Spot/Preemptible Instances",
        description="Use spare cloud capacity at steep discounts for fault-tolerant workloads",
        default_params=ScenarioParameters(spot_discount=70, interruption_rate=5),
        discount_range=(50, 90),
        risk_level="high",
        effort="high",
        applicable_services=("Virtual Machine", "Compute", "EC2", "Batch"),
        estimate=estimate_spot_instances,
    ),
    SimulationTemplate(
        type="rightsizing",
        name="Right-sizing",
        description="Match resource sizes to actual utilization",
        default_params=ScenarioParameters(downsize_percent=30, target_utilization=70),
        discount_range=(10, 50),
        risk_level="low",
        effort="medium",
        applicable_services=("Virtual Machine", "Compute", "EC2", "Database", "App Service"),
        estimate=estimate_rightsizing,
    ),
    SimulationTemplate(
        type="scheduled-scaling",
        name="Scheduled Scaling",
        description="Stop non-production resources outside business hours",
        default_params=ScenarioParameters(weekday_hours=10, weekend_hours=0),  # 8am-6pm
        discount_range=(30, 70),
        risk_level="low",
        effort="low",
        applicable_services=("Virtual Machine", "Compute", "EC2", "Database", "App Service"),
        estimate=estimate_scheduled_scaling,
    ),
    SimulationTemplate(
        type="storage-tiering",
        name="Storage Tiering",
        description="Move infrequently accessed data to cheaper storage tiers",
        default_params=ScenarioParameters(cold_storage_percent=40, archive_percent=20),
        discount_range=(20, 80),
        risk_level="low",
        effort="low",
        applicable_services=("Storage", "Blob", "S3", "Object Storage"),
        estimate=estimate_storage_tiering,
    ),
    SimulationTemplate(
        type="region-migration",
        name="Region Migration",
        description="Move workloads to lower-cost regions",
        default_params=ScenarioParameters(region_price_diff=20),
        discount_range=(5, 40),
        risk_level="medium",
        effort="high",
        applicable_services=("*",),
        estimate=estimate_region_migration,
    ),
    SimulationTemplate(
        type="license-optimization",
        name="License Optimization",
        description="Use Azure Hybrid Benefit, BYOL, or open-source alternatives",
        default_params=ScenarioParameters(custom_discount=40),
        discount_range=(20, 55),
        risk_level="low",
        effort="medium",
        applicable_services=("SQL", "Windows", "Database", "Virtual Machine"),
        estimate=estimate_license_optimization,
    ),
)

TIME_TO_IMPLEMENT: dict[str, str] = {
    "low": "1-2 days",
    "medium": "1-2 weeks",
    "high": "2-4 weeks",
}
