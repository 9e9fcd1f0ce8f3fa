"""
Waste detection rules.

Each rule is a plain record: a category, the service and resource-type
substrings it describes, and a pure `detect` function returning a
WasteDetection or None. Every detect function does its own applicability
checks. Savings fractions are fixed heuristics per rule.

WASTE_RULES is the default table. EXTENDED_WASTE_RULES holds opt-in rules
for the underutilized and detached-disk categories.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, Field

from finops_cost_intelligence.analysis.stats import mean
from finops_cost_intelligence.config.schema import WasteAnalysisConfig, WasteCategory
from finops_cost_intelligence.models import ResourceAnalysis

WasteSeverity = Literal["low", "medium", "high", "critical"]
Level = Literal["low", "medium", "high"]
WasteAction = Literal["delete", "resize", "stop", "archive", "tag", "review", "migrate"]


class WasteEvidence(BaseModel):
    """A measured value supporting a waste finding."""

    metric: str
    value: float
    threshold: float
    unit: str
    period: str

    model_config = {"frozen": True}


class WasteRecommendation(BaseModel):
    """A remediation step for a waste finding."""

    action: WasteAction
    title: str
    description: str
    estimated_savings: float = Field(ge=0)
    effort: Level
    risk: Level
    automatable: bool

    model_config = {"frozen": True}


class WasteDetection(BaseModel):
    """Payload returned by a rule that matched a resource."""

    severity: WasteSeverity
    confidence: float = Field(ge=0, le=100)
    reason: str
    potential_savings: float = Field(ge=0)
    evidence: list[WasteEvidence]
    recommendations: list[WasteRecommendation]


DetectFn = Callable[[ResourceAnalysis, WasteAnalysisConfig], WasteDetection | None]


@dataclass(frozen=True)
class WasteRule:
    """
    A waste detection rule.

    The patterns name the services and resource types a rule targets. They
    are informational; `detect` alone decides whether a resource matches.
    """

    category: WasteCategory
    name: str
    description: str
    service_patterns: tuple[str, ...]
    resource_type_patterns: tuple[str, ...]
    detect: DetectFn


CRITICAL_TAGS = ("CostCenter", "Project", "Environment", "Owner", "Team", "Application")

OLD_GENERATION_PATTERNS = (
    "Standard_D",
    "Standard_A",
    "Standard_G",
    "m4.",
    "m3.",
    "c4.",
    "c3.",
    "r4.",
    "r3.",
)

IDLE_MAX_USAGE = 100
IDLE_MIN_AVG_DAILY_COST = 5.0
IDLE_SAVINGS_RATE = 0.7
UNDERUTILIZED_SAVINGS_RATE = 0.4
UNTAGGED_MIN_COST = 50.0
SNAPSHOT_SAVINGS_RATE = 0.8
STORAGE_SAVINGS_RATE = 0.3
DETACHED_DISK_SAVINGS_RATE = 0.9
DATABASE_SAVINGS_RATE = 0.5
OLD_GENERATION_SAVINGS_RATE = 0.25
UNUSED_IP_SAVINGS_RATE = 0.9


def _window_label(config: WasteAnalysisConfig) -> str:
    return f"{config.analysis_window_days} days"


def _monthly_cost(resource: ResourceAnalysis, config: WasteAnalysisConfig) -> float:
    return resource.total_cost / config.analysis_window_days * 30


def detect_idle(resource: ResourceAnalysis, config: WasteAnalysisConfig) -> WasteDetection | None:
    """Resources billed every recent day while reporting almost no usage."""
    recent = resource.sorted_daily_costs[-config.idle_threshold_days :]
    if not recent:
        return None

    has_consistent_cost = all(d.cost > 0 for d in recent)
    avg_cost = mean([d.cost for d in recent])

    if not (
        has_consistent_cost
        and resource.usage_quantity < IDLE_MAX_USAGE
        and avg_cost > IDLE_MIN_AVG_DAILY_COST
    ):
        return None

    if avg_cost > 50:
        severity = "high"
    elif avg_cost > 20:
        severity = "medium"
    else:
        severity = "low"

    return WasteDetection(
        severity=severity,
        confidence=75,
        reason=f"VM has been running with minimal activity. Average daily cost: ${avg_cost:.2f}",
        potential_savings=resource.total_cost * IDLE_SAVINGS_RATE,
        evidence=[
            WasteEvidence(
                metric="Average Daily Cost",
                value=avg_cost,
                threshold=IDLE_MIN_AVG_DAILY_COST,
                unit="USD/day",
                period=f"{len(recent)} days",
            )
        ],
        recommendations=[
            WasteRecommendation(
                action="stop",
                title="Stop idle instance",
                description="Stop the VM during non-business hours or when not in use",
                estimated_savings=resource.total_cost * 0.5,
                effort="low",
                risk="low",
                automatable=True,
            ),
            WasteRecommendation(
                action="resize",
                title="Downsize to smaller instance",
                description="Reduce to a smaller instance type if workload is minimal",
                estimated_savings=resource.total_cost * 0.4,
                effort="medium",
                risk="medium",
                automatable=False,
            ),
        ],
    )


def detect_underutilized(
    resource: ResourceAnalysis, config: WasteAnalysisConfig
) -> WasteDetection | None:
    """Hour-billed compute running far fewer hours than it was available."""
    if "hour" not in resource.pricing_unit.lower() or resource.total_cost <= 20:
        return None

    days = len(resource.daily_costs) or config.analysis_window_days
    available_hours = days * 24
    utilization = resource.usage_quantity / available_hours * 100

    if not 0 < utilization < config.utilization_threshold:
        return None

    return WasteDetection(
        severity="medium" if resource.total_cost > 200 else "low",
        confidence=60,
        reason=(
            f"Resource used {utilization:.1f}% of available hours, "
            f"below the {config.utilization_threshold:g}% utilization threshold."
        ),
        potential_savings=resource.total_cost * UNDERUTILIZED_SAVINGS_RATE,
        evidence=[
            WasteEvidence(
                metric="Utilization",
                value=utilization,
                threshold=config.utilization_threshold,
                unit="%",
                period=f"{days} days",
            )
        ],
        recommendations=[
            WasteRecommendation(
                action="resize",
                title="Right-size the instance",
                description="Move to a smaller or burstable SKU that matches observed usage",
                estimated_savings=resource.total_cost * UNDERUTILIZED_SAVINGS_RATE,
                effort="medium",
                risk="medium",
                automatable=False,
            )
        ],
    )


def detect_untagged(
    resource: ResourceAnalysis, config: WasteAnalysisConfig
) -> WasteDetection | None:
    """High-cost resources missing cost allocation tags."""
    tag_keys = [k.lower() for k in resource.tags]
    missing = [t for t in CRITICAL_TAGS if not any(t.lower() in k for k in tag_keys)]

    if not ((not tag_keys or len(missing) >= 3) and resource.total_cost > UNTAGGED_MIN_COST):
        return None

    if resource.total_cost > 500:
        severity = "high"
    elif resource.total_cost > 100:
        severity = "medium"
    else:
        severity = "low"

    return WasteDetection(
        severity=severity,
        confidence=95,
        reason=(
            f"Resource is missing {len(missing)} critical cost allocation tags: "
            f"{', '.join(missing[:3])}"
        ),
        # Tagging enables accountability rather than direct savings
        potential_savings=0,
        evidence=[
            WasteEvidence(
                metric="Missing Tags",
                value=len(missing),
                threshold=3,
                unit="tags",
                period="current",
            )
        ],
        recommendations=[
            WasteRecommendation(
                action="tag",
                title="Add cost allocation tags",
                description=f"Add tags for: {', '.join(missing)}",
                estimated_savings=0,
                effort="low",
                risk="low",
                automatable=True,
            )
        ],
    )


def detect_stale_snapshot(
    resource: ResourceAnalysis, config: WasteAnalysisConfig
) -> WasteDetection | None:
    """Snapshots accruing storage charges."""
    is_snapshot = (
        "snapshot" in resource.resource_type.lower()
        or "snapshot" in resource.service_name.lower()
    )
    if not is_snapshot or resource.total_cost <= 5:
        return None

    if resource.total_cost > 100:
        severity = "high"
    elif resource.total_cost > 30:
        severity = "medium"
    else:
        severity = "low"

    return WasteDetection(
        severity=severity,
        confidence=70,
        reason="Snapshot incurring ongoing storage costs. Consider if still needed.",
        potential_savings=resource.total_cost * SNAPSHOT_SAVINGS_RATE,
        evidence=[
            WasteEvidence(
                metric="Monthly Storage Cost",
                value=_monthly_cost(resource, config),
                threshold=10,
                unit="USD/month",
                period=_window_label(config),
            )
        ],
        recommendations=[
            WasteRecommendation(
                action="review",
                title="Review snapshot necessity",
                description="Verify if this snapshot is still needed or can be archived to cold storage",
                estimated_savings=resource.total_cost * 0.5,
                effort="low",
                risk="medium",
                automatable=False,
            ),
            WasteRecommendation(
                action="delete",
                title="Delete old snapshot",
                description="Delete if no longer needed for disaster recovery",
                estimated_savings=resource.total_cost * 0.9,
                effort="low",
                risk="high",
                automatable=True,
            ),
        ],
    )


def detect_unused_storage(
    resource: ResourceAnalysis, config: WasteAnalysisConfig
) -> WasteDetection | None:
    """Storage accounts with ongoing cost that may hold cold data."""
    is_storage = (
        "storage" in resource.service_name.lower()
        or "storage" in resource.service_category.lower()
    )
    if not is_storage or resource.total_cost <= 10:
        return None

    if resource.total_cost > 200:
        severity = "high"
    elif resource.total_cost > 50:
        severity = "medium"
    else:
        severity = "low"

    return WasteDetection(
        severity=severity,
        confidence=60,
        reason="Storage account with ongoing costs. Verify data access patterns.",
        potential_savings=resource.total_cost * STORAGE_SAVINGS_RATE,
        evidence=[
            WasteEvidence(
                metric="Monthly Storage Cost",
                value=_monthly_cost(resource, config),
                threshold=20,
                unit="USD/month",
                period=_window_label(config),
            )
        ],
        recommendations=[
            WasteRecommendation(
                action="archive",
                title="Move to cold storage tier",
                description="Archive infrequently accessed data to Cool or Archive tier",
                estimated_savings=resource.total_cost * 0.5,
                effort="medium",
                risk="low",
                automatable=True,
            ),
            WasteRecommendation(
                action="review",
                title="Implement lifecycle policy",
                description="Set up automatic tiering and deletion policies",
                estimated_savings=resource.total_cost * 0.3,
                effort="medium",
                risk="low",
                automatable=True,
            ),
        ],
    )


def detect_detached_disk(
    resource: ResourceAnalysis, config: WasteAnalysisConfig
) -> WasteDetection | None:
    """Disks and volumes billed for capacity with no recorded usage."""
    text = f"{resource.service_name} {resource.resource_type}".lower()
    is_disk = "disk" in text or "volume" in text
    if not is_disk or resource.usage_quantity > 0 or resource.total_cost <= 5:
        return None

    if resource.total_cost > 100:
        severity = "high"
    elif resource.total_cost > 30:
        severity = "medium"
    else:
        severity = "low"

    return WasteDetection(
        severity=severity,
        confidence=70,
        reason="Disk is billed for provisioned capacity but shows no usage. It may be unattached.",
        potential_savings=resource.total_cost * DETACHED_DISK_SAVINGS_RATE,
        evidence=[
            WasteEvidence(
                metric="Usage Quantity",
                value=resource.usage_quantity,
                threshold=0,
                unit=resource.pricing_unit,
                period=_window_label(config),
            )
        ],
        recommendations=[
            WasteRecommendation(
                action="delete",
                title="Snapshot and delete disk",
                description="Take a final snapshot, then delete the unattached disk",
                estimated_savings=resource.total_cost * DETACHED_DISK_SAVINGS_RATE,
                effort="low",
                risk="medium",
                automatable=True,
            )
        ],
    )


def detect_idle_database(
    resource: ResourceAnalysis, config: WasteAnalysisConfig
) -> WasteDetection | None:
    """Databases with significant spend that may sit unused."""
    service = resource.service_name.lower()
    is_database = "sql" in service or "database" in service or "cosmos" in service
    if not is_database or resource.total_cost <= 30:
        return None

    if resource.total_cost > 500:
        severity = "critical"
    elif resource.total_cost > 200:
        severity = "high"
    else:
        severity = "medium"

    return WasteDetection(
        severity=severity,
        confidence=65,
        reason="Database instance with significant cost. Verify if actively used.",
        potential_savings=resource.total_cost * DATABASE_SAVINGS_RATE,
        evidence=[
            WasteEvidence(
                metric="Monthly Database Cost",
                value=_monthly_cost(resource, config),
                threshold=50,
                unit="USD/month",
                period=_window_label(config),
            )
        ],
        recommendations=[
            WasteRecommendation(
                action="resize",
                title="Scale down database tier",
                description="Consider moving to a smaller SKU or serverless option",
                estimated_savings=resource.total_cost * 0.4,
                effort="medium",
                risk="medium",
                automatable=False,
            ),
            WasteRecommendation(
                action="stop",
                title="Pause database (if supported)",
                description="Enable auto-pause for serverless databases",
                estimated_savings=resource.total_cost * 0.6,
                effort="low",
                risk="low",
                automatable=True,
            ),
        ],
    )


def detect_old_generation(
    resource: ResourceAnalysis, config: WasteAnalysisConfig
) -> WasteDetection | None:
    """Resources on legacy SKU families."""
    text = f"{resource.resource_name}{resource.resource_type}".lower()
    has_old_series = any(p.lower() in text for p in OLD_GENERATION_PATTERNS)
    if not has_old_series or resource.total_cost <= 50:
        return None

    return WasteDetection(
        severity="high" if resource.total_cost > 300 else "medium",
        confidence=80,
        reason=(
            "Resource appears to use an older generation SKU. "
            "Newer generations offer better price/performance."
        ),
        potential_savings=resource.total_cost * OLD_GENERATION_SAVINGS_RATE,
        evidence=[
            WasteEvidence(
                metric="Potential Efficiency Gain",
                value=OLD_GENERATION_SAVINGS_RATE * 100,
                threshold=0,
                unit="%",
                period="upgrade",
            )
        ],
        recommendations=[
            WasteRecommendation(
                action="migrate",
                title="Upgrade to newer generation",
                description=(
                    "Migrate to Dv5, Ev5, M-series (Azure) or m6i, c6i, r6i (AWS) "
                    "for better efficiency"
                ),
                estimated_savings=resource.total_cost * OLD_GENERATION_SAVINGS_RATE,
                effort="medium",
                risk="medium",
                automatable=False,
            )
        ],
    )


def detect_unused_ip(
    resource: ResourceAnalysis, config: WasteAnalysisConfig
) -> WasteDetection | None:
    """Public IP addresses accruing charges."""
    is_ip = "ip" in resource.service_name.lower() or "ip" in resource.resource_type.lower()
    if not is_ip or resource.total_cost <= 3:
        return None

    return WasteDetection(
        severity="low",
        confidence=70,
        reason="Public IP address incurring charges. Verify if attached to an active resource.",
        potential_savings=resource.total_cost * UNUSED_IP_SAVINGS_RATE,
        evidence=[
            WasteEvidence(
                metric="IP Cost",
                value=resource.total_cost,
                threshold=3,
                unit="USD",
                period=_window_label(config),
            )
        ],
        recommendations=[
            WasteRecommendation(
                action="delete",
                title="Release unused IP",
                description="Delete the public IP if no longer needed",
                estimated_savings=resource.total_cost * 0.95,
                effort="low",
                risk="low",
                automatable=True,
            )
        ],
    )


WASTE_RULES: tuple[WasteRule, ...] = (
    WasteRule(
        category="idle",
        name="Idle Compute Instances",
        description="Virtual machines with minimal or no activity",
        service_patterns=("Virtual Machine", "Compute Engine", "EC2"),
        resource_type_patterns=("vm", "instance", "virtualMachine"),
        detect=detect_idle,
    ),
    WasteRule(
        category="untagged",
        name="Untagged High-Cost Resources",
        description="Resources missing cost allocation tags",
        service_patterns=("*",),
        resource_type_patterns=("*",),
        detect=detect_untagged,
    ),
    WasteRule(
        category="stale-snapshot",
        name="Old Snapshots",
        description="Disk snapshots that are older than retention policy",
        service_patterns=("Storage", "Snapshot", "Backup"),
        resource_type_patterns=("snapshot", "backup"),
        detect=detect_stale_snapshot,
    ),
    WasteRule(
        category="unused-storage",
        name="Unused Blob/Object Storage",
        description="Storage accounts with no recent access",
        service_patterns=("Storage", "Blob", "S3", "Object Storage"),
        resource_type_patterns=("storage", "blob", "bucket"),
        detect=detect_unused_storage,
    ),
    WasteRule(
        category="idle-database",
        name="Idle Database Instance",
        description="Database with minimal query activity",
        service_patterns=("SQL", "Database", "Cosmos", "RDS", "PostgreSQL", "MySQL"),
        resource_type_patterns=("database", "sql", "db"),
        detect=detect_idle_database,
    ),
    WasteRule(
        category="old-generation",
        name="Old Generation Resources",
        description="Resources using older, less efficient SKUs",
        service_patterns=("Virtual Machine", "Compute", "EC2"),
        resource_type_patterns=("*",),
        detect=detect_old_generation,
    ),
    WasteRule(
        category="unused-ip",
        name="Unused Public IP Addresses",
        description="Public IPs not attached to any resource",
        service_patterns=("Network", "IP Address", "Elastic IP"),
        resource_type_patterns=("publicIP", "ip", "elasticIP"),
        detect=detect_unused_ip,
    ),
)

EXTENDED_WASTE_RULES: tuple[WasteRule, ...] = (
    WasteRule(
        category="underutilized",
        name="Underutilized Compute",
        description="Hourly-billed compute used for a small share of available hours",
        service_patterns=("Virtual Machine", "Compute", "EC2"),
        resource_type_patterns=("vm", "instance", "virtualMachine"),
        detect=detect_underutilized,
    ),
    WasteRule(
        category="detached-disk",
        name="Unattached Disks",
        description="Managed disks and volumes with no usage",
        service_patterns=("Disk", "EBS", "Volume"),
        resource_type_patterns=("disk", "volume"),
        detect=detect_detached_disk,
    ),
)
