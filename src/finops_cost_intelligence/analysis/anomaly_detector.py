"""Anomaly detection for resource-level cost time series."""

import logging
import math
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from finops_cost_intelligence.analysis.baseline import BaselineCalculator
from finops_cost_intelligence.analysis.stats import percentage_change
from finops_cost_intelligence.config.schema import AnomalyDetectionConfig, AnomalyMethod
from finops_cost_intelligence.models import TimeSeriesPoint

logger = logging.getLogger(__name__)

Severity = Literal["low", "medium", "high", "critical"]

AnomalyType = Literal[
    "cost-spike",
    "cost-drop",
    "usage-mismatch",
    "new-resource",
    "idle-resource",
    "budget-violation",
    "seasonal-deviation",
    "pattern-break",
]

SEVERITY_RANK: dict[str, int] = {"critical": 4, "high": 3, "medium": 2, "low": 1}

MIN_TOTAL_POINTS = 7
STATISTICAL_MIN_POINTS = 5
TIME_SERIES_MIN_POINTS = 7
MAX_WINDOW_SIZE = 7
NEW_RESOURCE_MAX_AGE_DAYS = 3
NEW_RESOURCE_SCORE = 0.6
SCORE_SCALE = 5.0  # Raw magnitude that maps to a score of 1.0


class AnomalyImpact(BaseModel):
    """Cost impact of an anomaly."""

    cost_impact: float
    percentage_increase: float

    model_config = {"frozen": True}


class AnomalyContext(BaseModel):
    """Expected versus actual values behind an anomaly."""

    expected_cost: float
    actual_cost: float
    historical_average: float
    method: AnomalyMethod

    model_config = {"frozen": True}


class AnomalyResult(BaseModel):
    """A detected cost anomaly."""

    id: str
    timestamp: datetime
    resource_id: str
    service_name: str
    anomaly_type: AnomalyType
    severity: Severity
    score: float = Field(ge=0, le=1)  # Higher = more anomalous
    description: str
    impact: AnomalyImpact
    context: AnomalyContext
    recommendations: list[str]
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}


def classify_severity(magnitude: float, expected: float, actual: float) -> Severity:
    """
    Classify anomaly severity.

    `magnitude` is the raw z-score or normalized deviation, not the
    0-1 score stored on the result.
    """
    impact = abs(actual - expected)
    relative_impact = impact / expected if expected > 0 else 1

    if magnitude > 4 or relative_impact > 2:
        return "critical"
    if magnitude > 3 or relative_impact > 1:
        return "high"
    if magnitude > 2 or relative_impact > 0.5:
        return "medium"
    return "low"


def normalize_score(magnitude: float) -> float:
    """Map a raw deviation magnitude onto [0, 1]."""
    return min(magnitude / SCORE_SCALE, 1.0)


def generate_recommendations(actual: float, expected: float) -> list[str]:
    """Recommendation templates for a cost deviation."""
    recommendations = []

    if actual > expected * 1.5:
        recommendations.append("Investigate sudden cost increase")
        recommendations.append("Check for configuration changes or new deployments")
        recommendations.append("Consider implementing cost controls")
    elif actual < expected * 0.5:
        recommendations.append("Verify if service is functioning properly")
        recommendations.append("Check for potential underutilization")

    recommendations.append("Set up monitoring alerts for this resource")
    recommendations.append("Review resource usage patterns")

    return recommendations


def sort_anomalies(anomalies: list[AnomalyResult]) -> list[AnomalyResult]:
    """Order by severity (critical first), then by descending score."""
    return sorted(anomalies, key=lambda a: (-SEVERITY_RANK[a.severity], -a.score))


def _epoch_ms(timestamp: datetime) -> int:
    return int(timestamp.timestamp() * 1000)


class AnomalyDetector:
    """
    Detect cost anomalies in per-resource daily cost series.

    Detection methods, each applied to every resource independently:
    1. Statistical - z-score and IQR outliers against the resource's history
    2. Time-series - deviation from a rolling window of preceding days
    3. Pattern-based - first appearance of a cost-bearing resource

    The same resource and day can be reported once per method that flags it.
    """

    def __init__(self, config: AnomalyDetectionConfig | None = None):
        """
        Initialize the anomaly detector.

        Args:
            config: Anomaly detection configuration. Defaults apply if None.
        """
        self.config = config or AnomalyDetectionConfig()
        self.baseline_calculator = BaselineCalculator()

    def detect_anomalies(
        self,
        points: list[TimeSeriesPoint],
        now: datetime | None = None,
    ) -> list[AnomalyResult]:
        """
        Detect anomalies across all resources.

        Args:
            points: Daily cost observations for any number of resources.
            now: Reference time for new-resource detection. Defaults to the
                current UTC time.

        Returns:
            Anomalies scoring at least the configured threshold, most severe first.
        """
        if len(points) < MIN_TOTAL_POINTS:
            logger.warning(
                "Insufficient data for anomaly detection: %d points (need %d)",
                len(points),
                MIN_TOTAL_POINTS,
            )
            return []

        now = now or datetime.now(UTC)
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)

        anomalies: list[AnomalyResult] = []

        for resource_id, resource_points in self._group_by_resource(points).items():
            try:
                anomalies.extend(self._analyze_resource(resource_id, resource_points, now))
            except (ArithmeticError, ValueError) as e:
                logger.warning("Skipping anomaly analysis for %s: %s", resource_id, e)

        reported = [a for a in anomalies if a.score >= self.config.threshold]
        logger.info(
            "Anomaly detection found %d anomalies (%d above threshold %.2f)",
            len(anomalies),
            len(reported),
            self.config.threshold,
        )
        return sort_anomalies(reported)

    def _analyze_resource(
        self,
        resource_id: str,
        points: list[TimeSeriesPoint],
        now: datetime,
    ) -> list[AnomalyResult]:
        """Run every configured method against one resource."""
        anomalies: list[AnomalyResult] = []

        if "statistical" in self.config.methods:
            anomalies.extend(self._detect_statistical(resource_id, points))

        if "time-series" in self.config.methods:
            anomalies.extend(self._detect_time_series(resource_id, points))

        if "pattern-based" in self.config.methods:
            anomalies.extend(self._detect_new_resource(resource_id, points, now))

        return anomalies

    def _group_by_resource(
        self, points: list[TimeSeriesPoint]
    ) -> dict[str, list[TimeSeriesPoint]]:
        """Group points by resource id, preserving input order."""
        groups: dict[str, list[TimeSeriesPoint]] = {}
        dropped = 0

        for point in points:
            if not math.isfinite(point.value):
                dropped += 1
                continue
            groups.setdefault(point.resource_id, []).append(point)

        if dropped:
            logger.warning("Dropped %d points with non-finite cost values", dropped)

        return groups

    def _detect_statistical(
        self,
        resource_id: str,
        points: list[TimeSeriesPoint],
    ) -> list[AnomalyResult]:
        """Z-score and IQR outlier detection over the whole series."""
        values = [p.value for p in points]
        if len(values) < STATISTICAL_MIN_POINTS:
            return []

        baseline = self.baseline_calculator.calculate(values)
        z_threshold = 2.5 - self.config.sensitivity * 1.5
        iqr_multiplier = 2.0 - self.config.sensitivity * 0.5
        lower_bound, upper_bound = baseline.iqr_bounds(iqr_multiplier)

        anomalies = []
        for point in points:
            value = point.value
            z_score = baseline.z_score(value)
            is_z_score_anomaly = z_score > z_threshold
            is_iqr_anomaly = value < lower_bound or value > upper_bound

            if not (is_z_score_anomaly or is_iqr_anomaly):
                continue

            severity = classify_severity(z_score, baseline.mean, value)
            percent = percentage_change(value, baseline.mean)
            is_spike = value > baseline.mean

            anomalies.append(
                AnomalyResult(
                    id=f"stat_{resource_id}_{_epoch_ms(point.timestamp)}",
                    timestamp=point.timestamp,
                    resource_id=resource_id,
                    service_name=point.service_name,
                    anomaly_type="cost-spike" if is_spike else "cost-drop",
                    severity=severity,
                    score=normalize_score(z_score),
                    description=(
                        f"{severity.upper()} statistical anomaly detected. Cost is "
                        f"{abs(percent):.1f}% {'above' if is_spike else 'below'} normal."
                    ),
                    impact=AnomalyImpact(
                        cost_impact=abs(value - baseline.mean),
                        percentage_increase=percent,
                    ),
                    context=AnomalyContext(
                        expected_cost=baseline.mean,
                        actual_cost=value,
                        historical_average=baseline.mean,
                        method="statistical",
                    ),
                    recommendations=generate_recommendations(value, baseline.mean),
                    metadata={
                        "z_score": z_score,
                        "is_z_score_anomaly": is_z_score_anomaly,
                        "is_iqr_anomaly": is_iqr_anomaly,
                        **point.metadata,
                    },
                )
            )

        logger.debug("Statistical method flagged %d points for %s", len(anomalies), resource_id)
        return anomalies

    def _detect_time_series(
        self,
        resource_id: str,
        points: list[TimeSeriesPoint],
    ) -> list[AnomalyResult]:
        """Deviation from the rolling window of preceding observations."""
        if len(points) < TIME_SERIES_MIN_POINTS:
            return []

        ordered = sorted(points, key=lambda p: p.timestamp)
        values = [p.value for p in ordered]
        window_size = min(MAX_WINDOW_SIZE, len(ordered) // 3)
        threshold = 2.5 - self.config.sensitivity * 1.0

        anomalies = []
        for window in self.baseline_calculator.rolling(values, window_size):
            current = ordered[window.index]
            deviation = abs(current.value - window.mean)

            # A flat window has no spread to measure against; nothing is flagged
            if window.std == 0:
                continue

            normalized_deviation = deviation / window.std
            if normalized_deviation <= threshold:
                continue

            severity = classify_severity(normalized_deviation, window.mean, current.value)
            percent = percentage_change(current.value, window.mean)
            is_spike = current.value > window.mean

            anomalies.append(
                AnomalyResult(
                    id=f"ts_{resource_id}_{_epoch_ms(current.timestamp)}",
                    timestamp=current.timestamp,
                    resource_id=resource_id,
                    service_name=current.service_name,
                    anomaly_type="cost-spike" if is_spike else "cost-drop",
                    severity=severity,
                    score=normalize_score(normalized_deviation),
                    description=(
                        f"Time series anomaly: {abs(percent):.1f}% "
                        f"{'increase' if is_spike else 'decrease'} from recent trend."
                    ),
                    impact=AnomalyImpact(
                        cost_impact=deviation,
                        percentage_increase=percent,
                    ),
                    context=AnomalyContext(
                        expected_cost=window.mean,
                        actual_cost=current.value,
                        historical_average=window.mean,
                        method="time-series",
                    ),
                    recommendations=generate_recommendations(current.value, window.mean),
                    metadata={
                        "normalized_deviation": normalized_deviation,
                        "window_size": window_size,
                        **current.metadata,
                    },
                )
            )

        logger.debug("Time-series method flagged %d points for %s", len(anomalies), resource_id)
        return anomalies

    def _detect_new_resource(
        self,
        resource_id: str,
        points: list[TimeSeriesPoint],
        now: datetime,
    ) -> list[AnomalyResult]:
        """Flag a resource whose first cost-bearing day is very recent."""
        if not points:
            return []

        first = min(points, key=lambda p: p.timestamp)
        days_since_first = (now - first.timestamp).total_seconds() / 86400

        if days_since_first > NEW_RESOURCE_MAX_AGE_DAYS or first.value <= 0:
            return []

        return [
            AnomalyResult(
                id=f"pattern_new_{resource_id}",
                timestamp=first.timestamp,
                resource_id=resource_id,
                service_name=first.service_name,
                anomaly_type="new-resource",
                severity="low",
                score=NEW_RESOURCE_SCORE,
                description="New resource detected with immediate cost impact.",
                impact=AnomalyImpact(cost_impact=first.value, percentage_increase=100),
                context=AnomalyContext(
                    expected_cost=0,
                    actual_cost=first.value,
                    historical_average=0,
                    method="pattern-based",
                ),
                recommendations=[
                    "Review if this new resource is expected",
                    "Check resource configuration and sizing",
                    "Set up monitoring and alerts for this resource",
                ],
                metadata={
                    "first_seen": first.timestamp.isoformat(),
                    "days_since_first": max(int(days_since_first), 0),
                    **first.metadata,
                },
            )
        ]

    def get_anomaly_summary(self, anomalies: list[AnomalyResult]) -> str:
        """Generate a summary of detected anomalies."""
        if not anomalies:
            return "No anomalies detected."

        parts = [f"Detected {len(anomalies)} anomalies:"]
        for severity in ("critical", "high", "medium", "low"):
            count = sum(1 for a in anomalies if a.severity == severity)
            if count:
                parts.append(f"  - {count} {severity}")

        total_impact = sum(a.impact.cost_impact for a in anomalies)
        parts.append(f"Total impact: ${total_impact:,.2f}")

        return "\n".join(parts)
