"""Input data models shared by the analysis engines."""

import json
import logging
from collections.abc import Iterable, Mapping
from datetime import UTC, date, datetime, time
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"


class TimeSeriesPoint(BaseModel):
    """A single resource-level cost observation."""

    timestamp: datetime
    value: float  # Cost
    resource_id: str
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @field_validator("timestamp", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> Any:
        # Billing exports commonly carry bare YYYY-MM-DD charge dates
        if isinstance(value, str) and len(value) == 10:
            value = date.fromisoformat(value)
        if isinstance(value, date) and not isinstance(value, datetime):
            return datetime.combine(value, time(), tzinfo=UTC)
        return value

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Naive timestamps are billing-day boundaries in UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @field_validator("metadata", mode="before")
    @classmethod
    def _default_metadata(cls, value: Any) -> Any:
        return value or {}

    @property
    def service_name(self) -> str:
        """Service name carried in metadata, or 'Unknown'."""
        name = self.metadata.get("serviceName") or self.metadata.get("service_name")
        return str(name) if name else UNKNOWN


class DailyCost(BaseModel):
    """Cost for a single day."""

    date: date
    cost: float

    model_config = {"frozen": True}


class DateRange(BaseModel):
    """Inclusive date range of the analyzed data."""

    start: date
    end: date


class ResourceAnalysis(BaseModel):
    """
    Per-resource cost and usage summary over the analysis window.

    Callers guarantee total_cost matches the sum of daily_costs; engines
    do not re-validate it.
    """

    resource_id: str
    resource_name: str = UNKNOWN
    resource_type: str = UNKNOWN
    service_name: str = UNKNOWN
    service_category: str = UNKNOWN
    region: str = UNKNOWN
    total_cost: float = 0.0
    daily_costs: list[DailyCost] = Field(default_factory=list)
    avg_daily_cost: float = 0.0
    usage_quantity: float = 0.0
    pricing_unit: str = "units"
    tags: dict[str, str] = Field(default_factory=dict)
    charge_category: str = ""
    currency: str = "USD"

    @field_validator(
        "resource_name",
        "resource_type",
        "service_name",
        "service_category",
        "region",
        mode="before",
    )
    @classmethod
    def _default_unknown(cls, value: Any) -> Any:
        if value is None or value == "":
            return UNKNOWN
        return str(value)

    @field_validator("pricing_unit", mode="before")
    @classmethod
    def _default_pricing_unit(cls, value: Any) -> Any:
        return str(value) if value else "units"

    @field_validator("currency", mode="before")
    @classmethod
    def _default_currency(cls, value: Any) -> Any:
        return str(value) if value else "USD"

    @field_validator("charge_category", mode="before")
    @classmethod
    def _default_charge_category(cls, value: Any) -> Any:
        return str(value) if value else ""

    @field_validator("total_cost", "avg_daily_cost", "usage_quantity", mode="before")
    @classmethod
    def _default_zero(cls, value: Any) -> Any:
        return 0.0 if value is None or value == "" else value

    @field_validator("tags", mode="before")
    @classmethod
    def _parse_tags(cls, value: Any) -> Any:
        return parse_tags(value)

    @property
    def sorted_daily_costs(self) -> list[DailyCost]:
        """Daily costs ordered oldest to newest."""
        return sorted(self.daily_costs, key=lambda d: d.date)


def parse_tags(value: Any) -> dict[str, str]:
    """
    Normalize a tag payload into a string map.

    Accepts a mapping or a JSON object string. Anything else, including
    malformed JSON, yields an empty map.
    """
    if not value:
        return {}
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            logger.debug("Ignoring malformed tag payload: %r", value)
            return {}
    if not isinstance(value, Mapping):
        return {}
    return {str(k): "" if v is None else str(v) for k, v in value.items()}


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def build_resource_analyses(rows: Iterable[Mapping[str, Any]]) -> list[ResourceAnalysis]:
    """
    Group flat per-(resource, day) billing rows into ResourceAnalysis records.

    Rows use FOCUS-style keys (ResourceId, ChargeDate, TotalCost,
    UsageQuantity, ResourceName, ResourceType, ServiceName, ServiceCategory,
    ResourceRegion, PricingUnit, ChargeCategory, Currency, Tags). Descriptive
    fields come from the first row seen for a resource. Output order follows
    first appearance in the input. A resource whose rows fail validation, such
    as an unparseable ChargeDate, is skipped with a warning.
    """
    grouped: dict[str, dict[str, Any]] = {}

    for row in rows:
        resource_id = str(row.get("ResourceId") or "")
        cost = _to_float(row.get("TotalCost"))

        if resource_id not in grouped:
            grouped[resource_id] = {
                "resource_id": resource_id,
                "resource_name": row.get("ResourceName") or resource_id,
                "resource_type": row.get("ResourceType"),
                "service_name": row.get("ServiceName"),
                "service_category": row.get("ServiceCategory"),
                "region": row.get("ResourceRegion"),
                "pricing_unit": row.get("PricingUnit"),
                "charge_category": row.get("ChargeCategory"),
                "currency": row.get("Currency"),
                "tags": row.get("Tags"),
                "total_cost": 0.0,
                "usage_quantity": 0.0,
                "daily_costs": [],
            }

        record = grouped[resource_id]
        record["total_cost"] += cost
        record["usage_quantity"] += _to_float(row.get("UsageQuantity"))
        if charge_date := row.get("ChargeDate"):
            record["daily_costs"].append({"date": charge_date, "cost": cost})

    resources = []
    for resource_id, record in grouped.items():
        days = len(record["daily_costs"])
        record["avg_daily_cost"] = record["total_cost"] / days if days else 0.0
        try:
            resources.append(ResourceAnalysis(**record))
        except ValidationError as e:
            logger.warning("Skipping resource %s: %s", resource_id, e)

    return resources


def build_time_series(rows: Iterable[Mapping[str, Any]]) -> list[TimeSeriesPoint]:
    """
    Convert flat per-(resource, day) cost rows into time-series points.

    Rows without a ChargeDate, or with one that cannot be parsed, are skipped.
    The service name is carried in point metadata for the anomaly engine.
    """
    points = []
    for row in rows:
        charge_date = row.get("ChargeDate")
        if not charge_date:
            continue
        resource_id = str(row.get("ResourceId") or "")
        try:
            point = TimeSeriesPoint(
                timestamp=charge_date,
                value=_to_float(row.get("TotalCost")),
                resource_id=resource_id,
                metadata={"serviceName": row.get("ServiceName") or UNKNOWN},
            )
        except ValidationError as e:
            logger.warning("Skipping row for resource %s: %s", resource_id, e)
            continue
        points.append(point)
    return points
