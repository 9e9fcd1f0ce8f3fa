"""Pydantic configuration schema for FinOps Cost Intelligence."""

from typing import Literal

from pydantic import BaseModel, Field

AnomalyMethod = Literal["statistical", "time-series", "pattern-based"]

WasteCategory = Literal[
    "idle",
    "underutilized",
    "orphaned",
    "oversized",
    "zombie",
    "untagged",
    "stale-snapshot",
    "unused-storage",
    "detached-disk",
    "idle-database",
    "unused-ip",
    "old-generation",
]

ALL_WASTE_CATEGORIES: list[WasteCategory] = [
    "idle",
    "underutilized",
    "orphaned",
    "oversized",
    "zombie",
    "untagged",
    "stale-snapshot",
    "unused-storage",
    "detached-disk",
    "idle-database",
    "unused-ip",
    "old-generation",
]


class AnomalyDetectionConfig(BaseModel):
    """Anomaly detection configuration."""

    # 0.1 = very sensitive, 0.9 = very conservative
    sensitivity: float = Field(default=0.3, gt=0, lt=1)
    threshold: float = Field(default=0.7, ge=0, le=1)  # Minimum score to report
    window_days: int = Field(default=30, ge=1)  # Lookback the caller should query
    methods: list[AnomalyMethod] = Field(
        default_factory=lambda: ["statistical", "time-series", "pattern-based"]
    )
    seasonal_adjustment: bool = True

    model_config = {"frozen": True}


class WasteAnalysisConfig(BaseModel):
    """Waste hunter configuration."""

    idle_threshold_days: int = Field(default=7, ge=1)
    utilization_threshold: float = Field(default=10.0, ge=0, le=100)  # Percentage
    min_cost_threshold: float = Field(default=1.0, ge=0)  # Filters noise
    categories: list[WasteCategory] = Field(
        default_factory=lambda: list(ALL_WASTE_CATEGORIES)
    )
    analysis_window_days: int = Field(default=30, ge=1)

    model_config = {"frozen": True}


class Config(BaseModel):
    """Root configuration for FinOps Cost Intelligence."""

    project_name: str = "finops-cost-intelligence"
    environment: Literal["dev", "staging", "prod"] = "dev"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    anomaly_detection: AnomalyDetectionConfig = Field(default_factory=AnomalyDetectionConfig)
    waste_analysis: WasteAnalysisConfig = Field(default_factory=WasteAnalysisConfig)
