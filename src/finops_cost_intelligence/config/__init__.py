"""Configuration management for FinOps Cost Intelligence."""

from finops_cost_intelligence.config.schema import (
    ALL_WASTE_CATEGORIES,
    AnomalyDetectionConfig,
    AnomalyMethod,
    Config,
    WasteAnalysisConfig,
    WasteCategory,
)
from finops_cost_intelligence.config.loader import ConfigError, get_cached_config, load_config

__all__ = [
    "Config",
    "AnomalyDetectionConfig",
    "AnomalyMethod",
    "WasteAnalysisConfig",
    "WasteCategory",
    "ALL_WASTE_CATEGORIES",
    "ConfigError",
    "load_config",
    "get_cached_config",
]
