"""Cost analysis engines for FinOps Cost Intelligence."""

from finops_cost_intelligence.analysis.ai_spend import AISpendClassifier, AISpendItem, AISpendSummary
from finops_cost_intelligence.analysis.anomaly_detector import AnomalyDetector, AnomalyResult
from finops_cost_intelligence.analysis.baseline import Baseline, BaselineCalculator
from finops_cost_intelligence.analysis.savings_simulator import (
    SavingsSimulator,
    SimulationScenario,
    SimulationSummary,
)
from finops_cost_intelligence.analysis.waste_hunter import WasteHunter, WasteOpportunity, WasteSummary
from finops_cost_intelligence.analysis.waste_rules import EXTENDED_WASTE_RULES, WASTE_RULES

__all__ = [
    "AnomalyDetector",
    "AnomalyResult",
    "BaselineCalculator",
    "Baseline",
    "WasteHunter",
    "WasteOpportunity",
    "WasteSummary",
    "WASTE_RULES",
    "EXTENDED_WASTE_RULES",
    "SavingsSimulator",
    "SimulationScenario",
    "SimulationSummary",
    "AISpendClassifier",
    "AISpendItem",
    "AISpendSummary",
]
