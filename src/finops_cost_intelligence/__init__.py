"""
FinOps Cost Intelligence - analysis engines for cloud billing data.

Pure, synchronous engines that turn resource-level daily cost series into
scored findings:
- Anomaly detection (statistical, rolling-window and first-appearance)
- Waste hunting (rule-based waste opportunities)
- Savings simulation (optimization scenarios and recommendations)
- AI spend classification
"""

__version__ = "0.1.0"
