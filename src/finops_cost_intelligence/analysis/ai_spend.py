"""AI/ML spend classification and roll-up."""

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Literal

from pydantic import BaseModel

from finops_cost_intelligence.analysis.stats import period_trend
from finops_cost_intelligence.models import DailyCost, DateRange, ResourceAnalysis

logger = logging.getLogger(__name__)

AIServiceCategory = Literal[
    "llm",
    "ml-training",
    "ml-inference",
    "gpu-compute",
    "cognitive-services",
    "vector-db",
    "data-processing",
    "model-hosting",
    "ai-search",
    "other-ai",
]

Provider = Literal["azure", "aws", "gcp", "other"]

TOP_MODELS_LIMIT = 10
TOP_RESOURCES_LIMIT = 20

CATEGORY_LABELS: dict[str, str] = {
    "llm": "Large Language Models",
    "ml-training": "ML Training",
    "ml-inference": "ML Inference",
    "gpu-compute": "GPU Compute",
    "cognitive-services": "Cognitive Services",
    "vector-db": "Vector Databases",
    "data-processing": "Data Processing",
    "model-hosting": "Model Hosting",
    "ai-search": "AI Search",
    "other-ai": "Other AI",
}


@dataclass(frozen=True)
class AIServicePattern:
    """Substrings that identify one AI spend category."""

    category: AIServiceCategory
    description: str
    patterns: tuple[str, ...]

    def matches(self, text: str) -> bool:
        # Patterns must start on a word boundary so "ada" does not match "canada"
        return any(
            re.search(rf"(?<![a-z0-9]){re.escape(p)}", text) for p in self.patterns
        )


AI_SERVICE_PATTERNS: tuple[AIServicePattern, ...] = (
    AIServicePattern(
        category="llm",
        description="Large Language Models",
        patterns=(
            "openai", "gpt-4", "gpt-3", "gpt-35", "chatgpt", "davinci", "curie", "babbage",
            "ada", "azure openai", "anthropic", "claude", "bedrock", "titan", "cohere",
            "ai21", "palm", "gemini", "llama", "mistral",
        ),
    ),
    AIServicePattern(
        category="ml-training",
        description="ML Model Training",
        patterns=(
            "sagemaker training", "vertex training", "azure machine learning compute",
            "training job", "ml training", "hyperparameter tuning", "automl",
            "databricks training", "model training",
        ),
    ),
    AIServicePattern(
        category="ml-inference",
        description="ML Inference",
        patterns=(
            "sagemaker endpoint", "sagemaker inference", "vertex endpoint",
            "vertex prediction", "azure ml endpoint", "online endpoint", "batch endpoint",
            "inference endpoint", "real-time inference", "batch transform",
        ),
    ),
    AIServicePattern(
        category="gpu-compute",
        description="GPU Compute",
        patterns=(
            "gpu", "nvidia", "a100", "a10g", "v100", "t4", "p100", "k80",
            "nc series", "nd series", "nv series", "ncas", "nda",
            "p4d", "p3", "g4dn", "g5", "inf1", "inf2", "trn1",
            "n1-highmem-gpu", "a2-highgpu", "a2-megagpu",
        ),
    ),
    AIServicePattern(
        category="cognitive-services",
        description="AI/Cognitive Services",
        patterns=(
            "cognitive services", "computer vision", "custom vision", "face api",
            "form recognizer", "document intelligence", "speech service", "text analytics",
            "language understanding", "translator", "content moderator", "personalizer",
            "rekognition", "textract", "comprehend", "polly", "transcribe", "translate",
            "vision api", "natural language", "speech-to-text", "text-to-speech",
        ),
    ),
    AIServicePattern(
        category="vector-db",
        description="Vector Databases",
        patterns=(
            "vector", "embedding", "pinecone", "weaviate", "qdrant", "milvus",
            "azure ai search", "cognitive search", "opensearch", "elasticsearch vector",
            "pgvector", "redis vector",
        ),
    ),
    AIServicePattern(
        category="data-processing",
        description="ML Data Processing",
        patterns=(
            "databricks", "synapse", "dataflow", "data factory ml",
            "glue ml", "emr spark ml", "dataproc ml",
        ),
    ),
    AIServicePattern(
        category="model-hosting",
        description="Model Hosting",
        patterns=(
            "model registry", "mlflow", "model deployment", "container instance ml",
            "app service ml", "lambda ml", "cloud functions ml", "cloud run ml",
        ),
    ),
    AIServicePattern(
        category="ai-search",
        description="AI-Powered Search",
        patterns=(
            "ai search", "semantic search", "cognitive search", "knowledge mining",
            "rag", "retrieval augmented", "kendra",
        ),
    ),
)

# Checked in order; more specific names first
MODEL_NAMES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("gpt-4-turbo",), "GPT-4 Turbo"),
    (("gpt-4o",), "GPT-4o"),
    (("gpt-4",), "GPT-4"),
    (("gpt-35", "gpt-3.5"), "GPT-3.5 Turbo"),
    (("gpt-3",), "GPT-3"),
    (("claude-3-opus",), "Claude 3 Opus"),
    (("claude-3-sonnet",), "Claude 3 Sonnet"),
    (("claude-3-haiku",), "Claude 3 Haiku"),
    (("claude-2",), "Claude 2"),
    (("claude",), "Claude"),
    (("gemini-pro",), "Gemini Pro"),
    (("gemini",), "Gemini"),
    (("palm",), "PaLM"),
    (("llama",), "LLaMA"),
    (("mistral",), "Mistral"),
    (("cohere",), "Cohere"),
)


class AISpendItem(BaseModel):
    """Spend for one AI-related resource."""

    id: str
    resource_id: str
    resource_name: str
    resource_type: str
    service_name: str
    service_category: AIServiceCategory
    region: str

    total_cost: float
    daily_avg_cost: float
    cost_trend: float  # Percent change, last 7 days vs previous 7
    currency: str

    usage_quantity: float
    usage_unit: str
    daily_costs: list[DailyCost]

    model: str | None = None
    provider: Provider


class CategorySpend(BaseModel):
    cost: float = 0.0
    count: int = 0
    trend: float = 0.0


class ProviderSpend(BaseModel):
    cost: float = 0.0
    count: int = 0


class ModelSpend(BaseModel):
    name: str
    cost: float


class RegionSpend(BaseModel):
    region: str
    cost: float


class DailyAISpend(BaseModel):
    date: str
    cost: float = 0.0
    llm: float = 0.0
    training: float = 0.0
    inference: float = 0.0


class AISpendSummary(BaseModel):
    """Roll-up of AI spend items."""

    total_spend: float
    spend_trend: float
    by_category: dict[str, CategorySpend]
    by_provider: dict[str, ProviderSpend]
    by_model: list[ModelSpend]
    by_region: list[RegionSpend]
    top_resources: list[AISpendItem]
    daily_trend: list[DailyAISpend]
    projected_monthly: float


class AIEfficiencyMetrics(BaseModel):
    """Heuristic efficiency figures for LLM spend."""

    cost_per_token: float
    tokens_per_dollar: float
    avg_request_cost: float
    peak_hour_cost: float
    off_peak_savings_potential: float
    batching_potential: float
    model_downgrade_savings: float


def _daily_totals(daily_costs: list[DailyCost]) -> list[float]:
    """Sum costs per date, ordered oldest to newest."""
    totals: dict[date, float] = {}
    for day in daily_costs:
        totals[day.date] = totals.get(day.date, 0.0) + day.cost
    return [totals[d] for d in sorted(totals)]


def category_label(category: str) -> str:
    """Display label for an AI spend category."""
    return CATEGORY_LABELS.get(category, category)


def detect_provider(service_name: str) -> Provider:
    """Cloud provider inferred from a service name."""
    lower = service_name.lower()
    if "azure" in lower or "microsoft" in lower:
        return "azure"
    if "aws" in lower or "amazon" in lower or "sagemaker" in lower:
        return "aws"
    if "google" in lower or "gcp" in lower or "vertex" in lower:
        return "gcp"
    return "other"


def extract_model_name(resource_name: str, service_name: str) -> str | None:
    """Well-known model family named in the resource or service, if any."""
    combined = f"{resource_name} {service_name}".lower()
    for needles, label in MODEL_NAMES:
        if any(n in combined for n in needles):
            return label
    return None


class AISpendClassifier:
    """Identify AI/ML resources and break down their spend."""

    def __init__(self, patterns: tuple[AIServicePattern, ...] = AI_SERVICE_PATTERNS):
        self.patterns = patterns

    def detect_category(
        self, service_name: str, resource_type: str, resource_name: str
    ) -> AIServiceCategory | None:
        """First category whose patterns match the combined names."""
        search_text = f"{service_name} {resource_type} {resource_name}".lower()
        for pattern in self.patterns:
            if pattern.matches(search_text):
                return pattern.category
        return None

    def get_category_info(self, category: str) -> AIServicePattern | None:
        """Pattern record for a category, if any."""
        return next((p for p in self.patterns if p.category == category), None)

    def get_patterns(self) -> list[AIServicePattern]:
        """All pattern records, in match order."""
        return list(self.patterns)

    def analyze_spend(self, resources: list[ResourceAnalysis]) -> list[AISpendItem]:
        """
        Classify resources and keep the AI-related ones.

        Returns:
            AI spend items sorted by total cost, highest first.
        """
        items = []
        for resource in resources:
            category = self.detect_category(
                resource.service_name, resource.resource_type, resource.resource_name
            )
            if category is None:
                continue

            days = len(resource.daily_costs)
            items.append(
                AISpendItem(
                    id=f"ai-{resource.resource_id}",
                    resource_id=resource.resource_id,
                    resource_name=resource.resource_name,
                    resource_type=resource.resource_type,
                    service_name=resource.service_name,
                    service_category=category,
                    region=resource.region,
                    total_cost=resource.total_cost,
                    daily_avg_cost=resource.total_cost / days if days else 0.0,
                    cost_trend=period_trend(_daily_totals(resource.daily_costs)),
                    currency=resource.currency,
                    usage_quantity=resource.usage_quantity,
                    usage_unit=resource.pricing_unit,
                    daily_costs=resource.daily_costs,
                    model=extract_model_name(resource.resource_name, resource.service_name),
                    provider=detect_provider(resource.service_name),
                )
            )

        logger.info("Classified %d of %d resources as AI spend", len(items), len(resources))
        return sorted(items, key=lambda i: i.total_cost, reverse=True)

    def generate_summary(self, items: list[AISpendItem], date_range: DateRange) -> AISpendSummary:
        """Aggregate AI spend by category, provider, model, region and day."""
        total_spend = sum(i.total_cost for i in items)

        by_category = {p.category: CategorySpend() for p in self.patterns}
        by_category.setdefault("other-ai", CategorySpend())
        category_days: dict[str, list[DailyCost]] = {}

        by_provider: dict[str, ProviderSpend] = {}
        by_model: dict[str, float] = {}
        by_region: dict[str, float] = {}
        daily: dict[str, DailyAISpend] = {}

        for item in items:
            stats = by_category.setdefault(item.service_category, CategorySpend())
            stats.cost += item.total_cost
            stats.count += 1
            category_days.setdefault(item.service_category, []).extend(item.daily_costs)

            provider = by_provider.setdefault(item.provider, ProviderSpend())
            provider.cost += item.total_cost
            provider.count += 1

            if item.model:
                by_model[item.model] = by_model.get(item.model, 0.0) + item.total_cost
            by_region[item.region] = by_region.get(item.region, 0.0) + item.total_cost

            for day in item.daily_costs:
                key = day.date.isoformat()
                entry = daily.setdefault(key, DailyAISpend(date=key))
                entry.cost += day.cost
                if item.service_category == "llm":
                    entry.llm += day.cost
                elif item.service_category == "ml-training":
                    entry.training += day.cost
                elif item.service_category == "ml-inference":
                    entry.inference += day.cost

        for category, days in category_days.items():
            by_category[category].trend = period_trend(_daily_totals(days))

        all_days = [d for item in items for d in item.daily_costs]
        days_in_range = max(1, (date_range.end - date_range.start).days)

        return AISpendSummary(
            total_spend=total_spend,
            spend_trend=period_trend(_daily_totals(all_days)),
            by_category=by_category,
            by_provider=by_provider,
            by_model=sorted(
                (ModelSpend(name=n, cost=c) for n, c in by_model.items()),
                key=lambda m: m.cost,
                reverse=True,
            )[:TOP_MODELS_LIMIT],
            by_region=sorted(
                (RegionSpend(region=r, cost=c) for r, c in by_region.items()),
                key=lambda r: r.cost,
                reverse=True,
            ),
            top_resources=items[:TOP_RESOURCES_LIMIT],
            daily_trend=[daily[d] for d in sorted(daily)],
            projected_monthly=total_spend / days_in_range * 30,
        )

    def calculate_efficiency_metrics(self, items: list[AISpendItem]) -> AIEfficiencyMetrics:
        """
        Estimate LLM efficiency figures.

        Usage quantities are assumed to be billed per 1000 tokens. Peak-hour
        and savings potentials are fixed shares of LLM spend.
        """
        llm_items = [i for i in items if i.service_category == "llm"]
        total_cost = sum(i.total_cost for i in llm_items)
        total_units = sum(i.usage_quantity for i in llm_items)
        estimated_tokens = total_units * 1000

        return AIEfficiencyMetrics(
            cost_per_token=total_cost / estimated_tokens if estimated_tokens > 0 else 0,
            tokens_per_dollar=estimated_tokens / total_cost if total_cost > 0 else 0,
            avg_request_cost=total_cost / max(1, total_units) if llm_items else 0,
            peak_hour_cost=total_cost * 0.15,
            off_peak_savings_potential=total_cost * 0.1,
            batching_potential=total_cost * 0.2,
            model_downgrade_savings=total_cost * 0.3,
        )
