"""Pytest configuration and fixtures."""

from datetime import UTC, date, datetime, timedelta

import pytest

from finops_cost_intelligence.models import DailyCost, ResourceAnalysis, TimeSeriesPoint

START_DATE = date(2024, 1, 1)


def daily_points(
    resource_id: str,
    values: list[float],
    start: date = START_DATE,
    service_name: str = "Virtual Machines",
) -> list[TimeSeriesPoint]:
    """One point per day starting at `start`."""
    return [
        TimeSeriesPoint(
            timestamp=start + timedelta(days=i),
            value=value,
            resource_id=resource_id,
            metadata={"serviceName": service_name},
        )
        for i, value in enumerate(values)
    ]


def make_resource(
    resource_id: str,
    daily: list[float] | None = None,
    start: date = START_DATE,
    **kwargs,
) -> ResourceAnalysis:
    """ResourceAnalysis whose total matches its daily costs."""
    daily = daily if daily is not None else [10.0] * 30
    daily_costs = [
        DailyCost(date=start + timedelta(days=i), cost=cost) for i, cost in enumerate(daily)
    ]
    total = sum(daily)
    return ResourceAnalysis(
        resource_id=resource_id,
        resource_name=kwargs.pop("resource_name", resource_id),
        total_cost=total,
        daily_costs=daily_costs,
        avg_daily_cost=total / len(daily) if daily else 0.0,
        **kwargs,
    )


@pytest.fixture
def now():
    """Reference time well after every sample series."""
    return datetime(2024, 3, 1, tzinfo=UTC)


@pytest.fixture
def flat_series():
    """Fourteen days of $10/day for one resource."""
    return daily_points("vm-flat", [10.0] * 14)


@pytest.fixture
def spike_series():
    """Thirteen days of $10/day, then a $100 day."""
    return daily_points("vm-spike", [10.0] * 13 + [100.0])


@pytest.fixture
def idle_vm():
    """VM billed $20/day for a week with almost no usage."""
    return make_resource(
        "vm-idle-test",
        [20.0] * 7,
        service_name="Virtual Machine",
        service_category="Compute",
        resource_type="Microsoft.Compute/virtualMachines",
        region="eastus",
        usage_quantity=50,
        pricing_unit="units",
    )


@pytest.fixture
def full_tags():
    """A tag set covering every cost allocation tag."""
    return {
        "CostCenter": "cc-100",
        "Project": "atlas",
        "Environment": "prod",
        "Owner": "platform",
        "Team": "infra",
        "Application": "api",
    }


@pytest.fixture
def storage_resources():
    """Two storage accounts totalling $1000."""
    return [
        make_resource("st-logs", [20.0] * 30, service_name="Storage", service_category="Storage"),
        make_resource("st-media", [400.0 / 30] * 30, service_name="Storage", service_category="Storage"),
    ]


@pytest.fixture
def compute_resources():
    """Two virtual machines totalling $1000."""
    return [
        make_resource("vm-a", [20.0] * 30, service_name="Virtual Machine", service_category="Compute"),
        make_resource(
            "vm-b", [400.0 / 30] * 30, service_name="Virtual Machine", service_category="Compute"
        ),
    ]


@pytest.fixture
def sample_config_dict():
    """Sample configuration dictionary."""
    return {
        "project_name": "test-finops",
        "environment": "dev",
        "log_level": "DEBUG",
        "anomaly_detection": {
            "sensitivity": 0.5,
            "threshold": 0.6,
            "window_days": 14,
            "methods": ["statistical", "time-series"],
            "seasonal_adjustment": False,
        },
        "waste_analysis": {
            "idle_threshold_days": 5,
            "utilization_threshold": 15,
            "min_cost_threshold": 2.5,
            "categories": ["idle", "untagged"],
            "analysis_window_days": 14,
        },
    }


@pytest.fixture
def make_points():
    """Factory for daily time-series points."""
    return daily_points


@pytest.fixture
def resource_factory():
    """Factory for ResourceAnalysis records."""
    return make_resource
