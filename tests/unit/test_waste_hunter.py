"""Tests for waste hunter module."""

from datetime import date

import pytest

from finops_cost_intelligence.analysis.waste_hunter import WasteHunter, category_label
from finops_cost_intelligence.analysis.waste_rules import EXTENDED_WASTE_RULES, WASTE_RULES
from finops_cost_intelligence.config.schema import ALL_WASTE_CATEGORIES, WasteAnalysisConfig
from finops_cost_intelligence.models import DateRange

AS_OF = date(2024, 1, 10)


def by_category(opportunities):
    return {o.category: o for o in opportunities}


def extended_hunter(**config):
    """Hunter that also runs the opt-in rules."""
    return WasteHunter(WasteAnalysisConfig(**config), rules=WASTE_RULES + EXTENDED_WASTE_RULES)


class TestWasteRules:
    """Tests for individual rules through the hunter."""

    @pytest.fixture
    def hunter(self):
        """Create a hunter with default config."""
        return WasteHunter()

    def test_idle_vm(self, hunter, idle_vm):
        """Test a week of steady cost with low usage is flagged idle."""
        opportunities = hunter.analyze_resources([idle_vm], as_of=AS_OF)
        idle = by_category(opportunities)["idle"]

        assert idle.id == "idle-vm-idle-test"
        assert idle.potential_savings == pytest.approx(0.7 * idle_vm.total_cost)
        assert idle.savings_percent == pytest.approx(70)
        assert idle.severity == "low"
        assert idle.confidence == 75
        assert idle.detection_method == "Idle Compute Instances"
        assert idle.detected_at == AS_OF
        assert idle.days_since_activity == 3

    def test_idle_requires_cost_every_day(self, hunter, resource_factory):
        """Test a gap in recent daily cost prevents the idle finding."""
        vm = resource_factory(
            "vm-gap",
            [20.0, 20.0, 20.0, 0.0, 20.0, 20.0, 20.0],
            service_name="Virtual Machine",
            usage_quantity=10,
        )
        assert "idle" not in by_category(hunter.analyze_resources([vm], as_of=AS_OF))

    def test_idle_requires_low_usage(self, hunter, resource_factory):
        """Test busy VMs are not idle."""
        vm = resource_factory("vm-busy", [20.0] * 7, service_name="Virtual Machine", usage_quantity=500)
        assert "idle" not in by_category(hunter.analyze_resources([vm], as_of=AS_OF))

    def test_untagged(self, hunter, idle_vm, full_tags):
        """Test untagged findings carry no direct savings."""
        untagged = by_category(hunter.analyze_resources([idle_vm], as_of=AS_OF))["untagged"]
        assert untagged.potential_savings == 0
        assert untagged.confidence == 95

        tagged = idle_vm.model_copy(update={"tags": full_tags})
        assert "untagged" not in by_category(hunter.analyze_resources([tagged], as_of=AS_OF))

    def test_stale_snapshot_and_storage(self, hunter, resource_factory):
        """Test a snapshot on a storage service fires both storage rules."""
        snapshot = resource_factory(
            "snap-1",
            [5.0] * 10,
            service_name="Storage",
            resource_type="Microsoft.Compute/snapshots",
        )
        found = by_category(hunter.analyze_resources([snapshot], as_of=AS_OF))

        assert found["stale-snapshot"].potential_savings == pytest.approx(40)
        assert found["stale-snapshot"].severity == "medium"
        assert found["unused-storage"].potential_savings == pytest.approx(15)

    def test_detached_disk(self, resource_factory):
        """Test a disk with no usage is flagged as detached."""
        disk = resource_factory(
            "disk-1", [2.0] * 30, service_name="Disk", resource_type="Microsoft.Compute/disks"
        )
        found = by_category(extended_hunter().analyze_resources([disk], as_of=AS_OF))

        assert found["detached-disk"].potential_savings == pytest.approx(54)
        assert found["detached-disk"].severity == "medium"

    def test_idle_database(self, hunter, resource_factory, full_tags):
        """Test an expensive database is critical."""
        db = resource_factory("sql-1", [20.0] * 30, service_name="SQL Database", tags=full_tags)
        found = by_category(hunter.analyze_resources([db], as_of=AS_OF))

        assert found["idle-database"].severity == "critical"
        assert found["idle-database"].potential_savings == pytest.approx(300)

    def test_old_generation(self, hunter, resource_factory, full_tags):
        """Test legacy instance families are flagged."""
        vm = resource_factory(
            "i-0abc",
            [15.0] * 30,
            resource_name="batch-m4.xlarge",
            service_name="EC2",
            usage_quantity=720,
            tags=full_tags,
        )
        found = by_category(hunter.analyze_resources([vm], as_of=AS_OF))

        assert set(found) == {"old-generation"}
        assert found["old-generation"].severity == "high"
        assert found["old-generation"].potential_savings == pytest.approx(112.5)

    def test_unused_ip(self, hunter, resource_factory):
        """Test public IPs with charges are flagged."""
        ip = resource_factory(
            "pip-1", [1.0] * 10, service_name="Network", resource_type="publicIPAddresses"
        )
        found = by_category(hunter.analyze_resources([ip], as_of=AS_OF))

        assert found["unused-ip"].potential_savings == pytest.approx(9)
        assert found["unused-ip"].severity == "low"

    def test_underutilized(self, resource_factory, full_tags):
        """Test hour-billed compute used for 5% of available hours."""
        vm = resource_factory(
            "vm-quiet",
            [5.0] * 10,
            service_name="Virtual Machine",
            pricing_unit="1 Hour",
            usage_quantity=12,
            tags=full_tags,
        )
        found = by_category(extended_hunter().analyze_resources([vm], as_of=AS_OF))

        assert set(found) == {"underutilized"}
        assert found["underutilized"].potential_savings == pytest.approx(20)
        assert found["underutilized"].evidence[0].value == pytest.approx(5)

    def test_default_rule_set(self):
        """Test the default table holds exactly the seven core rules, in order."""
        assert [r.category for r in WASTE_RULES] == [
            "idle",
            "untagged",
            "stale-snapshot",
            "unused-storage",
            "idle-database",
            "old-generation",
            "unused-ip",
        ]
        assert [r.category for r in EXTENDED_WASTE_RULES] == ["underutilized", "detached-disk"]
        assert WasteHunter().rules == WASTE_RULES

    def test_opt_in_rules_off_by_default(self, hunter, resource_factory, full_tags):
        """Test the default hunter never reports underutilized or detached-disk."""
        resources = [
            resource_factory(
                "disk-1",
                [2.0] * 30,
                service_name="Disk",
                resource_type="Microsoft.Compute/disks",
                tags=full_tags,
            ),
            resource_factory(
                "vm-quiet",
                [5.0] * 10,
                service_name="Virtual Machine",
                pricing_unit="1 Hour",
                usage_quantity=12,
                tags=full_tags,
            ),
        ]
        assert hunter.analyze_resources(resources, as_of=AS_OF) == []

    def test_rules_run_for_any_service(self, hunter, resource_factory, full_tags):
        """Test rules are not limited to the services their patterns name."""
        bucket = resource_factory(
            "bucket-1", [20.0] * 7, service_name="S3", resource_type="bucket", tags=full_tags
        )
        found = by_category(hunter.analyze_resources([bucket], as_of=AS_OF))

        assert set(found) == {"idle"}
        assert found["idle"].potential_savings == pytest.approx(98)


class TestWasteHunter:
    """Tests for WasteHunter filtering and ordering."""

    @pytest.fixture
    def resources(self, idle_vm, resource_factory):
        """A mixed fleet of resources."""
        return [
            idle_vm,
            resource_factory("snap-1", [5.0] * 10, service_name="Storage", resource_type="snapshots"),
            resource_factory("sql-1", [20.0] * 30, service_name="SQL Database"),
            resource_factory("pip-1", [1.0] * 10, service_name="Network", resource_type="publicIPAddresses"),
            resource_factory("vm-tiny", [0.01] * 30, service_name="Virtual Machine", resource_type="vm"),
        ]

    def test_min_cost_filter(self, resources):
        """Test resources under the cost threshold never appear."""
        opportunities = WasteHunter().analyze_resources(resources, as_of=AS_OF)
        assert all(o.resource_id != "vm-tiny" for o in opportunities)

    def test_min_cost_filter_configurable(self, resources):
        """Test raising the threshold drops cheaper resources."""
        hunter = WasteHunter(WasteAnalysisConfig(min_cost_threshold=100))
        opportunities = hunter.analyze_resources(resources, as_of=AS_OF)

        assert {o.resource_id for o in opportunities} == {"vm-idle-test", "sql-1"}

    def test_category_filter(self, resources):
        """Test only configured categories run."""
        hunter = WasteHunter(WasteAnalysisConfig(categories=["untagged"]))
        opportunities = hunter.analyze_resources(resources, as_of=AS_OF)

        assert opportunities
        assert {o.category for o in opportunities} == {"untagged"}

    def test_sorted_by_savings(self, resources):
        """Test opportunities are ordered by potential savings."""
        savings = [o.potential_savings for o in WasteHunter().analyze_resources(resources, as_of=AS_OF)]
        assert savings == sorted(savings, reverse=True)

    def test_value_ranges(self, resources):
        """Test savings and confidence bounds."""
        for o in WasteHunter().analyze_resources(resources, as_of=AS_OF):
            assert o.potential_savings >= 0
            assert 0 <= o.confidence <= 100

    def test_determinism(self, resources):
        """Test repeated runs produce equal output."""
        hunter = WasteHunter()
        first = [o.model_dump() for o in hunter.analyze_resources(resources, as_of=AS_OF)]
        second = [o.model_dump() for o in hunter.analyze_resources(resources, as_of=AS_OF)]
        assert first == second

    def test_days_since_activity_without_cost(self, resource_factory):
        """Test resources with no dated cost report the whole window."""
        disk = resource_factory("disk-1", [], service_name="Disk", resource_type="disks")
        disk = disk.model_copy(update={"total_cost": 40.0})

        found = by_category(extended_hunter().analyze_resources([disk], as_of=AS_OF))
        assert found["detached-disk"].days_since_activity == 30


class TestWasteSummary:
    """Tests for generate_summary."""

    @pytest.fixture
    def ip_fleet(self, resource_factory):
        """Twenty-five public IPs, each on its own service."""
        return [
            resource_factory(
                f"pip-{i}",
                [1.0 + i / 10] * 10,
                service_name=f"Network {i}",
                resource_type="publicIPAddresses",
            )
            for i in range(25)
        ]

    def test_summary_caps_and_totals(self, ip_fleet):
        """Test totals and the top-N caps."""
        hunter = WasteHunter()
        opportunities = hunter.analyze_resources(ip_fleet, as_of=AS_OF)
        data_range = DateRange(start=date(2024, 1, 1), end=date(2024, 1, 10))

        summary = hunter.generate_summary(opportunities, data_range, as_of=AS_OF)

        assert summary.total_opportunities == 25
        assert summary.total_potential_savings == pytest.approx(
            sum(o.potential_savings for o in opportunities)
        )
        assert len(summary.by_service) == 10
        assert len(summary.top_opportunities) == 20
        assert summary.by_service[0].name == "Network 24"
        assert summary.by_category["unused-ip"].count == 25
        assert summary.by_severity["low"].count == 25
        assert summary.by_severity["critical"].count == 0
        assert summary.analysis_date == AS_OF
        assert summary.data_range == data_range

    def test_summary_lists_every_category(self):
        """Test empty summaries still report every configured category."""
        data_range = DateRange(start=date(2024, 1, 1), end=date(2024, 1, 10))
        summary = WasteHunter().generate_summary([], data_range, as_of=AS_OF)

        assert set(summary.by_category) == set(ALL_WASTE_CATEGORIES)
        assert summary.total_potential_savings == 0

    def test_category_label(self):
        """Test display labels."""
        assert category_label("idle") == "Idle Resources"
        assert category_label("mystery") == "mystery"
