"""Tests for configuration module."""

import pytest
import yaml

from finops_cost_intelligence.config.loader import (
    ConfigError,
    _deep_merge,
    get_cached_config,
    load_config,
)
from finops_cost_intelligence.config.schema import (
    ALL_WASTE_CATEGORIES,
    AnomalyDetectionConfig,
    Config,
    WasteAnalysisConfig,
)

OVERRIDE_VARS = (
    "CONFIG_DIR",
    "CONFIG_ENV",
    "LOG_LEVEL",
    "ANOMALY_SENSITIVITY",
    "ANOMALY_THRESHOLD",
    "WASTE_MIN_COST_THRESHOLD",
    "WASTE_ANALYSIS_WINDOW_DAYS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Isolate tests from configuration variables in the caller's environment."""
    for var in OVERRIDE_VARS:
        monkeypatch.delenv(var, raising=False)


def write_yaml(path, data):
    path.write_text(yaml.safe_dump(data))


class TestConfig:
    """Tests for Config schema."""

    def test_default_config(self):
        """Test that default config is valid."""
        config = Config()
        assert config.project_name == "finops-cost-intelligence"
        assert config.environment == "dev"
        assert config.log_level == "INFO"

    def test_config_from_dict(self, sample_config_dict):
        """Test creating config from dictionary."""
        config = Config(**sample_config_dict)
        assert config.project_name == "test-finops"
        assert config.anomaly_detection.sensitivity == 0.5
        assert config.anomaly_detection.methods == ["statistical", "time-series"]
        assert config.waste_analysis.categories == ["idle", "untagged"]

    def test_anomaly_detection_defaults(self):
        """Test anomaly detection default values."""
        config = AnomalyDetectionConfig()
        assert config.sensitivity == 0.3
        assert config.threshold == 0.7
        assert config.window_days == 30
        assert config.methods == ["statistical", "time-series", "pattern-based"]
        assert config.seasonal_adjustment is True

    def test_waste_analysis_defaults(self):
        """Test waste analysis default values."""
        config = WasteAnalysisConfig()
        assert config.idle_threshold_days == 7
        assert config.utilization_threshold == 10
        assert config.min_cost_threshold == 1.0
        assert config.categories == ALL_WASTE_CATEGORIES
        assert config.analysis_window_days == 30


class TestConfigValidation:
    """Tests for config validation."""

    @pytest.mark.parametrize("sensitivity", [0, 1, -0.2, 1.5])
    def test_invalid_sensitivity(self, sensitivity):
        """Test that sensitivity must lie strictly inside (0, 1)."""
        with pytest.raises(ValueError):
            AnomalyDetectionConfig(sensitivity=sensitivity)

    def test_invalid_threshold(self):
        """Test that threshold above 1 raises error."""
        with pytest.raises(ValueError):
            AnomalyDetectionConfig(threshold=1.5)

    def test_unknown_method(self):
        """Test that unsupported detection methods are rejected."""
        with pytest.raises(ValueError):
            AnomalyDetectionConfig(methods=["statistical", "neural-net"])

    def test_unknown_waste_category(self):
        """Test that unknown waste categories are rejected."""
        with pytest.raises(ValueError):
            WasteAnalysisConfig(categories=["idle", "haunted"])

    def test_config_is_immutable(self):
        """Test engine configs cannot change after construction."""
        config = AnomalyDetectionConfig()
        with pytest.raises(ValueError):
            config.threshold = 0.1


class TestLoadConfig:
    """Tests for load_config."""

    def test_missing_directory_uses_defaults(self, tmp_path):
        """Test loading from a directory with no files."""
        config = load_config(tmp_path, environment="dev")
        assert config == Config()

    def test_base_file(self, tmp_path, sample_config_dict):
        """Test values from config.yaml are applied."""
        write_yaml(tmp_path / "config.yaml", sample_config_dict)

        config = load_config(tmp_path, environment="dev")
        assert config.project_name == "test-finops"
        assert config.waste_analysis.min_cost_threshold == 2.5

    def test_environment_overlay(self, tmp_path, sample_config_dict):
        """Test config.<env>.yaml is deep-merged over the base file."""
        write_yaml(tmp_path / "config.yaml", sample_config_dict)
        write_yaml(tmp_path / "config.prod.yaml", {"anomaly_detection": {"threshold": 0.9}})

        config = load_config(tmp_path, environment="prod")
        assert config.environment == "prod"
        assert config.anomaly_detection.threshold == 0.9
        assert config.anomaly_detection.sensitivity == 0.5

    def test_env_var_overrides(self, tmp_path, sample_config_dict, monkeypatch):
        """Test environment variables win over files."""
        write_yaml(tmp_path / "config.yaml", sample_config_dict)
        monkeypatch.setenv("LOG_LEVEL", "warning")
        monkeypatch.setenv("ANOMALY_THRESHOLD", "0.8")
        monkeypatch.setenv("WASTE_ANALYSIS_WINDOW_DAYS", "60")

        config = load_config(tmp_path, environment="dev")
        assert config.log_level == "WARNING"
        assert config.anomaly_detection.threshold == 0.8
        assert config.waste_analysis.analysis_window_days == 60

    def test_config_dir_env_var(self, tmp_path, sample_config_dict, monkeypatch):
        """Test CONFIG_DIR locates the config directory."""
        write_yaml(tmp_path / "config.yaml", sample_config_dict)
        monkeypatch.setenv("CONFIG_DIR", str(tmp_path))

        assert load_config(environment="dev").project_name == "test-finops"

    def test_empty_file(self, tmp_path):
        """Test an empty YAML file is treated as no overrides."""
        (tmp_path / "config.yaml").write_text("")
        assert load_config(tmp_path, environment="dev") == Config()

    def test_non_mapping_file(self, tmp_path):
        """Test a YAML list is rejected."""
        (tmp_path / "config.yaml").write_text("- just\n- a list\n")
        with pytest.raises(ConfigError):
            load_config(tmp_path, environment="dev")

    def test_deep_merge(self):
        """Test nested dictionaries merge key by key."""
        merged = _deep_merge({"a": {"x": 1, "y": 2}, "b": 1}, {"a": {"y": 3}, "c": 4})
        assert merged == {"a": {"x": 1, "y": 3}, "b": 1, "c": 4}

    def test_cached_config(self, tmp_path, sample_config_dict, monkeypatch):
        """Test the cached loader returns one shared instance."""
        write_yaml(tmp_path / "config.yaml", sample_config_dict)
        monkeypatch.setenv("CONFIG_DIR", str(tmp_path))
        get_cached_config.cache_clear()

        try:
            assert get_cached_config() is get_cached_config()
            assert get_cached_config().project_name == "test-finops"
        finally:
            get_cached_config.cache_clear()
