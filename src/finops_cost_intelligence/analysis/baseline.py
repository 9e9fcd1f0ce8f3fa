"""Baseline statistics for anomaly detection."""

from dataclasses import dataclass

from finops_cost_intelligence.analysis.stats import mean, quantile, std_dev


@dataclass(frozen=True)
class Baseline:
    """Distribution summary for a series of daily costs."""

    mean: float
    std: float
    q1: float
    q3: float
    sample_count: int

    @property
    def iqr(self) -> float:
        """Interquartile range."""
        return self.q3 - self.q1

    def iqr_bounds(self, multiplier: float) -> tuple[float, float]:
        """Lower and upper outlier fences for the given IQR multiplier."""
        return (self.q1 - multiplier * self.iqr, self.q3 + multiplier * self.iqr)

    def z_score(self, value: float) -> float:
        """Absolute z-score of value, 0 when the series has no variance."""
        if self.std == 0:
            return 0.0
        return abs(value - self.mean) / self.std


@dataclass(frozen=True)
class WindowBaseline:
    """Mean and spread of the window preceding one observation."""

    index: int  # Position of the observation the window precedes
    mean: float
    std: float


class BaselineCalculator:
    """
    Calculate baselines for anomaly detection.

    Global baselines summarize a whole series; rolling baselines describe
    the fixed-size window immediately before each observation.
    """

    def calculate(self, values: list[float]) -> Baseline:
        """
        Calculate a global baseline.

        Args:
            values: Daily costs for one resource.

        Returns:
            Baseline with mean, population std-dev and quartiles.
        """
        if not values:
            return Baseline(mean=0, std=0, q1=0, q3=0, sample_count=0)

        mu = mean(values)
        return Baseline(
            mean=mu,
            std=std_dev(values, mu),
            q1=quantile(values, 0.25),
            q3=quantile(values, 0.75),
            sample_count=len(values),
        )

    def rolling(self, values: list[float], window_size: int) -> list[WindowBaseline]:
        """
        Calculate rolling baselines.

        Args:
            values: Daily costs ordered oldest to newest.
            window_size: Number of preceding observations per window.

        Returns:
            One WindowBaseline for every observation after the first window.
        """
        if window_size < 1:
            return []

        baselines = []
        for i in range(window_size, len(values)):
            window = values[i - window_size : i]
            mu = mean(window)
            baselines.append(WindowBaseline(index=i, mean=mu, std=std_dev(window, mu)))
        return baselines
