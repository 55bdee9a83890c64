"""
Threshold Classifier - Decides whether a KPI is underperforming.

Polarity comes from the metric's explicit polarity field when set, otherwise
from a keyword heuristic on the metric name. is_higher_better() is the only
place that heuristic lives.

Deviation convention: (current - benchmark) / benchmark * 100, sign-normalized
so that a negative deviation always means the unfavourable direction.
"""

from dataclasses import dataclass
from typing import Literal, Optional

from config.engine_config import CLASSIFIER_CONFIG
from schemas.performance import CampaignKPIMetric

Polarity = Literal["higher", "lower"]


@dataclass(frozen=True)
class Classification:
    """Classification of a single metric against its benchmark."""
    metric: CampaignKPIMetric
    underperforming: bool
    deviation_pct: float
    polarity: Polarity


def is_higher_better(metric_name: str, polarity: Optional[Polarity] = None) -> bool:
    """
    Whether larger values of this metric are better.

    Args:
        metric_name: KPI name, e.g. "ROAS", "Conversion Rate", "CPM"
        polarity: Explicit override; wins over the name heuristic

    Returns:
        True for higher-is-better metrics, False for cost-type metrics
    """
    if polarity is not None:
        return polarity == "higher"
    name = metric_name.lower()
    return any(keyword in name for keyword in CLASSIFIER_CONFIG["higher_is_better_keywords"])


def deviation_pct(value: float, benchmark: float, higher_is_better: bool) -> float:
    """Signed percentage deviation; negative means unfavourable. Benchmark 0 gives 0."""
    if benchmark == 0:
        return 0.0
    raw = (value - benchmark) / abs(benchmark) * 100
    result = raw if higher_is_better else -raw
    return result + 0.0  # normalizes -0.0


def is_underperforming(metric: CampaignKPIMetric) -> bool:
    if is_higher_better(metric.metric_name, metric.polarity):
        return metric.current_value < metric.threshold
    return metric.current_value > metric.threshold


def classify(metric: CampaignKPIMetric, benchmark: Optional[float] = None) -> Classification:
    """
    Classify a metric against its threshold, or against another benchmark.

    Args:
        metric: KPI snapshot
        benchmark: Comparison value for the deviation (e.g. a control variant);
            defaults to the metric's threshold

    Returns:
        Classification with the underperformance flag (always judged against
        the threshold) and the signed deviation
    """
    higher = is_higher_better(metric.metric_name, metric.polarity)
    reference = metric.threshold if benchmark is None else benchmark
    return Classification(
        metric=metric,
        underperforming=is_underperforming(metric),
        deviation_pct=deviation_pct(metric.current_value, reference, higher),
        polarity="higher" if higher else "lower",
    )


def compare_to_control(value: float, control_value: float, metric_name: str) -> float:
    """Deviation of an experiment variant from its control, same sign convention."""
    return deviation_pct(value, control_value, is_higher_better(metric_name))
