"""Severity Assigner - folds underperforming metrics into critical / warning / info."""

from typing import List

from config.engine_config import CLASSIFIER_CONFIG
from config.settings import settings
from schemas.performance import CampaignKPIMetric, Severity


def is_critical_metric(metric_name: str) -> bool:
    name = metric_name.lower()
    return any(keyword in name for keyword in CLASSIFIER_CONFIG["critical_keywords"])


def assign_severity(
    underperforming_metrics: List[CampaignKPIMetric],
    ratio: float | None = None,
) -> Severity:
    """
    Assign a severity to a campaign's underperforming metrics.

    The critical check runs before the count check: one badly broken
    revenue/ROAS metric outranks several mildly broken secondary metrics.

    Args:
        underperforming_metrics: Metrics already classified as underperforming
        ratio: Relative distance from threshold that makes a critical-class
            metric critical (default settings.critical_deviation_ratio)

    Returns:
        "critical", "warning" or "info"
    """
    if not underperforming_metrics:
        return "info"

    ratio = settings.critical_deviation_ratio if ratio is None else ratio

    for metric in underperforming_metrics:
        if not is_critical_metric(metric.metric_name) or metric.threshold == 0:
            continue
        if abs(metric.current_value - metric.threshold) / abs(metric.threshold) > ratio:
            return "critical"

    if len(underperforming_metrics) >= CLASSIFIER_CONFIG["warning_min_count"]:
        return "warning"

    return "info"
