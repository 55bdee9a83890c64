"""Experiment Analyzer - compares A/B variants against their control."""

import logging
from typing import Dict, List, Optional

from config.engine_config import EXPERIMENT_CONFIG
from models.threshold_classifier import compare_to_control, deviation_pct
from schemas.performance import Experiment, VariantInsight, utcnow

logger = logging.getLogger(__name__)


def _insight_id(experiment_id: str, variant_id: str, suffix: str) -> str:
    return f"ins_{experiment_id}_{variant_id}_{suffix}"


def analyze_variant(
    experiment_id: str,
    variant_id: str,
    metrics: Dict[str, float],
    control: Optional[Dict[str, float]],
) -> List[VariantInsight]:
    """
    Findings for one variant.

    Checks conversion rate (control default 5%), revenue against the
    control's revenue, and sample size.
    """
    insights: List[VariantInsight] = []
    now = utcnow()
    conv_limit = EXPERIMENT_CONFIG["conversion_deviation_pct"]

    if metrics.get("rate") is not None:
        rate = metrics["rate"]
        control_rate = (control or {}).get("rate") or EXPERIMENT_CONFIG["default_control_rate"]
        deviation = compare_to_control(rate, control_rate, "conversion rate")

        if deviation < -conv_limit:
            insights.append(VariantInsight(
                id=_insight_id(experiment_id, variant_id, "conv"),
                experiment_id=experiment_id,
                variant_id=variant_id,
                type="underperforming",
                metric="conversion_rate",
                value=rate,
                benchmark=control_rate,
                deviation=deviation,
                suggestion=(
                    f"Variant {variant_id} is underperforming with a conversion rate of {rate * 100:.1f}% "
                    f"compared to the control's {control_rate * 100:.1f}%. Consider pausing this variant."
                ),
                action_type="pause_variant",
                created_at=now,
            ))
        elif deviation > conv_limit:
            insights.append(VariantInsight(
                id=_insight_id(experiment_id, variant_id, "conv_pos"),
                experiment_id=experiment_id,
                variant_id=variant_id,
                type="overperforming",
                metric="conversion_rate",
                value=rate,
                benchmark=control_rate,
                deviation=deviation,
                suggestion=(
                    f"Variant {variant_id} is outperforming with a conversion rate of {rate * 100:.1f}% "
                    f"compared to the control's {control_rate * 100:.1f}%. "
                    f"Consider concluding the experiment and adopting this variant."
                ),
                action_type="conclude_experiment",
                created_at=now,
            ))

    control_revenue = (control or {}).get("revenue")
    if metrics.get("revenue") is not None and control_revenue:
        revenue = metrics["revenue"]
        deviation = compare_to_control(revenue, control_revenue, "revenue")
        if abs(deviation) > EXPERIMENT_CONFIG["revenue_deviation_pct"]:
            worse = deviation < 0
            insights.append(VariantInsight(
                id=_insight_id(experiment_id, variant_id, "rev"),
                experiment_id=experiment_id,
                variant_id=variant_id,
                type="underperforming" if worse else "overperforming",
                metric="revenue",
                value=revenue,
                benchmark=control_revenue,
                deviation=deviation,
                suggestion=(
                    f"Variant {variant_id} is generating {'less' if worse else 'more'} revenue "
                    f"(${revenue:.2f}) than the control (${control_revenue:.2f}). "
                    + ("Consider modifying the pricing strategy." if worse else "Consider adopting this pricing strategy.")
                ),
                action_type="duplicate_modify" if worse else "conclude_experiment",
                created_at=now,
            ))

    min_visitors = EXPERIMENT_CONFIG["min_sample_visitors"]
    visitors = metrics.get("visitors")
    if visitors is not None and visitors < min_visitors:
        insights.append(VariantInsight(
            id=_insight_id(experiment_id, variant_id, "sample"),
            experiment_id=experiment_id,
            variant_id=variant_id,
            type="anomaly",
            metric="sample_size",
            value=visitors,
            benchmark=min_visitors,
            deviation=deviation_pct(visitors, min_visitors, True),
            suggestion=(
                f"Variant {variant_id} has a small sample size ({visitors:.0f} visitors). "
                f"Continue the experiment to gather more data."
            ),
            action_type="increase_budget",
            created_at=now,
        ))

    return insights


def analyze_experiment(experiment: Experiment) -> List[VariantInsight]:
    """
    Compare every non-control variant against the control.

    Returns:
        Variant insights; empty when the experiment has no performance data
    """
    if not experiment.performance_data:
        logger.debug(f"Experiment {experiment.id} has no performance data")
        return []

    control_id = experiment.control_variant_id
    control = experiment.performance_data.get(control_id) if control_id else None

    insights: List[VariantInsight] = []
    for variant_id, metrics in experiment.performance_data.items():
        if variant_id == control_id:
            continue
        insights.extend(analyze_variant(experiment.id, variant_id, metrics, control))

    logger.info(f"[INSIGHT] Experiment {experiment.id}: {len(insights)} variant insights")
    return insights
