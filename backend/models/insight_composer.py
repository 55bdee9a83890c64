"""
Insight Composer - Turns performance evaluations into displayable insights.

Action types and implementation steps come from static tables in
config.engine_config so the same evaluation always yields the same
recommendation, independent of the reasoning client.
"""

import re
from datetime import datetime
from typing import Dict, List, Optional

from config.engine_config import (
    ACTION_LABELS,
    CAUSE_LABELS,
    DEFAULT_IMPLEMENTATION_STEPS,
    DEFAULT_RECOMMENDATION,
    IMPLEMENTATION_STEPS,
    KPI_ALIASES,
    KPI_THRESHOLDS,
    POLICY_INSIGHT_CONFIG,
)
from models.threshold_classifier import deviation_pct, is_higher_better, is_underperforming
from schemas.performance import (
    CampaignInsight,
    CampaignKPIMetric,
    CampaignPerformanceData,
    KPIData,
    utcnow,
)


# =============================================================================
# Labels and lookups
# =============================================================================

def format_cause(cause: str) -> str:
    return CAUSE_LABELS.get(cause, cause)


def action_label(action_type: str) -> str:
    return ACTION_LABELS.get(action_type, action_type.replace("_", " ").title())


def implementation_steps(action_type: str) -> List[str]:
    return list(IMPLEMENTATION_STEPS.get(action_type, DEFAULT_IMPLEMENTATION_STEPS))


def determine_action_type(performance: CampaignPerformanceData) -> str:
    """
    Pick the insight's action type from severity and causes.

    Priority: critical with high_cpc/budget_constraint -> pause_campaign,
    creative_fatigue -> ab_test, audience_mismatch -> optimize_campaign,
    budget_constraint -> increase_budget, else optimize_campaign.
    """
    causes = performance.underperformance_causes or []

    if performance.severity == "critical" and any(c in ("high_cpc", "budget_constraint") for c in causes):
        return "pause_campaign"
    if "creative_fatigue" in causes:
        return "ab_test"
    if "audience_mismatch" in causes:
        return "optimize_campaign"
    if "budget_constraint" in causes:
        return "increase_budget"
    return "optimize_campaign"


def _kpi_data(metric: CampaignKPIMetric) -> KPIData:
    return KPIData(
        metric_name=metric.metric_name,
        current_value=metric.current_value,
        previous_value=metric.previous_value,
        threshold=metric.threshold,
        unit=metric.unit,
    )


def _title(performance: CampaignPerformanceData) -> str:
    if performance.severity == "critical":
        return f"Critical Performance Issue: {performance.campaign_name}"
    if performance.severity == "warning":
        causes = performance.underperformance_causes or []
        cause = format_cause(causes[0]) if causes else "Performance Issue"
        return f"Campaign Needs Attention: {cause}"
    return f"Campaign Performance Update: {performance.campaign_name}"


def _description(performance: CampaignPerformanceData) -> str:
    description = f'Campaign "{performance.campaign_name}" '

    underperforming = [m for m in performance.metrics if is_underperforming(m)]
    if underperforming:
        parts = []
        for m in underperforming:
            side = "below" if is_higher_better(m.metric_name, m.polarity) else "above"
            parts.append(
                f"{m.metric_name} at {m.current_value}{m.unit} ({side} threshold of {m.threshold}{m.unit})"
            )
        description += f"is showing underperformance in: {', '.join(parts)}. "
    else:
        description += "is currently meeting performance targets. "

    causes = performance.underperformance_causes or []
    if causes:
        summary = " and ".join(format_cause(c) for c in causes[:2])
        description += f"Analysis indicates this is likely due to {summary}."

    return description.strip()


def compose_insight(
    performance: CampaignPerformanceData,
    now: Optional[datetime] = None,
) -> CampaignInsight:
    """
    Build the insight for one campaign evaluation.

    Args:
        performance: Evaluation for this cycle
        now: Timestamp for the insight id and date (defaults to UTC now)

    Returns:
        CampaignInsight with the first metric as its KPI snapshot
    """
    now = now or utcnow()
    action_type = determine_action_type(performance)
    recommendation = (
        performance.recommended_actions[0]
        if performance.recommended_actions
        else DEFAULT_RECOMMENDATION
    )

    return CampaignInsight(
        id=f"campaign-{performance.campaign_id}-{int(now.timestamp() * 1000)}",
        campaign_id=performance.campaign_id,
        title=_title(performance),
        description=_description(performance),
        type="campaign-performance",
        recommendation=recommendation,
        implementation_steps=implementation_steps(action_type),
        action_label=action_label(action_type),
        action_type=action_type,
        severity=performance.severity,
        kpi_data=_kpi_data(performance.metrics[0]) if performance.metrics else None,
        date=now.isoformat(),
    )


# =============================================================================
# Policy insights (metrics judged against KPI_THRESHOLDS)
# =============================================================================

def kpi_code(metric_name: str) -> Optional[str]:
    """Map a metric name such as "Return on Ad Spend (ROAS)" to its KPI code."""
    name = metric_name.lower()
    for code, aliases in KPI_ALIASES.items():
        for alias in aliases:
            if re.search(rf"\b{re.escape(alias)}\b", name):
                return code
    return None


def _policy_insight(
    key: str,
    campaign_id: str,
    metric: CampaignKPIMetric,
    code: str,
    title: str,
    description: str,
    recommendation: str,
    action_type: str,
    severity: str,
    now: datetime,
    insight_type: str = "campaign-performance",
) -> CampaignInsight:
    return CampaignInsight(
        id=f"{key}-{campaign_id}",
        campaign_id=campaign_id,
        title=title,
        description=description,
        type=insight_type,
        recommendation=recommendation,
        implementation_steps=implementation_steps(action_type),
        action_label=action_label(action_type),
        action_type=action_type,
        severity=severity,
        kpi_data=KPIData(
            metric_name=code,
            current_value=metric.current_value,
            previous_value=metric.previous_value,
            threshold=KPI_THRESHOLDS[code],
            unit=metric.unit,
        ),
        date=now.isoformat(),
    )


def compose_policy_insights(
    campaign_id: str,
    campaign_name: str,
    metrics: List[CampaignKPIMetric],
    now: Optional[datetime] = None,
) -> List[CampaignInsight]:
    """
    Judge ROAS, CPM, CTR and CVR against the policy KPI targets.

    Tiers: ROAS decline >25% critical / >10% warning, CPM increase >25%
    critical / >10% warning, CTR decline >30% critical, and CVR above
    1.3x target as an opportunity.
    """
    now = now or utcnow()
    by_code: Dict[str, CampaignKPIMetric] = {}
    for metric in metrics:
        code = kpi_code(metric.metric_name)
        if code and code not in by_code:
            by_code[code] = metric

    insights: List[CampaignInsight] = []

    def shortfall(code: str) -> float:
        # Percent beyond target in the unfavourable direction (0 when on target or better)
        metric = by_code[code]
        return max(0.0, -deviation_pct(metric.current_value, KPI_THRESHOLDS[code], code in ("ROAS", "CTR", "CVR")))

    if "ROAS" in by_code:
        decline = shortfall("ROAS")
        tiers = POLICY_INSIGHT_CONFIG["roas"]
        if decline > tiers["critical"]:
            insights.append(_policy_insight(
                "roas-critical", campaign_id, by_code["ROAS"], "ROAS",
                title=f"Critical ROAS Decline in {campaign_name}",
                description=f"Your ROAS has dropped {decline:.0f}% below target for the {campaign_name} campaign.",
                recommendation=(
                    "Consider reallocating budget from underperforming ad groups to top performers. "
                    "Review targeting parameters against successful historical campaigns."
                ),
                action_type="optimize_campaign", severity="critical", now=now,
            ))
        elif decline > tiers["warning"]:
            insights.append(_policy_insight(
                "roas-warning", campaign_id, by_code["ROAS"], "ROAS",
                title=f"Declining ROAS in {campaign_name}",
                description=f"Your ROAS is trending downward in the {campaign_name} campaign ({decline:.0f}% below target).",
                recommendation="Review ad creative and audience targeting to identify underperforming elements.",
                action_type="review_performance", severity="warning", now=now,
            ))

    if "CPM" in by_code:
        increase = shortfall("CPM")
        tiers = POLICY_INSIGHT_CONFIG["cpm"]
        if increase > tiers["critical"]:
            insights.append(_policy_insight(
                "cpm-critical", campaign_id, by_code["CPM"], "CPM",
                title=f"High CPM in {campaign_name}",
                description=f"Your CPM has increased {increase:.0f}% above target for the {campaign_name} campaign.",
                recommendation=(
                    "Review ad relevance scores and refresh creative to improve audience targeting efficiency."
                ),
                action_type="refresh_creative", severity="critical", now=now,
            ))
        elif increase > tiers["warning"]:
            insights.append(_policy_insight(
                "cpm-warning", campaign_id, by_code["CPM"], "CPM",
                title=f"Increasing CPM in {campaign_name}",
                description=f"CPM costs have increased {increase:.0f}% above target for the {campaign_name} campaign.",
                recommendation=(
                    "Consider refreshing ad creative and testing new audience segments to improve relevance score."
                ),
                action_type="ab_test", severity="warning", now=now,
            ))

    if "CTR" in by_code:
        decline = shortfall("CTR")
        if decline > POLICY_INSIGHT_CONFIG["ctr"]["critical"]:
            insights.append(_policy_insight(
                "ctr-critical", campaign_id, by_code["CTR"], "CTR",
                title=f"Low CTR in {campaign_name}",
                description=f"Your click-through rate has dropped {decline:.0f}% below target for {campaign_name}.",
                recommendation=(
                    "Urgent creative refresh needed. Current ad creatives are not resonating with the target audience."
                ),
                action_type="creative_overhaul", severity="critical", now=now,
            ))

    if "CVR" in by_code:
        cvr = by_code["CVR"]
        target = KPI_THRESHOLDS["CVR"]
        if cvr.current_value > target * POLICY_INSIGHT_CONFIG["cvr_opportunity_multiplier"]:
            lift = deviation_pct(cvr.current_value, target, True)
            insights.append(_policy_insight(
                "cvr-opportunity", campaign_id, cvr, "CVR",
                title=f"Opportunity: High Conversion in {campaign_name}",
                description=(
                    f"Your {campaign_name} campaign is showing exceptional conversion rates, "
                    f"{lift:.0f}% higher than target."
                ),
                recommendation=(
                    "Consider increasing budget allocation to maximize results during this successful period."
                ),
                action_type="increase_budget", severity="info", now=now,
                insight_type="campaign-opportunity",
            ))

    return insights
