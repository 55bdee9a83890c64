"""Metric, performance and insight schemas."""

from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Severity = Literal["critical", "warning", "info"]

UnderperformanceCause = Literal[
    "low_engagement",
    "high_cpc",
    "low_conversion",
    "audience_mismatch",
    "creative_fatigue",
    "budget_constraint",
    "seasonal_factors",
    "competition_increase",
    "unknown",
]

UNDERPERFORMANCE_CAUSES = (
    "low_engagement",
    "high_cpc",
    "low_conversion",
    "audience_mismatch",
    "creative_fatigue",
    "budget_constraint",
    "seasonal_factors",
    "competition_increase",
    "unknown",
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CampaignKPIMetric(BaseModel):
    """Immutable snapshot of one KPI for one campaign."""
    model_config = ConfigDict(frozen=True)

    metric_name: str
    current_value: float
    previous_value: float = 0.0
    threshold: float
    unit: str = ""
    timestamp: datetime = Field(default_factory=utcnow)
    # Explicit polarity; when unset the name heuristic decides
    polarity: Optional[Literal["higher", "lower"]] = None


class KPIData(BaseModel):
    """KPI snapshot attached to an insight for display."""
    metric_name: str
    current_value: float
    previous_value: float
    threshold: float
    unit: str


class CampaignPerformanceData(BaseModel):
    """One campaign's evaluation for one cycle."""
    campaign_id: str
    campaign_name: str
    metrics: List[CampaignKPIMetric] = Field(default_factory=list)
    underperformance_causes: Optional[List[UnderperformanceCause]] = None
    recommended_actions: Optional[List[str]] = None
    severity: Severity = "info"
    last_checked: datetime = Field(default_factory=utcnow)


class CampaignInsight(BaseModel):
    """Displayable insight derived from a performance evaluation."""
    id: str
    campaign_id: str
    title: str
    description: str
    type: str = "campaign-performance"
    recommendation: str
    implementation_steps: List[str] = Field(default_factory=list)
    action_label: Optional[str] = None
    action_type: Optional[str] = None
    severity: Severity
    kpi_data: Optional[KPIData] = None
    date: str


class Campaign(BaseModel):
    """Campaign record as seen through the campaign mutation boundary."""
    id: str
    name: str
    status: Literal["active", "paused", "ended"] = "active"
    budget: Optional[float] = None
    targeting: Dict[str, object] = Field(default_factory=dict)


class Experiment(BaseModel):
    """A/B experiment with per-variant performance data."""
    id: str
    name: str = ""
    control_variant_id: Optional[str] = None
    goal_metric: str = "rate"
    performance_data: Dict[str, Dict[str, float]] = Field(default_factory=dict)


class VariantInsight(BaseModel):
    """Variant-vs-control finding for an experiment."""
    id: str
    experiment_id: str
    variant_id: str
    type: Literal["underperforming", "overperforming", "anomaly", "trend"]
    metric: str
    value: float
    benchmark: float
    deviation: float  # percentage deviation from benchmark
    suggestion: str
    action_type: Literal[
        "pause_variant", "reschedule", "duplicate_modify", "conclude_experiment", "increase_budget"
    ]
    is_actioned: bool = False
    created_at: datetime = Field(default_factory=utcnow)
