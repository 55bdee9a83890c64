"""
Performance Analyzer - Builds one campaign's CampaignPerformanceData per cycle.

Classifies metrics, assigns severity and, when a reasoning client is
configured, asks it for likely causes and recommended actions. Generation
failures degrade to metric-only data.
"""

import inspect
import logging
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from helpers.errors import GenerationFailedError
from helpers.json_extraction import extract_model
from helpers.llm_client import ReasoningClient
from helpers.stores import MetricSource
from models.severity import assign_severity
from models.threshold_classifier import is_underperforming
from schemas.performance import (
    UNDERPERFORMANCE_CAUSES,
    CampaignKPIMetric,
    CampaignPerformanceData,
    utcnow,
)

logger = logging.getLogger(__name__)


CAUSE_ANALYSIS_PROMPT = """
Analyze the following advertising campaign that is underperforming:

Campaign ID: {campaign_id}
Campaign Name: {campaign_name}
Underperforming Metrics:
{metric_lines}

Based on these metrics, identify:
1. The most likely causes of underperformance (pick up to 3) from:
   {allowed_causes}
2. Recommended actions to improve performance (provide 1-3 specific actions)

Format your response as JSON:
{{
  "causes": ["cause1", "cause2"],
  "actions": ["specific action 1", "specific action 2"]
}}
"""


class CauseAnalysis(BaseModel):
    """Reasoning client output for a cause analysis."""
    causes: List[str] = Field(default_factory=list)
    actions: List[str] = Field(default_factory=list)


async def fetch_metrics(source: MetricSource, campaign_id: str) -> List[CampaignKPIMetric]:
    """Call a metric source that may be sync or async."""
    result = source.get_campaign_metrics(campaign_id)
    if inspect.isawaitable(result):
        result = await result
    return list(result or [])


def normalize_causes(raw: List[str]) -> List[str]:
    """Map free-text causes onto the known set; anything unrecognized becomes 'unknown'."""
    causes: List[str] = []
    for cause in raw:
        key = str(cause).strip().lower().replace(" ", "_").replace("-", "_")
        key = key if key in UNDERPERFORMANCE_CAUSES else "unknown"
        if key not in causes:
            causes.append(key)
    return causes


def build_cause_prompt(
    campaign_id: str, campaign_name: str, metrics: List[CampaignKPIMetric]
) -> str:
    metric_lines = "\n".join(
        f"- {m.metric_name}: {m.current_value}{m.unit} (Threshold: {m.threshold}{m.unit})"
        for m in metrics
    )
    return CAUSE_ANALYSIS_PROMPT.format(
        campaign_id=campaign_id,
        campaign_name=campaign_name,
        metric_lines=metric_lines,
        allowed_causes=", ".join(c for c in UNDERPERFORMANCE_CAUSES if c != "unknown"),
    )


class PerformanceAnalyzer:
    """Analyzes campaign metrics against thresholds."""

    def __init__(
        self,
        metric_source: MetricSource,
        reasoning_client: Optional[ReasoningClient] = None,
    ):
        self.metric_source = metric_source
        self.reasoning_client = reasoning_client

    async def analyze(
        self,
        campaign_id: str,
        campaign_name: str,
        now: Optional[datetime] = None,
    ) -> CampaignPerformanceData:
        """
        Evaluate one campaign for this cycle.

        Args:
            campaign_id: Campaign to evaluate
            campaign_name: Display name used in prompts and insights
            now: Evaluation time (defaults to current UTC time)

        Returns:
            CampaignPerformanceData; causes and recommended actions are only
            set when metrics underperform and generation succeeded
        """
        metrics = await fetch_metrics(self.metric_source, campaign_id)
        return await self.analyze_metrics(campaign_id, campaign_name, metrics, now=now)

    async def analyze_metrics(
        self,
        campaign_id: str,
        campaign_name: str,
        metrics: List[CampaignKPIMetric],
        now: Optional[datetime] = None,
    ) -> CampaignPerformanceData:
        underperforming = [m for m in metrics if is_underperforming(m)]
        severity = assign_severity(underperforming)

        performance = CampaignPerformanceData(
            campaign_id=campaign_id,
            campaign_name=campaign_name,
            metrics=metrics,
            severity=severity,
            last_checked=now or utcnow(),
        )

        if not underperforming or self.reasoning_client is None:
            return performance

        try:
            analysis = await self._analyze_causes(campaign_id, campaign_name, underperforming)
        except GenerationFailedError as e:
            logger.warning(f"[INSIGHT] Cause analysis failed for {campaign_id}, using metric-only data: {e}")
            return performance

        performance.underperformance_causes = normalize_causes(analysis.causes) or None
        performance.recommended_actions = [a for a in analysis.actions if a] or None
        return performance

    async def _analyze_causes(
        self,
        campaign_id: str,
        campaign_name: str,
        underperforming: List[CampaignKPIMetric],
    ) -> CauseAnalysis:
        prompt = build_cause_prompt(campaign_id, campaign_name, underperforming)
        text = await self.reasoning_client.complete(prompt)
        return extract_model(text, CauseAnalysis)
