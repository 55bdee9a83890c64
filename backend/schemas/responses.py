"""Response schemas for the Sentinel API."""

from typing import List, Dict, Any, Optional
from pydantic import BaseModel

from schemas.performance import CampaignInsight, VariantInsight
from schemas.triggers import TriggerEvent, TriggerRule


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    environment: str


class RuleOutcomeResponse(BaseModel):
    rule_id: str
    campaign_id: str
    status: str
    event: Optional[TriggerEvent] = None
    error: Optional[str] = None


class CampaignOutcomeResponse(BaseModel):
    campaign_id: str
    rules: List[RuleOutcomeResponse]
    error: Optional[str] = None


class TriggerRunResponse(BaseModel):
    """Result of one trigger evaluation pass."""
    run_id: str
    started_at: str
    campaigns: List[CampaignOutcomeResponse]
    counts: Dict[str, int]


class InsightsResponse(BaseModel):
    insights: List[CampaignInsight]
    policy_insights: List[CampaignInsight] = []
    report: Optional[str] = None


class ExperimentAnalysisResponse(BaseModel):
    experiment_id: str
    insights: List[VariantInsight]


class GeneratedRuleResponse(BaseModel):
    rule: TriggerRule


class ErrorResponse(BaseModel):
    """Error response."""
    error: str
    detail: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
