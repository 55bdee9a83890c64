from .performance import (
    CampaignKPIMetric,
    CampaignPerformanceData,
    CampaignInsight,
    KPIData,
    Campaign,
    Experiment,
    VariantInsight,
)
from .triggers import (
    TriggerCondition,
    TriggerAction,
    UnsupportedAction,
    TriggerRule,
    TriggerEvent,
    parse_action,
)
from .requests import RunTriggersRequest, AnalyzeExperimentRequest, GenerateRuleRequest
from .responses import (
    HealthResponse,
    TriggerRunResponse,
    InsightsResponse,
    ExperimentAnalysisResponse,
    GeneratedRuleResponse,
    ErrorResponse,
)

__all__ = [
    "CampaignKPIMetric",
    "CampaignPerformanceData",
    "CampaignInsight",
    "KPIData",
    "Campaign",
    "Experiment",
    "VariantInsight",
    "TriggerCondition",
    "TriggerAction",
    "UnsupportedAction",
    "TriggerRule",
    "TriggerEvent",
    "parse_action",
    "RunTriggersRequest",
    "AnalyzeExperimentRequest",
    "GenerateRuleRequest",
    "HealthResponse",
    "TriggerRunResponse",
    "InsightsResponse",
    "ExperimentAnalysisResponse",
    "GeneratedRuleResponse",
    "ErrorResponse",
]
