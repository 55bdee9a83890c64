"""
Trigger Routes - API endpoints for trigger passes, insights and experiments.

A scheduler (cron / Cloud Scheduler) calls POST /api/triggers/run; the
other endpoints serve dashboards.
"""

from fastapi import APIRouter, HTTPException, Depends, Header, Query
from typing import Annotated, List, Optional

from config.settings import settings
from controllers.trigger_controller import get_controller
from helpers.errors import GenerationFailedError, InvalidGeneratedStructureError
from models.experiment_analyzer import analyze_experiment
from schemas.requests import RunTriggersRequest, AnalyzeExperimentRequest, GenerateRuleRequest
from schemas.responses import (
    TriggerRunResponse,
    InsightsResponse,
    ExperimentAnalysisResponse,
    GeneratedRuleResponse,
    ErrorResponse,
)

router = APIRouter(prefix="/api", tags=["triggers"])


async def verify_token(authorization: Annotated[str | None, Header()] = None) -> bool:
    """
    Verify bearer token for API access.

    In development mode, allows requests without token.
    In production, requires valid bearer token.
    """
    if settings.environment == "development":
        return True

    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")

    if not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=401,
            detail="Invalid Authorization header format. Use 'Bearer <token>'"
        )

    token = authorization.replace("Bearer ", "")
    if not settings.api_token or token != settings.api_token:
        raise HTTPException(status_code=401, detail="Invalid token")

    return True


@router.post(
    "/triggers/run",
    response_model=TriggerRunResponse,
    responses={401: {"model": ErrorResponse}}
)
async def run_triggers(
    request: Optional[RunTriggersRequest] = None,
    _: bool = Depends(verify_token)
) -> TriggerRunResponse:
    """Run one evaluation pass over all active campaigns and rules."""
    controller = get_controller()
    result = await controller.run_pass(now=request.now if request else None)
    return TriggerRunResponse(**result.to_dict())


@router.get("/insights", response_model=InsightsResponse)
async def get_insights(
    campaign_id: Annotated[Optional[List[str]], Query()] = None,
    report: bool = False,
    _: bool = Depends(verify_token)
) -> InsightsResponse:
    """
    Campaign insights for this cycle.

    Args:
        campaign_id: Restrict to these campaigns (repeatable); all active when omitted
        report: Include an executive summary of the insights
    """
    controller = get_controller()
    insights = await controller.generate_insights(campaign_ids=campaign_id)
    policy_insights = await controller.generate_policy_insights(campaign_ids=campaign_id)
    summary = await controller.performance_report(insights) if report else None
    return InsightsResponse(insights=insights, policy_insights=policy_insights, report=summary)


@router.post("/experiments/analyze", response_model=ExperimentAnalysisResponse)
async def analyze_experiment_variants(
    request: AnalyzeExperimentRequest,
    _: bool = Depends(verify_token)
) -> ExperimentAnalysisResponse:
    """Compare experiment variants against the control variant."""
    insights = analyze_experiment(request.experiment)
    return ExperimentAnalysisResponse(experiment_id=request.experiment.id, insights=insights)


@router.post(
    "/rules/generate",
    response_model=GeneratedRuleResponse,
    responses={422: {"model": ErrorResponse}, 503: {"model": ErrorResponse}}
)
async def generate_rule(
    request: GenerateRuleRequest,
    _: bool = Depends(verify_token)
) -> GeneratedRuleResponse:
    """Draft a trigger rule from a natural-language description (not saved)."""
    controller = get_controller()
    try:
        rule = await controller.generate_rule_from_prompt(request.description)
    except InvalidGeneratedStructureError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except GenerationFailedError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return GeneratedRuleResponse(rule=rule)
