"""Trigger Controller - Drives trigger passes and insight cycles."""

import asyncio
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from config.logging_config import get_run_logger
from config.settings import settings, get_llm_api_key
from helpers.errors import GenerationFailedError, InvalidGeneratedStructureError
from helpers.json_extraction import extract_json
from helpers.llm_client import LLMClient, ReasoningClient
from helpers.notifier import LoggingNotifier, Notifier, WebhookNotifier
from helpers.stores import (
    CampaignStore,
    EntityStore,
    EventStore,
    InMemoryCampaignStore,
    InMemoryEventStore,
    InMemoryMetricSource,
    InMemoryRuleStore,
    MetricSource,
    RuleStore,
    build_fixture_stores,
)
from models.action_executor import ActionExecutor
from models.cooldown import CooldownTracker
from models.insight_composer import compose_insight, compose_policy_insights
from models.performance_analyzer import PerformanceAnalyzer, fetch_metrics
from models.trigger_evaluator import RuleOutcome, TriggerEvaluator
from schemas.performance import Campaign, CampaignInsight, utcnow
from schemas.triggers import ACTION_TYPES, TriggerRule, UnsupportedAction

logger = logging.getLogger(__name__)

BACKEND_DIR = Path(__file__).resolve().parent.parent


REPORT_PROMPT = """
Based on the following campaign performance data, provide a concise daily summary:

{report_data}

Please include:
1. Overall health assessment of the campaigns
2. Key metrics to watch
3. Top 1-2 recommended actions
4. Any concerning trends

Format as a short executive summary (2-3 paragraphs).
"""

REPORT_SYSTEM = "You are a campaign performance analyst that provides concise, actionable summaries."

RULE_PROMPT = """
Create a campaign automation rule from this description:

"{description}"

Return ONLY a JSON object with this structure:
{{
  "name": "<short rule name>",
  "conditions": [
    {{"metric_name": "<metric, e.g. ROAS or CPM>", "operator": "less_than|greater_than|equal_to", "threshold": <number>, "unit": "<unit>"}}
  ],
  "action": {{"action_type": "<one of: {action_types}>", "priority": "high|medium|low"}},
  "cooldown_period": <hours>
}}
"""


@dataclass
class CampaignOutcome:
    campaign_id: str
    rules: List[RuleOutcome] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "campaign_id": self.campaign_id,
            "rules": [r.to_dict() for r in self.rules],
            "error": self.error,
        }


@dataclass
class TriggerRunResult:
    run_id: str
    started_at: datetime
    campaigns: List[CampaignOutcome] = field(default_factory=list)

    @property
    def events(self):
        return [r.event for c in self.campaigns for r in c.rules if r.event is not None]

    @property
    def counts(self) -> Dict[str, int]:
        counts = {"campaigns": len(self.campaigns), "campaign_errors": 0, "fired": 0,
                  "processed": 0, "failed": 0, "rule_errors": 0}
        for campaign in self.campaigns:
            if campaign.error:
                counts["campaign_errors"] += 1
            for outcome in campaign.rules:
                if outcome.status == "error":
                    counts["rule_errors"] += 1
                if outcome.event is not None:
                    counts["fired"] += 1
                    if outcome.event.status in ("processed", "failed"):
                        counts[outcome.event.status] += 1
        return counts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "started_at": self.started_at.isoformat(),
            "campaigns": [c.to_dict() for c in self.campaigns],
            "counts": self.counts,
        }


class TriggerController:
    """Controller that runs trigger passes and insight cycles over all active campaigns."""

    def __init__(
        self,
        campaign_store: CampaignStore,
        metric_source: MetricSource,
        rule_store: RuleStore,
        event_store: EventStore,
        notifier: Notifier,
        reasoning_client: Optional[ReasoningClient] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        entity_store: Optional[EntityStore] = None,
        max_concurrency: Optional[int] = None,
    ):
        self.campaign_store = campaign_store
        self.metric_source = metric_source
        self.rule_store = rule_store
        self.event_store = event_store
        self.reasoning_client = reasoning_client
        self.max_concurrency = max_concurrency or settings.max_concurrent_campaigns

        self.executor = ActionExecutor(
            campaign_store,
            notifier,
            reasoning_client=reasoning_client,
            http_client=http_client,
            entity_store=entity_store,
        )
        # Tracker lives as long as the controller so back-to-back passes share it
        self.cooldown = CooldownTracker()
        self.evaluator = TriggerEvaluator(
            self.executor,
            cooldown=self.cooldown,
            rule_store=rule_store,
            event_store=event_store,
        )
        self.analyzer = PerformanceAnalyzer(metric_source, reasoning_client)

    # =========================================================================
    # Trigger pass
    # =========================================================================

    async def run_pass(self, now: Optional[datetime] = None) -> TriggerRunResult:
        """
        Evaluate every active rule against every active campaign once.

        Args:
            now: Evaluation time (defaults to current UTC time)

        Returns:
            TriggerRunResult with per-campaign, per-rule outcomes
        """
        now = now or utcnow()
        run_id = uuid.uuid4().hex[:8]
        run_log = get_run_logger(__name__, run_id=run_id)

        campaigns = await self.campaign_store.list_active_campaigns()
        rules = await self.rule_store.list_active_rules()
        run_log.info(f"[TRIGGERS] Pass started: {len(campaigns)} campaigns, {len(rules)} rules")

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _bounded(campaign: Campaign) -> CampaignOutcome:
            async with semaphore:
                return await self._evaluate_campaign(campaign, rules, now, run_id)

        outcomes = await asyncio.gather(*(_bounded(c) for c in campaigns))
        result = TriggerRunResult(run_id=run_id, started_at=now, campaigns=list(outcomes))
        run_log.info(f"[TRIGGERS] Pass complete: {result.counts}")
        return result

    async def _evaluate_campaign(
        self,
        campaign: Campaign,
        rules: List[TriggerRule],
        now: datetime,
        run_id: str,
    ) -> CampaignOutcome:
        outcome = CampaignOutcome(campaign_id=campaign.id)
        try:
            metrics = await fetch_metrics(self.metric_source, campaign.id)
            outcome.rules = await self.evaluator.evaluate_campaign(campaign, metrics, rules, now)
        except Exception as e:
            get_run_logger(__name__, run_id=run_id, campaign_id=campaign.id).error(
                f"[TRIGGERS] Campaign evaluation failed: {e}"
            )
            outcome.error = str(e)
        return outcome

    # =========================================================================
    # Insights
    # =========================================================================

    async def _campaigns(self, campaign_ids: Optional[List[str]]) -> List[Campaign]:
        if campaign_ids is None:
            return await self.campaign_store.list_active_campaigns()
        campaigns = []
        for campaign_id in campaign_ids:
            campaign = await self.campaign_store.get_campaign(campaign_id)
            if campaign is None:
                logger.warning(f"[INSIGHT] Unknown campaign {campaign_id}, skipping")
                continue
            campaigns.append(campaign)
        return campaigns

    async def generate_insights(
        self,
        campaign_ids: Optional[List[str]] = None,
        now: Optional[datetime] = None,
    ) -> List[CampaignInsight]:
        """
        One insight per campaign for this cycle.

        Campaigns whose analysis fails are logged and left out.
        """
        now = now or utcnow()
        campaigns = await self._campaigns(campaign_ids)
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _one(campaign: Campaign) -> Optional[CampaignInsight]:
            async with semaphore:
                try:
                    performance = await self.analyzer.analyze(campaign.id, campaign.name, now=now)
                    return compose_insight(performance, now=now)
                except Exception as e:
                    logger.error(f"[INSIGHT] Insight generation failed for {campaign.id}: {e}")
                    return None

        results = await asyncio.gather(*(_one(c) for c in campaigns))
        insights = [i for i in results if i is not None]
        logger.info(f"[INSIGHT] Generated {len(insights)} insights for {len(campaigns)} campaigns")
        return insights

    async def generate_policy_insights(
        self,
        campaign_ids: Optional[List[str]] = None,
        now: Optional[datetime] = None,
    ) -> List[CampaignInsight]:
        """Policy-target insights (ROAS, CPM, CTR, CVR) for each campaign."""
        insights: List[CampaignInsight] = []
        for campaign in await self._campaigns(campaign_ids):
            try:
                metrics = await fetch_metrics(self.metric_source, campaign.id)
            except Exception as e:
                logger.error(f"[INSIGHT] Metrics unavailable for {campaign.id}: {e}")
                continue
            insights.extend(compose_policy_insights(campaign.id, campaign.name, metrics, now=now))
        return insights

    async def performance_report(self, insights: List[CampaignInsight]) -> str:
        """Executive summary of a cycle's insights; deterministic summary when generation fails."""
        if not insights:
            return "No active campaigns to report."

        report_data = [
            {
                "campaign_id": i.campaign_id,
                "title": i.title,
                "severity": i.severity,
                "recommendation": i.recommendation,
            }
            for i in insights
        ]

        if self.reasoning_client is not None:
            try:
                text = await self.reasoning_client.complete(
                    f"{REPORT_SYSTEM}\n{REPORT_PROMPT.format(report_data=json.dumps(report_data, indent=2))}"
                )
                if text.strip():
                    return text.strip()
            except GenerationFailedError as e:
                logger.warning(f"[INSIGHT] Report generation failed, using summary: {e}")

        return _summary_report(insights)

    async def generate_rule_from_prompt(self, description: str) -> TriggerRule:
        """
        Draft a TriggerRule from a natural-language description.

        Raises:
            GenerationFailedError: No reasoning client or the call failed
            InvalidGeneratedStructureError: Output is not a valid rule
        """
        if self.reasoning_client is None:
            raise GenerationFailedError("No reasoning client configured")

        text = await self.reasoning_client.complete(
            RULE_PROMPT.format(description=description, action_types=", ".join(ACTION_TYPES))
        )
        try:
            data = extract_json(text)
        except InvalidGeneratedStructureError as e:
            logger.warning(f"[TRIGGERS] Rule generation returned no usable JSON: {e}")
            raise InvalidGeneratedStructureError("Invalid automation structure generated", text) from e
        if not isinstance(data, dict):
            raise InvalidGeneratedStructureError("Invalid automation structure generated", text)

        data.setdefault("id", f"rule_{uuid.uuid4().hex[:8]}")
        data.setdefault("name", description[:60])
        try:
            rule = TriggerRule.model_validate(data)
        except ValidationError as e:
            raise InvalidGeneratedStructureError("Invalid automation structure generated", text) from e

        if not rule.conditions or isinstance(rule.action, UnsupportedAction):
            raise InvalidGeneratedStructureError("Invalid automation structure generated", text)

        logger.info(f"[TRIGGERS] Generated rule '{rule.name}' with {len(rule.conditions)} conditions")
        return rule


def _summary_report(insights: List[CampaignInsight]) -> str:
    counts = {"critical": 0, "warning": 0, "info": 0}
    for insight in insights:
        counts[insight.severity] += 1
    lines = [
        f"{len(insights)} campaigns evaluated: {counts['critical']} critical, "
        f"{counts['warning']} warning, {counts['info']} info."
    ]
    for insight in insights:
        if insight.severity != "info":
            lines.append(f"- {insight.title}: {insight.recommendation}")
    return "\n".join(lines)


# =============================================================================
# Factory
# =============================================================================

_controller: TriggerController | None = None


def build_controller(fixture_path: Optional[str] = None) -> TriggerController:
    """Wire a controller from settings."""
    if settings.data_source == "fixture" or fixture_path:
        path = Path(fixture_path or settings.fixture_path)
        if not path.is_absolute() and not path.exists():
            path = BACKEND_DIR / path
        stores = build_fixture_stores(path)
    else:
        stores = {
            "campaign_store": InMemoryCampaignStore(),
            "metric_source": InMemoryMetricSource(),
            "rule_store": InMemoryRuleStore(),
        }

    if settings.event_store == "gcs":
        from helpers.gcs_event_store import GCSEventStore
        event_store = GCSEventStore()
    else:
        event_store = InMemoryEventStore()

    notifier = WebhookNotifier() if settings.notification_webhook_url else LoggingNotifier()
    reasoning_client = LLMClient() if get_llm_api_key() else None
    if reasoning_client is None:
        logger.info("[LLM] No API key configured; insights will omit causes and recommendations")

    return TriggerController(
        event_store=event_store,
        notifier=notifier,
        reasoning_client=reasoning_client,
        **stores,
    )


def get_controller() -> TriggerController:
    """Get or create the process-wide controller."""
    global _controller
    if _controller is None:
        _controller = build_controller()
    return _controller
