"""
Trigger Evaluator - Checks rules against a campaign's metrics and fires actions.

Per (rule, campaign) pair the state moves idle -> eligible -> firing -> idle:
  - eligible: rule is active and outside its cooldown window
  - firing:   every condition holds; a pending TriggerEvent is created and
              handed to the ActionExecutor
Firing consumes the cooldown window whatever the action's outcome.

Rules for one campaign are checked sequentially; fired actions run as
independent tasks and are gathered before the campaign completes.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from config.settings import settings
from helpers.errors import ConfigurationError, MissingMetricError
from helpers.stores import EventStore, RuleStore
from models.action_executor import ActionExecutor
from models.cooldown import CooldownTracker
from models.insight_composer import kpi_code
from schemas.performance import Campaign, CampaignKPIMetric, utcnow
from schemas.triggers import TriggerCondition, TriggerEvent, TriggerRule

logger = logging.getLogger(__name__)


class RuleState(str, Enum):
    IDLE = "idle"
    ELIGIBLE = "eligible"
    FIRING = "firing"


@dataclass
class RuleOutcome:
    """What happened to one rule for one campaign in a pass."""
    rule_id: str
    campaign_id: str
    status: str  # inactive | cooling_down | not_met | fired | error
    event: Optional[TriggerEvent] = None
    error: Optional[str] = None

    @property
    def fired(self) -> bool:
        return self.status == "fired"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "campaign_id": self.campaign_id,
            "status": self.status,
            "event": self.event.model_dump(mode="json") if self.event else None,
            "error": self.error,
        }


# =============================================================================
# Conditions
# =============================================================================

def find_metric(metric_name: str, metrics: List[CampaignKPIMetric]) -> CampaignKPIMetric:
    """Exact name match first, then case-insensitive. Raises MissingMetricError."""
    for metric in metrics:
        if metric.metric_name == metric_name:
            return metric
    lowered = metric_name.lower()
    for metric in metrics:
        if metric.metric_name.lower() == lowered:
            return metric
    raise MissingMetricError(metric_name)


def evaluate_condition(
    condition: TriggerCondition,
    metrics: List[CampaignKPIMetric],
    epsilon: float | None = None,
) -> bool:
    """
    Evaluate one condition against the campaign's current metrics.

    Raises:
        MissingMetricError: The condition's metric is not in `metrics`
        ConfigurationError: Unknown operator
    """
    value = find_metric(condition.metric_name, metrics).current_value
    epsilon = settings.equal_to_epsilon if epsilon is None else epsilon

    if condition.operator == "less_than":
        return value < condition.threshold
    if condition.operator == "greater_than":
        return value > condition.threshold
    if condition.operator == "equal_to":
        return abs(value - condition.threshold) < epsilon
    raise ConfigurationError(f"Unknown condition operator: {condition.operator}")


def conditions_met(rule: TriggerRule, metrics: List[CampaignKPIMetric]) -> bool:
    """All conditions must hold; a rule without conditions never fires."""
    if not rule.conditions:
        return False
    return all(evaluate_condition(c, metrics) for c in rule.conditions)


def build_template_context(
    campaign: Campaign,
    rule: TriggerRule,
    event: TriggerEvent,
    metrics: List[CampaignKPIMetric],
    now: datetime,
) -> Dict[str, Any]:
    """Context for {{...}} placeholders in action messages, URLs and payloads."""
    kpi: Dict[str, Dict[str, Any]] = {}
    for metric in metrics:
        code = kpi_code(metric.metric_name)
        if code and code not in kpi:
            kpi[code] = metric.model_dump(mode="json")

    return {
        "campaign": campaign.model_dump(mode="json"),
        "rule": {"id": rule.id, "name": rule.name},
        "event": event.model_dump(mode="json"),
        "metrics": {m.metric_name: m.model_dump(mode="json") for m in metrics},
        "kpi": kpi,
        "now": now.isoformat(),
    }


# =============================================================================
# Evaluator
# =============================================================================

class TriggerEvaluator:
    """Evaluates trigger rules for campaigns and dispatches fired actions."""

    def __init__(
        self,
        executor: ActionExecutor,
        cooldown: Optional[CooldownTracker] = None,
        rule_store: Optional[RuleStore] = None,
        event_store: Optional[EventStore] = None,
    ):
        self.executor = executor
        self.cooldown = cooldown or CooldownTracker()
        self.rule_store = rule_store
        self.event_store = event_store

    def rule_state(self, rule: TriggerRule, campaign_id: str, now: datetime) -> RuleState:
        if not rule.is_active or self.cooldown.is_cooling_down(rule, campaign_id, now):
            return RuleState.IDLE
        return RuleState.ELIGIBLE

    async def evaluate_campaign(
        self,
        campaign: Campaign,
        metrics: List[CampaignKPIMetric],
        rules: List[TriggerRule],
        now: Optional[datetime] = None,
    ) -> List[RuleOutcome]:
        """
        Evaluate every rule for one campaign.

        Args:
            campaign: Campaign being evaluated
            metrics: Its current metrics
            rules: Rules to check (inactive ones are reported and skipped)
            now: Evaluation time (defaults to current UTC time)

        Returns:
            One RuleOutcome per rule, fired events already finalized
        """
        now = now or utcnow()
        outcomes: List[RuleOutcome] = []
        fires = []

        for rule in rules:
            outcome = RuleOutcome(rule_id=rule.id, campaign_id=campaign.id, status="not_met")
            outcomes.append(outcome)
            try:
                if not rule.is_active:
                    outcome.status = "inactive"
                    continue
                if self.rule_state(rule, campaign.id, now) is RuleState.IDLE:
                    outcome.status = "cooling_down"
                    continue
                if not conditions_met(rule, metrics):
                    continue
                if not await self.cooldown.try_acquire(rule, campaign.id, now):
                    outcome.status = "cooling_down"
                    continue

                event = TriggerEvent.new(rule.id, campaign.id, now)
                outcome.status = "fired"
                outcome.event = event
                logger.info(f"[TRIGGERS] Rule '{rule.name}' ({rule.id}) fired for campaign {campaign.id}")

                context = build_template_context(campaign, rule, event, metrics, now)
                fires.append(asyncio.create_task(self._fire(rule, event, context)))
            except Exception as e:
                logger.error(f"[TRIGGERS] Rule {rule.id} failed for campaign {campaign.id}: {e}")
                outcome.status = "error"
                outcome.error = str(e)

        if fires:
            await asyncio.gather(*fires)

        return outcomes

    async def _fire(self, rule: TriggerRule, event: TriggerEvent, context: Dict[str, Any]) -> None:
        """Execute the action, then persist the fire time and the event."""
        try:
            await self.executor.execute(event, rule.action, context)
        except Exception as e:
            logger.exception(f"[TRIGGERS] Executor error for event {event.id}")
            if not event.is_terminal:
                event.mark_failed(str(e))

        if self.rule_store is not None:
            try:
                await self.rule_store.touch_last_triggered(rule.id, event.triggered_at, event.campaign_id)
            except Exception as e:
                logger.error(f"[TRIGGERS] Could not persist last_triggered for rule {rule.id}: {e}")

        if self.event_store is not None:
            try:
                await self.event_store.save_trigger_event(event)
            except Exception as e:
                logger.error(f"[TRIGGERS] Could not save event {event.id}: {e}")
