"""
Storage boundaries for the trigger engine.

Protocols describe what the engine needs from persistence; the in-memory
and fixture-backed implementations serve the CLI, the API in development,
and the test suite.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Awaitable, Dict, List, Optional, Protocol, Union

from pydantic import ValidationError

from helpers.errors import CampaignNotFoundError, ConfigurationError
from schemas.performance import Campaign, CampaignKPIMetric
from schemas.triggers import TriggerEvent, TriggerRule

logger = logging.getLogger(__name__)


# =============================================================================
# Protocols
# =============================================================================

class MetricSource(Protocol):
    """Supplies current metrics per campaign; returns [] when there is no data."""

    def get_campaign_metrics(
        self, campaign_id: str
    ) -> Union[List[CampaignKPIMetric], Awaitable[List[CampaignKPIMetric]]]:
        ...


class RuleStore(Protocol):
    async def list_active_rules(self) -> List[TriggerRule]:
        ...

    async def touch_last_triggered(
        self, rule_id: str, timestamp: datetime, campaign_id: Optional[str] = None
    ) -> bool:
        ...


class EventStore(Protocol):
    async def save_trigger_event(self, event: TriggerEvent) -> None:
        ...


class CampaignStore(Protocol):
    async def list_active_campaigns(self) -> List[Campaign]:
        ...

    async def get_campaign(self, campaign_id: str) -> Optional[Campaign]:
        ...

    async def update_campaign(self, campaign_id: str, patch: Dict[str, Any]) -> Campaign:
        ...


class EntityStore(Protocol):
    async def update_entity(self, entity: str, entity_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        ...


# =============================================================================
# In-memory implementations
# =============================================================================

class InMemoryMetricSource:
    def __init__(self, metrics: Optional[Dict[str, List[CampaignKPIMetric]]] = None):
        self._metrics = dict(metrics or {})

    def set_metrics(self, campaign_id: str, metrics: List[CampaignKPIMetric]) -> None:
        self._metrics[campaign_id] = list(metrics)

    def get_campaign_metrics(self, campaign_id: str) -> List[CampaignKPIMetric]:
        return list(self._metrics.get(campaign_id, []))


class InMemoryRuleStore:
    """Rule store whose last-triggered updates only ever move forward."""

    def __init__(self, rules: Optional[List[TriggerRule]] = None):
        self._rules: Dict[str, TriggerRule] = {r.id: r for r in (rules or [])}

    @classmethod
    def from_records(cls, records: List[Dict[str, Any]]) -> "InMemoryRuleStore":
        """Build from raw rule dicts, skipping (and logging) invalid ones."""
        rules = []
        for record in records:
            try:
                rules.append(TriggerRule.model_validate(record))
            except ValidationError as e:
                logger.error(f"[TRIGGERS] Skipping invalid rule {record.get('id', '?')}: {e}")
        return cls(rules)

    def add_rule(self, rule: TriggerRule) -> None:
        self._rules[rule.id] = rule

    def get_rule(self, rule_id: str) -> Optional[TriggerRule]:
        rule = self._rules.get(rule_id)
        return rule.model_copy(deep=True) if rule else None

    async def list_active_rules(self) -> List[TriggerRule]:
        # Snapshots, so a pass never sees its own writes mid-evaluation
        return [r.model_copy(deep=True) for r in self._rules.values() if r.is_active]

    async def touch_last_triggered(
        self, rule_id: str, timestamp: datetime, campaign_id: Optional[str] = None
    ) -> bool:
        """
        Record a fire time if it is newer than what is stored.

        Returns:
            True if the stored timestamp moved forward
        """
        rule = self._rules.get(rule_id)
        if rule is None:
            logger.warning(f"[TRIGGERS] touch_last_triggered for unknown rule {rule_id}")
            return False

        updated = False
        if campaign_id is not None:
            previous = rule.last_triggered_by_campaign.get(campaign_id)
            if previous is None or timestamp > previous:
                rule.last_triggered_by_campaign[campaign_id] = timestamp
                updated = True

        if rule.last_triggered is None or timestamp > rule.last_triggered:
            rule.last_triggered = timestamp
            updated = True

        return updated


class InMemoryEventStore:
    """Append-only event log."""

    def __init__(self):
        self._events: List[TriggerEvent] = []
        self._ids: set[str] = set()

    async def save_trigger_event(self, event: TriggerEvent) -> None:
        if event.id in self._ids:
            raise ValueError(f"Trigger event {event.id} already saved")
        self._ids.add(event.id)
        self._events.append(event.model_copy())

    @property
    def events(self) -> List[TriggerEvent]:
        return list(self._events)


class InMemoryCampaignStore:
    def __init__(self, campaigns: Optional[List[Campaign]] = None):
        self._campaigns: Dict[str, Campaign] = {c.id: c for c in (campaigns or [])}

    async def list_active_campaigns(self) -> List[Campaign]:
        return [c for c in self._campaigns.values() if c.status == "active"]

    async def get_campaign(self, campaign_id: str) -> Optional[Campaign]:
        return self._campaigns.get(campaign_id)

    async def update_campaign(self, campaign_id: str, patch: Dict[str, Any]) -> Campaign:
        campaign = self._campaigns.get(campaign_id)
        if campaign is None:
            raise CampaignNotFoundError(campaign_id)
        updated = Campaign.model_validate({**campaign.model_dump(), **patch})
        self._campaigns[campaign_id] = updated
        return updated


class InMemoryEntityStore:
    """Generic entity records for update_data actions, keyed by entity name."""

    def __init__(self, entities: Optional[Dict[str, Dict[str, Dict[str, Any]]]] = None):
        self._entities = entities or {}

    async def update_entity(self, entity: str, entity_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        if entity not in self._entities:
            raise ConfigurationError(f"Unknown entity: {entity}")
        record = {**self._entities[entity].get(entity_id, {}), **data}
        self._entities[entity][entity_id] = record
        return record

    def get(self, entity: str, entity_id: str) -> Optional[Dict[str, Any]]:
        return self._entities.get(entity, {}).get(entity_id)


# =============================================================================
# Fixture loading
# =============================================================================

class FixtureMetricSource(InMemoryMetricSource):
    """Metric source backed by the "metrics" section of a JSON fixture."""

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "FixtureMetricSource":
        data = load_fixture(path)
        return cls(_parse_metrics(data.get("metrics", {})))


def load_fixture(path: Union[str, Path]) -> Dict[str, Any]:
    """Load a campaigns fixture: {"campaigns": [...], "metrics": {...}, "rules": [...]}."""
    with open(path, "r") as f:
        return json.load(f)


def _parse_metrics(raw: Dict[str, List[Dict[str, Any]]]) -> Dict[str, List[CampaignKPIMetric]]:
    return {
        campaign_id: [CampaignKPIMetric.model_validate(m) for m in metrics]
        for campaign_id, metrics in raw.items()
    }


def build_fixture_stores(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Build the campaign, metric and rule stores from one fixture file.

    Returns:
        Dict with campaign_store, metric_source and rule_store
    """
    data = load_fixture(path)
    campaigns = [Campaign.model_validate(c) for c in data.get("campaigns", [])]
    logger.info(
        f"Loaded fixture {path}: {len(campaigns)} campaigns, {len(data.get('rules', []))} rules"
    )
    return {
        "campaign_store": InMemoryCampaignStore(campaigns),
        "metric_source": FixtureMetricSource(_parse_metrics(data.get("metrics", {}))),
        "rule_store": InMemoryRuleStore.from_records(data.get("rules", [])),
    }
