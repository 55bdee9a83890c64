"""Shared test fixtures and configuration."""

import pytest
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from helpers.notifier import LoggingNotifier
from helpers.stores import (
    InMemoryCampaignStore,
    InMemoryEventStore,
    InMemoryMetricSource,
    InMemoryRuleStore,
)
from models.action_executor import ActionExecutor
from models.trigger_evaluator import TriggerEvaluator
from schemas.performance import Campaign, CampaignKPIMetric
from schemas.triggers import TriggerRule


# Path to fixtures
FIXTURES_DIR = Path(__file__).parent / "fixtures"


def make_metric(name: str, current: float, threshold: float, unit: str = "", previous: float = 0.0) -> CampaignKPIMetric:
    return CampaignKPIMetric(
        metric_name=name,
        current_value=current,
        previous_value=previous,
        threshold=threshold,
        unit=unit,
    )


class FakeReasoningClient:
    """Reasoning client returning canned responses in order (last one repeats)."""

    def __init__(self, responses: Optional[List] = None):
        self.responses = list(responses or ['{"causes": [], "actions": []}'])
        self.prompts: List[str] = []

    async def complete(self, prompt, *, model=None, temperature=None, max_tokens=None):
        self.prompts.append(prompt)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def fixture_path() -> Path:
    return FIXTURES_DIR / "campaigns.json"


@pytest.fixture
def now() -> datetime:
    return datetime(2025, 3, 14, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def campaign() -> Campaign:
    return Campaign(id="cmp-001", name="Spring Sale", status="active", budget=1000.0)


@pytest.fixture
def underperforming_metrics() -> List[CampaignKPIMetric]:
    """ROAS slightly under target plus a weak conversion rate."""
    return [
        make_metric("ROAS", 1.8, 2.0, "x", previous=2.4),
        make_metric("conversion rate", 0.8, 2.0, "%", previous=1.6),
    ]


@pytest.fixture
def campaign_store(campaign) -> InMemoryCampaignStore:
    return InMemoryCampaignStore([campaign])


@pytest.fixture
def metric_source(campaign, underperforming_metrics) -> InMemoryMetricSource:
    return InMemoryMetricSource({campaign.id: underperforming_metrics})


@pytest.fixture
def event_store() -> InMemoryEventStore:
    return InMemoryEventStore()


@pytest.fixture
def notifier() -> LoggingNotifier:
    return LoggingNotifier()


@pytest.fixture
def fake_llm() -> FakeReasoningClient:
    return FakeReasoningClient()


@pytest.fixture
def executor(campaign_store, notifier) -> ActionExecutor:
    return ActionExecutor(campaign_store, notifier)


@pytest.fixture
def pause_rule() -> TriggerRule:
    return TriggerRule.model_validate({
        "id": "rule-pause",
        "name": "Pause on low ROAS",
        "conditions": [{"metric_name": "ROAS", "operator": "less_than", "threshold": 2.0}],
        "action": {"action_type": "pause_campaign"},
        "cooldown_period": 24,
    })


@pytest.fixture
def rule_store(pause_rule) -> InMemoryRuleStore:
    return InMemoryRuleStore([pause_rule])


@pytest.fixture
def evaluator(executor, rule_store, event_store) -> TriggerEvaluator:
    return TriggerEvaluator(executor, rule_store=rule_store, event_store=event_store)


@pytest.fixture
def llm_factory():
    """Build a FakeReasoningClient with the given canned responses."""
    return FakeReasoningClient


@pytest.fixture
def metric_factory():
    return make_metric
