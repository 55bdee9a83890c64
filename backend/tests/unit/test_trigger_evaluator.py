"""Unit tests for the trigger evaluator."""

import pytest
from datetime import timedelta
from unittest.mock import AsyncMock

from helpers.errors import MissingMetricError
from models.trigger_evaluator import (
    RuleState,
    TriggerEvaluator,
    build_template_context,
    conditions_met,
    evaluate_condition,
    find_metric,
)
from schemas.triggers import TriggerCondition, TriggerEvent, TriggerRule


def _rule(conditions, action=None, **kwargs):
    return TriggerRule.model_validate({
        "id": kwargs.pop("id", "r1"),
        "name": kwargs.pop("name", "rule"),
        "conditions": conditions,
        "action": action or {"action_type": "pause_campaign"},
        **kwargs,
    })


def _cond(metric, operator, threshold):
    return {"metric_name": metric, "operator": operator, "threshold": threshold}


class TestConditions:
    """Condition evaluation."""

    def test_less_than(self, underperforming_metrics):
        cond = TriggerCondition(metric_name="ROAS", operator="less_than", threshold=2.0)
        assert evaluate_condition(cond, underperforming_metrics) is True

    def test_greater_than(self, underperforming_metrics):
        cond = TriggerCondition(metric_name="ROAS", operator="greater_than", threshold=2.0)
        assert evaluate_condition(cond, underperforming_metrics) is False

    def test_equal_to_uses_epsilon(self, metric_factory):
        metrics = [metric_factory("CTR", 0.1 + 0.2, 1.0)]
        cond = TriggerCondition(metric_name="CTR", operator="equal_to", threshold=0.3)
        assert evaluate_condition(cond, metrics) is True
        assert evaluate_condition(cond, metrics, epsilon=0.0) is False

    def test_metric_lookup_case_insensitive(self, underperforming_metrics):
        assert find_metric("Conversion Rate", underperforming_metrics).current_value == 0.8

    def test_missing_metric_raises(self, underperforming_metrics):
        cond = TriggerCondition(metric_name="CPM", operator="greater_than", threshold=10)
        with pytest.raises(MissingMetricError):
            evaluate_condition(cond, underperforming_metrics)

    def test_conjunction(self, underperforming_metrics):
        both = _rule([_cond("ROAS", "less_than", 2.0), _cond("conversion rate", "less_than", 1.0)])
        assert conditions_met(both, underperforming_metrics) is True

        one_fails = _rule([_cond("ROAS", "less_than", 2.0), _cond("conversion rate", "less_than", 0.5)])
        assert conditions_met(one_fails, underperforming_metrics) is False

    def test_empty_conditions_never_met(self, underperforming_metrics):
        assert conditions_met(_rule([]), underperforming_metrics) is False


class TestTemplateContext:
    def test_context_shape(self, campaign, pause_rule, underperforming_metrics, now):
        event = TriggerEvent.new(pause_rule.id, campaign.id, now)
        context = build_template_context(campaign, pause_rule, event, underperforming_metrics, now)
        assert context["campaign"]["name"] == "Spring Sale"
        assert context["rule"]["id"] == "rule-pause"
        assert context["kpi"]["ROAS"]["current_value"] == 1.8
        assert context["kpi"]["CVR"]["current_value"] == 0.8
        assert context["metrics"]["ROAS"]["threshold"] == 2.0
        assert context["event"]["id"] == event.id


class TestEvaluateCampaign:
    """Rule evaluation for one campaign."""

    @pytest.mark.asyncio
    async def test_fires_and_records(self, evaluator, campaign, pause_rule, underperforming_metrics,
                                     campaign_store, rule_store, event_store, now):
        outcomes = await evaluator.evaluate_campaign(campaign, underperforming_metrics, [pause_rule], now)

        assert [o.status for o in outcomes] == ["fired"]
        event = outcomes[0].event
        assert event.status == "processed"
        assert event.action_result == "Campaign cmp-001 paused successfully"
        assert (await campaign_store.get_campaign("cmp-001")).status == "paused"
        assert [e.id for e in event_store.events] == [event.id]
        assert rule_store.get_rule("rule-pause").last_triggered_by_campaign["cmp-001"] == now

    @pytest.mark.asyncio
    async def test_condition_flip_prevents_fire(self, evaluator, campaign, metric_factory, now, event_store):
        rule = _rule([_cond("ROAS", "less_than", 2.0), _cond("CPM", "greater_than", 10)])
        metrics = [metric_factory("ROAS", 1.5, 2.0), metric_factory("CPM", 9.0, 10.0)]
        outcomes = await evaluator.evaluate_campaign(campaign, metrics, [rule], now)
        assert outcomes[0].status == "not_met"
        assert event_store.events == []

    @pytest.mark.asyncio
    async def test_inactive_rule_skipped(self, evaluator, campaign, underperforming_metrics, now):
        rule = _rule([_cond("ROAS", "less_than", 2.0)], is_active=False)
        outcomes = await evaluator.evaluate_campaign(campaign, underperforming_metrics, [rule], now)
        assert outcomes[0].status == "inactive"

    @pytest.mark.asyncio
    async def test_cooling_down(self, evaluator, campaign, underperforming_metrics, now):
        rule = _rule(
            [_cond("ROAS", "less_than", 2.0)],
            cooldown_period=24,
            last_triggered=(now - timedelta(hours=1)).isoformat(),
        )
        assert evaluator.rule_state(rule, campaign.id, now) is RuleState.IDLE
        outcomes = await evaluator.evaluate_campaign(campaign, underperforming_metrics, [rule], now)
        assert outcomes[0].status == "cooling_down"

    @pytest.mark.asyncio
    async def test_missing_metric_isolated_to_rule(self, evaluator, campaign, underperforming_metrics, now):
        broken = _rule([_cond("Frequency", "greater_than", 3)], id="r-broken")
        working = _rule([_cond("ROAS", "less_than", 2.0)], id="r-working")

        outcomes = await evaluator.evaluate_campaign(campaign, underperforming_metrics, [broken, working], now)

        assert outcomes[0].status == "error"
        assert "Frequency" in outcomes[0].error
        assert outcomes[1].status == "fired"

    @pytest.mark.asyncio
    async def test_second_evaluation_in_window_does_not_fire(self, evaluator, campaign, pause_rule,
                                                            underperforming_metrics, now, event_store):
        await evaluator.evaluate_campaign(campaign, underperforming_metrics, [pause_rule], now)
        outcomes = await evaluator.evaluate_campaign(
            campaign, underperforming_metrics, [pause_rule], now + timedelta(hours=1)
        )
        assert outcomes[0].status == "cooling_down"
        assert len(event_store.events) == 1

    @pytest.mark.asyncio
    async def test_failed_action_still_consumes_cooldown(self, evaluator, campaign, underperforming_metrics,
                                                         now, event_store):
        rule = _rule(
            [_cond("ROAS", "less_than", 2.0)],
            action={"actionType": "boost_bids", "actionParams": {"factor": 2}},
            cooldown_period=24,
        )
        first = await evaluator.evaluate_campaign(campaign, underperforming_metrics, [rule], now)
        assert first[0].event.status == "failed"
        assert first[0].event.action_result == "Unsupported action type: boost_bids"

        second = await evaluator.evaluate_campaign(
            campaign, underperforming_metrics, [rule], now + timedelta(minutes=5)
        )
        assert second[0].status == "cooling_down"
        assert [e.status for e in event_store.events] == ["failed"]

    @pytest.mark.asyncio
    async def test_event_store_failure_does_not_break_pass(self, executor, campaign, pause_rule,
                                                          underperforming_metrics, now):
        event_store = AsyncMock()
        event_store.save_trigger_event.side_effect = RuntimeError("disk full")
        rule_store = AsyncMock()
        evaluator = TriggerEvaluator(executor, rule_store=rule_store, event_store=event_store)

        outcomes = await evaluator.evaluate_campaign(campaign, underperforming_metrics, [pause_rule], now)

        assert outcomes[0].status == "fired"
        assert outcomes[0].event.status == "processed"
        rule_store.touch_last_triggered.assert_awaited_once_with("rule-pause", now, "cmp-001")
