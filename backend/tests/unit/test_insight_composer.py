"""Unit tests for the insight composer."""

import pytest
from datetime import datetime, timezone

from config.engine_config import DEFAULT_IMPLEMENTATION_STEPS, DEFAULT_RECOMMENDATION, IMPLEMENTATION_STEPS
from models.insight_composer import (
    compose_insight,
    compose_policy_insights,
    determine_action_type,
    format_cause,
    implementation_steps,
    kpi_code,
)
from schemas.performance import CampaignKPIMetric, CampaignPerformanceData

NOW = datetime(2025, 3, 14, 12, 0, tzinfo=timezone.utc)


def _metric(name, current, threshold, unit=""):
    return CampaignKPIMetric(metric_name=name, current_value=current, threshold=threshold, unit=unit)


def _performance(severity="info", causes=None, actions=None, metrics=None):
    return CampaignPerformanceData(
        campaign_id="cmp-001",
        campaign_name="Spring Sale",
        metrics=metrics if metrics is not None else [_metric("ROAS", 1.8, 2.0, "x")],
        underperformance_causes=causes,
        recommended_actions=actions,
        severity=severity,
    )


class TestActionType:
    """Action type priority."""

    def test_critical_with_high_cpc_pauses(self):
        assert determine_action_type(_performance("critical", ["high_cpc"])) == "pause_campaign"

    def test_budget_constraint_pauses_only_when_critical(self):
        assert determine_action_type(_performance("critical", ["budget_constraint"])) == "pause_campaign"
        assert determine_action_type(_performance("warning", ["budget_constraint"])) == "increase_budget"

    def test_creative_fatigue_before_audience(self):
        perf = _performance("warning", ["audience_mismatch", "creative_fatigue"])
        assert determine_action_type(perf) == "ab_test"

    def test_audience_mismatch(self):
        assert determine_action_type(_performance("info", ["audience_mismatch"])) == "optimize_campaign"

    def test_default(self):
        assert determine_action_type(_performance()) == "optimize_campaign"


class TestComposeInsight:
    """Tests for compose_insight."""

    def test_critical_title(self):
        insight = compose_insight(_performance("critical"), now=NOW)
        assert insight.title == "Critical Performance Issue: Spring Sale"

    def test_warning_title_uses_first_cause(self):
        insight = compose_insight(_performance("warning", ["creative_fatigue", "low_engagement"]), now=NOW)
        assert insight.title == "Campaign Needs Attention: Creative Fatigue"

    def test_info_title(self):
        insight = compose_insight(_performance("info"), now=NOW)
        assert insight.title == "Campaign Performance Update: Spring Sale"

    def test_description_metric_and_causes(self):
        perf = _performance("warning", ["creative_fatigue", "low_engagement", "high_cpc"])
        insight = compose_insight(perf, now=NOW)
        assert insight.description.startswith('Campaign "Spring Sale" is showing underperformance in: ROAS at 1.8x')
        assert "below threshold of 2.0x" in insight.description
        assert insight.description.endswith(
            "Analysis indicates this is likely due to Creative Fatigue and Low Engagement."
        )
        assert "High Cost Per Click" not in insight.description

    def test_description_cost_metric_reads_above(self):
        perf = _performance(metrics=[_metric("CPM", 15.0, 12.0, "$")])
        assert "above threshold of 12.0$" in compose_insight(perf, now=NOW).description

    def test_description_meeting_targets(self):
        perf = _performance(metrics=[_metric("ROAS", 3.0, 2.0, "x")])
        insight = compose_insight(perf, now=NOW)
        assert insight.description == 'Campaign "Spring Sale" is currently meeting performance targets.'

    def test_recommendation_defaults(self):
        assert compose_insight(_performance(), now=NOW).recommendation == DEFAULT_RECOMMENDATION
        perf = _performance(actions=["Rotate in new creative", "Narrow audience"])
        assert compose_insight(perf, now=NOW).recommendation == "Rotate in new creative"

    def test_steps_come_from_table(self):
        insight = compose_insight(_performance("warning", ["creative_fatigue"]), now=NOW)
        assert insight.action_type == "ab_test"
        assert insight.action_label == "Create A/B Test"
        assert insight.implementation_steps == IMPLEMENTATION_STEPS["ab_test"]

    def test_kpi_data_and_id(self):
        insight = compose_insight(_performance(), now=NOW)
        assert insight.kpi_data.metric_name == "ROAS"
        assert insight.id == f"campaign-cmp-001-{int(NOW.timestamp() * 1000)}"
        assert insight.date == NOW.isoformat()

    def test_no_metrics(self):
        insight = compose_insight(_performance(metrics=[]), now=NOW)
        assert insight.kpi_data is None

    def test_unknown_keys(self):
        assert implementation_steps("launch_rocket") == DEFAULT_IMPLEMENTATION_STEPS
        assert format_cause("mystery") == "mystery"


class TestPolicyInsights:
    """Tests for compose_policy_insights against KPI targets."""

    def test_kpi_code(self):
        assert kpi_code("Return on Ad Spend (ROAS)") == "ROAS"
        assert kpi_code("Conversion Rate") == "CVR"
        assert kpi_code("cost per click") == "CPC"
        assert kpi_code("Impressions") is None

    def test_roas_critical(self):
        insights = compose_policy_insights("c1", "Spring", [_metric("ROAS", 2.0, 3.0)], now=NOW)
        assert [i.id for i in insights] == ["roas-critical-c1"]
        assert insights[0].severity == "critical"
        assert insights[0].action_type == "optimize_campaign"
        assert "33%" in insights[0].description

    def test_roas_warning(self):
        insights = compose_policy_insights("c1", "Spring", [_metric("ROAS", 2.6, 3.0)], now=NOW)
        assert insights[0].id == "roas-warning-c1"
        assert insights[0].action_type == "review_performance"

    def test_roas_small_decline_ignored(self):
        assert compose_policy_insights("c1", "Spring", [_metric("ROAS", 2.9, 3.0)], now=NOW) == []

    def test_cpm_tiers(self):
        critical = compose_policy_insights("c1", "Spring", [_metric("CPM", 16.0, 12.0)], now=NOW)
        warning = compose_policy_insights("c1", "Spring", [_metric("CPM", 13.5, 12.0)], now=NOW)
        assert critical[0].action_type == "refresh_creative"
        assert warning[0].action_type == "ab_test"

    def test_ctr_critical(self):
        insights = compose_policy_insights("c1", "Spring", [_metric("CTR", 1.5, 2.5)], now=NOW)
        assert insights[0].id == "ctr-critical-c1"
        assert insights[0].action_type == "creative_overhaul"

    def test_cvr_opportunity(self):
        insights = compose_policy_insights("c1", "Spring", [_metric("CVR", 4.5, 3.0)], now=NOW)
        assert insights[0].type == "campaign-opportunity"
        assert insights[0].severity == "info"
        assert insights[0].action_type == "increase_budget"
        assert insights[0].kpi_data.threshold == pytest.approx(3.0)
