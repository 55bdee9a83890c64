from .threshold_classifier import classify, is_higher_better, is_underperforming, compare_to_control
from .severity import assign_severity
from .performance_analyzer import PerformanceAnalyzer
from .insight_composer import compose_insight, compose_policy_insights
from .cooldown import CooldownTracker
from .trigger_evaluator import TriggerEvaluator, RuleOutcome, RuleState
from .action_executor import ActionExecutor
from .experiment_analyzer import analyze_experiment

__all__ = [
    "classify",
    "is_higher_better",
    "is_underperforming",
    "compare_to_control",
    "assign_severity",
    "PerformanceAnalyzer",
    "compose_insight",
    "compose_policy_insights",
    "CooldownTracker",
    "TriggerEvaluator",
    "RuleOutcome",
    "RuleState",
    "ActionExecutor",
    "analyze_experiment",
]
