"""Configuration tables for threshold classification, insights, and experiments."""

# Policy KPI thresholds used when a campaign is judged against targets
KPI_THRESHOLDS = {
    "ROAS": 3.0,   # Return on Ad Spend (3x minimum)
    "CTR": 2.5,    # Click-through Rate (2.5% minimum)
    "CPA": 15.0,   # Cost per Acquisition ($15 maximum)
    "CPM": 12.0,   # Cost per Mille ($12 maximum)
    "CVR": 3.0,    # Conversion Rate (3% minimum)
}

# Names a KPI shows up under in metric feeds
KPI_ALIASES = {
    "ROAS": ["roas", "return on ad spend"],
    "CTR": ["ctr", "click-through rate", "click through rate"],
    "CPA": ["cpa", "cost per acquisition"],
    "CPM": ["cpm", "cost per mille"],
    "CPC": ["cpc", "cost per click"],
    "CVR": ["cvr", "conversion rate"],
}

CLASSIFIER_CONFIG = {
    # Substrings (case-insensitive) marking a metric as higher-is-better
    # roas and ctr are revenue/engagement ratios and rise when performance improves
    "higher_is_better_keywords": [
        "revenue", "conversion", "engagement", "roas", "return on ad spend", "ctr", "click-through",
    ],
    # Substrings marking a metric as critical for severity
    "critical_keywords": ["revenue", "roas"],
    "warning_min_count": 2,
}

CAUSE_LABELS = {
    "low_engagement": "Low Engagement",
    "high_cpc": "High Cost Per Click",
    "low_conversion": "Low Conversion Rate",
    "audience_mismatch": "Audience Targeting Issue",
    "creative_fatigue": "Creative Fatigue",
    "budget_constraint": "Budget Limitations",
    "seasonal_factors": "Seasonal Factors",
    "competition_increase": "Increased Competition",
    "unknown": "Unknown Issue",
}

ACTION_LABELS = {
    "optimize_campaign": "Optimize Campaign",
    "pause_campaign": "Pause Campaign",
    "increase_budget": "Increase Budget",
    "ab_test": "Create A/B Test",
    "review_performance": "Review Performance",
    "refresh_creative": "Refresh Creative",
    "creative_overhaul": "Creative Overhaul",
}

IMPLEMENTATION_STEPS = {
    "optimize_campaign": [
        "Review campaign targeting settings",
        "Analyze top-performing ad creatives",
        "Adjust bid strategy based on performance data",
    ],
    "pause_campaign": [
        "Pause the campaign temporarily",
        "Review complete campaign performance data",
        "Develop revised campaign strategy",
    ],
    "increase_budget": [
        "Calculate optimal budget increase",
        "Adjust daily/lifetime budget settings",
        "Monitor performance closely for 48 hours",
    ],
    "ab_test": [
        "Create a duplicate campaign version",
        "Modify one key variable (audience, creative, etc.)",
        "Split budget equally between variants",
        "Set up performance tracking for comparison",
    ],
    "review_performance": [
        "Analyze performance by ad creative",
        "Check audience engagement metrics",
        "Adjust bidding strategy as needed",
    ],
    "refresh_creative": [
        "Create new ad variations with updated messaging",
        "Test different audience segments",
        "Adjust bidding strategy",
    ],
    "creative_overhaul": [
        "Develop new ad variations with different value propositions",
        "Test different calls-to-action",
        "Analyze competitor messaging for inspiration",
    ],
}

DEFAULT_IMPLEMENTATION_STEPS = [
    "Review campaign performance data",
    "Identify optimization opportunities",
    "Implement changes and monitor results",
]

DEFAULT_RECOMMENDATION = "Review campaign settings and consider optimization."

# Policy insight tiers (percent beyond the KPI target)
POLICY_INSIGHT_CONFIG = {
    "roas": {"critical": 25.0, "warning": 10.0},
    "cpm": {"critical": 25.0, "warning": 10.0},
    "ctr": {"critical": 30.0},
    "cvr_opportunity_multiplier": 1.3,
}

EXPERIMENT_CONFIG = {
    "conversion_deviation_pct": 15.0,
    "revenue_deviation_pct": 10.0,
    "min_sample_visitors": 100,
    "default_control_rate": 0.05,
}
