"""
Engine error taxonomy.

Data and configuration errors become failed trigger events; generation errors
degrade insight generation to metric-only output.
"""


class EngineError(Exception):
    """Base class for engine errors."""


# =============================================================================
# Data errors
# =============================================================================

class DataError(EngineError):
    """Required data (metric, campaign record) is missing or unusable."""


class MissingMetricError(DataError):
    def __init__(self, metric_name: str):
        self.metric_name = metric_name
        super().__init__(f"Metric not found: {metric_name}")


class CampaignNotFoundError(DataError):
    def __init__(self, campaign_id: str):
        self.campaign_id = campaign_id
        super().__init__(f"Campaign not found: {campaign_id}")


# =============================================================================
# Configuration errors
# =============================================================================

class ConfigurationError(EngineError):
    """Rule or action configuration the engine cannot execute."""


class UnsupportedActionError(ConfigurationError):
    def __init__(self, action_type: str):
        self.action_type = action_type
        super().__init__(f"Unsupported action type: {action_type}")


# =============================================================================
# Reasoning client errors
# =============================================================================

class GenerationFailedError(EngineError):
    """Reasoning client call failed or returned nothing usable."""


class InvalidGeneratedStructureError(GenerationFailedError):
    """Generated text did not contain the expected JSON structure."""

    def __init__(self, message: str, raw_text: str = ""):
        self.raw_text = raw_text[:500]
        super().__init__(message)
