from .errors import (
    EngineError,
    DataError,
    MissingMetricError,
    CampaignNotFoundError,
    ConfigurationError,
    UnsupportedActionError,
    GenerationFailedError,
    InvalidGeneratedStructureError,
)
from .template import resolve_template, resolve_structure, find_placeholders, find_unresolved
from .json_extraction import extract_json, extract_model
from .llm_client import LLMClient, LLMResponse, ReasoningClient
from .notifier import LoggingNotifier, WebhookNotifier

__all__ = [
    "EngineError",
    "DataError",
    "MissingMetricError",
    "CampaignNotFoundError",
    "ConfigurationError",
    "UnsupportedActionError",
    "GenerationFailedError",
    "InvalidGeneratedStructureError",
    "resolve_template",
    "resolve_structure",
    "find_placeholders",
    "find_unresolved",
    "extract_json",
    "extract_model",
    "LLMClient",
    "LLMResponse",
    "ReasoningClient",
    "LoggingNotifier",
    "WebhookNotifier",
]
