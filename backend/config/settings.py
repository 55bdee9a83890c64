import logging
import os
from pydantic_settings import BaseSettings
from typing import Literal, Optional
from functools import lru_cache

logger = logging.getLogger(__name__)


def get_secret_from_gcp(secret_id: str, project_id: str) -> Optional[str]:
    """
    Fetch a secret from GCP Secret Manager.

    Args:
        secret_id: The secret name in Secret Manager
        project_id: GCP project ID

    Returns:
        The secret value or None if not found
    """
    try:
        from google.cloud import secretmanager

        client = secretmanager.SecretManagerServiceClient()
        name = f"projects/{project_id}/secrets/{secret_id}/versions/latest"
        response = client.access_secret_version(request={"name": name})
        return response.payload.data.decode("UTF-8")
    except Exception as e:
        logger.warning(f"Could not fetch secret {secret_id}: {e}")
        return None


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Reasoning provider
    ai_provider: Literal["gemini", "openai"] = "gemini"
    gemini_model: str = "gemini-2.0-flash"
    openai_model: str = "gpt-4-turbo"
    gemini_api_key: str = ""
    openai_api_key: str = ""
    llm_timeout_seconds: float = 30.0
    llm_temperature: float = 0.3
    llm_max_tokens: int = 1024

    # Outbound API-call actions
    http_timeout_seconds: float = 15.0

    # Engine tuning
    default_budget_change: float = 0.1
    equal_to_epsilon: float = 0.001
    critical_deviation_ratio: float = 0.25
    max_concurrent_campaigns: int = 8

    # Data sources
    data_source: Literal["fixture", "memory"] = "fixture"
    fixture_path: str = "tests/fixtures/campaigns.json"

    # Trigger event audit trail
    event_store: Literal["memory", "gcs"] = "memory"
    gcs_bucket: str = "sentinel-trigger-events"
    gcs_base_path: str = "trigger-events"

    # Notifications (Slack-style incoming webhook)
    notification_webhook_url: str = ""

    # Google Cloud
    google_cloud_project: str = "sentinel-dev"
    llm_api_key_secret_id: str = "sentinel_LLM_API_KEY"

    # Server
    environment: Literal["development", "production"] = "development"
    api_token: str = ""
    frontend_url: str = "http://localhost:5173"
    host: str = "0.0.0.0"
    port: int = 8000

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


# Singleton instance
settings = Settings()


# Model configuration for easy switching
MODEL_CONFIG = {
    "provider": settings.ai_provider,
    "gemini": {
        "model": settings.gemini_model,
    },
    "openai": {
        "model": settings.openai_model,
    }
}


def get_model_name() -> str:
    """Get the current model name based on provider setting."""
    provider = MODEL_CONFIG["provider"]
    return MODEL_CONFIG[provider]["model"]


@lru_cache()
def get_llm_api_key() -> Optional[str]:
    """
    Get the reasoning provider API key from settings or GCP Secret Manager.
    Cached to avoid repeated Secret Manager calls.
    """
    api_key = settings.gemini_api_key if settings.ai_provider == "gemini" else settings.openai_api_key
    if api_key:
        return api_key

    api_key = os.getenv("LLM_API_KEY")
    if api_key:
        return api_key

    if settings.environment == "production":
        return get_secret_from_gcp(settings.llm_api_key_secret_id, settings.google_cloud_project)

    return None
