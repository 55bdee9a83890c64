from .settings import settings, MODEL_CONFIG, get_model_name, get_llm_api_key
from .logging_config import setup_logging, get_logger, get_run_logger, JSONFormatter

__all__ = [
    "settings",
    "MODEL_CONFIG",
    "get_model_name",
    "get_llm_api_key",
    "setup_logging",
    "get_logger",
    "get_run_logger",
    "JSONFormatter",
]
