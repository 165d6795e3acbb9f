"""Environment configuration interface for git-memory.

This module provides a clean interface for accessing environment variables,
centralizing all environment variable access in one place.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

from common.logger import get_logger

# Load environment variables from .env file if it exists
load_dotenv()

logger = get_logger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(name: str, default: str = "") -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY


def _int(name: str, default: int) -> int:
    value = os.getenv(name, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.debug(f"Ignoring non-integer {name}={value!r}, using {default}")
        return default


class Environment:
    """Interface for accessing environment configuration."""

    @staticmethod
    def log_level() -> str:
        """Get the logging level.

        Returns:
            Log level name, defaults to 'INFO'
        """
        return os.getenv("LOG_LEVEL", "INFO").upper()

    @staticmethod
    def session_id() -> str | None:
        """Get the current structured-git session identifier.

        Returns:
            Session id (typically 'date/slug'), or None when unset or empty
        """
        value = os.getenv("STRUCTURED_GIT_SESSION", "").strip()
        return value or None

    @staticmethod
    def trailer_index_path() -> Path | None:
        """Get an explicit trailer index location.

        Returns:
            Path to the index file, or None to use <git-dir>/info/trailer-index.json
        """
        value = os.getenv("TRAILER_INDEX_PATH")
        return Path(value) if value else None

    @staticmethod
    def rlm_config_path() -> Path | None:
        """Get an explicit model configuration file location.

        Returns:
            Path to the config file, or None to use <git-dir>/info/rlm-config.json
        """
        value = os.getenv("RLM_CONFIG_PATH")
        return Path(value) if value else None

    @staticmethod
    def rlm_enabled() -> bool:
        """Whether model-enhanced retrieval is enabled by default.

        Returns:
            True if RLM_ENABLED is truthy, defaults to False
        """
        return _flag("RLM_ENABLED")

    @staticmethod
    def rlm_endpoint() -> str:
        """Get the OpenAI-compatible model endpoint.

        Returns:
            Endpoint base URL, defaults to the local Ollama server
        """
        return os.getenv("RLM_ENDPOINT", "http://localhost:11434").rstrip("/")

    @staticmethod
    def rlm_model() -> str:
        """Get the model name used for delegated sub-calls.

        Returns:
            Model name, defaults to 'llama3.2:3b'
        """
        return os.getenv("RLM_MODEL", "llama3.2:3b")

    @staticmethod
    def rlm_timeout_ms() -> int:
        """Get the per-call timeout for delegated sub-calls.

        Returns:
            Timeout in milliseconds, defaults to 5000 (also when unparseable)
        """
        return _int("RLM_TIMEOUT_MS", 5000)

    @staticmethod
    def rlm_max_tokens() -> int:
        """Get the completion token budget for delegated sub-calls.

        Returns:
            Max tokens, defaults to 512
        """
        return _int("RLM_MAX_TOKENS", 512)

    @staticmethod
    def trace_enabled() -> bool:
        """Whether retrieval traces should be written for evaluation runs."""
        return _flag("RLM_BENCH_TRACE")

    @staticmethod
    def trace_file() -> Path | None:
        """Get the JSONL file that receives retrieval traces."""
        value = os.getenv("RLM_BENCH_TRACE_FILE")
        return Path(value) if value else None

    @staticmethod
    def trace_prompt_id() -> str | None:
        """Get the evaluation prompt id attached to traces."""
        return os.getenv("RLM_BENCH_PROMPT_ID") or None

    @staticmethod
    def trace_run_id() -> str | None:
        """Get the evaluation run id attached to traces."""
        return os.getenv("RLM_BENCH_RUN_ID") or None

    @staticmethod
    def index_miss_fallback() -> str:
        """Get the policy for empty index results.

        Returns:
            One of 'decided-against', 'always' or 'never',
            defaults to 'decided-against'
        """
        return os.getenv("GIT_MEMORY_INDEX_MISS_FALLBACK", "decided-against").strip().lower()


# Singleton instance for convenient access
env = Environment()
