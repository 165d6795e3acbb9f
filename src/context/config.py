"""Configuration for model-enhanced retrieval.

Stored as JSON next to the trailer index (``.git/info/rlm-config.json``).
Values missing from the file fall back to the RLM_* environment settings.
"""

import json
import os
import tempfile
from dataclasses import dataclass, replace
from pathlib import Path

from common.constants import RLM_CONFIG_FILENAME
from common.env import env
from common.logger import get_logger
from extract.git_utils import GitError, get_git_dir

logger = get_logger(__name__)


@dataclass(frozen=True)
class RlmConfig:
    """Model call settings."""

    enabled: bool
    endpoint: str
    model: str
    timeout_ms: int
    max_tokens: int

    @classmethod
    def from_env(cls) -> "RlmConfig":
        return cls(
            enabled=env.rlm_enabled(),
            endpoint=env.rlm_endpoint(),
            model=env.rlm_model(),
            timeout_ms=env.rlm_timeout_ms(),
            max_tokens=env.rlm_max_tokens(),
        )

    def updated(self, **changes) -> "RlmConfig":
        return replace(self, **changes)


def effective_limits(config: RlmConfig) -> tuple[int, int]:
    """
    Timeout and token budget actually used for sub-calls.

    Reasoning models (qwen3) spend tokens thinking before they answer, so
    they get higher floors.

    Returns:
        Tuple of (timeout_ms, max_tokens)
    """
    if config.model.lower().startswith("qwen3:"):
        return max(config.timeout_ms, 20_000), max(config.max_tokens, 1_024)
    return config.timeout_ms, config.max_tokens


def config_path(repo_root: Path) -> Path:
    """
    Location of the config file.

    Raises:
        GitError: If no override is set and repo_root is not a repository
    """
    override = env.rlm_config_path()
    if override is not None:
        return override
    return get_git_dir(repo_root) / "info" / RLM_CONFIG_FILENAME


def load_config(repo_root: Path) -> RlmConfig:
    """
    Load the stored config, falling back to environment defaults.

    Never raises: a missing, unreadable or malformed file yields defaults.
    """
    defaults = RlmConfig.from_env()
    try:
        path = config_path(repo_root)
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return defaults
    except (GitError, OSError, json.JSONDecodeError) as e:
        logger.debug(f"Using default model config: {e}")
        return defaults

    if not isinstance(data, dict):
        return defaults

    try:
        return RlmConfig(
            enabled=bool(data.get("enabled", defaults.enabled)),
            endpoint=str(data.get("endpoint", defaults.endpoint)).rstrip("/"),
            model=str(data.get("model", defaults.model)),
            timeout_ms=int(data.get("timeoutMs", defaults.timeout_ms)),
            max_tokens=int(data.get("maxTokens", defaults.max_tokens)),
        )
    except (TypeError, ValueError) as e:
        logger.debug(f"Using default model config: {e}")
        return defaults


def save_config(config: RlmConfig, path: Path) -> Path:
    """
    Write the config atomically.

    Raises:
        OSError: If the file cannot be written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "enabled": config.enabled,
        "endpoint": config.endpoint,
        "model": config.model,
        "timeoutMs": config.timeout_ms,
        "maxTokens": config.max_tokens,
    }

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
            f.write("\n")
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return path
