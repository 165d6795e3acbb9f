"""Prompt-time context retrieval from structured git history.

Example:
    >>> from context import retrieve_context
    >>>
    >>> block = retrieve_context("why did we drop redis for sessions?", repo_root)
    >>> print(block)  # empty string when nothing is available
"""

from .config import RlmConfig, load_config, save_config
from .formatting import ContextResult, render_context
from .llm import LLMError, LLMTimeoutError, LocalLLMClient
from .pipeline import ContextPipeline, retrieve_context
from .signals import PromptSignals, extract_prompt_signals

__all__ = [
    "ContextPipeline",
    "ContextResult",
    "LLMError",
    "LLMTimeoutError",
    "LocalLLMClient",
    "PromptSignals",
    "RlmConfig",
    "extract_prompt_signals",
    "load_config",
    "render_context",
    "retrieve_context",
    "save_config",
]
