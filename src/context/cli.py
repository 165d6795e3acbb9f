"""
CLIs for prompt-time context retrieval.

Usage:
    echo '{"prompt": "fix the login bug"}' | git-memory-context
    rlm-configure --enable --model qwen3:4b
    rlm-configure --check
"""

import argparse
import json
import sys
from pathlib import Path

from common.logger import error, get_logger, success, warning
from extract.git_utils import GitError

from .config import config_path, effective_limits, load_config, save_config
from .llm import LLMError, LocalLLMClient
from .pipeline import retrieve_context

logger = get_logger(__name__)


def read_prompt(stdin_text: str) -> str:
    """
    Extract the prompt from hook input.

    Hook runners send ``{"prompt": "..."}``; anything that is not such an
    object is treated as the raw prompt text.
    """
    text = stdin_text.strip()
    if not text:
        return ""
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return text
    if isinstance(data, dict):
        prompt = data.get("prompt")
        return prompt if isinstance(prompt, str) else ""
    return text


def main_hook():
    """Entry point for the prompt hook. Always exits 0."""
    parser = argparse.ArgumentParser(
        description="Print git memory context for the prompt read from stdin",
    )
    parser.add_argument(
        "--repo",
        type=Path,
        default=Path.cwd(),
        help="Path inside the git repository (default: current directory)",
    )
    args = parser.parse_args()

    try:
        prompt = read_prompt(sys.stdin.read())
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(f"Could not read hook input: {e}")
        prompt = ""

    block = retrieve_context(prompt, args.repo)
    if block:
        print(block)
    sys.exit(0)


def cmd_check(args, config) -> int:
    """Send a trivial request to the configured model."""
    timeout_ms, max_tokens = effective_limits(config)
    client = LocalLLMClient(config.endpoint, config.model)
    logger.info(f"Checking [bold]{config.model}[/bold] at {client.url}...")
    try:
        reply = client.call("", "Reply with exactly: ok", max_tokens, timeout_ms)
    except LLMError as e:
        error(f"Model check failed: {e}")
        return 1
    success(f"Model responded: {reply[:80]}")
    return 0


def main_configure():
    """Entry point for configuring model-enhanced retrieval."""
    parser = argparse.ArgumentParser(
        description="Configure model-enhanced context retrieval for this repository",
    )
    parser.add_argument(
        "--repo",
        type=Path,
        default=Path.cwd(),
        help="Path inside the git repository (default: current directory)",
    )
    toggle = parser.add_mutually_exclusive_group()
    toggle.add_argument("--enable", action="store_true", help="Enable model-enhanced retrieval")
    toggle.add_argument("--disable", action="store_true", help="Disable model-enhanced retrieval")
    parser.add_argument("--model", help="Model name (e.g. llama3.2:3b)")
    parser.add_argument("--endpoint", help="Server base URL (e.g. http://localhost:11434)")
    parser.add_argument("--timeout", type=int, help="Per-call timeout in milliseconds")
    parser.add_argument("--max-tokens", type=int, help="Per-call completion token budget")
    parser.add_argument("--check", action="store_true", help="Verify the model responds")
    args = parser.parse_args()

    if args.timeout is not None and args.timeout <= 0:
        parser.error("--timeout must be positive")
    if args.max_tokens is not None and args.max_tokens <= 0:
        parser.error("--max-tokens must be positive")

    config = load_config(args.repo)
    changes = {}
    if args.enable:
        changes["enabled"] = True
    if args.disable:
        changes["enabled"] = False
    if args.model:
        changes["model"] = args.model
    if args.endpoint:
        changes["endpoint"] = args.endpoint.rstrip("/")
    if args.timeout is not None:
        changes["timeout_ms"] = args.timeout
    if args.max_tokens is not None:
        changes["max_tokens"] = args.max_tokens

    if changes:
        config = config.updated(**changes)
        try:
            path = save_config(config, config_path(args.repo))
        except GitError as e:
            error(f"Not a git repository: {e}")
            sys.exit(1)
        except OSError as e:
            error(f"Failed to write config: {e}")
            sys.exit(1)
        success(f"Saved config to {path}")

    state = "enabled" if config.enabled else "disabled"
    print(f"Model-enhanced retrieval: {state}")
    print(f"  Endpoint: {config.endpoint}")
    print(f"  Model: {config.model}")
    print(f"  Timeout: {config.timeout_ms}ms")
    print(f"  Max tokens: {config.max_tokens}")
    timeout_ms, max_tokens = effective_limits(config)
    if (timeout_ms, max_tokens) != (config.timeout_ms, config.max_tokens):
        warning(f"Reasoning model floors apply: {timeout_ms}ms, {max_tokens} tokens")

    if args.check:
        sys.exit(cmd_check(args, config))
    sys.exit(0)


if __name__ == "__main__":
    main_hook()
