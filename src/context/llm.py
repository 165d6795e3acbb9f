"""OpenAI-compatible chat completions client for Ollama and similar runtimes.

Single attempt, no retries: every caller sits on the prompt hook's hot path,
where a slow answer is worth no more than a failed one.
"""

from typing import Any

import requests

from common.logger import get_logger

logger = get_logger(__name__)


class LLMError(RuntimeError):
    """A delegated model call failed (HTTP error, bad payload, connectivity)."""


class LLMTimeoutError(LLMError):
    """A delegated model call exceeded its timeout."""


def extract_response_text(body: Any) -> str:
    """
    Pull the assistant text out of a chat completions response body.

    Accepts either string content or a list of ``{"type", "text"}`` parts.

    Raises:
        LLMError: If the body carries no text
    """
    try:
        content = body["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        content = None

    if isinstance(content, str) and content.strip():
        return content.strip()

    if isinstance(content, list):
        joined = "".join(
            part["text"]
            for part in content
            if isinstance(part, dict) and isinstance(part.get("text"), str)
        ).strip()
        if joined:
            return joined

    raise LLMError("No content in response")


class LocalLLMClient:
    """Client for ``{endpoint}/v1/chat/completions``.

    Example:
        >>> client = LocalLLMClient("http://localhost:11434", "llama3.2:3b")
        >>> client.call("Reply tersely.", "Say ok", max_tokens=16, timeout_ms=2000)
        'ok'
    """

    def __init__(self, endpoint: str, model: str, session: requests.Session | None = None):
        self.endpoint = endpoint.rstrip("/")
        self.model = model
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})

    @property
    def url(self) -> str:
        return f"{self.endpoint}/v1/chat/completions"

    def call(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        timeout_ms: int,
        json_mode: bool = False,
    ) -> str:
        """Send one chat completion request.

        Args:
            system_prompt: System message (empty string to omit)
            user_prompt: User message
            max_tokens: Completion token budget
            timeout_ms: Request timeout in milliseconds
            json_mode: Ask the server for a JSON object response

        Returns:
            The assistant's text

        Raises:
            LLMTimeoutError: If the request times out
            LLMError: On any other failure
        """
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})

        payload: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "stream": False,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        try:
            response = self.session.post(self.url, json=payload, timeout=timeout_ms / 1000)
        except requests.Timeout as e:
            raise LLMTimeoutError(f"LLM request timed out after {timeout_ms}ms") from e
        except requests.RequestException as e:
            raise LLMError(f"LLM connection failed: {e}") from e

        if not response.ok:
            raise LLMError(f"LLM request failed {response.status_code}: {response.text[:200]}")

        try:
            body = response.json()
        except ValueError as e:
            raise LLMError("LLM response is not JSON") from e

        text = extract_response_text(body)
        logger.debug(f"LLM {self.model} returned {len(text)} chars")
        return text
