import asyncio
import logging

import requests

from schedsync.config import LLMSettings, get_settings
from schedsync.errors import ModelConfigError, ModelTransportError

_logger = logging.getLogger("schedsync.interpreter.llm")


def _safe_trunc(s: str, n: int) -> str:
    if not s:
        return ""
    return s[:n] + "..." if len(s) > n else s


def _call_anthropic_sync(settings: LLMSettings, system: str, message: str) -> str:
    headers = {
        "x-api-key": settings.api_key,
        "anthropic-version": settings.api_version,
        "Content-Type": "application/json",
    }
    body = {
        "model": settings.model,
        "max_tokens": settings.max_tokens,
        "system": system,
        "messages": [
            {"role": "user", "content": message},
        ],
    }
    try:
        _logger.debug("Anthropic request -> model=%s system_len=%d message_len=%d", settings.model, len(system), len(message))
        resp = requests.post(settings.api_url, headers=headers, json=body, timeout=settings.timeout_sec)
        _logger.debug("Anthropic response status=%s", resp.status_code)
    except requests.RequestException as e:
        _logger.warning("Anthropic request failed: %r", e)
        raise ModelTransportError(details=f"Anthropic request failed: {e}") from e
    if not resp.ok:
        _logger.warning("Anthropic non-OK response: %s %s", resp.status_code, _safe_trunc(resp.text, 500))
        raise ModelTransportError(
            details=f"Anthropic API error: {resp.status_code} - {_safe_trunc(resp.text, 500)}",
            upstream_status=resp.status_code,
        )
    try:
        data = resp.json()
        text = data["content"][0]["text"]
    except (ValueError, KeyError, IndexError, TypeError) as e:
        _logger.warning("Anthropic envelope parse failed: %s", _safe_trunc(resp.text, 500))
        raise ModelTransportError(details="Anthropic API returned an unexpected response shape") from e
    _logger.debug("Anthropic text_len=%d snippet=%s", len(text or ""), _safe_trunc(text or "", 200))
    return text or ""


async def complete(system: str, message: str) -> str:
    """Send one message to the language model and return its raw reply text.

    Raises:
        ModelConfigError: No API key is configured.
        ModelTransportError: Network failure or non-2xx response.
    """
    settings = get_settings().llm
    if not settings.api_key:
        raise ModelConfigError(details="ANTHROPIC_API_KEY is not configured")
    return await asyncio.to_thread(_call_anthropic_sync, settings, system, message)
