"""HTTP client for an OpenAI-compatible chat completions API."""
import logging

import httpx

from docchat.config import settings
from docchat.errors import UpstreamError

logger = logging.getLogger(__name__)


def _build_url() -> str:
    base = settings.llm_api_url.rstrip("/")
    return f"{base}/chat/completions"


def _build_messages(system_prompt: str, messages: list[dict]) -> list[dict]:
    """Prepends the system message."""
    return [{"role": "system", "content": system_prompt}, *messages]


async def chat_once(system_prompt: str, messages: list[dict]) -> str:
    """One non-streaming completion. Returns the assistant content."""
    url = _build_url()
    headers = {
        "Authorization": f"Bearer {settings.llm_api_key}",
        "Content-Type": "application/json",
    }
    payload = {
        "model": settings.llm_model,
        "messages": _build_messages(system_prompt, messages),
        "max_completion_tokens": settings.llm_max_tokens,
    }
    try:
        async with httpx.AsyncClient(timeout=60.0) as client:
            r = await client.post(url, json=payload, headers=headers)
            r.raise_for_status()
            data = r.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("LLM request failed: url=%s error=%s", url, e)
        raise UpstreamError(f"LLM API error: {e}") from e
    choice = (data.get("choices") or [{}])[0]
    msg = choice.get("message") or {}
    content = (msg.get("content") or "").strip()
    if not content:
        raise UpstreamError("LLM API returned an empty answer")
    return content
