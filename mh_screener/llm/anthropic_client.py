from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from ..core.config import Settings
from ..core.errors import UpstreamTransportError


@dataclass(frozen=True)
class GatewayConfig:
    api_key: str
    model: str = "claude-3-sonnet-20240229"
    base_url: str = "https://api.anthropic.com"
    api_version: str = "2023-06-01"
    timeout_seconds: float = 30.0
    max_tokens: int = 1000
    resources_path: str = ""

    @classmethod
    def from_settings(cls, settings: Settings) -> "GatewayConfig":
        return cls(
            api_key=settings.ANTHROPIC_API_KEY,
            model=settings.ANTHROPIC_MODEL,
            base_url=settings.ANTHROPIC_BASE_URL,
            api_version=settings.ANTHROPIC_VERSION,
            timeout_seconds=settings.MODEL_TIMEOUT_SECONDS,
            max_tokens=settings.MODEL_MAX_TOKENS,
            resources_path=settings.RESOURCES_PATH,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


async def create_message(
    config: GatewayConfig,
    messages: List[Dict[str, str]],
    max_tokens: Optional[int] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """POST one Messages API request and return the assistant text."""
    url = f"{config.base_url.rstrip('/')}/v1/messages"
    headers = {
        "x-api-key": config.api_key,
        "anthropic-version": config.api_version,
        "content-type": "application/json",
    }
    payload = {
        "model": config.model,
        "max_tokens": max_tokens or config.max_tokens,
        "messages": messages,
    }
    try:
        data = await asyncio.wait_for(
            _post(url, headers, payload, config.timeout_seconds, transport),
            timeout=config.timeout_seconds,
        )
    except asyncio.TimeoutError as e:
        raise UpstreamTransportError(f"model call exceeded {config.timeout_seconds}s") from e
    except httpx.HTTPStatusError as e:
        raise UpstreamTransportError(f"model provider returned {e.response.status_code}") from e
    except (httpx.HTTPError, ValueError) as e:
        raise UpstreamTransportError(f"model call failed: {e!r}") from e
    return _extract_text(data)


async def _post(
    url: str,
    headers: Dict[str, str],
    payload: Dict[str, Any],
    timeout: float,
    transport: Optional[httpx.AsyncBaseTransport],
) -> Any:
    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        r = await client.post(url, headers=headers, json=payload)
        r.raise_for_status()
        return r.json()


def _extract_text(data: Any) -> str:
    try:
        text = data["content"][0]["text"]
    except (KeyError, IndexError, TypeError) as e:
        raise UpstreamTransportError("model reply has no content text") from e
    if not isinstance(text, str):
        raise UpstreamTransportError("model reply content text is not a string")
    return text
