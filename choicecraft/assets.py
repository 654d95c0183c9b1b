"""Asset generation — opaque URLs for scenes, characters and events.

The engine only ever stores the URL it is handed; it never looks at the
bytes. Generation is best effort: a failure is logged and the entity keeps
an empty URL, so a slow or broken image backend never blocks a turn.

Implementations match the protocol:

    async def __call__(self, kind: str, description: str) -> str: ...

`kind` is "scene", "character" or "relationship_event".
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

logger = logging.getLogger(__name__)


class AssetGenerator(Protocol):
    async def __call__(self, kind: str, description: str) -> str: ...


class AssetError(RuntimeError):
    """Raised when the image backend cannot be reached or returns an error."""


class HttpAssetGenerator:
    """Client for an OpenAI-compatible images endpoint.

    POST {provider_url}/v1/images/generations  {"prompt": ..., "model": ...}
    Response: {"data": [{"url": "..."}]}
    """

    def __init__(
        self,
        provider_url: str,
        api_key: str = "",
        model: str = "",
        size: str = "1024x1024",
        timeout: float = 120.0,
    ) -> None:
        self._base_url = provider_url.rstrip("/")
        self._api_key = api_key
        self._model = model
        self._size = size
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def __call__(self, kind: str, description: str) -> str:
        url = f"{self._base_url}/v1/images/generations"
        body: dict = {"prompt": description, "n": 1, "size": self._size}
        if self._model:
            body["model"] = self._model
        logger.debug("asset call kind=%s prompt_len=%d", kind, len(description))

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise AssetError(f"Cannot connect to image backend at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise AssetError(f"Image backend returned HTTP {e.response.status_code}") from e
        except httpx.TimeoutException as e:
            raise AssetError(f"Image backend timed out after {self._timeout}s") from e

        data = resp.json().get("data")
        if not data or "url" not in data[0]:
            raise AssetError("Unexpected response format from image backend")
        return data[0]["url"]


class NullAssetGenerator:
    """Produces no assets."""

    async def __call__(self, kind: str, description: str) -> str:
        return ""


async def generate_url(generator: AssetGenerator, kind: str, description: str) -> str:
    """Run a generator, returning "" instead of raising."""
    if not description.strip():
        return ""
    try:
        return await generator(kind, description)
    except (AssetError, httpx.HTTPError, ValueError) as e:
        logger.warning("Asset generation for %s failed: %s", kind, e)
        return ""
