"""Generative-text backend interface and its HTTP implementation."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from src.shared.errors import GenerativeBackendError

logger = logging.getLogger(__name__)


class GenerativeBackend(Protocol):
    """Anything that can turn a prompt into text or structured data.

    Implementations may return ``None`` when they have nothing useful to
    say; callers treat that the same as a failure and fall back to
    deterministic content.
    """

    def generate(self, prompt: str, *, system: str | None = None) -> Any:
        ...


class HttpGenerativeBackend:
    """Posts prompts to a JSON endpoint.

    The endpoint receives ``{"prompt": ..., "system": ...}`` and answers
    with ``{"text": ...}``, ``{"content": ...}`` or any other JSON value,
    which is returned as-is.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 30.0,
        path: str = "/generate",
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.path = path
        headers = {"Accept": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = httpx.Client(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def generate(self, prompt: str, *, system: str | None = None) -> Any:
        """Send *prompt* and return the decoded answer.

        Raises:
            GenerativeBackendError: On transport errors, HTTP status >= 400
                or a body that is not JSON.
        """
        payload: dict[str, Any] = {"prompt": prompt}
        if system:
            payload["system"] = system
        try:
            resp = self._client.post(self.path, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("Generative backend request to %s failed: %s", self.base_url, exc)
            raise GenerativeBackendError(f"Request failed: {exc}") from exc

        if resp.status_code >= 400:
            logger.warning(
                "Generative backend returned status %d from %s",
                resp.status_code, self.base_url,
            )
            raise GenerativeBackendError(f"Backend returned status {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise GenerativeBackendError("Backend returned a non-JSON body") from exc

        if isinstance(data, dict):
            for key in ("text", "content"):
                if key in data:
                    return data[key]
        return data

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpGenerativeBackend:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def create_backend(
    base_url: str | None,
    api_key: str | None = None,
    timeout: float = 30.0,
) -> HttpGenerativeBackend | None:
    """Build an HTTP backend, or ``None`` when no URL is configured."""
    if not base_url:
        return None
    return HttpGenerativeBackend(base_url, api_key=api_key, timeout=timeout)
