from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Any

import httpx

from . import config as settings

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

# callback(...) with an optional trailing semicolon; the callback name may be dotted.
_JSONP_PATTERN = re.compile(r"^\s*[\w$.]*\s*\((?P<body>.*)\)\s*;?\s*$", re.DOTALL)


@dataclass(frozen=True)
class ApiConfig:
    timeout: float = settings.HTTP_TIMEOUT
    retries: int = 0


class UpstreamAPIError(RuntimeError):
    def __init__(self, stage: str, message: str):
        super().__init__(f"[{stage}] {message}")
        self.stage = stage
        self.message = message


class UnexpectedResponseError(UpstreamAPIError):
    """The upstream answered, but not in the shape the normalizer expects."""


def _backoff_seconds(attempt: int) -> float:
    return min(8.0, 0.5 * (2**attempt))


def _short_error_text(text: str, limit: int = 240) -> str:
    one_line = " ".join(text.split())
    if len(one_line) <= limit:
        return one_line
    return one_line[:limit] + "..."


def unwrap_jsonp(text: str) -> str:
    """Strip a JSONP callback wrapper. Plain JSON is returned unchanged."""
    stripped = text.strip()
    if stripped[:1] in ("{", "["):
        return stripped
    match = _JSONP_PATTERN.match(stripped)
    if not match:
        return stripped
    return match.group("body").strip()


def _parse_body(text: str, *, jsonp: bool, stage: str, status: int) -> Any:
    body = unwrap_jsonp(text) if jsonp else text
    try:
        return json.loads(body)
    except ValueError as exc:
        kind = "JSONP" if jsonp else "JSON"
        raise UpstreamAPIError(stage, f"Invalid {kind} in upstream response (HTTP {status})") from exc


async def request_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    jsonp: bool = False,
    stage: str,
    config: ApiConfig | None = None,
) -> Any:
    config = config or ApiConfig()
    last_error: Exception | None = None
    headers = {"User-Agent": settings.USER_AGENT}
    for attempt in range(config.retries + 1):
        logger.debug("GET %s (stage=%s, attempt=%d)", url, stage, attempt + 1)
        try:
            response = await client.get(url, timeout=config.timeout, headers=headers)
        except (httpx.TimeoutException, httpx.TransportError) as exc:
            last_error = exc
            if attempt < config.retries:
                await asyncio.sleep(_backoff_seconds(attempt))
                continue
            logger.warning("Network error for stage %s: %s", stage, exc)
            raise UpstreamAPIError(stage, f"Network error: {exc!s}") from exc

        status = response.status_code
        if status in RETRYABLE_STATUS_CODES:
            last_error = UpstreamAPIError(
                stage, f"HTTP {status}: {_short_error_text(response.text)}"
            )
            if attempt < config.retries:
                await asyncio.sleep(_backoff_seconds(attempt))
                continue
            logger.warning("Upstream HTTP %d for stage %s", status, stage)
            raise last_error

        if 400 <= status < 500:
            logger.warning("Upstream HTTP %d for stage %s", status, stage)
            raise UpstreamAPIError(stage, f"HTTP {status}: {_short_error_text(response.text)}")

        return _parse_body(response.text, jsonp=jsonp, stage=stage, status=status)

    if last_error is not None:
        raise UpstreamAPIError(stage, f"Failed request after retries: {last_error!s}")
    raise UpstreamAPIError(stage, "Failed request after retries.")
