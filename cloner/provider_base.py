"""
Shared plumbing for the generative-AI provider adapters.

Every adapter (Gemini, WaveSpeed, Kie.ai) goes through request_json() and
returns ProviderTask values, so the pipeline never has to look at a raw
provider payload.
"""

import time
import random
import asyncio
import logging
from typing import Optional

import httpx
from pydantic import BaseModel

from . import config
from . import metrics

logger = logging.getLogger(__name__)

# ── Retry configuration ──────────────────────────────────────────────────────
# Only provider-reported rate limiting is retried. Everything else surfaces
# to the stage immediately so the documented fallbacks stay single-shot.
BASE_DELAY = 2.0
JITTER_MAX = 1.0
RETRYABLE_STATUS_CODES = {429}

COMPLETED_LABELS = {"completed", "SUCCESS", "success", "succeeded"}
FAILED_LABELS = {"failed", "FAILED", "error", "GENERATE_FAILED", "CREATE_TASK_FAILED"}


class ProviderError(Exception):
    """Non-success response (or transport failure) from a provider."""

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        self.provider = provider
        self.status_code = status_code
        self.text = message
        prefix = f"{provider} API error"
        if status_code is not None:
            prefix += f" {status_code}"
        super().__init__(f"{prefix}: {message}")


class ProviderTask(BaseModel):
    """Normalized result of a submission or a status query."""

    provider: str
    task_id: Optional[str] = None
    status: str = "processing"
    output_url: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    @property
    def is_failed(self) -> bool:
        return self.status in FAILED_LABELS


def normalize_status(raw: Optional[str]) -> str:
    """Map provider success labels to "completed"; pass anything else through."""
    if not raw:
        return "processing"
    if raw in COMPLETED_LABELS:
        return "completed"
    return raw


def first_output(*candidates) -> Optional[str]:
    """Return the first usable URL from a mix of strings and output lists."""
    for candidate in candidates:
        if isinstance(candidate, str) and candidate:
            return candidate
        if isinstance(candidate, list) and candidate:
            head = candidate[0]
            if isinstance(head, str) and head:
                return head
            if isinstance(head, dict):
                url = head.get("url") or head.get("audio_url") or head.get("audioUrl")
                if url:
                    return url
    return None


async def request_json(
    provider: str,
    method: str,
    url: str,
    *,
    headers: Optional[dict] = None,
    json: Optional[dict] = None,
    params: Optional[dict] = None,
    timeout: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> dict:
    """
    Send one request to a provider and return the decoded JSON body.

    429 responses are retried up to PROVIDER_MAX_RETRIES times, honouring
    Retry-After when present (base_delay * 2^attempt + jitter otherwise).
    Any other non-2xx status, or a network error, raises ProviderError.
    """
    max_retries = config.PROVIDER_MAX_RETRIES
    started = time.monotonic()

    async with httpx.AsyncClient(
        timeout=timeout or config.PROVIDER_TIMEOUT,
        transport=transport,
    ) as client:
        for attempt in range(max_retries + 1):
            try:
                response = await client.request(
                    method, url, headers=headers, json=json, params=params
                )
            except httpx.HTTPError as e:
                metrics.inc_counter(f"errors.provider.{provider}")
                raise ProviderError(provider, f"request failed: {e}") from e

            if response.status_code in RETRYABLE_STATUS_CODES and attempt < max_retries:
                retry_after = response.headers.get("Retry-After", "")
                if retry_after.isdigit():
                    delay = float(retry_after)
                else:
                    delay = BASE_DELAY * (2 ** attempt) + random.uniform(0, JITTER_MAX)
                logger.warning(
                    f"{provider} {response.status_code} on attempt {attempt + 1}/{max_retries + 1} "
                    f"— retrying in {delay:.1f}s (url={url})"
                )
                await asyncio.sleep(delay)
                continue

            metrics.record_latency(f"provider.{provider}", (time.monotonic() - started) * 1000)

            if response.status_code >= 400:
                metrics.inc_counter(f"errors.provider.{provider}")
                raise ProviderError(provider, response.text[:500], response.status_code)

            try:
                return response.json()
            except ValueError as e:
                raise ProviderError(
                    provider, f"non-JSON response: {response.text[:200]}", response.status_code
                ) from e

    raise ProviderError(provider, f"request to {url} exhausted retries")
