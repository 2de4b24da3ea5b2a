"""
Remote enrichment providers and the per-attempt outcome types.

A provider is pure data (endpoint, model, credential). Each attempt against a
provider ends in exactly one outcome; the enrichment client's loop decides what
to do with it. Nothing here retries or sleeps.
"""

from dataclasses import dataclass
from typing import Generic, List, Optional, TypeVar, Union

import httpx

T = TypeVar("T")

AUTH_STATUSES = (401, 402, 403)
REQUEST_STATUSES = (400, 404)
QUOTA_MARKERS = ("quota", "per-day", "per day", "insufficient_quota", "credits")


@dataclass(frozen=True)
class Provider:
    name: str
    url: str
    model: str
    api_key: Optional[str] = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Title": "WordQuiz Enrichment",
            "Accept": "application/json",
        }


def openrouter_providers(url: str, models: List[str], api_key: Optional[str]) -> List[Provider]:
    """One provider per model, in priority order, sharing the OpenRouter credential."""
    return [Provider(name=f"openrouter:{m}", url=url, model=m, api_key=api_key) for m in models]


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T


@dataclass(frozen=True)
class Retryable:
    """Generic rate limit: back off for `delay` seconds, then move on."""
    delay: float
    reason: str = ""


@dataclass(frozen=True)
class Skip:
    """The provider cannot serve us right now (auth, billing, bad request, quota)."""
    reason: str = ""


@dataclass(frozen=True)
class FatalForProvider:
    """Transport, server or parse failure; give up on this provider for this word."""
    reason: str = ""


Outcome = Union[Success[T], Retryable, Skip, FatalForProvider]


def _is_quota_exhausted(response: httpx.Response) -> bool:
    try:
        body = response.text.lower()
    except Exception:
        return False
    return any(marker in body for marker in QUOTA_MARKERS)


def classify_status(response: httpx.Response, cooldown: float) -> Optional[Union[Retryable, Skip, FatalForProvider]]:
    """Map a non-2xx response to an outcome; None means the response is usable."""
    status = response.status_code
    if 200 <= status < 300:
        return None
    if status in AUTH_STATUSES:
        return Skip(f"auth/billing failure ({status})")
    if status in REQUEST_STATUSES:
        return Skip(f"model not available or bad request ({status})")
    if status == 429:
        if _is_quota_exhausted(response):
            return Skip("quota exhausted (429)")
        return Retryable(cooldown, "rate limited (429)")
    return FatalForProvider(f"HTTP {status}")
