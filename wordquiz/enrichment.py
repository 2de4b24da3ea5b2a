"""
Cache-first lexical enrichment (synonyms, antonyms, example sentence).

A word is looked up remotely at most once: the first successful answer is
written to the durable store and served from there forever after. Failures
never raise; they degrade to the canonical placeholder result, which is not
cached so that a later call (with credentials, online, after a quota reset)
can still succeed.
"""

import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

import httpx

from .config import Settings
from .errors import StorageError
from .kv_store import KeyValueStore
from .llm_utils import build_enrichment_prompt, completion_content, extract_first_json_object
from .models import Enrichment
from .monitoring import ascii_safe
from .openrouter_monitor import QuotaMonitor
from .providers import (
    FatalForProvider,
    Outcome,
    Provider,
    Retryable,
    Success,
    classify_status,
    openrouter_providers,
)

logger = logging.getLogger(__name__)

CACHE_PREFIX = "enrich-v3:"


def normalize_word(word: str) -> str:
    return (word or "").strip().lower()


def cache_key(word: str) -> str:
    return CACHE_PREFIX + normalize_word(word)


class EnrichmentClient:
    def __init__(
        self,
        kv: KeyValueStore,
        providers: List[Provider],
        *,
        timeout: float = 15.0,
        rate_limit_cooldown: float = 8.0,
        batch_delay: float = 2.0,
        is_online: Optional[Callable[[], bool]] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        quota_monitor: Optional[QuotaMonitor] = None,
    ):
        self.kv = kv
        self.providers = list(providers)
        self.timeout = timeout
        self.rate_limit_cooldown = rate_limit_cooldown
        self.batch_delay = batch_delay
        self.is_online = is_online or (lambda: True)
        self.quota_monitor = quota_monitor or QuotaMonitor()
        self._http_client = http_client
        self._sleep = sleep

    @classmethod
    def from_settings(cls, kv: KeyValueStore, settings: Settings, **kwargs) -> "EnrichmentClient":
        providers = openrouter_providers(settings.api_url, settings.models, settings.api_key)
        return cls(
            kv,
            providers,
            timeout=settings.request_timeout,
            rate_limit_cooldown=settings.rate_limit_cooldown,
            batch_delay=settings.batch_delay,
            **kwargs,
        )

    @property
    def has_credentials(self) -> bool:
        return any(p.configured for p in self.providers)

    async def get_enrichment(self, word: str) -> Enrichment:
        result, _ = await self._lookup(word)
        return result

    async def _lookup(self, word: str) -> Tuple[Enrichment, bool]:
        """Return (result, whether a network call was made)."""
        w = normalize_word(word)
        if not w:
            return Enrichment.empty(), False
        try:
            cached = await self._read_cache(w)
            if cached is not None:
                logger.debug(f"Enrichment cache hit for '{ascii_safe(w)}'")
                return cached, False
            if not self.has_credentials:
                logger.debug("No provider credential configured; returning placeholder")
                return Enrichment.empty(), False
            if not self.is_online():
                logger.info(f"Offline; skipping remote enrichment for '{ascii_safe(w)}'")
                return Enrichment.empty(), False
            result = await self._fetch(w)
        except Exception:
            logger.exception(f"Enrichment lookup failed for '{ascii_safe(w)}'")
            return Enrichment.empty(), False
        if result is None:
            logger.warning(f"All providers failed for '{ascii_safe(w)}'; returning placeholder")
            return Enrichment.empty(), True
        await self._write_cache(w, result)
        return result, True

    async def _read_cache(self, w: str) -> Optional[Enrichment]:
        raw = await self.kv.get(cache_key(w))
        if raw is None:
            return None
        try:
            return Enrichment.model_validate_json(raw)
        except ValueError as e:
            logger.warning(f"Discarding unreadable cache entry for '{ascii_safe(w)}': {e}")
            return None

    async def _write_cache(self, w: str, result: Enrichment) -> None:
        try:
            await self.kv.set(cache_key(w), result.model_dump_json())
        except (StorageError, OSError) as e:
            logger.warning(f"Could not cache enrichment for '{ascii_safe(w)}': {e}")

    async def _fetch(self, w: str) -> Optional[Enrichment]:
        if self._http_client is not None:
            return await self._try_providers(self._http_client, w)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await self._try_providers(client, w)

    async def _try_providers(self, client: httpx.AsyncClient, w: str) -> Optional[Enrichment]:
        configured = [p for p in self.providers if p.configured]
        for i, provider in enumerate(configured):
            outcome = await self._attempt(client, provider, w)
            if isinstance(outcome, Success):
                logger.info(f"Enriched '{ascii_safe(w)}' via {provider.name}")
                return outcome.value
            if isinstance(outcome, Retryable) and i == len(configured) - 1:
                logger.warning(f"{provider.name}: {outcome.reason}; no provider left")
            elif isinstance(outcome, Retryable):
                logger.warning(f"{provider.name}: {outcome.reason}; backing off {outcome.delay:.1f}s")
                await self._sleep(outcome.delay)
            else:
                logger.warning(f"{provider.name}: {outcome.reason}; trying next provider")
        return None

    async def _attempt(self, client: httpx.AsyncClient, provider: Provider, w: str) -> Outcome[Enrichment]:
        body = build_enrichment_prompt(w, provider.model)
        try:
            response = await client.post(provider.url, json=body, headers=provider.headers(), timeout=self.timeout)
        except httpx.TimeoutException:
            return FatalForProvider(f"timed out after {self.timeout:.0f}s")
        except httpx.HTTPError as e:
            return FatalForProvider(f"transport error: {ascii_safe(e)}")
        self.quota_monitor.update_quota(provider.name, response.headers)
        failure = classify_status(response, self.rate_limit_cooldown)
        if failure is not None:
            return failure
        try:
            payload = response.json()
        except ValueError:
            return FatalForProvider("response is not JSON")
        data = extract_first_json_object(completion_content(payload))
        if data is None:
            return FatalForProvider("no JSON object in completion")
        return Success(Enrichment.from_payload(data))

    # ---- batch ----
    async def iter_enrichments(
        self, words: Iterable[str], stop_event: Optional[asyncio.Event] = None
    ) -> AsyncIterator[Tuple[str, Enrichment]]:
        """Yield (word, enrichment) one word at a time.

        Remote calls are strictly sequential, with batch_delay seconds after each
        one; cache hits go straight through. Setting stop_event (or cancelling
        the consuming task) stops scheduling further lookups.
        """
        pending = list(words)
        for i, word in enumerate(pending):
            if stop_event is not None and stop_event.is_set():
                logger.info(f"Batch enrichment stopped after {i}/{len(pending)} words")
                return
            result, networked = await self._lookup(word)
            yield word, result
            if networked and i < len(pending) - 1:
                await self._sleep(self.batch_delay)

    async def enrich_all(
        self, words: Iterable[str], stop_event: Optional[asyncio.Event] = None
    ) -> Dict[str, Enrichment]:
        results: Dict[str, Enrichment] = {}
        async for word, result in self.iter_enrichments(words, stop_event):
            results[word] = result
        return results
