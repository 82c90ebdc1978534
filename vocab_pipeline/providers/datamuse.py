from __future__ import annotations

import asyncio
import logging
import time

import httpx

from vocab_pipeline.models import Sense, WordSignal
from vocab_pipeline.providers.base import LexicalProvider, ProviderError
from vocab_pipeline.rate_limiter import RateLimiter

log = logging.getLogger("vocab_pipeline.datamuse")

_POS_TAGS = {"n": "noun", "v": "verb", "adj": "adjective", "adv": "adverb"}
_RETRY_STATUS = {429, 500, 502, 503, 504}


def parse_word_entry(entry: dict) -> WordSignal:
    """Turn one Datamuse ``/words`` result (with ``md=fpsd``) into a WordSignal."""
    frequency = None
    parts: list[str] = []
    for tag in entry.get("tags", []):
        if tag.startswith("f:"):
            try:
                frequency = float(tag[2:])
            except ValueError:
                log.debug("Bad frequency tag %r for %r", tag, entry.get("word"))
        elif tag in _POS_TAGS:
            parts.append(_POS_TAGS[tag])

    senses = []
    for d in entry.get("defs", []):
        pos, _, text = d.partition("\t")
        if not text:
            pos, text = "", pos
        senses.append(Sense(definition=text.strip(), pos=_POS_TAGS.get(pos, pos)))

    return WordSignal(
        word=entry.get("word", ""),
        frequency=frequency,
        syllables=entry.get("numSyllables"),
        parts_of_speech=parts,
        definitions=senses,
        raw=entry,
    )


class DatamuseProvider(LexicalProvider):
    def __init__(
        self,
        base_url: str = "https://api.datamuse.com",
        limiter: RateLimiter | None = None,
        timeout: float = 10.0,
        max_retries: int = 3,
        backoff: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.limiter = limiter or RateLimiter()
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff = backoff
        self._transport = transport

    async def _get(self, params: dict) -> list[dict]:
        delay = self.backoff
        last_error: Exception | None = None
        for attempt in range(1, self.max_retries + 1):
            await self.limiter.acquire()
            t0 = time.monotonic()
            try:
                async with httpx.AsyncClient(
                    timeout=self.timeout, transport=self._transport
                ) as client:
                    resp = await client.get(f"{self.base_url}/words", params=params)
                    resp.raise_for_status()
                    data = resp.json()
                log.debug("GET /words %s (%.2fs)", params, time.monotonic() - t0)
                return data if isinstance(data, list) else []
            except httpx.HTTPStatusError as e:
                if e.response.status_code not in _RETRY_STATUS:
                    raise ProviderError(f"Datamuse returned {e.response.status_code}") from e
                last_error = e
            except (httpx.TransportError, ValueError) as e:
                last_error = e

            if attempt < self.max_retries:
                log.warning(
                    "Datamuse request failed (attempt %d/%d): %s, retrying in %.1fs",
                    attempt, self.max_retries, last_error, delay,
                )
                await asyncio.sleep(delay)
                delay *= 2

        raise ProviderError(
            f"Datamuse request failed after {self.max_retries} attempts: {last_error}"
        ) from last_error

    async def lookup(self, word: str) -> WordSignal | None:
        results = await self._get({"sp": word, "md": "fpsd", "max": 1})
        for entry in results:
            if entry.get("word", "").lower() == word.lower():
                return parse_word_entry(entry)
        return None

    async def related_words(self, word: str, relation: str, limit: int = 5) -> list[str]:
        if relation not in ("syn", "ant"):
            raise ValueError(f"Unsupported relation: {relation}")
        results = await self._get({f"rel_{relation}": word, "max": limit})
        return [r["word"] for r in results if r.get("word")]

    def name(self) -> str:
        return "datamuse"
