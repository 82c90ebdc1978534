from __future__ import annotations

from abc import ABC, abstractmethod

from vocab_pipeline.models import Sense, WordSignal


class ProviderError(Exception):
    """The external lexical service could not answer, even after retries."""


class LexicalProvider(ABC):
    @abstractmethod
    async def lookup(self, word: str) -> WordSignal | None:
        """Frequency, syllables and senses for *word*, or None if unknown."""

    @abstractmethod
    async def related_words(self, word: str, relation: str, limit: int = 5) -> list[str]:
        """Related words; *relation* is "syn" or "ant"."""

    async def definitions(self, word: str) -> list[Sense]:
        signal = await self.lookup(word)
        return list(signal.definitions) if signal else []

    @abstractmethod
    def name(self) -> str:
        ...
