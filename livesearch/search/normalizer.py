"""Query normalization: trim, case-fold, typo correction and fuzzy repair."""

import asyncio
import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from rapidfuzz.distance import Levenshtein

from livesearch.catalog.base import CatalogAdapter
from livesearch.config import SearchConfig
from livesearch.search.dictionaries import load_synonyms, load_typo_corrections
from livesearch.search.exceptions import QueryTooShortError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class NormalizedQuery:
    """Normalized representation of a shopper's query.

    Attributes:
        raw: The string as received
        text: Lower-cased, corrected text handed to the gatherer
        corrected: The typo table rewrote the query
        repaired: Fuzzy repair replaced the query with a catalog token
    """

    raw: str
    text: str
    corrected: bool = False
    repaired: bool = False


class QueryNormalizer:
    """Turn raw shopper input into the query the gatherer searches for.

    Steps run in order: trim and length check, lower-casing, typo table,
    bounded fuzzy repair against recent catalog titles, synonym expansion.
    Synonym expansion is a passthrough for now; the table is loaded so
    deployments can already ship one.
    """

    def __init__(
        self,
        typo_corrections: Mapping[str, str] | None = None,
        synonyms: Mapping[str, Iterable[str]] | None = None,
        fuzzy_sample_size: int = 100,
        fuzzy_max_distance: int = 2,
        fuzzy_min_length: int = 4,
        sample_timeout: float | None = None,
    ):
        """Initialize the normalizer.

        Args:
            typo_corrections: Misspelling -> canonical map (built-in when None)
            synonyms: Word -> alternatives map (built-in when None)
            fuzzy_sample_size: Recent titles sampled for fuzzy repair
            fuzzy_max_distance: Largest edit distance fuzzy repair accepts
            fuzzy_min_length: Shortest query fuzzy repair runs for
            sample_timeout: Budget in seconds for fetching the title sample
        """
        if typo_corrections is None:
            typo_corrections = load_typo_corrections()
        if synonyms is None:
            synonyms = load_synonyms()

        self.typo_corrections = {
            bad.lower(): good.lower() for bad, good in typo_corrections.items() if bad
        }
        self.synonyms = {word.lower(): tuple(alts) for word, alts in synonyms.items()}
        self.fuzzy_sample_size = fuzzy_sample_size
        self.fuzzy_max_distance = fuzzy_max_distance
        self.fuzzy_min_length = fuzzy_min_length
        self.sample_timeout = sample_timeout

        self._typo_patterns = [
            (re.compile(rf"(?<!\w){re.escape(bad)}(?!\w)", re.IGNORECASE), good)
            for bad, good in self.typo_corrections.items()
        ]

    def prepare(self, raw_query: str, config: SearchConfig) -> NormalizedQuery:
        """Run the steps that need no catalog access.

        Raises:
            QueryTooShortError: If the trimmed query is below ``min_chars``
        """
        trimmed = (raw_query or "").strip()
        if len(trimmed) < config.min_chars:
            logger.info(
                f"Rejecting query shorter than min_chars "
                f"(len={len(trimmed)}, min_chars={config.min_chars})"
            )
            raise QueryTooShortError(
                f"Query must be at least {config.min_chars} characters long"
            )

        text = trimmed.lower()
        corrected = False
        if config.enable_typo_correction:
            fixed = self.correct_typos(text)
            if fixed != text:
                logger.debug(f"Typo correction: '{text}' -> '{fixed}'")
                text, corrected = fixed, True

        return NormalizedQuery(raw=raw_query, text=text, corrected=corrected)

    async def normalize(
        self,
        raw_query: str,
        config: SearchConfig,
        catalog: CatalogAdapter,
    ) -> NormalizedQuery:
        """Normalize ``raw_query`` for the gatherer.

        Args:
            raw_query: Query as typed by the shopper
            config: Search options captured for this request
            catalog: Adapter used to sample recent titles for fuzzy repair

        Returns:
            NormalizedQuery ready for candidate gathering

        Raises:
            QueryTooShortError: Before any catalog access
        """
        query = self.prepare(raw_query, config)

        if (
            config.enable_typo_correction
            and not query.corrected
            and len(query.text) >= self.fuzzy_min_length
        ):
            query = await self._fuzzy_repair(query, catalog)

        text = self.expand_synonyms(query.text) if config.enable_synonyms else query.text
        if text != query.text:
            query = NormalizedQuery(
                raw=query.raw,
                text=text,
                corrected=query.corrected,
                repaired=query.repaired,
            )
        return query

    def correct_typos(self, text: str) -> str:
        """Apply the typo table as whole-token, case-insensitive replacements."""
        for pattern, replacement in self._typo_patterns:
            text = pattern.sub(replacement, text)
        return text

    def closest_token(self, text: str, tokens: Iterable[str]) -> str | None:
        """Closest token within ``fuzzy_max_distance``; earliest wins ties."""
        best: str | None = None
        best_distance = self.fuzzy_max_distance + 1
        for token in tokens:
            distance = Levenshtein.distance(
                text, token, score_cutoff=self.fuzzy_max_distance
            )
            if distance < best_distance:
                best, best_distance = token, distance
                if distance == 0:
                    break
        return best

    def expand_synonyms(self, text: str) -> str:
        """Synonym expansion hook. Returns ``text`` unchanged."""
        return text

    async def _fuzzy_repair(
        self,
        query: NormalizedQuery,
        catalog: CatalogAdapter,
    ) -> NormalizedQuery:
        try:
            tokens = await asyncio.wait_for(
                catalog.recent_title_tokens(self.fuzzy_sample_size),
                timeout=self.sample_timeout,
            )
        except TimeoutError:
            logger.warning("Fuzzy repair skipped: title sample timed out")
            return query
        except Exception as e:
            logger.warning(f"Fuzzy repair skipped: title sample failed: {e}")
            return query

        # Already matches catalog titles as typed
        if any(query.text in token for token in tokens):
            return query

        token = self.closest_token(query.text, tokens)
        if token is None or token == query.text:
            return query

        logger.info(f"Fuzzy repair: '{query.text}' -> '{token}'")
        return NormalizedQuery(raw=query.raw, text=token, repaired=True)


__all__ = ["NormalizedQuery", "QueryNormalizer"]
