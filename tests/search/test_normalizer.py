"""Tests for the query normalizer."""

import asyncio

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from livesearch.catalog.memory import InMemoryCatalog
from livesearch.config import SearchConfig
from livesearch.search.dictionaries import (
    DEFAULT_SYNONYMS,
    DEFAULT_TYPO_CORRECTIONS,
    load_synonyms,
    load_typo_corrections,
)
from livesearch.search.exceptions import QueryTooShortError
from livesearch.search.normalizer import QueryNormalizer


class TestPrepareUnit:
    """Trim, length check, case folding and the typo table."""

    def test_trims_and_lowercases(self):
        normalizer = QueryNormalizer()
        query = normalizer.prepare("   Red T-Shirt  ", SearchConfig())

        assert query.text == "red t-shirt"
        assert query.raw == "   Red T-Shirt  "
        assert not query.corrected

    def test_unicode_case_folding(self):
        normalizer = QueryNormalizer()
        assert normalizer.prepare("ÉCHARPE", SearchConfig()).text == "écharpe"

    def test_rejects_short_query(self):
        normalizer = QueryNormalizer()
        with pytest.raises(QueryTooShortError):
            normalizer.prepare("  a  ", SearchConfig(min_chars=2))

    def test_exact_min_chars_is_accepted(self):
        normalizer = QueryNormalizer()
        assert normalizer.prepare("abc", SearchConfig(min_chars=3)).text == "abc"

    def test_typo_table_corrects_whole_tokens(self):
        normalizer = QueryNormalizer(typo_corrections={"shose": "shoes"})
        query = normalizer.prepare("Red SHOSE", SearchConfig())

        assert query.text == "red shoes"
        assert query.corrected

    def test_typo_table_ignores_partial_tokens(self):
        normalizer = QueryNormalizer(typo_corrections={"jens": "jeans"})
        query = normalizer.prepare("jensen", SearchConfig())

        assert query.text == "jensen"
        assert not query.corrected

    def test_multi_word_entries(self):
        normalizer = QueryNormalizer()
        assert normalizer.prepare("tee shirt", SearchConfig()).text == "t-shirt"
        assert normalizer.prepare("tshirt red", SearchConfig()).text == "t-shirt red"

    def test_typo_correction_disabled(self):
        normalizer = QueryNormalizer(typo_corrections={"shose": "shoes"})
        query = normalizer.prepare("shose", SearchConfig(enable_typo_correction=False))

        assert query.text == "shose"


class TestClosestTokenUnit:
    """Bounded edit-distance selection."""

    def test_picks_smallest_distance(self):
        normalizer = QueryNormalizer()
        assert normalizer.closest_token("lampp", ["lamb", "lamp"]) == "lamp"

    def test_ties_go_to_earliest_token(self):
        normalizer = QueryNormalizer()
        assert normalizer.closest_token("bat", ["cat", "hat"]) == "cat"

    def test_rejects_tokens_beyond_max_distance(self):
        normalizer = QueryNormalizer(fuzzy_max_distance=2)
        assert normalizer.closest_token("sneakers", ["boots", "hat"]) is None


class TestNormalizeUnit:
    """Fuzzy repair and synonym passthrough."""

    @pytest.mark.asyncio
    async def test_fuzzy_repair_uses_recent_titles(self, product_factory):
        catalog = InMemoryCatalog([product_factory(1, "Velvet Cushion")])
        normalizer = QueryNormalizer(typo_corrections={})

        query = await normalizer.normalize("cushon", SearchConfig(), catalog)

        assert query.text == "cushion"
        assert query.repaired

    @pytest.mark.asyncio
    async def test_fuzzy_repair_prefers_most_recent_title(self, product_factory):
        catalog = InMemoryCatalog(
            [product_factory(1, "Lamb Rug"), product_factory(2, "Lamp Shade")]
        )
        normalizer = QueryNormalizer(typo_corrections={})

        query = await normalizer.normalize("lamx", SearchConfig(), catalog)

        assert query.text == "lamp"

    @pytest.mark.asyncio
    async def test_fuzzy_repair_keeps_query_found_inside_tokens(self, product_factory):
        catalog = InMemoryCatalog(
            [product_factory(1, "Grey Sweatshirt"), product_factory(2, "Red T-Shirt")]
        )
        normalizer = QueryNormalizer(typo_corrections={})

        query = await normalizer.normalize("shirt", SearchConfig(), catalog)

        assert query.text == "shirt"
        assert not query.repaired

    @pytest.mark.asyncio
    async def test_fuzzy_repair_skipped_for_short_queries(self, product_factory):
        catalog = InMemoryCatalog([product_factory(1, "Hat")])
        normalizer = QueryNormalizer(typo_corrections={})

        query = await normalizer.normalize("hax", SearchConfig(), catalog)

        assert query.text == "hax"
        assert not query.repaired

    @pytest.mark.asyncio
    async def test_fuzzy_repair_skipped_after_typo_correction(self, product_factory):
        catalog = InMemoryCatalog([product_factory(1, "Shops Sign")])
        normalizer = QueryNormalizer(typo_corrections={"shose": "shoes"})

        query = await normalizer.normalize("shose", SearchConfig(), catalog)

        assert query.text == "shoes"
        assert query.corrected
        assert not query.repaired

    @pytest.mark.asyncio
    async def test_fuzzy_repair_tolerates_sampler_failure(self):
        class BrokenCatalog(InMemoryCatalog):
            async def recent_title_tokens(self, limit):
                raise RuntimeError("sampler down")

        normalizer = QueryNormalizer(typo_corrections={})
        query = await normalizer.normalize("cushon", SearchConfig(), BrokenCatalog())

        assert query.text == "cushon"

    @pytest.mark.asyncio
    async def test_fuzzy_repair_tolerates_sampler_timeout(self):
        class SlowCatalog(InMemoryCatalog):
            async def recent_title_tokens(self, limit):
                await asyncio.sleep(1)
                return ["cushion"]

        normalizer = QueryNormalizer(typo_corrections={}, sample_timeout=0.01)
        query = await normalizer.normalize("cushon", SearchConfig(), SlowCatalog())

        assert query.text == "cushon"

    @pytest.mark.asyncio
    async def test_short_query_never_reaches_catalog(self):
        class ExplodingCatalog(InMemoryCatalog):
            async def recent_title_tokens(self, limit):
                raise AssertionError("catalog must not be called")

        normalizer = QueryNormalizer()
        with pytest.raises(QueryTooShortError):
            await normalizer.normalize(" x ", SearchConfig(min_chars=2), ExplodingCatalog())

    def test_synonym_expansion_is_passthrough(self):
        normalizer = QueryNormalizer()
        assert "shirt" in normalizer.synonyms
        assert normalizer.expand_synonyms("shirt") == "shirt"


class TestNormalizerProperties:
    """Property-based tests for the normalizer."""

    @given(
        query=st.text(min_size=0, max_size=12),
        min_chars=st.integers(min_value=1, max_value=5),
    )
    @settings(max_examples=100, deadline=None)
    def test_property_short_queries_rejected(self, query, min_chars):
        """Trimmed queries below min_chars always raise QueryTooShortError."""
        normalizer = QueryNormalizer()
        config = SearchConfig(min_chars=min_chars)

        if len(query.strip()) < min_chars:
            with pytest.raises(QueryTooShortError):
                normalizer.prepare(query, config)
        else:
            assert normalizer.prepare(query, config).text

    @given(query=st.text(min_size=2, max_size=30).filter(lambda q: len(q.strip()) >= 2))
    @settings(
        max_examples=100,
        deadline=None,
        suppress_health_check=[HealthCheck.function_scoped_fixture],
    )
    def test_property_normalize_is_deterministic(self, query, product_factory):
        """Normalizing the same query twice gives the same result."""
        catalog = InMemoryCatalog(
            [product_factory(1, "Velvet Cushion"), product_factory(2, "Lamp Shade")]
        )
        normalizer = QueryNormalizer()
        config = SearchConfig()

        first = asyncio.run(normalizer.normalize(query, config, catalog))
        second = asyncio.run(normalizer.normalize(query, config, catalog))

        assert first == second


class TestDictionaries:
    """Word table loading."""

    def test_default_tables(self):
        table = load_typo_corrections()
        assert table["shose"] == "shoes"
        assert table["tee shirt"] == "t-shirt"
        assert dict(table) == {k.lower(): v.lower() for k, v in DEFAULT_TYPO_CORRECTIONS.items()}
        assert load_synonyms()["pants"] == DEFAULT_SYNONYMS["pants"]

    def test_override_from_json(self, tmp_path):
        path = tmp_path / "typos.json"
        path.write_text('{"Shirtt": "Shirt"}', encoding="utf-8")

        assert load_typo_corrections(path) == {"shirtt": "shirt"}

    def test_override_must_be_object(self, tmp_path):
        path = tmp_path / "synonyms.json"
        path.write_text('["shirt"]', encoding="utf-8")

        with pytest.raises(ValueError):
            load_synonyms(path)
