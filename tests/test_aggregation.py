"""
Tests for aggregating extracted hops and assigning stable ids.
"""

import asyncio
import random

import pytest

from hop_pipeline.errors import ExtractionError, FetchError
from hop_pipeline.models import ScrapeStats
from hop_pipeline.pipeline.steps import aggregate, assign_ids

from conftest import make_record


def _names(table):
    return [(row.id, row.name) for row in table]


class TestAssignIds:

    def test_ids_follow_name_order(self):
        table = assign_ids([make_record("Willamette"), make_record("Cascade"), make_record("Fuggle")])
        assert _names(table) == [(1, "Cascade"), (2, "Fuggle"), (3, "Willamette")]

    def test_any_input_order_gives_same_ids(self):
        names = ["Willamette", "Cascade", "Fuggle", "Saaz", "Amarillo"]
        expected = _names(assign_ids([make_record(n) for n in names]))
        for seed in range(5):
            shuffled = names[:]
            random.Random(seed).shuffle(shuffled)
            assert _names(assign_ids([make_record(n) for n in shuffled])) == expected

    def test_equal_names_keep_discovery_order(self):
        first = make_record("Cascade", url="https://www.hopcatalog.com/a/")
        second = make_record("Cascade", url="https://www.hopcatalog.com/b/")
        table = assign_ids([second, make_record("Amarillo"), first])
        assert [row.url for row in table.rows[1:]] == [second.url, first.url]

    def test_exact_policy_is_case_sensitive(self):
        table = assign_ids([make_record("admiral"), make_record("Zeus")], sort_policy="exact")
        assert [row.name for row in table] == ["Zeus", "admiral"]

    def test_casefold_policy(self):
        table = assign_ids([make_record("admiral"), make_record("Zeus")], sort_policy="casefold")
        assert [row.name for row in table] == ["admiral", "Zeus"]

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            assign_ids([make_record("Saaz")], sort_policy="locale")

    def test_empty(self):
        assert len(assign_ids([])) == 0


class TestAggregate:

    @pytest.mark.asyncio
    async def test_output_order_ignores_completion_order(self):
        delays = {"u/willamette": 0.0, "u/cascade": 0.03, "u/fuggle": 0.01}

        async def extract(url):
            await asyncio.sleep(delays[url])
            return make_record(url.split("/")[-1].title(), url=url)

        table = await aggregate(list(delays), extract)
        assert _names(table) == [(1, "Cascade"), (2, "Fuggle"), (3, "Willamette")]

    @pytest.mark.asyncio
    async def test_failed_pages_are_skipped_and_counted(self):
        async def extract(url):
            if url == "u/broken":
                raise FetchError(url, "status", status_code=500)
            if url == "u/empty":
                raise ExtractionError(url, "name")
            return make_record(url.split("/")[-1].title(), url=url)

        stats = ScrapeStats()
        table = await aggregate(["u/saaz", "u/broken", "u/empty", "u/magnum"], extract, stats)

        assert _names(table) == [(1, "Magnum"), (2, "Saaz")]
        assert stats.records_extracted == 2
        assert stats.links_skipped == 2
        assert len(stats.errors) == 2
        assert stats.errors[0].startswith("u/broken")

    @pytest.mark.asyncio
    async def test_unexpected_errors_propagate(self):
        async def extract(url):
            raise RuntimeError("parser bug")

        with pytest.raises(RuntimeError):
            await aggregate(["u/saaz"], extract)

    @pytest.mark.asyncio
    async def test_unexpected_error_cancels_pending_pages(self):
        cancelled = []

        async def extract(url):
            if url == "u/broken":
                raise RuntimeError("parser bug")
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.append(url)
                raise
            return make_record(url.split("/")[-1].title(), url=url)

        with pytest.raises(RuntimeError):
            await aggregate(["u/saaz", "u/broken", "u/magnum"], extract)

        assert sorted(cancelled) == ["u/magnum", "u/saaz"]

    @pytest.mark.asyncio
    async def test_calls_extract_once_per_url(self):
        calls = []

        async def extract(url):
            calls.append(url)
            return make_record("Saaz", url=url)

        urls = ["u/saaz", "u/saaz", "u/saaz-2"]
        table = await aggregate(urls, extract)
        assert sorted(calls) == sorted(urls)
        assert len(table) == 3
