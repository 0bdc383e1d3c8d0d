from unittest.mock import AsyncMock

import pytest

from config.settings import ApiSettings
from payloads import BASE_URL, id_from_pokemon_url, make_list_payload, make_pokemon_payload
from pokedex.progress import ProgressState
from pokedex.region_fetcher import RegionFetcher
from pokedex.request_executor import RequestError


def fake_api(list_ok=True, failing_ids=(), list_payload=None):
    """
    Build an `execute` side effect that answers list and record URLs.

    Args:
        list_ok: Whether the directory endpoint answers.
        failing_ids: Record ids that always fail.
        list_payload: Explicit directory payload (default: derived from the query).
    """
    calls = []

    async def execute(url):
        calls.append(url)
        if "?limit=" in url:
            if not list_ok:
                raise RequestError("HTTP error! status: 503", url, status=503)
            if list_payload is not None:
                return list_payload
            query = url.split("?", 1)[1]
            params = dict(part.split("=") for part in query.split("&"))
            offset, limit = int(params["offset"]), int(params["limit"])
            return make_list_payload(offset + 1, offset + limit)

        pokemon_id = id_from_pokemon_url(url)
        if pokemon_id in failing_ids:
            raise RequestError("HTTP error! status: 500", url, status=500)
        return make_pokemon_payload(pokemon_id)

    execute.calls = calls
    return execute


def record_calls(calls):
    return [url for url in calls if "?limit=" not in url]


@pytest.mark.asyncio
class TestRegionFetcher:
    async def test_primary_path_returns_sorted_records(self, fetcher, mock_executor):
        api = fake_api()
        mock_executor.execute.side_effect = api
        progress = ProgressState()

        result = await fetcher.fetch_range(1, 25, on_progress=progress)

        assert [p.id for p in result] == list(range(1, 26))
        assert progress.history[0] == (0, 25)
        assert progress.history[-1] == (25, 25)
        assert api.calls[0] == f"{BASE_URL}/pokemon?limit=25&offset=0"
        # One list call, one call per record
        assert len(api.calls) == 26

    async def test_primary_path_reports_after_each_batch(self, fetcher, mock_executor):
        mock_executor.execute.side_effect = fake_api()
        progress = ProgressState()

        await fetcher.fetch_range(1, 25, on_progress=progress)

        assert progress.history == [(0, 25), (10, 25), (20, 25), (25, 25)]

    async def test_fallback_triggers_on_list_failure(self, fetcher, mock_executor):
        api = fake_api(list_ok=False)
        mock_executor.execute.side_effect = api
        progress = ProgressState()

        result = await fetcher.fetch_range(1, 12, on_progress=progress)

        assert [p.id for p in result] == list(range(1, 13))
        assert record_calls(api.calls) == [f"{BASE_URL}/pokemon/{i}" for i in range(1, 13)]
        # The fallback path does not announce (0, total) first
        assert progress.history == [(10, 12), (12, 12)]

    async def test_fallback_triggers_on_empty_list(self, fetcher, mock_executor):
        api = fake_api(list_payload={"count": 0, "results": []})
        mock_executor.execute.side_effect = api

        result = await fetcher.fetch_range(4, 6)

        assert [p.id for p in result] == [4, 5, 6]
        # The list call is not retried by the orchestrator itself
        assert sum("?limit=" in url for url in api.calls) == 1

    async def test_partial_failure_is_tolerated(self, fetcher, mock_executor):
        mock_executor.execute.side_effect = fake_api(failing_ids={2})
        progress = ProgressState()

        result = await fetcher.fetch_range(1, 3, on_progress=progress)

        assert [p.id for p in result] == [1, 3]
        assert progress.history[-1] == (2, 3)

    async def test_partial_failure_in_fallback(self, fetcher, mock_executor):
        mock_executor.execute.side_effect = fake_api(list_ok=False, failing_ids={2})

        result = await fetcher.fetch_range(1, 3)

        assert [p.id for p in result] == [1, 3]

    async def test_everything_failing_returns_empty(self, fetcher, mock_executor):
        mock_executor.execute.side_effect = RequestError("offline", BASE_URL)
        progress = ProgressState()

        result = await fetcher.fetch_range(1, 5, on_progress=progress)

        assert result == []
        assert progress.history == [(0, 5)]

    async def test_progress_is_monotonic(self, fetcher, mock_executor):
        mock_executor.execute.side_effect = fake_api(failing_ids={3, 14, 15, 27})
        reported = []

        await fetcher.fetch_range(1, 40, on_progress=lambda c, t: reported.append(c))

        assert reported == sorted(reported)
        assert reported[-1] == 36

    async def test_result_is_sorted_when_list_is_unordered(self, fetcher, mock_executor):
        payload = make_list_payload(1, 5)
        payload["results"].reverse()
        mock_executor.execute.side_effect = fake_api(list_payload=payload)

        result = await fetcher.fetch_range(1, 5)

        assert [p.id for p in result] == [1, 2, 3, 4, 5]

    async def test_unparseable_list_entry_is_dropped(self, fetcher, mock_executor):
        payload = make_list_payload(1, 3)
        payload["results"][1]["url"] = f"{BASE_URL}/pokemon/not-a-number/"
        mock_executor.execute.side_effect = fake_api(list_payload=payload)

        result = await fetcher.fetch_range(1, 3)

        assert [p.id for p in result] == [1, 3]

    async def test_records_are_served_from_cache_on_repeat(self, fetcher, mock_executor):
        api = fake_api()
        mock_executor.execute.side_effect = api

        await fetcher.fetch_range(1, 10)
        first_count = len(api.calls)
        again = await fetcher.fetch_range(1, 10)

        assert len(again) == 10
        assert len(api.calls) == first_count

    async def test_result_is_written_to_region_cache(self, fetcher, mock_executor, caches):
        mock_executor.execute.side_effect = fake_api()

        assert fetcher.cached_range(1, 3) is None
        result = await fetcher.fetch_range(1, 3)

        assert fetcher.cached_range(1, 3) == result
        assert caches.region.has("region-1-3")
        assert not caches.pokemon.has("region-1-3")

    async def test_invalid_range_makes_no_calls(self, fetcher, mock_executor):
        assert await fetcher.fetch_range(10, 1) == []
        assert await fetcher.fetch_range(0, 5) == []
        mock_executor.execute.assert_not_awaited()

    async def test_fetch_region_by_id(self, fetcher, mock_executor):
        api = fake_api()
        mock_executor.execute.side_effect = api

        result = await fetcher.fetch_region("kanto")

        assert len(result) == 151
        assert api.calls[0] == f"{BASE_URL}/pokemon?limit=151&offset=0"

    async def test_fetch_region_unknown_id(self, fetcher):
        with pytest.raises(ValueError):
            await fetcher.fetch_region("orre")


@pytest.mark.asyncio
async def test_batches_run_sequentially_with_delay(client, caches, mocker):
    settings = ApiSettings(base_url=BASE_URL, batch_size=4, delay_ms=150)
    fetcher = RegionFetcher(client, caches, settings)
    client.executor.execute.side_effect = fake_api()
    sleep = mocker.patch(
        "pokedex.region_fetcher.asyncio.sleep", new_callable=AsyncMock
    )

    in_flight = 0
    peak = 0
    original = client.fetch_pokemon

    async def tracking_fetch(pokemon_id):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        try:
            return await original(pokemon_id)
        finally:
            in_flight -= 1

    mocker.patch.object(client, "fetch_pokemon", side_effect=tracking_fetch)

    result = await fetcher.fetch_range(1, 10)

    assert len(result) == 10
    assert peak <= 4
    # Three batches, two pauses
    assert sleep.await_count == 2
    sleep.assert_awaited_with(0.15)
