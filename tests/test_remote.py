"""
Tests for the online leaderboard client against a fake remote server.
"""

from urllib.parse import unquote

import pytest

from runboard.config import BoardCredentials, LeaderboardConfig
from runboard.net.cache import BoardCache
from runboard.net.remote import ERR_CONNECT, ERR_TIMEOUT, ERR_UNKNOWN_BOARD, RemoteLeaderboardClient
from tests.conftest import TODAY, dreamlo_payload, make_entry, raw_entry


@pytest.fixture
async def client(remote_config, clock):
    c = RemoteLeaderboardClient(remote_config, clock=clock)
    yield c
    await c.close()


class TestUrls:
    def test_relay_wraps_encoded_target(self):
        c = RemoteLeaderboardClient(LeaderboardConfig(relay_url="https://relay.example/?"))
        url = c.build_url("/pub/json")
        assert url.startswith("https://relay.example/?http%3A%2F%2F")
        assert unquote(url[len("https://relay.example/?"):]) == "http://dreamlo.com/lb/pub/json"

    def test_direct_without_relay(self):
        c = RemoteLeaderboardClient(LeaderboardConfig(relay_url=""))
        assert c.build_url("/pub/json") == "http://dreamlo.com/lb/pub/json"


class TestSubmit:
    async def test_submit_encodes_fields(self, client, remote_state):
        ok = await client.submit(make_entry(24700, name="Ann@ #1!!", floor=3, character="scout", duration=200))
        assert ok is True
        sub = remote_state.submissions[0]
        assert sub["key"] == "priv-all"
        assert sub["name"] == "Ann1"
        assert sub["score"] == 24700
        assert sub["seconds"] == 200
        assert sub["text"] == f"3|scout|{TODAY}"

    async def test_daily_board_uses_its_own_key(self, client, remote_state):
        assert await client.submit_daily(make_entry(500)) is True
        assert remote_state.submissions[0]["key"] == "priv-daily"

    @pytest.mark.parametrize("score", [0, 200001])
    async def test_out_of_range_score_rejected_locally(self, client, remote_state, score):
        assert await client.submit(make_entry(score)) is False
        assert remote_state.submissions == []

    async def test_unknown_board(self, client):
        assert await client.submit(make_entry(100), "weekly") is False

    async def test_non_2xx_is_failure(self, client, remote_state):
        remote_state.status = 500
        assert await client.submit(make_entry(100)) is False

    async def test_timeout_is_failure(self, client, remote_state):
        remote_state.delay = 1.0
        assert await client.submit(make_entry(100)) is False

    async def test_unreachable_host(self, clock):
        config = LeaderboardConfig(
            remote_base_url="http://127.0.0.1:9/lb",
            relay_url="",
            request_timeout_sec=0.5,
            boards={"allTime": BoardCredentials(boardType="allTime", publicKey="pub", privateKey="priv")},
        )
        c = RemoteLeaderboardClient(config, clock=clock)
        try:
            assert await c.submit(make_entry(100)) is False
            assert (await c.fetch()).error in (ERR_CONNECT, ERR_TIMEOUT)
        finally:
            await c.close()


class TestFetch:
    async def test_parses_and_slices(self, client, remote_state):
        remote_state.boards["pub-all"] = dreamlo_payload(raw_entry("A", 900), raw_entry("B", 800), raw_entry("C", 700))
        result = await client.fetch(2)
        assert result.error is None
        assert [e.name for e in result.entries] == ["A", "B"]
        assert result.total_count == 3

    async def test_single_entry_board(self, client, remote_state):
        remote_state.boards["pub-all"] = dreamlo_payload(raw_entry("Solo", 1200))
        result = await client.fetch()
        assert [e.name for e in result.entries] == ["Solo"]

    async def test_cached_within_ttl(self, client, remote_state, clock):
        await client.fetch()
        clock.advance(59)
        await client.fetch()
        assert remote_state.reads == 1

    async def test_refetch_after_ttl(self, client, remote_state, clock):
        await client.fetch()
        clock.advance(60)
        await client.fetch()
        assert remote_state.reads == 2

    async def test_boards_cached_independently(self, client, remote_state):
        await client.fetch(board_type="allTime")
        await client.fetch(board_type="daily")
        assert remote_state.reads == 2

    async def test_submit_invalidates_cache(self, client, remote_state):
        await client.fetch()
        assert await client.submit(make_entry(100)) is True
        await client.fetch()
        assert remote_state.reads == 2

    async def test_failed_submit_keeps_cache(self, client, remote_state):
        await client.fetch()
        remote_state.status = 503
        assert await client.submit(make_entry(100)) is False
        remote_state.status = 200
        await client.fetch()
        assert remote_state.reads == 1

    async def test_clear_cache(self, client, remote_state):
        await client.fetch()
        client.clear_cache("allTime")
        await client.fetch()
        client.clear_cache()
        await client.fetch()
        assert remote_state.reads == 3

    async def test_timeout(self, client, remote_state):
        remote_state.delay = 1.0
        result = await client.fetch()
        assert result.entries == []
        assert result.total_count == 0
        assert result.error == ERR_TIMEOUT

    async def test_http_error(self, client, remote_state):
        remote_state.status = 502
        result = await client.fetch()
        assert result.error == ERR_CONNECT

    async def test_malformed_json(self, client, remote_state):
        remote_state.body = "<html>rate limited</html>"
        result = await client.fetch()
        assert result.error == ERR_CONNECT

    async def test_unknown_board(self, client, remote_state):
        result = await client.fetch(board_type="weekly")
        assert result.error == ERR_UNKNOWN_BOARD
        assert remote_state.reads == 0

    async def test_availability(self, client, remote_state):
        assert await client.check_availability() is True
        client.clear_cache()
        remote_state.status = 500
        assert await client.check_availability() is False


class TestDailyFiltered:
    async def test_filters_to_date(self, client, remote_state):
        remote_state.boards["pub-daily"] = dreamlo_payload(
            raw_entry("Old", 900, text="4|tank|2026-10-16"),
            raw_entry("A", 800),
            raw_entry("B", 700),
        )
        result = await client.get_daily_filtered(10, TODAY)
        assert [e.name for e in result.entries] == ["A", "B"]
        assert result.total_count == 2

    async def test_error_passes_through(self, client, remote_state):
        remote_state.status = 500
        result = await client.get_daily_filtered(10, TODAY)
        assert result.error == ERR_CONNECT


class TestGlobalRank:
    async def test_exact_match_case_insensitive(self, client, remote_state):
        remote_state.boards["pub-all"] = dreamlo_payload(raw_entry("Bo", 900), raw_entry("ANN1", 800))
        result = await client.get_global_rank("ann@1", 10)
        assert result.rank == 2
        assert result.total == 2

    async def test_estimated_rank_for_absent_player(self, client, remote_state):
        remote_state.boards["pub-all"] = dreamlo_payload(
            raw_entry("A", 90000), raw_entry("B", 70000), raw_entry("C", 60000), raw_entry("D", 40000)
        )
        result = await client.get_global_rank("Newcomer", 50000)
        assert result.rank == 4
        assert result.total == 5
        assert result.error is None

    async def test_error(self, client, remote_state):
        remote_state.delay = 1.0
        result = await client.get_global_rank("Ann", 100)
        assert result.rank is None
        assert result.error == ERR_TIMEOUT


class TestBoardCache:
    def test_expiry_and_invalidation(self, clock):
        cache = BoardCache(60.0, clock)
        assert cache.get("allTime") is None
        cache.put("allTime", [make_entry(1)])
        assert cache.get("allTime") is not None
        clock.advance(60)
        assert cache.get("allTime") is None
        cache.put("allTime", [])
        cache.invalidate("allTime")
        assert cache.get("allTime") is None
