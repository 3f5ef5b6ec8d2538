"""
Tests for the EDHREC client against a mocked transport.
"""
import httpx
import pytest

from mtg_ingest.services.edhrec import EDHRECClient, slug_from_url
from mtg_ingest.services.errors import (
    ExternalServiceError,
    InvalidResponseError,
    NotFoundError,
    RateLimitError,
    TransientServiceError,
)


def ranking_payload(count: int) -> dict:
    return {
        "container": {
            "json_dict": {
                "cardlists": [
                    {
                        "cardviews": [
                            {"name": f"Commander {i}", "url": f"/commanders/commander-{i}"}
                            for i in range(1, count + 1)
                        ]
                    }
                ]
            }
        }
    }


def decklist_payload(commander: str, others: int) -> dict:
    return {
        "container": {
            "json_dict": {
                "cardlists": [
                    {"tag": "commanders", "cardviews": [{"name": commander}]},
                    {"header": "Creatures", "cardviews": [{"name": f"Creature {i}"} for i in range(others)]},
                    {"cardviews": []},
                ]
            }
        }
    }


def make_client(handler, **kwargs) -> EDHRECClient:
    return EDHRECClient(
        base_url="https://edhrec.com",
        json_url="https://json.edhrec.com",
        rate_limit_seconds=0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_slug_from_url():
    assert slug_from_url("https://edhrec.com/commanders/atraxa-praetors-voice") == "atraxa-praetors-voice"
    assert slug_from_url("https://edhrec.com/commanders/atraxa-praetors-voice/") == "atraxa-praetors-voice"


class TestFetchTopCommanders:
    @pytest.mark.asyncio
    async def test_parses_ranking(self):
        requested = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(request.url.path)
            return httpx.Response(200, json=ranking_payload(25))

        async with make_client(handler) as client:
            commanders = await client.fetch_top_commanders(20)

        assert requested == ["/pages/commanders/week.json"]
        assert len(commanders) == 20
        assert commanders[0].name == "Commander 1"
        assert commanders[0].rank == 1
        assert commanders[0].url == "https://edhrec.com/commanders/commander-1"
        assert commanders[0].slug == "commander-1"
        assert [c.rank for c in commanders] == list(range(1, 21))

    @pytest.mark.asyncio
    async def test_limit_below_cap(self):
        async with make_client(lambda r: httpx.Response(200, json=ranking_payload(25))) as client:
            commanders = await client.fetch_top_commanders(5)
        assert len(commanders) == 5

    @pytest.mark.asyncio
    async def test_limit_above_ranking_size_rejected(self):
        requested = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(request.url.path)
            return httpx.Response(200, json=ranking_payload(30))

        async with make_client(handler) as client:
            with pytest.raises(ValueError):
                await client.fetch_top_commanders(25)

        assert requested == []

    @pytest.mark.asyncio
    async def test_non_numeric_rank_is_invalid(self):
        payload = ranking_payload(3)
        payload["container"]["json_dict"]["cardlists"][0]["cardviews"][1]["rank"] = "n/a"

        async with make_client(lambda r: httpx.Response(200, json=payload)) as client:
            with pytest.raises(InvalidResponseError):
                await client.fetch_top_commanders(3)

    @pytest.mark.asyncio
    async def test_explicit_rank_is_used(self):
        payload = ranking_payload(2)
        cardviews = payload["container"]["json_dict"]["cardlists"][0]["cardviews"]
        cardviews[0]["rank"] = 2
        cardviews[1]["rank"] = "1"

        async with make_client(lambda r: httpx.Response(200, json=payload)) as client:
            commanders = await client.fetch_top_commanders(2)

        assert [(c.name, c.rank) for c in commanders] == [("Commander 2", 1), ("Commander 1", 2)]

    @pytest.mark.asyncio
    async def test_short_ranking_is_allowed(self):
        async with make_client(lambda r: httpx.Response(200, json=ranking_payload(3))) as client:
            commanders = await client.fetch_top_commanders(20)
        assert len(commanders) == 3

    @pytest.mark.asyncio
    async def test_empty_ranking_is_invalid(self):
        async with make_client(lambda r: httpx.Response(200, json={"container": {}})) as client:
            with pytest.raises(InvalidResponseError):
                await client.fetch_top_commanders(20)

    @pytest.mark.asyncio
    async def test_non_json_body_is_invalid(self):
        async with make_client(lambda r: httpx.Response(200, text="<html>")) as client:
            with pytest.raises(InvalidResponseError):
                await client.fetch_top_commanders(20)


class TestFetchCommanderDecklist:
    @pytest.mark.asyncio
    async def test_parses_categories(self):
        requested = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(request.url.path)
            return httpx.Response(200, json=decklist_payload("Atraxa, Praetors' Voice", 99))

        async with make_client(handler) as client:
            cards = await client.fetch_commander_decklist(
                "https://edhrec.com/commanders/atraxa-praetors-voice"
            )

        assert requested == ["/pages/commanders/atraxa-praetors-voice.json"]
        assert len(cards) == 100
        assert cards[0].name == "Atraxa, Praetors' Voice"
        assert cards[0].is_commander is True
        assert cards[0].category == "commanders"
        assert cards[1].category == "Creatures"
        assert cards[1].is_commander is False
        assert all(c.quantity == 1 for c in cards)

    @pytest.mark.asyncio
    async def test_wrong_deck_size_is_invalid(self):
        async with make_client(lambda r: httpx.Response(200, json=decklist_payload("Atraxa", 50))) as client:
            with pytest.raises(InvalidResponseError):
                await client.fetch_commander_decklist("https://edhrec.com/commanders/atraxa")

    @pytest.mark.asyncio
    async def test_custom_deck_size(self):
        async with make_client(
            lambda r: httpx.Response(200, json=decklist_payload("Atraxa", 9)), expected_deck_size=10
        ) as client:
            cards = await client.fetch_commander_decklist("https://edhrec.com/commanders/atraxa")
        assert len(cards) == 10


class TestErrorMapping:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status, error",
        [
            (404, NotFoundError),
            (429, RateLimitError),
            (500, TransientServiceError),
            (503, TransientServiceError),
            (403, ExternalServiceError),
        ],
    )
    async def test_status_codes(self, status, error):
        async with make_client(lambda r: httpx.Response(status)) as client:
            with pytest.raises(error) as exc_info:
                await client.fetch_top_commanders(20)
        assert exc_info.value.status_code == status

    @pytest.mark.asyncio
    async def test_retry_after_is_parsed(self):
        async with make_client(lambda r: httpx.Response(429, headers={"Retry-After": "30"})) as client:
            with pytest.raises(RateLimitError) as exc_info:
                await client.fetch_top_commanders(20)
        assert exc_info.value.retry_after == 30.0

    @pytest.mark.asyncio
    async def test_timeout_is_transient(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        async with make_client(handler) as client:
            with pytest.raises(TransientServiceError):
                await client.fetch_top_commanders(20)

    @pytest.mark.asyncio
    async def test_connection_error_is_transient(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(TransientServiceError):
                await client.fetch_commander_decklist("https://edhrec.com/commanders/atraxa")
