"""
Tests for the commander endpoints.
"""
import pytest
from httpx import AsyncClient

from mtg_ingest.models import Commander, Decklist


async def seed_commanders(session_maker) -> dict[str, int]:
    contents = [
        {"card_id": "id-atraxa", "card_name": "Atraxa, Praetors' Voice", "quantity": 1,
         "category": "commanders", "is_commander": True},
        {"card_id": None, "card_name": "Sol Ring", "quantity": 1,
         "category": "Artifacts", "is_commander": False},
    ]
    async with session_maker() as db:
        atraxa = Commander(
            name="Atraxa, Praetors' Voice",
            slug="atraxa-praetors-voice",
            rank=2,
            edhrec_url="https://edhrec.com/commanders/atraxa-praetors-voice",
        )
        edgar = Commander(
            name="Edgar Markov",
            slug="edgar-markov",
            rank=1,
            edhrec_url="https://edhrec.com/commanders/edgar-markov",
        )
        db.add_all([atraxa, edgar])
        await db.flush()
        db.add(
            Decklist(
                commander_id=atraxa.id,
                contents=contents,
                search_text=Decklist.build_search_text(contents, atraxa.name),
            )
        )
        await db.commit()
        return {"atraxa": atraxa.id, "edgar": edgar.id}


@pytest.mark.asyncio
async def test_list_commanders_ordered_by_rank(client: AsyncClient, session_maker):
    await seed_commanders(session_maker)

    response = await client.get("/api/commanders")

    assert response.status_code == 200
    data = response.json()
    assert [c["name"] for c in data] == ["Edgar Markov", "Atraxa, Praetors' Voice"]
    assert data[0]["card_count"] == 0
    assert data[1]["card_count"] == 2
    assert data[1]["slug"] == "atraxa-praetors-voice"


@pytest.mark.asyncio
async def test_get_commander_with_decklist(client: AsyncClient, session_maker):
    ids = await seed_commanders(session_maker)

    response = await client.get(f"/api/commanders/{ids['atraxa']}")

    assert response.status_code == 200
    data = response.json()
    assert data["rank"] == 2
    assert len(data["cards"]) == 2
    assert data["cards"][0]["is_commander"] is True
    assert data["cards"][1]["card_id"] is None


@pytest.mark.asyncio
async def test_get_commander_without_decklist(client: AsyncClient, session_maker):
    ids = await seed_commanders(session_maker)

    response = await client.get(f"/api/commanders/{ids['edgar']}")

    assert response.status_code == 200
    assert response.json()["cards"] == []


@pytest.mark.asyncio
async def test_get_commander_not_found(client: AsyncClient):
    response = await client.get("/api/commanders/9999")

    assert response.status_code == 404
    assert response.json()["detail"] == "Commander not found"


@pytest.mark.asyncio
async def test_list_commanders_empty(client: AsyncClient):
    response = await client.get("/api/commanders")

    assert response.status_code == 200
    assert response.json() == []
