"""
In-memory collaborators for the ingestion job tests.
"""
from dataclasses import dataclass, field
from typing import Optional

from mtg_ingest.core.progress import ProgressEvent
from mtg_ingest.services.edhrec import DecklistCard, RankedCommander
from mtg_ingest.services.errors import NotFoundError
from mtg_ingest.services.scryfall import PriceQuote


def make_deck(size: int = 100, commander: str = "Atraxa, Praetors' Voice") -> list[DecklistCard]:
    cards = [DecklistCard(name=commander, category="Commanders", is_commander=True)]
    cards += [
        DecklistCard(name=f"Card {i}", category="Creatures", is_commander=False)
        for i in range(1, size)
    ]
    return cards


def ranked(count: int) -> list[RankedCommander]:
    return [
        RankedCommander(
            name=f"Commander {i}",
            rank=i,
            url=f"https://edhrec.com/commanders/commander-{i}",
        )
        for i in range(1, count + 1)
    ]


@dataclass
class FakeRankingSource:
    """Stand-in for EDHRECClient."""

    commanders: list[RankedCommander]
    decklists: dict[str, list[DecklistCard]] = field(default_factory=dict)
    failures: dict[str, Exception] = field(default_factory=dict)
    ranking_error: Optional[Exception] = None
    decklist_calls: list[str] = field(default_factory=list)

    async def fetch_top_commanders(self, limit: int) -> list[RankedCommander]:
        if self.ranking_error is not None:
            raise self.ranking_error
        return self.commanders[:limit]

    async def fetch_commander_decklist(self, commander_url: str) -> list[DecklistCard]:
        self.decklist_calls.append(commander_url)
        if commander_url in self.failures:
            raise self.failures[commander_url]
        return self.decklists.get(commander_url, make_deck())


@dataclass
class FakeResolver:
    ids: dict[str, str] = field(default_factory=dict)

    async def resolve_card_ids(self, names: list[str]) -> dict[str, Optional[str]]:
        return {name: self.ids.get(name) for name in names}


@dataclass
class FakePriceSource:
    """Stand-in for ScryfallClient.fetch_prices. Prices are (usd, foil, etched) cents."""

    prices: dict[str, tuple] = field(default_factory=dict)
    default: tuple = (1000, 2000, None)
    failures: dict[str, list[Exception]] = field(default_factory=dict)
    missing: set = field(default_factory=set)
    calls: list[str] = field(default_factory=list)

    async def fetch_prices(self, card_id: str) -> PriceQuote:
        self.calls.append(card_id)
        if card_id in self.missing:
            raise NotFoundError(f"Scryfall resource not found: /cards/{card_id}")
        pending = self.failures.get(card_id)
        if pending:
            raise pending.pop(0)
        usd, foil, etched = self.prices.get(card_id, self.default)
        return PriceQuote(card_id=card_id, usd_cents=usd, usd_foil_cents=foil, usd_etched_cents=etched)


@dataclass
class FakeCardSource:
    card_ids: list[str] = field(default_factory=list)

    async def list_tracked_card_ids(self) -> list[str]:
        return list(self.card_ids)


class RecordingReporter:
    def __init__(self):
        self.events: list[ProgressEvent] = []

    def on_progress(self, event: ProgressEvent) -> None:
        self.events.append(event)


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
