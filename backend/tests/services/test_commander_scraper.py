"""
Tests for the commander scrape job.
"""
import httpx
import pytest
from sqlalchemy import func, select

from mtg_ingest.core.constants import ExecutionStatus
from mtg_ingest.models import Commander, Decklist, ScrapeExecution
from mtg_ingest.services.commander_scraper import CommanderScraper
from mtg_ingest.services.edhrec import EDHRECClient, RankedCommander
from mtg_ingest.services.errors import (
    NotFoundError,
    RankingFetchError,
    TransientServiceError,
)

from fakes import FakeRankingSource, FakeResolver, make_deck, ranked


def build_scraper(session_maker, source, reporter, sleep, **kwargs) -> CommanderScraper:
    return CommanderScraper(
        session_maker,
        ranking_source=source,
        reporter=reporter,
        sleep=sleep,
        base_delay=1.0,
        **kwargs,
    )


async def count(session_maker, model) -> int:
    async with session_maker() as db:
        return await db.scalar(select(func.count(model.id)))


class ExplodingSource(FakeRankingSource):
    """Raises a non-external error once `fail_after` decklists were served."""

    fail_after: int = 0

    async def fetch_commander_decklist(self, commander_url):
        if len(self.decklist_calls) >= self.fail_after:
            raise RuntimeError("worker killed")
        return await super().fetch_commander_decklist(commander_url)


class TestScrapeTopCommanders:
    @pytest.mark.asyncio
    async def test_scrapes_every_commander(self, session_maker, reporter, no_sleep):
        source = FakeRankingSource(commanders=ranked(5))
        scraper = build_scraper(session_maker, source, reporter, no_sleep)

        summary = await scraper.scrape_top_commanders(3)

        assert summary.attempted == 3
        assert summary.succeeded == 3
        assert summary.failed == 0
        assert summary.failed_commanders == []
        assert summary.total_cards == 300
        assert summary.average_cards_per_commander == 100.0
        assert summary.status == ExecutionStatus.COMPLETED

        assert await count(session_maker, Commander) == 3
        assert await count(session_maker, Decklist) == 3

        async with session_maker() as db:
            commanders = (await db.execute(select(Commander).order_by(Commander.rank))).scalars().all()
            execution = await db.get(ScrapeExecution, summary.execution_id)

        assert [c.rank for c in commanders] == [1, 2, 3]
        assert commanders[0].slug == "commander-1"
        assert all(c.last_scraped_at is not None for c in commanders)
        assert execution.status == "completed"
        assert execution.commanders_succeeded == 3
        assert execution.total_cards_processed == 300

    @pytest.mark.asyncio
    async def test_persists_at_most_n_commanders(self, session_maker, reporter, no_sleep):
        source = FakeRankingSource(commanders=ranked(20))
        scraper = build_scraper(session_maker, source, reporter, no_sleep)

        summary = await scraper.scrape_top_commanders(4)

        assert summary.attempted == 4
        assert await count(session_maker, Commander) == 4

    @pytest.mark.asyncio
    async def test_failed_decklist_keeps_commander_without_decklist(
        self, session_maker, reporter, no_sleep
    ):
        commanders = ranked(3)
        failing = commanders[1]
        source = FakeRankingSource(
            commanders=commanders,
            failures={failing.url: NotFoundError("page not found")},
        )
        scraper = build_scraper(session_maker, source, reporter, no_sleep)

        summary = await scraper.scrape_top_commanders(3)

        assert summary.attempted == 3
        assert summary.succeeded == 2
        assert summary.failed == 1
        assert summary.failed_commanders == [failing.name]
        assert summary.status == ExecutionStatus.COMPLETED

        # Retried up to the ceiling with exponential backoff
        assert source.decklist_calls.count(failing.url) == 3
        assert no_sleep.delays == [1.0, 2.0]

        async with session_maker() as db:
            commander = (
                await db.execute(select(Commander).where(Commander.name == failing.name))
            ).scalar_one()
            decklists = (
                await db.execute(select(Decklist).where(Decklist.commander_id == commander.id))
            ).scalars().all()
            execution = await db.get(ScrapeExecution, summary.execution_id)

        assert commander.rank == failing.rank
        assert commander.last_scraped_at is None
        assert decklists == []
        assert execution.commanders_failed == 1
        assert failing.name in execution.error_summary

    @pytest.mark.asyncio
    async def test_transient_failure_recovers(self, session_maker, reporter, no_sleep):
        commanders = ranked(1)
        source = FakeRankingSource(commanders=commanders)
        attempts = {"n": 0}
        original = source.fetch_commander_decklist

        async def flaky(url):
            attempts["n"] += 1
            if attempts["n"] == 1:
                raise TransientServiceError("timeout")
            return await original(url)

        source.fetch_commander_decklist = flaky
        scraper = build_scraper(session_maker, source, reporter, no_sleep)

        summary = await scraper.scrape_top_commanders(1)

        assert summary.succeeded == 1
        assert no_sleep.delays == [1.0]

    @pytest.mark.asyncio
    async def test_rescrape_replaces_decklist(self, session_maker, reporter, no_sleep):
        commanders = ranked(1)
        url = commanders[0].url
        source = FakeRankingSource(commanders=commanders, decklists={url: make_deck(100)})
        scraper = build_scraper(session_maker, source, reporter, no_sleep)
        await scraper.scrape_top_commanders(1)

        source.decklists[url] = make_deck(100, commander="Edgar Markov")
        source.commanders = [RankedCommander(name=commanders[0].name, rank=7, url=url)]
        await scraper.scrape_top_commanders(1)

        async with session_maker() as db:
            decklists = (await db.execute(select(Decklist))).scalars().all()
            commander = (await db.execute(select(Commander))).scalar_one()

        assert len(decklists) == 1
        assert decklists[0].contents[0]["card_name"] == "Edgar Markov"
        assert "edgar markov" in decklists[0].search_text
        assert commander.rank == 7
        assert await count(session_maker, ScrapeExecution) == 2

    @pytest.mark.asyncio
    async def test_resolves_card_ids(self, session_maker, reporter, no_sleep):
        source = FakeRankingSource(commanders=ranked(1))
        resolver = FakeResolver(ids={"Card 1": "abc-123"})
        scraper = build_scraper(session_maker, source, reporter, no_sleep, card_resolver=resolver)

        await scraper.scrape_top_commanders(1)

        async with session_maker() as db:
            decklist = (await db.execute(select(Decklist))).scalar_one()

        by_name = {entry["card_name"]: entry for entry in decklist.contents}
        assert by_name["Card 1"]["card_id"] == "abc-123"
        assert by_name["Card 2"]["card_id"] is None
        assert by_name["Atraxa, Praetors' Voice"]["is_commander"] is True
        assert by_name["Card 1"]["quantity"] == 1

    @pytest.mark.asyncio
    async def test_emits_progress_events(self, session_maker, reporter, no_sleep):
        commanders = ranked(2)
        source = FakeRankingSource(
            commanders=commanders,
            failures={commanders[1].url: NotFoundError("gone")},
        )
        scraper = build_scraper(session_maker, source, reporter, no_sleep)

        await scraper.scrape_top_commanders(2)

        assert [(e.index, e.total) for e in reporter.events] == [(1, 2), (2, 2)]
        assert reporter.events[0].percentage == 50.0
        assert reporter.events[0].details["commander"] == "Commander 1"
        assert reporter.events[0].details["rank"] == 1
        assert reporter.events[0].details["status"] == "success"
        assert reporter.events[1].details["status"] == "failed"

    @pytest.mark.asyncio
    async def test_ranking_failure_is_fatal(self, session_maker, reporter, no_sleep):
        source = FakeRankingSource(commanders=[], ranking_error=TransientServiceError("timeout"))
        scraper = build_scraper(session_maker, source, reporter, no_sleep)

        with pytest.raises(RankingFetchError):
            await scraper.scrape_top_commanders(20)

        assert await count(session_maker, Commander) == 0
        async with session_maker() as db:
            executions = (await db.execute(select(ScrapeExecution))).scalars().all()

        assert len(executions) == 1
        assert executions[0].status == "failed"
        assert executions[0].finished_at is not None
        assert "RankingFetchError" in executions[0].error_summary

    @pytest.mark.asyncio
    async def test_abort_mid_run_finalizes_failed_with_partial_counts(
        self, session_maker, reporter, no_sleep
    ):
        source = ExplodingSource(commanders=ranked(5))
        source.fail_after = 2
        scraper = build_scraper(session_maker, source, reporter, no_sleep)

        with pytest.raises(RuntimeError, match="worker killed"):
            await scraper.scrape_top_commanders(5)

        async with session_maker() as db:
            executions = (await db.execute(select(ScrapeExecution))).scalars().all()

        assert len(executions) == 1
        assert executions[0].status == "failed"
        assert executions[0].commanders_succeeded == 2
        assert executions[0].commanders_attempted == 2
        assert executions[0].finished_at is not None

    @pytest.mark.asyncio
    async def test_rejects_non_positive_n(self, session_maker, reporter, no_sleep):
        scraper = build_scraper(session_maker, FakeRankingSource(commanders=[]), reporter, no_sleep)
        with pytest.raises(ValueError):
            await scraper.scrape_top_commanders(0)

    @pytest.mark.asyncio
    async def test_rejects_n_above_ranking_size(self, session_maker, reporter, no_sleep):
        source = FakeRankingSource(commanders=ranked(30))
        scraper = build_scraper(session_maker, source, reporter, no_sleep)

        with pytest.raises(ValueError):
            await scraper.scrape_top_commanders(25)

        assert await count(session_maker, ScrapeExecution) == 0
        assert await count(session_maker, Commander) == 0

    @pytest.mark.asyncio
    async def test_malformed_ranking_from_edhrec_is_fatal(self, session_maker, reporter, no_sleep):
        payload = {
            "container": {
                "json_dict": {
                    "cardlists": [
                        {"cardviews": [{"name": "Atraxa", "url": "/commanders/atraxa", "rank": "n/a"}]}
                    ]
                }
            }
        }
        edhrec = EDHRECClient(
            base_url="https://edhrec.com",
            json_url="https://json.edhrec.com",
            rate_limit_seconds=0,
            transport=httpx.MockTransport(lambda r: httpx.Response(200, json=payload)),
        )
        scraper = build_scraper(session_maker, edhrec, reporter, no_sleep)

        async with edhrec:
            with pytest.raises(RankingFetchError):
                await scraper.scrape_top_commanders(1)

        async with session_maker() as db:
            execution = (await db.execute(select(ScrapeExecution))).scalar_one()
        assert execution.status == "failed"
