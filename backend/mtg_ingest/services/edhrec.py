"""
EDHREC Integration Service.

Fetches the weekly commander ranking and each commander's average decklist
from EDHREC's public JSON pages.
"""
import asyncio
import time
from dataclasses import dataclass
from typing import Any, Optional

import httpx
import structlog

from mtg_ingest.core.config import settings
from mtg_ingest.core.constants import MAX_TOP_COMMANDERS
from mtg_ingest.services.errors import (
    ExternalServiceError,
    InvalidResponseError,
    NotFoundError,
    RateLimitError,
    TransientServiceError,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RankedCommander:
    name: str
    rank: int
    url: str

    @property
    def slug(self) -> str:
        return slug_from_url(self.url)


@dataclass(frozen=True)
class DecklistCard:
    name: str
    category: str
    is_commander: bool
    quantity: int = 1


def slug_from_url(url: str) -> str:
    """Last path segment of an EDHREC commander URL."""
    return url.rstrip("/").split("/")[-1]


class EDHRECClient:
    """
    Client for EDHREC's public JSON API.

    Requests are spaced at least `rate_limit_seconds` apart. Every failure is
    raised as an ExternalServiceError subclass; callers decide whether to
    retry.
    """

    RANKING_PATH = "/pages/commanders/week.json"
    MAX_COMMANDERS = MAX_TOP_COMMANDERS

    def __init__(
        self,
        base_url: Optional[str] = None,
        json_url: Optional[str] = None,
        rate_limit_seconds: Optional[float] = None,
        expected_deck_size: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.edhrec_base_url).rstrip("/")
        self.json_url = (json_url or settings.edhrec_json_url).rstrip("/")
        self.rate_limit_seconds = (
            settings.edhrec_rate_limit_seconds if rate_limit_seconds is None else rate_limit_seconds
        )
        self.expected_deck_size = expected_deck_size or settings.expected_deck_size
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._last_request_time = 0.0

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.json_url,
                timeout=httpx.Timeout(float(settings.external_api_timeout)),
                headers={
                    "User-Agent": settings.scraper_user_agent,
                    "Accept": "application/json",
                },
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "EDHRECClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _rate_limit(self) -> None:
        """Ensure we don't hit EDHREC too frequently."""
        elapsed = time.monotonic() - self._last_request_time
        if elapsed < self.rate_limit_seconds:
            await asyncio.sleep(self.rate_limit_seconds - elapsed)
        self._last_request_time = time.monotonic()

    async def _get(self, path: str) -> dict[str, Any]:
        """GET a JSON page, mapping every failure onto the error hierarchy."""
        await self._rate_limit()
        client = await self._get_client()

        try:
            response = await client.get(path)
        except httpx.TimeoutException as e:
            logger.warning("EDHREC request timed out", path=path)
            raise TransientServiceError(f"Request timeout: {e}") from e
        except httpx.TransportError as e:
            logger.warning("EDHREC network error", path=path, error=str(e))
            raise TransientServiceError(f"Network error: {e}") from e

        if response.status_code == 404:
            logger.debug("EDHREC resource not found", path=path)
            raise NotFoundError(f"EDHREC page not found: {path}")

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            logger.warning("EDHREC rate limit exceeded", path=path, retry_after=retry_after)
            raise RateLimitError(
                "EDHREC rate limit exceeded",
                retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None,
            )

        if response.status_code >= 500:
            raise TransientServiceError(
                f"EDHREC server error {response.status_code}", status_code=response.status_code
            )

        if response.status_code >= 400:
            raise ExternalServiceError(
                f"EDHREC HTTP error {response.status_code}", status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise InvalidResponseError(f"Failed to parse JSON response: {e}") from e

        if not isinstance(data, dict):
            raise InvalidResponseError("Unexpected JSON payload from EDHREC")
        return data

    @staticmethod
    def _cardlists(data: dict[str, Any]) -> list[dict[str, Any]]:
        return data.get("container", {}).get("json_dict", {}).get("cardlists", []) or []

    async def fetch_top_commanders(self, limit: int = MAX_COMMANDERS) -> list[RankedCommander]:
        """
        Fetch this week's top `limit` commanders, best rank first.

        The ranking page lists at most 20 commanders, so a larger `limit`
        raises ValueError instead of silently returning fewer. A short ranking
        is logged but allowed; an empty or unrecognisable payload raises
        InvalidResponseError.
        """
        if not 1 <= limit <= self.MAX_COMMANDERS:
            raise ValueError(f"limit must be between 1 and {self.MAX_COMMANDERS}")

        data = await self._get(self.RANKING_PATH)

        cardlists = self._cardlists(data)
        cardviews = cardlists[0].get("cardviews", []) if cardlists else []
        if not cardviews:
            logger.error("No cardviews found in EDHREC ranking")
            raise InvalidResponseError(
                "Could not find commander data in JSON - API structure may have changed"
            )

        commanders = []
        for position, view in enumerate(cardviews[:limit], start=1):
            name = view.get("name")
            url = view.get("url")
            if not name or not url:
                continue
            try:
                rank = int(view.get("rank") or position)
            except (TypeError, ValueError) as e:
                raise InvalidResponseError(f"Invalid rank for {name}: {view.get('rank')!r}") from e
            commanders.append(
                RankedCommander(
                    name=name,
                    rank=rank,
                    url=f"{self.base_url}{url}" if url.startswith("/") else url,
                )
            )

        if not commanders:
            raise InvalidResponseError("No commanders could be parsed from JSON")

        if len(commanders) < limit:
            logger.warning(
                "Fewer commanders than expected in EDHREC ranking",
                found=len(commanders),
                expected=limit,
            )

        commanders.sort(key=lambda c: c.rank)
        logger.info("Fetched top commanders from EDHREC", count=len(commanders))
        return commanders

    async def fetch_commander_decklist(self, commander_url: str) -> list[DecklistCard]:
        """
        Fetch the average decklist for a commander page.

        Raises:
            NotFoundError: EDHREC has no page for the slug
            InvalidResponseError: No card lists, or the deck is not the expected size
        """
        slug = slug_from_url(commander_url)
        data = await self._get(f"/pages/commanders/{slug}.json")

        cardlists = self._cardlists(data)
        if not cardlists:
            logger.error("No cardlists found in EDHREC decklist", slug=slug)
            raise InvalidResponseError(
                "Could not find decklist data in JSON - API structure may have changed"
            )

        cards = []
        for cardlist in cardlists:
            category = cardlist.get("tag") or cardlist.get("header") or "Unknown"
            is_commander = category.lower() == "commanders"
            for view in cardlist.get("cardviews", []):
                if view.get("name"):
                    cards.append(
                        DecklistCard(name=view["name"], category=category, is_commander=is_commander)
                    )

        if len(cards) != self.expected_deck_size:
            logger.warning(
                "Unexpected decklist size",
                slug=slug,
                cards=len(cards),
                expected=self.expected_deck_size,
            )
            raise InvalidResponseError(
                f"Decklist has {len(cards)} cards (expected {self.expected_deck_size})"
            )

        return cards
