"""
Scryfall API client.

Used for two things:
- current USD prices for a card id (price refresh)
- resolving decklist card names to Scryfall ids (commander scrape)
"""
import asyncio
import time
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

import httpx
import structlog

from mtg_ingest.core.config import settings
from mtg_ingest.services.errors import (
    ExternalServiceError,
    InvalidResponseError,
    NotFoundError,
    RateLimitError,
    TransientServiceError,
)

logger = structlog.get_logger(__name__)

# /cards/collection accepts at most 75 identifiers per request
COLLECTION_CHUNK_SIZE = 75


@dataclass(frozen=True)
class PriceQuote:
    card_id: str
    usd_cents: Optional[int]
    usd_foil_cents: Optional[int]
    usd_etched_cents: Optional[int]


def dollars_to_cents(value: Any) -> Optional[int]:
    """Convert a Scryfall price string ("12.34") to integer cents, rounding half up."""
    if value is None or value == "":
        return None
    try:
        cents = (Decimal(str(value)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        logger.warning("Unparseable price value", value=value)
        return None
    return int(cents)


class ScryfallClient:
    """
    Async client for the Scryfall API.

    Requests are spaced `rate_limit_ms` apart as Scryfall asks. Name
    resolution results are cached for the lifetime of the client.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        rate_limit_ms: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.scryfall_base_url).rstrip("/")
        ms = settings.scryfall_rate_limit_ms if rate_limit_ms is None else rate_limit_ms
        self.rate_limit_seconds = ms / 1000.0
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._last_request_time = 0.0
        self._name_cache: dict[str, Optional[str]] = {}

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(float(settings.external_api_timeout)),
                headers={
                    "User-Agent": settings.scraper_user_agent,
                    "Accept": "application/json",
                },
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "ScryfallClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _rate_limit(self) -> None:
        elapsed = time.monotonic() - self._last_request_time
        if elapsed < self.rate_limit_seconds:
            await asyncio.sleep(self.rate_limit_seconds - elapsed)
        self._last_request_time = time.monotonic()

    async def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        """
        Make a request to Scryfall and decode the JSON body.

        Raises:
            NotFoundError: 404
            RateLimitError: 429
            TransientServiceError: timeouts, network errors, 5xx
            InvalidResponseError: body is not a JSON object
            ExternalServiceError: any other 4xx
        """
        await self._rate_limit()
        client = await self._get_client()

        try:
            response = await client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("Scryfall request timed out", path=path)
            raise TransientServiceError(f"Request timeout: {e}") from e
        except httpx.TransportError as e:
            logger.warning("Scryfall network error", path=path, error=str(e))
            raise TransientServiceError(f"Network error: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(f"Scryfall resource not found: {path}")
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            logger.warning("Scryfall rate limit exceeded", path=path, retry_after=retry_after)
            raise RateLimitError(
                "Scryfall rate limit exceeded",
                retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None,
            )
        if response.status_code >= 500:
            raise TransientServiceError(
                f"Scryfall server error {response.status_code}", status_code=response.status_code
            )
        if response.status_code >= 400:
            raise ExternalServiceError(
                f"Scryfall API error {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise InvalidResponseError(f"Failed to parse Scryfall response: {e}") from e
        if not isinstance(data, dict):
            raise InvalidResponseError("Unexpected JSON payload from Scryfall")
        return data

    async def fetch_prices(self, card_id: str) -> PriceQuote:
        """
        Current USD prices for a card, in cents.

        Raises:
            NotFoundError: Scryfall does not know the card id
        """
        data = await self._request("GET", f"/cards/{card_id}")
        prices = data.get("prices")
        if not isinstance(prices, dict):
            raise InvalidResponseError(f"No prices in Scryfall response for {card_id}")

        return PriceQuote(
            card_id=card_id,
            usd_cents=dollars_to_cents(prices.get("usd")),
            usd_foil_cents=dollars_to_cents(prices.get("usd_foil")),
            usd_etched_cents=dollars_to_cents(prices.get("usd_etched")),
        )

    async def resolve_card_ids(self, names: list[str]) -> dict[str, Optional[str]]:
        """
        Map card names to Scryfall ids.

        Best effort: names Scryfall does not recognise, or chunks whose
        request fails, map to None. Never raises ExternalServiceError.
        """
        pending = [n for n in dict.fromkeys(names) if n not in self._name_cache]

        for i in range(0, len(pending), COLLECTION_CHUNK_SIZE):
            chunk = pending[i:i + COLLECTION_CHUNK_SIZE]
            try:
                data = await self._request(
                    "POST",
                    "/cards/collection",
                    json={"identifiers": [{"name": name} for name in chunk]},
                )
            except ExternalServiceError as e:
                logger.warning(
                    "Card name resolution failed for chunk",
                    chunk_size=len(chunk),
                    error=str(e),
                )
                # Not cached, so a later call can try again
                continue

            found = {}
            for card in data.get("data", []):
                name = card.get("name")
                if name and card.get("id"):
                    found[name.lower()] = card["id"]
                    # Double-faced cards resolve by their front face name
                    front = name.split(" // ")[0].lower()
                    found.setdefault(front, card["id"])

            for name in chunk:
                self._name_cache[name] = found.get(name.lower())

            not_found = data.get("not_found") or []
            if not_found:
                logger.debug("Scryfall could not resolve some card names", count=len(not_found))

        return {name: self._name_cache.get(name) for name in names}
