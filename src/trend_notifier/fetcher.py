"""Google Trends fetcher over plain HTTP.

The baseline list comes from the Trending-now RSS feed. Candidate URLs are
tried one after another; the next one is only tried when the previous one
failed or returned nothing. SerpApi is queried separately for enrichment.
"""

import logging
from typing import Dict, List, Optional, Sequence

import httpx

from .decoders import RssDecoder, SerpApiDecoder
from .enrichment import index_enrichment
from .errors import FetchError, ParseError
from .models import Enrichment, TrendItem
from .volume import DEFAULT_POLICY, VolumePolicy

logger = logging.getLogger(__name__)

SERPAPI_URL = "https://serpapi.com/search.json"

RSS_HEADERS = {
    "User-Agent": "Mozilla/5.0",
    "Accept": "application/rss+xml,application/xml,text/xml,*/*;q=0.9",
}
JSON_HEADERS = {
    "User-Agent": "Mozilla/5.0",
    "Accept": "application/json",
}


class TrendFetcher:
    """Fetches trending items for one region."""

    def __init__(
        self,
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None
        self.rss_decoder = RssDecoder()
        self.serpapi_decoder = SerpApiDecoder()

    async def __aenter__(self) -> "TrendFetcher":
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("TrendFetcher used outside 'async with'")
        return self._client

    async def _get(self, url: str, headers: dict, params: Optional[dict] = None) -> str:
        try:
            response = await self.client.get(url, headers=headers, params=params)
        except httpx.HTTPError as e:
            raise FetchError(f"GET {url} failed: {e}") from e

        if response.status_code >= 400:
            raise FetchError(f"HTTP {response.status_code} from {url} | {response.text[:140]}")
        return response.text

    async def fetch_rss(self, url: str) -> List[TrendItem]:
        """Fetch and decode one RSS source."""
        xml = await self._get(url, RSS_HEADERS)
        return self.rss_decoder.decode(xml)

    async def fetch_baseline(self, urls: Sequence[str]) -> List[TrendItem]:
        """
        Fetch the baseline list, falling back through ``urls`` in order.

        Raises:
            ParseError: every source answered but none could be decoded
            FetchError: sources are exhausted, at least one for another reason
        """
        if not urls:
            raise FetchError("No feed sources configured")

        errors: List[Exception] = []

        for url in urls:
            try:
                items = await self.fetch_rss(url)
            except (FetchError, ParseError) as e:
                logger.warning(f"Feed source failed: {url}: {e}")
                errors.append(e)
                continue

            if items:
                logger.info(f"Fetched {len(items)} trends from {url}")
                return items

            logger.warning(f"Feed source returned no items: {url}")
            errors.append(FetchError(f"No items from {url}"))

        summary = "; ".join(str(e) for e in errors)
        if all(isinstance(e, ParseError) for e in errors):
            raise ParseError(f"All {len(urls)} feed sources were malformed: {summary}")
        raise FetchError(f"All {len(urls)} feed sources exhausted: {summary}")

    async def fetch_serpapi(self, region: str, api_key: str, hl: str = "el") -> List[TrendItem]:
        """Fetch the SerpApi trending-now list for a region."""
        params = {
            "engine": "google_trends_trending_now",
            "geo": region,
            "hl": hl,
            "api_key": api_key,
        }
        text = await self._get(SERPAPI_URL, JSON_HEADERS, params=params)
        return self.serpapi_decoder.decode(text)

    async def fetch_enrichment(
        self,
        region: str,
        api_key: str,
        hl: str = "el",
        policy: VolumePolicy = DEFAULT_POLICY,
    ) -> Dict[str, Enrichment]:
        """
        Fetch enrichment indexed by normalized title.

        Enrichment is optional: without an API key, or when the request
        fails, an empty index is returned and the baseline goes out with
        placeholders.
        """
        if not api_key:
            logger.info("No SerpApi key configured, skipping enrichment")
            return {}

        try:
            items = await self.fetch_serpapi(region, api_key, hl)
        except (FetchError, ParseError) as e:
            logger.warning(f"Enrichment unavailable for {region}: {e}")
            return {}

        index = index_enrichment(items, policy)
        logger.info(f"Enrichment indexed {len(index)} trends for {region}")
        return index
