"""Pytest configuration and fixtures for trend_notifier tests."""

import json
from datetime import datetime, timezone
from typing import List

import pytest

from trend_notifier.config import TrendConfig
from trend_notifier.errors import DeliveryError, FetchError
from trend_notifier.models import StructuredPayload, TrendItem
from trend_notifier.store import MemorySeenSetStore


RSS_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss xmlns:atom="http://www.w3.org/2005/Atom" xmlns:ht="https://trends.google.com/trending/rss" version="2.0">
  <channel>
    <title>Daily Search Trends</title>
    <link>https://trends.google.com/trending/rss?geo=GR</link>
    <item>
      <title>Ολυμπιακός</title>
      <ht:approx_traffic>200+</ht:approx_traffic>
      <link>https://trends.google.com/trending/rss?geo=GR</link>
      <ht:news_item>
        <ht:news_item_title>Match report</ht:news_item_title>
        <ht:news_item_url>https://news.example.gr/olympiakos</ht:news_item_url>
      </ht:news_item>
    </item>
    <item>
      <title>Καιρός</title>
      <ht:approx_traffic>2000+</ht:approx_traffic>
      <link>https://trends.google.com/trending/rss?geo=GR</link>
    </item>
  </channel>
</rss>
"""

EMPTY_RSS_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"><channel><title>Daily Search Trends</title></channel></rss>
"""

SERPAPI_PAYLOAD = {
    "search_metadata": {"status": "Success"},
    "trending_searches": [
        {
            "query": "ολυμπιακος",
            "search_volume": 50,
            "time_active_minutes": 90,
            "trend_breakdown": ["ολυμπιακος παοκ", "ολυμπιακος live"],
        },
        {
            "query": "Καιρός",
            "search_volume": 200000,
            "time_active_minutes": 30,
            "related_queries": [{"query": "καιρος αυριο"}],
        },
    ],
}


class RecordingNotifier:
    """Notifier double that records payloads, optionally failing."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[StructuredPayload] = []

    async def send(self, payload: StructuredPayload) -> None:
        self.sent.append(payload)
        if self.fail:
            raise DeliveryError("webhook returned 500", status_code=500)


class StaticFetcher:
    """Fetcher double returning canned items."""

    def __init__(self, items=None, enrichment=None, error=None, client=None):
        self.items = items or []
        self.client = client
        self.enrichment = enrichment or {}
        self.error = error
        self.enrichment_calls = 0

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return None

    async def fetch_baseline(self, urls):
        if self.error:
            raise self.error
        if not self.items:
            raise FetchError("All feed sources exhausted")
        return list(self.items)

    async def fetch_enrichment(self, region, api_key, hl="el", policy=None):
        self.enrichment_calls += 1
        return dict(self.enrichment)


@pytest.fixture
def now():
    """Frozen clock: 18 Oct 2026, 09:30 UTC (12:30 in Athens)."""
    return datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def config():
    return TrendConfig(region="GR", result_limit=10, time_zone="Europe/Athens")


@pytest.fixture
def items():
    return [
        TrendItem(title="Ολυμπιακός", link="https://news.example.gr/olympiakos", volume_raw="200+"),
        TrendItem(title="Καιρός", volume_raw="2000+"),
        TrendItem(title="Champions League", volume_raw=500),
    ]


@pytest.fixture
def memory_store():
    return MemorySeenSetStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def rss_feed():
    return RSS_FEED


@pytest.fixture
def serpapi_json():
    return json.dumps(SERPAPI_PAYLOAD, ensure_ascii=False)
