"""Decoders for the upstream payload shapes.

Each upstream shape gets one decoder with explicit, priority-ordered field
names. The first field holding a usable value wins; when none does, the
documented fallback is used.
"""

import json
import logging
from typing import Any, Iterable, List, Optional, Sequence, Union

import feedparser
from pydantic import ValidationError

from .errors import FetchError, ParseError
from .models import TrendItem

logger = logging.getLogger(__name__)


def first_present(record: Any, names: Sequence[str], fallback: Any = None) -> Any:
    """Return the first value under ``names`` that is neither missing nor empty."""
    if not hasattr(record, "get"):
        return fallback
    for name in names:
        value = record.get(name)
        if value is None or value == "" or value == []:
            continue
        return value
    return fallback


class RssDecoder:
    """Google Trends "trending now" RSS (``ht:`` namespace extensions)."""

    source = "rss"

    TITLE_FIELDS = ("title",)
    # feedparser flattens ``ht:news_item_url`` into ``ht_news_item_url``
    LINK_FIELDS = ("ht_news_item_url", "news_item_url", "link")
    VOLUME_FIELDS = ("ht_approx_traffic", "approx_traffic")

    def decode(self, text: str) -> List[TrendItem]:
        feed = feedparser.parse(text)

        # An empty but recognised feed is fine, anything else without entries is not
        if not feed.entries and not feed.get("version"):
            reason = feed.get("bozo_exception") or "unrecognised format"
            raise ParseError(f"Malformed RSS feed: {reason}")

        items = []
        for entry in feed.entries:
            title = first_present(entry, self.TITLE_FIELDS, fallback="")
            title = str(title).strip()
            if not title:
                continue

            link = first_present(entry, self.LINK_FIELDS)
            if isinstance(link, list):
                link = link[0] if link else None

            try:
                items.append(
                    TrendItem(
                        title=title,
                        link=link,
                        volume_raw=first_present(entry, self.VOLUME_FIELDS),
                    )
                )
            except ValidationError as e:
                logger.debug(f"Skipping RSS entry {title!r}: {e}")

        logger.debug(f"Decoded {len(items)} RSS items")
        return items


class SerpApiDecoder:
    """SerpApi ``google_trends_trending_now`` JSON."""

    source = "serpapi"

    LIST_FIELDS = (
        "trending_searches",
        "trending_now",
        "trending_searches_results",
        "realtime_trends",
    )
    TITLE_FIELDS = ("query", "title", "trend")
    VOLUME_FIELDS = ("traffic", "search_volume", "formattedTraffic", "searches")
    STARTED_FIELDS = ("time_active_minutes",)
    RELATED_FIELDS = ("related_queries", "queries", "breakdown", "trend_breakdown")
    RELATED_QUERY_FIELDS = ("query",)

    max_related = 3

    def decode(self, payload: Union[str, bytes, dict]) -> List[TrendItem]:
        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload)
            except json.JSONDecodeError as e:
                raise ParseError(f"SerpApi returned invalid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise ParseError(f"SerpApi payload is {type(payload).__name__}, expected an object")

        if payload.get("error"):
            raise FetchError(f"SerpApi error: {payload['error']}")

        records = first_present(payload, self.LIST_FIELDS, fallback=[])
        if not isinstance(records, list):
            raise ParseError("SerpApi trend list is not an array")

        items = []
        for record in records:
            try:
                item = self._decode_record(record)
            except ValidationError as e:
                logger.debug(f"Skipping SerpApi record: {e}")
                continue
            if item:
                items.append(item)

        logger.debug(f"Decoded {len(items)} SerpApi items")
        return items

    def _decode_record(self, record: Any) -> Optional[TrendItem]:
        title = str(first_present(record, self.TITLE_FIELDS, fallback="")).strip()
        if not title:
            return None

        started = first_present(record, self.STARTED_FIELDS)
        try:
            started = float(started) if started is not None else None
        except (TypeError, ValueError):
            started = None

        return TrendItem(
            title=title,
            volume_raw=first_present(record, self.VOLUME_FIELDS),
            started_minutes_ago=started,
            related_queries=self._related(first_present(record, self.RELATED_FIELDS, fallback=[])),
        )

    def _related(self, entries: Iterable[Any]) -> List[str]:
        if not isinstance(entries, list):
            return []
        queries = []
        for entry in entries:
            if isinstance(entry, dict):
                entry = first_present(entry, self.RELATED_QUERY_FIELDS, fallback="")
            text = str(entry).strip() if entry is not None else ""
            if text:
                queries.append(text)
        return queries[: self.max_related]
