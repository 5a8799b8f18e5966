"""Join baseline trends with secondary-source metadata."""

import logging
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo

from .models import DiffResult, EnrichedRow, Enrichment, TrendItem
from .volume import DEFAULT_POLICY, UNKNOWN_VOLUME, VolumePolicy, format_volume, volume_to_number

logger = logging.getLogger(__name__)

STARTED_FORMAT = "%d/%m/%y %H:%M"


def started_timestamp(minutes_ago: Optional[float], now: datetime, time_zone: str) -> str:
    """Render "started N minutes ago" as a wall-clock time in ``time_zone``."""
    if minutes_ago is None:
        return UNKNOWN_VOLUME
    started = now - timedelta(minutes=float(minutes_ago))
    return started.astimezone(ZoneInfo(time_zone)).strftime(STARTED_FORMAT)


def index_enrichment(
    items: Iterable[TrendItem], policy: VolumePolicy = DEFAULT_POLICY
) -> Dict[str, Enrichment]:
    """Index enrichment items by normalized title. The first occurrence wins."""
    index: Dict[str, Enrichment] = {}
    for item in items:
        key = item.key
        if not key or key in index:
            continue
        volume = format_volume(item.volume_raw, policy)
        index[key] = Enrichment(
            volume=volume,
            volume_value=volume_to_number(volume, policy),
            started_minutes_ago=item.started_minutes_ago,
            related_queries=list(item.related_queries),
        )
    return index


def build_rows(
    items: Iterable[TrendItem],
    enrichment: Dict[str, Enrichment],
    diff: Optional[DiffResult],
    now: datetime,
    time_zone: str,
    policy: VolumePolicy = DEFAULT_POLICY,
) -> List[EnrichedRow]:
    """
    Left-outer join of baseline items with enrichment.

    Every baseline item produces a row, in baseline order. Without a match
    the row keeps the baseline's own volume (or the unknown marker) and
    falls back to the title as its only related query.
    """
    new_keys = set(diff.new_keys) if diff else set()
    rows = []
    matched = 0

    for item in items:
        key = item.key
        extra = enrichment.get(key)

        if extra is not None:
            matched += 1
            volume = extra.volume
            volume_value = extra.volume_value
            minutes = extra.started_minutes_ago
            related = extra.related_queries
        else:
            volume = format_volume(item.volume_raw, policy)
            volume_value = volume_to_number(volume, policy)
            minutes = item.started_minutes_ago
            related = item.related_queries

        rows.append(
            EnrichedRow(
                title=item.title,
                link=item.link,
                volume=volume,
                volume_value=volume_value,
                started=started_timestamp(minutes, now, time_zone),
                related_queries=list(related) or [item.title],
                is_new=key in new_keys,
            )
        )

    logger.debug(f"Joined {len(rows)} rows, {matched} enriched")
    return rows
