"""New-item detection against the per-region seen set."""

import logging
from typing import AbstractSet, List, Sequence

from .config import TrendConfig
from .errors import StoreError
from .models import DiffResult, TrendItem
from .store import SeenSetStore

logger = logging.getLogger(__name__)


def compute_diff(current_items: Sequence[TrendItem], seen_keys: AbstractSet[str]) -> DiffResult:
    """
    Work out which current items were not in the seen-set snapshot.

    Keys are deduplicated for persistence, but every display item is kept:
    if a new key shows up twice, both items are reported as new. Items whose
    title normalizes to an empty key never count as new.
    """
    all_keys: List[str] = []
    new_keys: List[str] = []
    new_items: List[TrendItem] = []

    for item in current_items:
        key = item.key
        if not key:
            continue

        if key not in all_keys:
            all_keys.append(key)

        if key not in seen_keys:
            new_items.append(item)
            if key not in new_keys:
                new_keys.append(key)

    return DiffResult(
        new_items=new_items,
        new_keys=new_keys,
        all_keys_normalized=all_keys,
        should_notify=bool(new_keys),
    )


def degraded_diff(current_items: Sequence[TrendItem]) -> DiffResult:
    """Diff used when the seen set is unavailable: nothing is new, but notify."""
    all_keys = list(dict.fromkeys(item.key for item in current_items if item.key))
    return DiffResult(all_keys_normalized=all_keys, should_notify=True, degraded=True)


class DiffEngine:
    """Applies the configured seen-set policy around ``compute_diff``."""

    def __init__(self, store: SeenSetStore, config: TrendConfig):
        self.store = store
        self.config = config

    async def evaluate(self, region: str, items: Sequence[TrendItem]) -> DiffResult:
        """
        Diff ``items`` against the stored seen set for ``region``.

        With diffing disabled every run notifies and nothing is marked new.
        A store read failure either degrades (nothing new, still notify, no
        persistence) or propagates, depending on ``degrade_on_store_failure``.
        """
        if not self.config.diff_enabled:
            result = degraded_diff(items)
            return result.model_copy(update={"degraded": False})

        try:
            seen = await self.store.read(region)
        except StoreError as e:
            if not self.config.degrade_on_store_failure:
                raise
            logger.warning(f"Seen set unavailable for {region}, sending without NEW markers: {e}")
            return degraded_diff(items)

        result = compute_diff(items, seen)
        logger.info(
            f"Diff for {region}: {len(result.all_keys_normalized)} keys, "
            f"{len(result.new_keys)} new, {len(seen)} previously seen"
        )
        return result

    async def persist(self, region: str, result: DiffResult) -> bool:
        """
        Write this run's keys back. Returns False when nothing was written.

        Skipped after a degraded read so a broken store isn't overwritten
        with a partial view. Write failures are logged, never raised.
        """
        if result.degraded or not self.config.diff_enabled:
            return False

        try:
            await self.store.write(region, result.all_keys_normalized, self.config.store_mode)
        except StoreError as e:
            logger.error(f"Failed to persist seen set for {region}: {e}")
            return False

        logger.info(
            f"Persisted {len(result.all_keys_normalized)} keys for {region} "
            f"({self.config.store_mode.value})"
        )
        return True
