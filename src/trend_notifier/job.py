"""One run of the job: fetch, diff, format, notify, persist."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from .config import Settings, TrendConfig
from .diff import DiffEngine
from .enrichment import build_rows
from .errors import DeliveryError, FetchError, ParseError, StoreError, TrendNotifierError
from .fetcher import TrendFetcher
from .formatter import build_failure_payload, build_payload
from .models import PayloadMeta, RunFailure, RunResult, RunSuccess
from .notifier import SlackNotifier
from .store import SeenSetStore, SqliteSeenSetStore, UnavailableSeenSetStore

logger = logging.getLogger(__name__)


class TrendJob:
    """
    Wires the collaborators together for a single region.

    The run is strictly sequential and returns a ``RunResult`` instead of
    exiting, so the caller decides what a failure means for the process.
    """

    def __init__(
        self,
        config: TrendConfig,
        fetcher: TrendFetcher,
        store: SeenSetStore,
        notifier: SlackNotifier,
        rss_urls,
        serpapi_key: str = "",
        hl: str = "el",
        dry_run: bool = False,
    ):
        self.config = config
        self.fetcher = fetcher
        self.diff_engine = DiffEngine(store, config)
        self.notifier = notifier
        self.rss_urls = list(rss_urls)
        self.serpapi_key = serpapi_key
        self.hl = hl
        self.dry_run = dry_run

    def _meta(self, now: datetime) -> PayloadMeta:
        return PayloadMeta(
            region=self.config.region,
            generated_at=now,
            time_zone=self.config.time_zone,
            layout=self.config.layout,
            order=self.config.row_order,
            limit=self.config.result_limit,
        )

    async def _notify_failure(self, error: TrendNotifierError, now: datetime) -> None:
        """Best effort: a failure to report the failure is only logged."""
        if self.dry_run:
            return
        payload = build_failure_payload(error.kind, str(error), self._meta(now))
        try:
            await self.notifier.send(payload)
        except DeliveryError as e:
            logger.error(f"Could not deliver failure notice: {e}")

    async def run(self, now: Optional[datetime] = None) -> RunResult:
        now = now or datetime.now(timezone.utc)
        region = self.config.region
        policy = self.config.volume_policy

        try:
            items = await self.fetcher.fetch_baseline(self.rss_urls)
            items = items[: self.config.result_limit]
            diff = await self.diff_engine.evaluate(region, items)
        except (FetchError, ParseError, StoreError) as e:
            logger.error(f"Run aborted for {region}: {e}")
            await self._notify_failure(e, now)
            return RunFailure(kind=e.kind, message=str(e))

        if not diff.should_notify:
            logger.info(f"No new trends for {region}, skipping notification")
            return RunSuccess(notified=False, items_count=len(items))

        enrichment = await self.fetcher.fetch_enrichment(region, self.serpapi_key, self.hl, policy)
        rows = build_rows(items, enrichment, diff, now, self.config.time_zone, policy)
        payload = build_payload(rows, self._meta(now))

        if self.dry_run:
            logger.info(f"Dry run, payload not sent: {payload.model_dump_json()}")
            return RunSuccess(
                notified=False,
                items_count=len(items),
                new_count=len(diff.new_keys),
                degraded=diff.degraded,
            )

        try:
            await self.notifier.send(payload)
        except DeliveryError as e:
            logger.error(f"Delivery failed for {region}: {e}")
            return RunFailure(kind=e.kind, message=str(e), exit_code=1)

        persisted = await self.diff_engine.persist(region, diff)

        return RunSuccess(
            notified=True,
            items_count=len(items),
            new_count=len(diff.new_keys),
            degraded=diff.degraded,
            persisted=persisted,
        )


async def run_once(
    settings: Settings,
    dry_run: bool = False,
    now: Optional[datetime] = None,
) -> RunResult:
    """Open the run-scoped resources, run the job, and release them."""
    config = settings.trend_config()
    store = SqliteSeenSetStore(settings.database_path)

    try:
        await store.connect()
        active_store: SeenSetStore = store
    except StoreError as e:
        logger.warning(f"Seen-set store unavailable: {e}")
        active_store = UnavailableSeenSetStore(e)

    try:
        async with TrendFetcher(timeout=settings.http_timeout) as fetcher:
            job = TrendJob(
                config=config,
                fetcher=fetcher,
                store=active_store,
                # One connection pool per run, shared with the webhook sender
                notifier=SlackNotifier(
                    settings.slack_webhook_url,
                    timeout=settings.http_timeout,
                    client=fetcher.client,
                ),
                rss_urls=settings.rss_url_list,
                serpapi_key=settings.serpapi_key,
                hl=settings.hl,
                dry_run=dry_run,
            )
            result = await job.run(now)

        if settings.seen_ttl_days and active_store is store and not dry_run:
            # first_seen_at is wall-clock time, so is the cutoff
            cutoff = datetime.now(timezone.utc) - timedelta(days=settings.seen_ttl_days)
            try:
                await store.prune(config.region, cutoff)
            except StoreError as e:
                logger.error(f"Seen-set pruning failed: {e}")

        return result
    finally:
        await store.close()
