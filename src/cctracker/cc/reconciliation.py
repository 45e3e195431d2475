"""
Reconciliation cycle for C&C thread statuses.

One cycle:

1. load cached statuses and subscriptions,
2. fetch the open-thread snapshot (bounded by ``fetch_timeout``),
3. classify each thread, dropping the ones that are skipped,
4. for every new or changed thread, alert each subscribed channel once and
   then write the new status,
5. evict cached threads that are no longer in the snapshot.

A failed fetch ends the cycle before step 3 and does not evict: an
unreachable forum must not look like an empty one. An unclassifiable
thread is still part of the snapshot, so its cache entry survives.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from cctracker.cc.forum_reader import ForumSnapshotReader
from cctracker.cc.notifier import Notifier, build_alert_message
from cctracker.cc.stage_classifier import classify_thread
from cctracker.cc.status_cache import StatusCache
from cctracker.datatypes.cc_datatypes import (
    CacheEntry,
    ClassifiedThread,
    FetchResult,
    SubscriptionEntry,
)
from cctracker.datatypes.discord_datatypes import ChannelID
from cctracker.util.logger import get_logger

logger = get_logger("cc_reconciliation")


@dataclass(slots=True)
class CycleReport:
    """Counters describing what one cycle did."""

    fetch_ok: bool = False
    fetched: int = 0
    classified: int = 0
    skipped: int = 0
    transitions: int = 0
    notifications_sent: int = 0
    notifications_failed: int = 0
    cache_writes: int = 0
    cache_write_failures: int = 0
    evicted: int = 0

    def summary(self) -> str:
        return (
            f"fetched={self.fetched} classified={self.classified} skipped={self.skipped} "
            f"transitions={self.transitions} sent={self.notifications_sent} "
            f"failed={self.notifications_failed} writes={self.cache_writes} evicted={self.evicted}"
        )


def resolve_targets(thread: ClassifiedThread, subscriptions: Sequence[SubscriptionEntry]) -> List[SubscriptionEntry]:
    """Subscriptions to alert for a thread, at most one per channel.

    When several subscriptions of one channel match, the first one (and
    its role) is used.
    """
    targets: Dict[ChannelID, SubscriptionEntry] = {}
    for subscription in subscriptions:
        if subscription.channel_id in targets:
            continue
        if subscription.matches(thread.tiers, thread.generations):
            targets[subscription.channel_id] = subscription
    return list(targets.values())


class ReconciliationEngine:
    """Diffs each snapshot against the status cache and alerts subscribers."""

    def __init__(
        self,
        reader: ForumSnapshotReader,
        cache: StatusCache,
        notifier: Notifier,
        thread_url_base: str,
        *,
        fetch_timeout: Optional[float] = None,
    ) -> None:
        self._reader = reader
        self._cache = cache
        self._notifier = notifier
        self._thread_url_base = thread_url_base
        self._fetch_timeout = fetch_timeout

    async def _fetch(self) -> FetchResult:
        try:
            return await asyncio.wait_for(self._reader.fetch_open_threads(), timeout=self._fetch_timeout)
        except asyncio.TimeoutError:
            return FetchResult.failure(f"fetch timed out after {self._fetch_timeout}s")

    async def run_cycle(self) -> CycleReport:
        report = CycleReport()
        cached = await self._cache.load()
        cached_by_id: Dict[int, CacheEntry] = {entry.thread_id: entry for entry in cached.entries}

        result = await self._fetch()
        report.fetch_ok = result.ok
        if not result.ok:
            logger.warning("[CC RECONCILE] Snapshot fetch failed (%s); keeping cache as is", result.error)
            return report

        report.fetched = len(result.threads)
        if not result.threads:
            logger.info("[CC RECONCILE] Snapshot is empty; evicting every cached thread")

        for snapshot in result.threads:
            thread = classify_thread(snapshot)
            if thread is None:
                report.skipped += 1
                continue
            report.classified += 1

            previous = cached_by_id.get(thread.thread_id)
            if previous is not None and previous.status == thread.status:
                continue

            report.transitions += 1
            logger.info(
                "[CC RECONCILE] Thread %s: %s -> %s %s",
                thread.thread_id,
                f"{previous.stage} {previous.progress}".strip() if previous else "new",
                thread.stage, thread.progress,
            )
            await self._alert(thread, cached.subscriptions, report)

            if await self._cache.upsert(CacheEntry.from_classified(thread)):
                report.cache_writes += 1
            else:
                report.cache_write_failures += 1

        await self._evict(cached_by_id, {snapshot.thread_id for snapshot in result.threads}, report)

        logger.info("[CC RECONCILE] Cycle complete: %s", report.summary())
        return report

    async def _alert(
        self,
        thread: ClassifiedThread,
        subscriptions: Sequence[SubscriptionEntry],
        report: CycleReport,
    ) -> None:
        sends = []
        for target in resolve_targets(thread, subscriptions):
            message = build_alert_message(thread, target.role_id, self._thread_url_base)
            if message is None:
                continue
            sends.append(self._notifier.notify(target.channel_id, message))

        if not sends:
            return

        results = await asyncio.gather(*sends, return_exceptions=True)
        for outcome in results:
            if outcome is True:
                report.notifications_sent += 1
                continue
            report.notifications_failed += 1
            if isinstance(outcome, BaseException):
                logger.warning("[CC RECONCILE] Alert for thread %s raised: %r", thread.thread_id, outcome)

    async def _evict(self, cached_by_id: Dict[int, CacheEntry], live_ids: set[int], report: CycleReport) -> None:
        for thread_id in sorted(cached_by_id.keys() - live_ids):
            if await self._cache.delete(thread_id):
                report.evicted += 1
                logger.debug("[CC RECONCILE] Evicted thread %s", thread_id)
