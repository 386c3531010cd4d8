"""
Catalog snapshot store.

The catalog is never edited in place. A refresh builds a complete list of
entries and publishes it as a new immutable ``CatalogSnapshot``; readers take
the current snapshot once and use it for a whole cycle, so they see either
the old catalog or the new one and never a mix.

Refreshes are guarded by a generation counter. ``begin_refresh`` hands out a
token, and ``commit`` publishes only if no newer refresh has started and the
store has not been cancelled in the meantime. Stale results are dropped.
``close`` refuses every later commit until ``open`` is called, so a refresh
that starts after shutdown cannot publish either.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Iterable, Optional

from fleet_health.models import CatalogEntry, CatalogSnapshot

logger = logging.getLogger(__name__)


class CatalogStore:
    """Single-writer holder of the current catalog snapshot."""

    def __init__(self, entries: Optional[Iterable[CatalogEntry]] = None):
        self._lock = threading.Lock()
        self._generation = 0
        self._closed = False
        self._snapshot = CatalogSnapshot(
            version=0,
            entries=tuple(entries or ()),
            created_at=datetime.now(timezone.utc),
        )

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def snapshot(self) -> CatalogSnapshot:
        """Current snapshot; hold on to it for the duration of one cycle."""
        with self._lock:
            return self._snapshot

    def begin_refresh(self) -> int:
        """Start a refresh and supersede any refresh already in flight."""
        with self._lock:
            self._generation += 1
            return self._generation

    def cancel(self) -> None:
        """Invalidate every in-flight refresh."""
        with self._lock:
            self._generation += 1
        logger.debug("In-flight catalog refreshes cancelled")

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def close(self) -> None:
        """Cancel in-flight refreshes and refuse commits until ``open`` is called."""
        with self._lock:
            self._generation += 1
            self._closed = True
        logger.debug("Catalog store closed to refreshes")

    def open(self) -> None:
        with self._lock:
            self._closed = False

    def commit(self, token: int, entries: Iterable[CatalogEntry],
               failed_groups: Iterable[str] = (),
               skipped_records: int = 0) -> Optional[CatalogSnapshot]:
        """
        Publish a refresh result if ``token`` is still current and the store
        is open.

        Args:
            token: Value returned by ``begin_refresh``
            entries: Complete replacement catalog
            failed_groups: Source groups that could not be fetched
            skipped_records: Malformed records dropped while parsing

        Returns:
            The published snapshot, or None if the result was stale or the
            store is closed
        """
        entries = tuple(entries)
        with self._lock:
            if self._closed:
                logger.info(f"Discarding catalog refresh (token {token}): store is closed")
                return None
            if token != self._generation:
                logger.info(
                    f"Discarding stale catalog refresh (token {token}, current {self._generation})"
                )
                return None
            self._snapshot = CatalogSnapshot(
                version=self._snapshot.version + 1,
                entries=entries,
                created_at=datetime.now(timezone.utc),
                failed_groups=tuple(failed_groups),
                skipped_records=skipped_records,
            )
            snapshot = self._snapshot

        logger.info(f"Published catalog v{snapshot.version} with {len(entries)} entries")
        return snapshot

    def replace(self, entries: Iterable[CatalogEntry],
                failed_groups: Iterable[str] = ()) -> Optional[CatalogSnapshot]:
        """Synchronously publish a new catalog."""
        return self.commit(self.begin_refresh(), entries, failed_groups)
