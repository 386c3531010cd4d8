"""
Search Index

Substring lookup over the catalog by name or catalog number, in catalog
order.
"""

from typing import Iterable, List, Optional, Union

from config import SEARCH_LIMIT
from fleet_health.models import CatalogEntry, CatalogSnapshot


class SearchIndex:
    """
    Search over one catalog snapshot.

    Build a new index (or call ``rebuild``) when a new snapshot is published;
    the index never sees a partially replaced catalog.
    """

    def __init__(self, catalog: Union[CatalogSnapshot, Iterable[CatalogEntry]] = ()):
        self.rebuild(catalog)

    def rebuild(self, catalog: Union[CatalogSnapshot, Iterable[CatalogEntry]]) -> None:
        entries = catalog.entries if isinstance(catalog, CatalogSnapshot) else tuple(catalog)
        # Precomputed keys; swapped together in one assignment
        self._rows = tuple((entry, entry.name.lower(), str(entry.norad_id)) for entry in entries)

    def __len__(self) -> int:
        return len(self._rows)

    def search(self, query: str, limit: int = SEARCH_LIMIT) -> List[CatalogEntry]:
        """
        Entries whose name contains ``query`` (case-insensitive) or whose
        catalog number contains it.

        Args:
            query: Search text; empty or blank returns nothing
            limit: Maximum number of results

        Returns:
            Matching entries in catalog order
        """
        needle = (query or "").strip().lower()
        if not needle or limit <= 0:
            return []

        matches: List[CatalogEntry] = []
        for entry, name, norad in self._rows:
            if needle in name or needle in norad:
                matches.append(entry)
                if len(matches) >= limit:
                    break
        return matches

    def lookup(self, norad_id: int) -> Optional[CatalogEntry]:
        """First entry with the given catalog number."""
        for entry, _, _ in self._rows:
            if entry.norad_id == norad_id:
                return entry
        return None
