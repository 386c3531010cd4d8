"""
Element-set sources.

A source only has to return raw 3-line text for a named group ("active",
"1999-025", "iridium-33-debris", ...). Groups are fetched and parsed one at a
time; a group that cannot be fetched is recorded and skipped without
affecting the others.
"""

import logging
import time
from typing import Dict, Iterable, List, NamedTuple, Optional

import requests

from config import service_config
from fleet_health.catalog_parser import CatalogParser
from fleet_health.errors import FetchFailure, ParseError
from fleet_health.models import CatalogEntry

logger = logging.getLogger(__name__)


class ElementSetSource:
    """Capability interface: raw element-set text for a catalog group."""

    def fetch_group(self, group: str) -> str:
        """
        Raises:
            FetchFailure: if the group cannot be retrieved
        """
        raise NotImplementedError


class CelesTrakSource(ElementSetSource):
    """Fetch TLE groups from CelesTrak's GP endpoint."""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None, delay_seconds: float = 0.2):
        """
        Args:
            base_url: Provider base URL (default from CELESTRAK_API_BASE)
            timeout: Per-request timeout in seconds
            session: Optional requests session to reuse connections
            delay_seconds: Pause between group requests to stay under rate limits
        """
        self.base_url = (base_url or service_config.CELESTRAK_BASE).rstrip("/")
        self.timeout = timeout if timeout is not None else service_config.FETCH_TIMEOUT_SECONDS
        self.session = session if session is not None else requests.Session()
        self.delay_seconds = delay_seconds

    def fetch_group(self, group: str) -> str:
        try:
            response = self.session.get(
                f"{self.base_url}/NORAD/elements/gp.php",
                params={"GROUP": group, "FORMAT": "tle"},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise FetchFailure(group, str(e)) from e
        finally:
            if self.delay_seconds:
                time.sleep(self.delay_seconds)

        text = response.text
        # CelesTrak answers unknown groups with 200 and a plain message
        if text.strip() and not any(line.startswith("1 ") for line in text.splitlines()):
            raise FetchFailure(group, f"unexpected response: {text.strip()[:80]!r}")
        return text


class StaticTextSource(ElementSetSource):
    """In-memory source, for fixtures and offline runs."""

    def __init__(self, groups: Dict[str, str]):
        self.groups = dict(groups)

    def fetch_group(self, group: str) -> str:
        if group not in self.groups:
            raise FetchFailure(group, "unknown group")
        return self.groups[group]


class FetchResult(NamedTuple):
    entries: List[CatalogEntry]
    failures: List[FetchFailure]
    parse_errors: List[ParseError]

    @property
    def failed_groups(self) -> List[str]:
        return [f.group for f in self.failures]


def fetch_catalog(source: ElementSetSource, groups: Iterable[str],
                  parser: Optional[CatalogParser] = None) -> FetchResult:
    """
    Fetch and parse every group, isolating failures per group.

    Args:
        source: Element-set source
        groups: Group names, fetched in order
        parser: Catalog parser (default settings if omitted)

    Returns:
        FetchResult with entries in group order plus per-group failures
    """
    parser = parser if parser is not None else CatalogParser()
    entries: List[CatalogEntry] = []
    failures: List[FetchFailure] = []
    parse_errors: List[ParseError] = []

    for group in groups:
        try:
            text = source.fetch_group(group)
        except FetchFailure as e:
            logger.error(f"Error loading group {group}: {e.reason}")
            failures.append(e)
            continue

        report = parser.parse_report(text, group=group)
        entries.extend(report.entries)
        parse_errors.extend(report.errors)
        logger.info(f"Fetched {len(report.entries)} entries from {group}")

    return FetchResult(entries, failures, parse_errors)
