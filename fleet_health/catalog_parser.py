"""
Catalog Parser Module

Turns raw 3-line element-set text (name line, TLE line 1, TLE line 2) into
validated ``CatalogEntry`` records.

Fields are read from the fixed TLE columns rather than through the sgp4
library so that a record the propagator would reject still lands in the
catalog (and is later reported as a propagation failure) instead of
disappearing silently. A record is skipped only when its catalog number is
unreadable.
"""

import logging
import math
import re
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, NamedTuple, Optional, Sequence

from config import DEBRIS_KEYWORDS, EPOCH_PIVOT_YEAR
from fleet_health.errors import ParseError
from fleet_health.models import CatalogEntry

logger = logging.getLogger(__name__)

_LINE_SPLIT = re.compile(r"\r?\n")


class ParseResult(NamedTuple):
    entries: List[CatalogEntry]
    errors: List[ParseError]


def _finite_float(text: str) -> Optional[float]:
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def decode_epoch(year2: float, day_of_year: float,
                 pivot: int = EPOCH_PIVOT_YEAR) -> Optional[datetime]:
    """
    Convert a TLE epoch to an absolute UTC datetime.

    Args:
        year2: Two-digit epoch year
        day_of_year: Day of year with fractional part (1.0 is Jan 1 00:00)
        pivot: Years below the pivot map to 2000+year, the rest to 1900+year

    Returns:
        Datetime in UTC, rounded to the millisecond, or None when either
        input is not finite or the date falls outside the datetime range
    """
    if year2 is None or day_of_year is None:
        return None
    if not (math.isfinite(year2) and math.isfinite(day_of_year)):
        return None

    year2 = int(year2)
    year = 2000 + year2 if year2 < pivot else 1900 + year2

    millis = round((day_of_year - 1.0) * 86400000.0)
    try:
        return datetime(year, 1, 1, tzinfo=timezone.utc) + timedelta(milliseconds=millis)
    except (OverflowError, ValueError):
        # day of year far outside the datetime range
        return None


def checksum(line: str) -> int:
    """Calculate TLE checksum (digits count as their value, '-' as 1)."""
    total = 0
    for char in line[:68]:
        if char.isdigit():
            total += int(char)
        elif char == "-":
            total += 1
    return total % 10


def is_debris_name(name: str, keywords: Iterable[str] = DEBRIS_KEYWORDS) -> bool:
    lowered = name.lower()
    return any(k in lowered for k in keywords)


class CatalogParser:
    """
    Parser for 3-line element-set catalogs.

    Provides methods for:
    - Splitting raw text into name/line1/line2 records
    - Decoding catalog number, epoch and inclination from fixed columns
    - Flagging debris by name heuristic
    - Optional checksum verification
    """

    def __init__(self, pivot_year: int = EPOCH_PIVOT_YEAR,
                 debris_keywords: Sequence[str] = DEBRIS_KEYWORDS,
                 verify_checksum: bool = False):
        """
        Initialize catalog parser.

        Args:
            pivot_year: Two-digit epoch pivot (default 57, the 1957 start of the space age)
            debris_keywords: Case-insensitive name fragments that mark debris
            verify_checksum: Reject records whose TLE checksums do not match
        """
        self.pivot_year = pivot_year
        self.debris_keywords = tuple(k.lower() for k in debris_keywords)
        self.verify_checksum = verify_checksum

    def parse(self, text: str, group: Optional[str] = None) -> List[CatalogEntry]:
        """Parse raw text into catalog entries, skipping malformed records."""
        return self.parse_report(text, group).entries

    def parse_report(self, text: str, group: Optional[str] = None) -> ParseResult:
        """
        Parse raw text and report the records that were skipped.

        Args:
            text: Raw 3-line element-set text
            group: Optional source group tag stored on every entry

        Returns:
            ParseResult with entries in input order and the per-record errors
        """
        entries: List[CatalogEntry] = []
        errors: List[ParseError] = []

        if not text:
            return ParseResult(entries, errors)

        lines = [line.rstrip() for line in _LINE_SPLIT.split(text)]
        lines = [line for line in lines if line]

        for i in range(0, len(lines) - 2, 3):
            name, line1, line2 = lines[i], lines[i + 1], lines[i + 2]
            try:
                entries.append(self.parse_record(name, line1, line2, group=group))
            except ParseError as e:
                e.line_no = i + 1
                logger.warning(f"Skipping record at line {i + 1} ({name.strip()}): {e.reason}")
                errors.append(e)

        leftover = len(lines) % 3
        if leftover:
            logger.debug(f"Ignoring {leftover} trailing line(s) that do not form a full record")

        if errors:
            logger.info(f"Parsed {len(entries)} entries, skipped {len(errors)} malformed record(s)")

        return ParseResult(entries, errors)

    def parse_record(self, name: str, line1: str, line2: str,
                     group: Optional[str] = None) -> CatalogEntry:
        """
        Parse one name/line1/line2 record.

        Raises:
            ParseError: if the catalog number is unreadable or, when
                enabled, a checksum does not match
        """
        name = name.strip()

        norad = _finite_float(line1[2:7])
        if norad is None:
            raise ParseError(f"catalog number {line1[2:7]!r} is not numeric", name=name)

        if self.verify_checksum:
            for label, line in (("line 1", line1), ("line 2", line2)):
                if len(line) < 69 or not line[68].isdigit() or int(line[68]) != checksum(line):
                    raise ParseError(f"{label} checksum mismatch", name=name)

        epoch = decode_epoch(_finite_float(line1[18:20]), _finite_float(line1[20:32]),
                             pivot=self.pivot_year)
        if epoch is None:
            logger.debug(f"No usable epoch for {name} ({int(norad)})")

        return CatalogEntry(
            norad_id=int(norad),
            name=name,
            line1=line1,
            line2=line2,
            inclination_deg=_finite_float(line2[8:16]),
            epoch=epoch,
            is_debris=is_debris_name(name, self.debris_keywords),
            group=group,
        )
