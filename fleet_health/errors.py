"""
Error taxonomy for the fleet health engine.

None of these are fatal to a pipeline run. A malformed record, an
unreachable source or a failed propagation degrades only that item; callers
collect them for operational visibility. Propagation failures are returned as
``models.PropagationFailure`` values rather than raised.
"""

from typing import Optional


class FleetHealthError(Exception):
    """Base class for fleet health errors."""


class ParseError(FleetHealthError):
    """A single element-set record could not be decoded."""

    def __init__(self, reason: str, line_no: Optional[int] = None, name: str = ""):
        self.reason = reason
        self.line_no = line_no
        self.name = name
        where = f" at line {line_no}" if line_no is not None else ""
        label = f" ({name})" if name else ""
        super().__init__(f"Malformed element set{where}{label}: {reason}")


class FetchFailure(FleetHealthError):
    """An element-set or telemetry source could not be reached."""

    def __init__(self, group: str, reason: str):
        self.group = group
        self.reason = reason
        super().__init__(f"Failed to fetch '{group}': {reason}")
