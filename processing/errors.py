"""
Exception types raised by the processing stages.

Processing functions raise these instead of exiting so the CLI (or a test)
decides what happens next.
"""

from typing import Iterable, List


class PipelineError(Exception):
    """Base class for all pipeline failures."""


class InputError(PipelineError):
    """An input file is missing, unreadable or malformed."""


class KeySetMismatchError(PipelineError):
    """Region keys in the boundaries and the attribute table are not the same set."""

    def __init__(self, geometry_keys: Iterable[str], attribute_keys: Iterable[str]):
        geometry_set = set(geometry_keys)
        attribute_set = set(attribute_keys)

        self.geometry_keys: List[str] = sorted(geometry_set)
        self.attribute_keys: List[str] = sorted(attribute_set)
        self.missing_from_attributes: List[str] = sorted(geometry_set - attribute_set)
        self.missing_from_geometry: List[str] = sorted(attribute_set - geometry_set)

        super().__init__(
            "Region keys do not match between geometry and attributes.\n"
            f"  geometry keys ({len(self.geometry_keys)}): {self.geometry_keys}\n"
            f"  attribute keys ({len(self.attribute_keys)}): {self.attribute_keys}"
        )
