"""
Record types for the state award-wins maps.

The pipeline itself works on pandas DataFrames whose rows follow these
dataclasses. The dataclasses document the schema and give tests and callers a
typed way to build or inspect frames.
"""

from dataclasses import asdict, dataclass, fields
from typing import Iterable, List, Optional, Type, TypeVar

import pandas as pd

from .errors import InputError

REGION_KEY = "region_key"

GEOMETRY_COLUMNS = [REGION_KEY, "longitude", "latitude", "polygon_id", "is_hole", "order"]
ATTRIBUTE_COLUMNS = [
    REGION_KEY,
    "population",
    "wins",
    "establishments",
    "receipts",
    "wins_per_pop",
    "wins_per_receipt",
]


@dataclass(frozen=True)
class GeometryRecord:
    """One polygon ring vertex, in ring order."""

    region_key: str
    longitude: float
    latitude: float
    polygon_id: int
    is_hole: bool
    order: int = 0


@dataclass(frozen=True)
class AttributeRecord:
    """Attribute row for one region."""

    region_key: str
    population: float
    wins: int
    establishments: int
    receipts: float
    wins_per_pop: float
    wins_per_receipt: float


@dataclass(frozen=True)
class JoinedRecord:
    """Vertex row carrying the attributes of its region."""

    region_key: str
    longitude: float
    latitude: float
    polygon_id: int
    is_hole: bool
    order: int
    population: float
    wins: int
    establishments: int
    receipts: float
    wins_per_pop: float
    wins_per_receipt: float


def wins_per_pop(record: AttributeRecord) -> float:
    """Award wins per resident."""
    if record.population == 0:
        raise InputError(f"Population is zero for '{record.region_key}', cannot derive wins_per_pop")
    return record.wins / record.population


def wins_per_receipt(record: AttributeRecord) -> float:
    """Award wins per dollar of industry receipts."""
    if record.receipts == 0:
        raise InputError(
            f"Receipts are zero for '{record.region_key}', cannot derive wins_per_receipt"
        )
    return record.wins / record.receipts


R = TypeVar("R")


def frame_from_records(records: Iterable, record_type: Optional[Type] = None) -> pd.DataFrame:
    """Build a DataFrame from dataclass records, keeping the dataclass field order."""
    records = list(records)
    if record_type is None and records:
        record_type = type(records[0])
    columns = [f.name for f in fields(record_type)] if record_type is not None else None
    return pd.DataFrame([asdict(record) for record in records], columns=columns)


def records_from_frame(frame: pd.DataFrame, record_type: Type[R]) -> List[R]:
    """Turn DataFrame rows back into dataclass records (extra columns ignored)."""
    names = [f.name for f in fields(record_type)]
    missing = [name for name in names if name not in frame.columns]
    if missing:
        raise ValueError(f"Frame is missing columns for {record_type.__name__}: {missing}")
    return [record_type(**row) for row in frame[names].to_dict(orient="records")]
