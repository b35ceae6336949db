"""
Dataset joiner and geographic filter.

Joins flattened state boundary vertices with the per-state attribute table and
trims the result to what gets drawn on a continental US map:

    validate_keys -> join -> filter_bbox -> drop_holes

Every function returns a new DataFrame; inputs are never modified.
"""

from typing import Iterable, Tuple

import pandas as pd
from loguru import logger

from .errors import KeySetMismatchError
from .records import REGION_KEY

# (min_lon, max_lon, min_lat, max_lat)
CONUS_BBOX: Tuple[float, float, float, float] = (-124.7625, -66.9326, 24.5210, 49.3845)


def validate_keys(geometry_keys: Iterable[str], attribute_keys: Iterable[str]) -> None:
    """
    Check that both datasets cover exactly the same regions.

    Args:
        geometry_keys: Region keys found in the boundary data
        attribute_keys: Region keys found in the attribute table

    Raises:
        KeySetMismatchError: If the two key sets are not equal
    """
    geometry_set = set(geometry_keys)
    attribute_set = set(attribute_keys)

    logger.debug(f"  🔍 Geometry keys: {len(geometry_set)}, attribute keys: {len(attribute_set)}")

    if geometry_set != attribute_set:
        raise KeySetMismatchError(geometry_set, attribute_set)

    logger.debug(f"  ✅ Key sets match ({len(geometry_set)} regions)")


def join(geometry: pd.DataFrame, attributes: pd.DataFrame) -> pd.DataFrame:
    """
    Attach each region's attributes to its boundary vertices.

    Keys must already have passed validate_keys, so every vertex finds its
    region and the join drops nothing. Vertex order is preserved.

    Args:
        geometry: Vertex rows (GeometryRecord columns)
        attributes: One row per region (AttributeRecord columns)

    Returns:
        Vertex rows with the attribute columns appended
    """
    joined = geometry.merge(attributes, on=REGION_KEY, how="left", sort=False)
    logger.debug(f"  🔗 Joined {len(geometry):,} vertices with {len(attributes):,} regions")
    return joined.reset_index(drop=True)


def filter_bbox(
    records: pd.DataFrame,
    min_lon: float = CONUS_BBOX[0],
    max_lon: float = CONUS_BBOX[1],
    min_lat: float = CONUS_BBOX[2],
    max_lat: float = CONUS_BBOX[3],
) -> pd.DataFrame:
    """Keep vertices inside the closed longitude/latitude box."""
    mask = records["longitude"].between(min_lon, max_lon, inclusive="both") & records[
        "latitude"
    ].between(min_lat, max_lat, inclusive="both")

    dropped = int((~mask).sum())
    if dropped:
        logger.debug(f"  ✂️ Dropped {dropped:,} vertices outside the bounding box")

    return records[mask].reset_index(drop=True)


def drop_holes(records: pd.DataFrame) -> pd.DataFrame:
    """Remove interior ring vertices (lakes and the like)."""
    holes = records["is_hole"].astype(bool)
    if holes.any():
        logger.debug(f"  🕳️ Dropped {int(holes.sum()):,} hole vertices")
    return records[~holes].reset_index(drop=True)


def join_and_filter(
    geometry: pd.DataFrame,
    attributes: pd.DataFrame,
    bbox: Tuple[float, float, float, float] = CONUS_BBOX,
) -> pd.DataFrame:
    """
    Run the full join: validate keys, join, clip to the box and drop holes.

    Args:
        geometry: Vertex rows for every region
        attributes: Attribute rows for every region
        bbox: (min_lon, max_lon, min_lat, max_lat)

    Returns:
        Joined vertex rows ready for plotting

    Raises:
        KeySetMismatchError: If the region keys differ between the inputs
    """
    logger.info("🔗 Joining boundaries with state attributes...")

    validate_keys(geometry[REGION_KEY], attributes[REGION_KEY])
    joined = join(geometry, attributes)

    min_lon, max_lon, min_lat, max_lat = bbox
    filtered = drop_holes(filter_bbox(joined, min_lon, max_lon, min_lat, max_lat))

    logger.success(
        f"  ✅ {len(filtered):,} of {len(joined):,} vertices kept across "
        f"{filtered[REGION_KEY].nunique()} regions"
    )
    return filtered
