"""
State boundary loading and polygon flattening.

Turns the state boundaries shapefile into per-vertex rows, one run of rows
per polygon ring, so interior rings can be told apart from outer rings and
vertices can be clipped individually.
"""

from pathlib import Path
from typing import Iterator, List, Tuple, Union

import geopandas as gpd
import pandas as pd
from loguru import logger
from shapely.geometry import MultiPolygon, Polygon

from .errors import InputError
from .records import GEOMETRY_COLUMNS, REGION_KEY


def load_state_boundaries(path: Union[str, Path], key_column: str) -> gpd.GeoDataFrame:
    """
    Load the state boundaries shapefile in WGS84.

    Args:
        path: Shapefile (or any file geopandas can read)
        key_column: Column holding the state name

    Returns:
        GeoDataFrame in EPSG:4326

    Raises:
        InputError: If the file is missing, unreadable or lacks the key column
    """
    path = Path(path)
    logger.info(f"🗺️ Loading state boundaries from {path}")

    if not path.exists():
        raise InputError(f"State boundaries file not found: {path}")

    try:
        gdf = gpd.read_file(path)
    except Exception as e:
        raise InputError(f"Could not read state boundaries from {path}: {e}") from e

    if key_column not in gdf.columns:
        raise InputError(
            f"State boundaries have no '{key_column}' column. "
            f"Available columns: {list(gdf.columns)}"
        )

    if gdf.crs is None:
        logger.warning("  ⚠️ Boundaries have no CRS, assuming WGS84")
        gdf = gdf.set_crs("EPSG:4326")
    elif gdf.crs.to_epsg() != 4326:
        logger.info(f"  🔄 Reprojecting boundaries from {gdf.crs} to WGS84")
        gdf = gdf.to_crs("EPSG:4326")

    logger.success(f"  ✅ Loaded {len(gdf):,} state boundaries")
    return gdf


def _polygons(geom) -> Iterator[Polygon]:
    if isinstance(geom, Polygon):
        yield geom
    elif isinstance(geom, MultiPolygon):
        yield from geom.geoms
    else:
        raise InputError(f"Unsupported geometry type for a state boundary: {geom.geom_type}")


def _rings(polygon: Polygon) -> Iterator[Tuple[List[Tuple[float, float]], bool]]:
    yield list(polygon.exterior.coords), False
    for interior in polygon.interiors:
        yield list(interior.coords), True


def flatten_polygons(gdf: gpd.GeoDataFrame, key_column: str) -> pd.DataFrame:
    """
    Flatten boundary polygons into ordered vertex rows.

    Every ring becomes its own polygon_id, numbered in file order. Outer rings
    have is_hole=False, interior rings is_hole=True. Within a ring, ``order``
    counts vertices from 0.

    Args:
        gdf: Boundaries with Polygon or MultiPolygon geometries
        key_column: Column holding the region key

    Returns:
        DataFrame with GeometryRecord columns
    """
    logger.info("📐 Flattening boundary polygons into vertex rows...")

    rows = []
    polygon_id = 0
    skipped = 0

    for key, geom in zip(gdf[key_column], gdf.geometry):
        if geom is None or geom.is_empty:
            skipped += 1
            continue

        for polygon in _polygons(geom):
            for coords, is_hole in _rings(polygon):
                for order, coord in enumerate(coords):
                    rows.append(
                        (str(key), float(coord[0]), float(coord[1]), polygon_id, is_hole, order)
                    )
                polygon_id += 1

    if skipped:
        logger.warning(f"  ⚠️ Skipped {skipped} regions with empty geometry")

    vertices = pd.DataFrame(rows, columns=GEOMETRY_COLUMNS)
    vertices = vertices.astype({"polygon_id": "int64", "is_hole": "bool", "order": "int64"})

    logger.success(
        f"  ✅ {len(vertices):,} vertices in {polygon_id:,} rings "
        f"for {vertices[REGION_KEY].nunique()} regions"
    )
    return vertices
