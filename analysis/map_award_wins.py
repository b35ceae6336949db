#!/usr/bin/env python3
"""
State Award Wins Choropleth Maps

Joins state boundaries with the per-state attribute table (award wins,
population, entertainment-industry establishments and receipts) and renders
choropleth maps of the continental United States:

- raw award wins (on screen only)
- wins per resident      -> plot_map_pop.pdf
- wins per receipt dollar -> plot_map_receipt.pdf

PDF pages use a fixed 11 x 8.5 inch page size.

Stages:
1. Load and flatten state boundaries into vertex rows
2. Load the attribute table
3. Validate region keys, join, clip to the bounding box, drop holes
4. Render, export and optionally show the maps
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import geopandas as gpd
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from loguru import logger
from matplotlib.collections import PatchCollection
from matplotlib.figure import Figure
from matplotlib.patches import Polygon

from ops.config_loader import Config
from processing.data_utils import ensure_output_directory, load_attribute_table
from processing.geometry import flatten_polygons, load_state_boundaries
from processing.joiner import join_and_filter, validate_keys
from processing.records import REGION_KEY


@dataclass
class MapVariant:
    """One choropleth to draw, optionally exported to a PDF."""

    column: str
    title: str
    label: str
    output_key: Optional[str] = None


MAP_VARIANTS: List[MapVariant] = [
    MapVariant("wins", "Award Wins by State", "Wins"),
    MapVariant("wins_per_pop", "Award Wins per Resident", "Wins per resident", "map_pop_pdf"),
    MapVariant(
        "wins_per_receipt",
        "Award Wins per Dollar of Industry Receipts",
        "Wins per receipt dollar",
        "map_receipt_pdf",
    ),
]


@dataclass
class PipelineContext:
    """Everything one run produces, passed from stage to stage."""

    config: Config
    boundaries: Optional[gpd.GeoDataFrame] = None
    geometry: Optional[pd.DataFrame] = None
    attributes: Optional[pd.DataFrame] = None
    joined: Optional[pd.DataFrame] = None
    outputs: Dict[str, Path] = field(default_factory=dict)


def load_inputs(ctx: PipelineContext) -> PipelineContext:
    """Load boundaries and attributes into the context."""
    config = ctx.config
    key_column = config.get_column_name("boundary_key")

    ctx.boundaries = load_state_boundaries(config.get_input_path("state_boundaries_shp"), key_column)
    ctx.geometry = flatten_polygons(ctx.boundaries, key_column)
    ctx.attributes = load_attribute_table(
        config.get_input_path("attributes_csv"), config.get_attribute_column_map()
    )
    return ctx


def check_keys(config: Config) -> PipelineContext:
    """
    Load both inputs and validate their region keys without joining.

    Raises:
        KeySetMismatchError: If the key sets differ
        InputError: If an input cannot be loaded
    """
    ctx = load_inputs(PipelineContext(config=config))
    logger.info("🔍 Validating region keys...")
    validate_keys(ctx.geometry[REGION_KEY], ctx.attributes[REGION_KEY])
    logger.success(f"  ✅ {ctx.attributes[REGION_KEY].nunique()} region keys match")
    return ctx


def plot_choropleth(
    records: pd.DataFrame,
    column: str,
    config: Config,
    title: str = "",
    label: str = "",
    ax=None,
) -> Figure:
    """
    Draw vertex rows as filled polygons shaded by ``column``.

    Args:
        records: Joined vertex rows; one ring per polygon_id, ordered by ``order``
        column: Column that drives the fill color
        config: Configuration instance (page size, colormap, edges)
        title: Map title
        label: Colorbar label
        ax: Axes to draw on; a new page-sized figure is created if None

    Returns:
        The figure holding the map
    """
    if ax is None:
        fig, ax = plt.subplots(
            figsize=(
                config.get_visualization_setting("page_width"),
                config.get_visualization_setting("page_height"),
            )
        )
    else:
        fig = ax.figure

    patches = []
    patch_values = []
    for _, ring in records.groupby("polygon_id", sort=False):
        ring = ring.sort_values("order")
        xy = ring[["longitude", "latitude"]].to_numpy()
        # Clipping can leave fewer than three vertices, which is no longer an area
        if len(xy) < 3:
            continue
        patches.append(Polygon(xy, closed=True))
        patch_values.append(ring[column].iloc[0])

    if patches:
        collection = PatchCollection(
            patches,
            cmap=config.get_visualization_setting("colormap_default"),
            edgecolor=config.get_visualization_setting("edge_color"),
            linewidth=config.get_visualization_setting("edge_width"),
        )
        collection.set_array(np.asarray(patch_values, dtype=float))
        ax.add_collection(collection)
        ax.autoscale_view()

        cbar = fig.colorbar(collection, ax=ax, shrink=0.6, pad=0.02)
        cbar.ax.tick_params(labelsize=9, colors="#333333")
        cbar.outline.set_edgecolor("#666666")  # type: ignore
        cbar.outline.set_linewidth(0.5)  # type: ignore
        if label:
            cbar.set_label(label, rotation=90, labelpad=12, fontsize=11, color="#333333")
    else:
        logger.warning(f"  ⚠️ Nothing to draw for '{column}'")

    ax.set_aspect("equal")
    ax.set_axis_off()
    if title:
        ax.set_title(title, fontsize=16, fontweight="bold", loc="left")

    logger.debug(f"  🎨 Drew {len(patches)} polygons for '{column}'")
    return fig


def render_maps(ctx: PipelineContext, show: bool) -> Dict[str, Path]:
    """
    Render every map variant, write the PDF ones and optionally show them all.

    Returns:
        Output key -> written PDF path
    """
    if ctx.joined is None:
        raise ValueError("Maps can only be rendered after the datasets are joined")

    config = ctx.config
    figures = []
    outputs: Dict[str, Path] = {}

    for variant in MAP_VARIANTS:
        logger.info(f"🎨 Rendering map: {variant.title}")
        fig = plot_choropleth(
            ctx.joined, variant.column, config, title=variant.title, label=variant.label
        )
        figures.append(fig)

        if variant.output_key:
            output_path = ensure_output_directory(config.get_output_path(variant.output_key))
            fig.savefig(
                output_path,
                format="pdf",
                dpi=config.get_visualization_setting("map_dpi"),
                facecolor="white",
                edgecolor="none",
            )
            outputs[variant.output_key] = output_path
            logger.success(f"  ✅ Saved {output_path}")

    if show:
        plt.show()

    for fig in figures:
        plt.close(fig)

    ctx.outputs.update(outputs)
    return outputs


def run_map_pipeline(config: Config, show: Optional[bool] = None) -> PipelineContext:
    """
    Run every stage: load, validate, join, filter, render and export.

    Args:
        config: Configuration instance
        show: Display the maps on screen; defaults to visualization.show_on_screen

    Returns:
        The filled pipeline context

    Raises:
        KeySetMismatchError: If the region keys differ (nothing is written)
        InputError: If an input cannot be loaded
    """
    if show is None:
        show = bool(config.get_visualization_setting("show_on_screen"))

    ctx = load_inputs(PipelineContext(config=config))
    ctx.joined = join_and_filter(ctx.geometry, ctx.attributes, config.get_bbox())
    render_maps(ctx, show=show)

    logger.success("✅ State award-wins maps completed successfully!")
    logger.info("📊 File Outputs:")
    for key, path in ctx.outputs.items():
        logger.info(f"   🗺️ {key}: {path}")

    return ctx
