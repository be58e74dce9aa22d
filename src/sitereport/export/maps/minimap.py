"""
Module: export.maps.minimap

Purpose:
    Render a single feature's snapshot map into a page's map slot.
    Rendering never raises: any problem is shown as a short fallback
    message inside the slot so one bad geometry cannot stall a page.

Key Functions:
    - render_mini_map(): Fill a MapSlot with a feature snapshot (async)
    - draw_feature_snapshot(): Draw one feature fitted to an image
    - draw_geometry(): Draw a shapely geometry with a category style
    - fallback_map_display(): Show a message in a map slot

Dependencies:
    - PIL: Drawing
    - shapely: Geometry parsing
    - export.maps.projection: Viewport fitting

Used By:
    - export.controller: Category detail pages
    - export.maps.screenshot: Overview maps (draw_geometry)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from PIL import Image, ImageDraw
from shapely.geometry.base import BaseGeometry

from sitereport.core.geodata import feature_shape
from sitereport.core.models import CategoryStyle, Feature
from sitereport.export.layout.compositor import MapSlot

from .projection import Viewport

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = "Map unavailable"
MISSING_ELEMENTS_MESSAGE = "Missing required elements"
RENDER_ERROR_MESSAGE = "Map rendering error"

SNAPSHOT_PADDING = 20
SNAPSHOT_BACKGROUND = "#e8ecef"
DEFAULT_SETTLE_DELAY = 1.0

StyleFor = Callable[[Feature], CategoryStyle]


def draw_geometry(
    draw: ImageDraw.ImageDraw,
    geometry: BaseGeometry,
    viewport: Viewport,
    style: CategoryStyle,
    *,
    scale: float = 1.0,
) -> None:
    """
    Draw a geometry onto an RGBA overlay.

    Polygons are filled (holes cleared) and stroked, lines stroked,
    points drawn as circles of the style's point radius. Multi-part
    geometries and collections are drawn part by part.

    Args:
        draw: Drawing context of an RGBA overlay image
        geometry: Shapely geometry in WGS84 degrees
        viewport: Projection onto the overlay
        style: Category style
        scale: Multiplier for line widths and point radii
    """
    line_width = max(1, round(style.weight * scale))
    kind = geometry.geom_type

    if hasattr(geometry, "geoms"):
        for part in geometry.geoms:
            draw_geometry(draw, part, viewport, style, scale=scale)
    elif kind == "Polygon":
        exterior = [tuple(p) for p in viewport.project(geometry.exterior.coords)]
        draw.polygon(exterior, fill=style.fill_rgba)
        for ring in geometry.interiors:
            draw.polygon([tuple(p) for p in viewport.project(ring.coords)], fill=(0, 0, 0, 0))
        for ring in (geometry.exterior, *geometry.interiors):
            points = [tuple(p) for p in viewport.project(ring.coords)]
            draw.line(points, fill=style.line_rgba, width=line_width, joint="curve")
    elif kind in ("LineString", "LinearRing"):
        points = [tuple(p) for p in viewport.project(geometry.coords)]
        draw.line(points, fill=style.line_rgba, width=line_width, joint="curve")
    elif kind == "Point":
        (x, y), = viewport.project(geometry.coords)
        r = style.point_radius * scale
        draw.ellipse((x - r, y - r, x + r, y + r), fill=style.fill_rgba,
                     outline=style.line_rgba, width=line_width)
    else:
        logger.debug(f"Skipping unsupported geometry type {kind}")


def draw_feature_snapshot(
    feature: Feature,
    style: CategoryStyle,
    size: tuple[int, int],
    *,
    scale: float = 1.0,
    background: str = SNAPSHOT_BACKGROUND,
) -> Image.Image:
    """
    Draw one feature fitted to an image.

    Args:
        feature: Feature with a GeoJSON geometry
        style: Category style for the feature
        size: Nominal (width, height) in pixels
        scale: Output resolution multiplier
        background: Map background color

    Returns:
        RGB image of size ``size * scale``

    Raises:
        ValueError: If the feature has no usable geometry
    """
    geometry = feature_shape(feature)
    width, height = max(1, round(size[0] * scale)), max(1, round(size[1] * scale))
    viewport = Viewport.fit(geometry.bounds, width, height, padding=SNAPSHOT_PADDING * scale)

    base = Image.new("RGBA", (width, height), background)
    overlay = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    draw_geometry(ImageDraw.Draw(overlay), geometry, viewport, style, scale=scale)
    return Image.alpha_composite(base, overlay).convert("RGB")


def fallback_map_display(container: Optional[MapSlot], message: str = FALLBACK_MESSAGE) -> None:
    """Replace a map slot's content with a centered message."""
    if container is None:
        return
    container.show_fallback(message)


async def render_mini_map(
    container: Optional[MapSlot],
    feature: Optional[Feature],
    style_for: StyleFor,
    *,
    scale: float = 1.0,
    settle_delay: float = DEFAULT_SETTLE_DELAY,
) -> None:
    """
    Render a feature snapshot into a map slot.

    Always returns normally. A missing slot, feature or geometry shows
    "Missing required elements"; any rendering failure shows
    "Map rendering error" and is logged with the feature's name.

    Args:
        container: Map slot on the composed page
        feature: Feature to draw
        style_for: Category style lookup
        scale: Output resolution multiplier (page capture scale)
        settle_delay: Seconds to wait after drawing
    """
    try:
        if container is None or feature is None or not feature.geometry:
            fallback_map_display(container, MISSING_ELEMENTS_MESSAGE)
            return

        container.attempts += 1
        image = draw_feature_snapshot(feature, style_for(feature), container.size, scale=scale)
        container.show(image)

        if settle_delay > 0:
            await asyncio.sleep(settle_delay)
    except Exception as e:
        logger.error(f"Error rendering mini map for {_feature_name(feature)}: {e}")
        fallback_map_display(container, RENDER_ERROR_MESSAGE)


def _feature_name(feature: Optional[Feature]) -> str:
    try:
        return feature.label
    except Exception:
        return "<unknown feature>"
