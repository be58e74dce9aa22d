"""
Module: export.maps

Purpose:
    Map imagery for report pages: per-feature snapshot maps and overview
    map screenshots.

Key Functions:
    - render_mini_map(): Fill a page's map slot (never raises)

Key Classes:
    - ScreenshotSource: Overview screenshot provider interface
    - FeatureMapScreenshotSource: Default Pillow implementation
    - Viewport: Web Mercator fitting
"""

from .projection import Viewport
from .minimap import (
    FALLBACK_MESSAGE,
    MISSING_ELEMENTS_MESSAGE,
    RENDER_ERROR_MESSAGE,
    draw_feature_snapshot,
    fallback_map_display,
    render_mini_map,
)
from .screenshot import (
    FeatureMapScreenshotSource,
    GeoRaster,
    LayerVisibility,
    ScreenshotSource,
)

__all__ = [
    "Viewport",
    "FALLBACK_MESSAGE",
    "MISSING_ELEMENTS_MESSAGE",
    "RENDER_ERROR_MESSAGE",
    "draw_feature_snapshot",
    "fallback_map_display",
    "render_mini_map",
    "FeatureMapScreenshotSource",
    "GeoRaster",
    "LayerVisibility",
    "ScreenshotSource",
]
