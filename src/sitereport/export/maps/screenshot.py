"""
Module: export.maps.screenshot

Purpose:
    Source of overview map screenshots. The exporter toggles layer
    visibility on a ScreenshotSource, forces a re-render and takes a
    screenshot for each overview page, then restores the visibility.

Key Classes:
    - LayerVisibility: Mutable layer toggles (features, ortho, dsm, dtm)
    - GeoRaster: Georeferenced raster (image + WGS84 bounds)
    - ScreenshotSource: Abstract screenshot provider
    - FeatureMapScreenshotSource: Pillow renderer of all features over
      optional orthophoto / elevation rasters

Dependencies:
    - PIL: Drawing and raster compositing
    - numpy: Elevation normalization
    - export.maps.minimap: Geometry drawing

Used By:
    - export.controller: Overview map pages
    - sitereport.cli: Builds the default source
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np
from PIL import Image, ImageDraw, ImageOps

from sitereport.core.geodata import feature_shape
from sitereport.core.models import CategoryStyles, Feature
from sitereport.export.layout.config import LEDGER_LANDSCAPE

from .minimap import draw_geometry
from .projection import Viewport

logger = logging.getLogger(__name__)

OVERVIEW_PADDING = 40
OVERVIEW_BACKGROUND = "#dfe6e9"


@dataclass
class LayerVisibility:
    """Which layers the map currently shows."""

    features: bool = True
    ortho: bool = False
    dsm: bool = False
    dtm: bool = False

    def copy(self) -> LayerVisibility:
        return LayerVisibility(self.features, self.ortho, self.dsm, self.dtm)


@dataclass(frozen=True)
class GeoRaster:
    """
    Georeferenced raster.

    Attributes:
        image: Raster image (RGB for orthophotos, single band for elevation)
        bounds: (west, south, east, north) in WGS84 degrees
    """

    image: Image.Image
    bounds: Tuple[float, float, float, float]

    def __post_init__(self) -> None:
        west, south, east, north = self.bounds
        if not (west < east and south < north):
            raise ValueError(f"Invalid raster bounds: {self.bounds}")

    @classmethod
    def open(cls, path: Path, bounds: Sequence[float]) -> GeoRaster:
        image = Image.open(path)
        image.load()
        return cls(image=image, bounds=tuple(float(v) for v in bounds))


class ScreenshotSource(ABC):
    """
    Abstract provider of map screenshots.

    ``layer_visibility`` is shared mutable state: callers that change it
    must restore it.
    """

    layer_visibility: LayerVisibility

    @abstractmethod
    def render_layers(self) -> None:
        """Re-render the map with the current layer visibility."""

    @abstractmethod
    async def get_screenshot(self) -> Image.Image:
        """
        Screenshot of the current rendering.

        Returns:
            RGB image of the map
        """

    @property
    def has_ortho(self) -> bool:
        return False

    @property
    def has_dsm(self) -> bool:
        return False


class FeatureMapScreenshotSource(ScreenshotSource):
    """
    Draws every feature, styled by category, fitted to one view.

    Example:
        >>> source = FeatureMapScreenshotSource(features, styles, ortho=GeoRaster(img, bounds))
        >>> source.has_ortho
        True
    """

    def __init__(
        self,
        features: Iterable[Feature],
        styles: Optional[CategoryStyles] = None,
        *,
        ortho: Optional[GeoRaster] = None,
        dsm: Optional[GeoRaster] = None,
        size: Optional[Tuple[int, int]] = None,
        background: str = OVERVIEW_BACKGROUND,
    ) -> None:
        self.features = list(features)
        self.styles = styles or CategoryStyles()
        self.ortho = ortho
        self.dsm = dsm
        self.size = size or (LEDGER_LANDSCAPE.width_px, LEDGER_LANDSCAPE.height_px)
        self.background = background
        self.layer_visibility = LayerVisibility()
        self.render_count = 0
        self._frame: Optional[Image.Image] = None
        self._viewport = self._fit_viewport()

    @property
    def has_ortho(self) -> bool:
        return self.ortho is not None

    @property
    def has_dsm(self) -> bool:
        return self.dsm is not None

    def render_layers(self) -> None:
        width, height = self.size
        frame = Image.new("RGBA", (width, height), self.background)
        visibility = self.layer_visibility

        if visibility.ortho and self.ortho is not None:
            self._paste_raster(frame, self.ortho.image.convert("RGBA"), self.ortho.bounds)
        if visibility.dsm and self.dsm is not None:
            self._paste_raster(frame, _colorize_elevation(self.dsm.image), self.dsm.bounds)
        if visibility.dtm:
            logger.debug("DTM layer is not rendered in overview screenshots")

        if visibility.features:
            overlay = Image.new("RGBA", (width, height), (0, 0, 0, 0))
            draw = ImageDraw.Draw(overlay)
            for feature in self.features:
                try:
                    geometry = feature_shape(feature)
                    style = self.styles.get_category_style_for_feature(feature)
                    draw_geometry(draw, geometry, self._viewport, style)
                except Exception as e:
                    logger.warning(f"Skipping {feature.label} on overview map: {e}")
            frame = Image.alpha_composite(frame, overlay)

        self._frame = frame.convert("RGB")
        self.render_count += 1

    async def get_screenshot(self) -> Image.Image:
        if self._frame is None:
            self.render_layers()
        await asyncio.sleep(0)
        return self._frame.copy()

    def _fit_viewport(self) -> Viewport:
        width, height = self.size
        shapes = []
        for feature in self.features:
            try:
                shapes.append(feature_shape(feature))
            except Exception as e:
                logger.debug(f"No bounds for {feature.label}: {e}")
        if shapes:
            bounds = _union_bounds(s.bounds for s in shapes)
        else:
            rasters = [r.bounds for r in (self.ortho, self.dsm) if r is not None]
            bounds = _union_bounds(rasters) if rasters else (-180.0, -85.0, 180.0, 85.0)
        return Viewport.fit(bounds, width, height, padding=OVERVIEW_PADDING)

    def _paste_raster(self, frame: Image.Image, image: Image.Image, bounds: Sequence[float]) -> None:
        left, top, right, bottom = self._viewport.project_bounds(bounds)
        target = (round(right - left), round(bottom - top))
        if target[0] <= 0 or target[1] <= 0:
            return
        resized = image.resize(target, Image.Resampling.BILINEAR)
        frame.paste(resized, (round(left), round(top)), resized)


def _union_bounds(bounds: Iterable[Sequence[float]]) -> Tuple[float, float, float, float]:
    arr = np.asarray(list(bounds), dtype=float)
    return (
        float(arr[:, 0].min()),
        float(arr[:, 1].min()),
        float(arr[:, 2].max()),
        float(arr[:, 3].max()),
    )


def _colorize_elevation(image: Image.Image) -> Image.Image:
    """Normalize an elevation raster and shade it low (green) to high (tan)."""
    values = np.asarray(image.convert("F"), dtype=float)
    finite = np.isfinite(values)
    if not finite.any():
        return Image.new("RGBA", image.size, (0, 0, 0, 0))
    lo, hi = values[finite].min(), values[finite].max()
    span = hi - lo if hi > lo else 1.0
    normalized = np.where(finite, (values - lo) / span * 255.0, 0).astype(np.uint8)
    gray = Image.fromarray(normalized)
    shaded = ImageOps.colorize(gray, black="#1b4332", white="#f1e3c6", mid="#b08d57").convert("RGBA")
    shaded.putalpha(Image.fromarray((finite * 255).astype(np.uint8)))
    return shaded
