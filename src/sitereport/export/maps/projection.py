"""
Module: export.maps.projection

Purpose:
    Web Mercator viewport fitting and projection of WGS84 coordinates
    to image pixels.

Key Classes:
    - Viewport: Fitted view (center, scale) for an image of given size

Key Functions:
    - lnglat_to_world(): WGS84 degrees to Web Mercator world units

Dependencies:
    - numpy: Vectorized projection

Used By:
    - export.maps.minimap: Feature snapshots
    - export.maps.screenshot: Overview maps
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

# World size in pixels at zoom 0
TILE_SIZE = 512
MAX_LATITUDE = 85.051129
MAX_ZOOM = 20


def lnglat_to_world(lng, lat) -> Tuple[np.ndarray, np.ndarray]:
    """
    Project longitude/latitude (degrees) to world units at zoom 0.

    Accepts scalars or arrays; y grows southwards.
    """
    lng = np.asarray(lng, dtype=float)
    lat = np.clip(np.asarray(lat, dtype=float), -MAX_LATITUDE, MAX_LATITUDE)
    x = TILE_SIZE * (lng + 180.0) / 360.0
    y = TILE_SIZE * (180.0 - np.degrees(np.log(np.tan(np.pi / 4 + np.radians(lat) / 2)))) / 360.0
    return x, y


@dataclass(frozen=True)
class Viewport:
    """
    Web Mercator view onto an image of ``width`` x ``height`` pixels.

    Attributes:
        width, height: Image size in pixels
        center_x, center_y: View center in world units
        scale: Pixels per world unit (2 ** zoom)

    Example:
        >>> vp = Viewport.fit((-0.2, 51.4, -0.1, 51.5), 200, 200, padding=20)
        >>> vp.project([(-0.15, 51.45)]).round()
        array([[100., 100.]])
    """

    width: int
    height: int
    center_x: float
    center_y: float
    scale: float

    @property
    def zoom(self) -> float:
        return float(np.log2(self.scale))

    @classmethod
    def fit(
        cls,
        bounds: Sequence[float],
        width: int,
        height: int,
        *,
        padding: float = 20,
        max_zoom: float = MAX_ZOOM,
    ) -> Viewport:
        """
        Fit a viewport so ``bounds`` fill the image inside ``padding``.

        Degenerate bounds (a single point) are shown at ``max_zoom``.

        Args:
            bounds: (minx, miny, maxx, maxy) in WGS84 degrees
            width: Image width in pixels
            height: Image height in pixels
            padding: Margin kept clear on every side
            max_zoom: Zoom cap

        Raises:
            ValueError: If bounds are not finite
        """
        minx, miny, maxx, maxy = (float(v) for v in bounds)
        if not np.all(np.isfinite([minx, miny, maxx, maxy])):
            raise ValueError(f"Bounds must be finite: {bounds}")

        x0, y1 = lnglat_to_world(minx, miny)
        x1, y0 = lnglat_to_world(maxx, maxy)
        span_x = float(x1 - x0)
        span_y = float(y1 - y0)

        avail_w = max(1.0, width - 2 * padding)
        avail_h = max(1.0, height - 2 * padding)
        limit = 2.0 ** max_zoom
        scale_x = avail_w / span_x if span_x > 0 else limit
        scale_y = avail_h / span_y if span_y > 0 else limit
        scale = min(scale_x, scale_y, limit)

        return cls(
            width=width,
            height=height,
            center_x=float(x0 + x1) / 2,
            center_y=float(y0 + y1) / 2,
            scale=scale,
        )

    def project(self, coords) -> np.ndarray:
        """
        Project (lng, lat) pairs to pixel coordinates.

        Returns:
            Array of shape (N, 2)
        """
        arr = np.atleast_2d(np.asarray(coords, dtype=float))[:, :2]
        wx, wy = lnglat_to_world(arr[:, 0], arr[:, 1])
        px = (wx - self.center_x) * self.scale + self.width / 2
        py = (wy - self.center_y) * self.scale + self.height / 2
        return np.column_stack([px, py])

    def project_bounds(self, bounds: Sequence[float]) -> Tuple[float, float, float, float]:
        """Pixel box (left, top, right, bottom) of WGS84 bounds."""
        minx, miny, maxx, maxy = bounds
        (left, bottom), (right, top) = self.project([(minx, miny), (maxx, maxy)])
        return float(left), float(top), float(right), float(bottom)
