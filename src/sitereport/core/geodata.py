"""
Module: core.geodata

Purpose:
    Geometry statistics shown in a feature's "Feature Details & Geodata"
    table. This is the default geometry collaborator; the export pipeline
    accepts any callable with the same signature.

Key Functions:
    - calculate_geo_data(): Label/value rows for a feature's geometry
    - feature_bounds(): (minx, miny, maxx, maxy) of a feature

Dependencies:
    - shapely: Geometry parsing, area/length
    - shapely.ops.transform: Local metric projection

Used By:
    - export.content.builders: Feature detail blocks
    - export.maps: Viewport fitting
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, List

from shapely.geometry import shape as shapely_shape
from shapely.geometry.base import BaseGeometry
from shapely.ops import transform

if TYPE_CHECKING:
    from .models.features import Feature

logger = logging.getLogger(__name__)

M_PER_LAT_DEG = 111_320.0  # metres per degree latitude (spherical approximation)


@dataclass(frozen=True)
class GeoDatum:
    """One row of the geodata table."""

    label: str
    value: str


GeoDataFn = Callable[["Feature"], List[GeoDatum]]


def feature_shape(feature: Feature) -> BaseGeometry:
    """
    Parse a feature's GeoJSON geometry.

    Raises:
        ValueError: If the feature has no geometry or it cannot be parsed
    """
    if not feature.geometry:
        raise ValueError(f"Feature {feature.label} has no geometry")
    geom = shapely_shape(feature.geometry)
    if geom.is_empty:
        raise ValueError(f"Feature {feature.label} has an empty geometry")
    return geom


def feature_bounds(feature: Feature) -> tuple[float, float, float, float]:
    """Bounding box (minx, miny, maxx, maxy) in WGS84 degrees."""
    return feature_shape(feature).bounds


def calculate_geo_data(feature: Feature) -> List[GeoDatum]:
    """
    Compute display statistics for a feature geometry.

    Areas and lengths use a local equirectangular projection centred on
    the geometry, which is accurate enough for site-scale features.

    Args:
        feature: Feature to measure

    Returns:
        Rows such as Geometry Type, Area, Perimeter, Length, Centroid,
        Vertices. Empty list when the feature has no geometry.

    Example:
        >>> [d.label for d in calculate_geo_data(polygon_feature)]
        ['Geometry Type', 'Area', 'Perimeter', 'Centroid', 'Vertices']
    """
    if not feature.geometry:
        return []

    geom = feature_shape(feature)
    metric = _to_local_metres(geom)
    rows = [GeoDatum("Geometry Type", geom.geom_type)]

    if geom.geom_type in ("Polygon", "MultiPolygon"):
        area = metric.area
        rows.append(GeoDatum("Area", f"{area:,.1f} m² ({area / 10_000:,.3f} ha)"))
        rows.append(GeoDatum("Perimeter", f"{metric.length:,.1f} m"))
    elif geom.geom_type in ("LineString", "MultiLineString"):
        rows.append(GeoDatum("Length", f"{metric.length:,.1f} m"))

    centroid = geom.centroid
    rows.append(GeoDatum("Centroid", f"{centroid.y:.6f}, {centroid.x:.6f}"))

    if geom.geom_type != "Point":
        rows.append(GeoDatum("Vertices", str(_count_vertices(geom))))

    return rows


def _to_local_metres(geom: BaseGeometry) -> BaseGeometry:
    origin = geom.centroid
    lat0 = math.radians(origin.y)
    x_scale = M_PER_LAT_DEG * math.cos(lat0)

    def project(x, y, z=None):
        return ((x - origin.x) * x_scale, (y - origin.y) * M_PER_LAT_DEG)

    return transform(project, geom)


def _count_vertices(geom: BaseGeometry) -> int:
    if hasattr(geom, "geoms"):
        return sum(_count_vertices(g) for g in geom.geoms)
    if geom.geom_type == "Polygon":
        return len(geom.exterior.coords) + sum(len(r.coords) for r in geom.interiors)
    return len(geom.coords)
