"""
Module: core.models.styles

Purpose:
    Per-category drawing styles for features (swatches, mini-maps and
    overview maps).

Key Classes:
    - CategoryStyle: Fill/stroke style for one category
    - CategoryStyles: Category name -> style lookup

Dependencies:
    - PIL.ImageColor: Color parsing

Used By:
    - export.content.builders: Legend swatches
    - export.maps: Mini-map and overview rendering
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping, Optional

from PIL import ImageColor

if TYPE_CHECKING:
    from .features import Feature

DEFAULT_FILL_COLOR = "#ff8c00"
DEFAULT_LINE_COLOR = "#000000"


@dataclass(frozen=True)
class CategoryStyle:
    """
    Drawing style for features of one category.

    Attributes:
        fill_color: Fill color (CSS color string)
        color: Stroke color
        weight: Stroke width in pixels
        opacity: Stroke opacity 0..1
        fill_opacity: Fill opacity 0..1
        size: Point marker diameter in pixels (None = default radius 8)
    """

    fill_color: str = DEFAULT_FILL_COLOR
    color: str = DEFAULT_LINE_COLOR
    weight: float = 1
    opacity: float = 1.0
    fill_opacity: float = 0.8
    size: Optional[float] = None

    def __post_init__(self) -> None:
        if not 0 <= self.opacity <= 1:
            raise ValueError(f"opacity must be within 0..1: {self.opacity}")
        if not 0 <= self.fill_opacity <= 1:
            raise ValueError(f"fill_opacity must be within 0..1: {self.fill_opacity}")

    @property
    def fill_rgba(self) -> tuple[int, int, int, int]:
        r, g, b = _parse_rgb(self.fill_color, DEFAULT_FILL_COLOR)
        return (r, g, b, round(self.fill_opacity * 255))

    @property
    def line_rgba(self) -> tuple[int, int, int, int]:
        r, g, b = _parse_rgb(self.color, DEFAULT_LINE_COLOR)
        return (r, g, b, round(self.opacity * 255))

    @property
    def point_radius(self) -> float:
        return self.size / 2 if self.size else 8

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CategoryStyle:
        """Build a style from the editor's camelCase payload; missing keys use defaults."""
        return cls(
            fill_color=data.get("fillColor") or DEFAULT_FILL_COLOR,
            color=data.get("color") or DEFAULT_LINE_COLOR,
            weight=data.get("weight") or 1,
            opacity=data.get("opacity") if data.get("opacity") is not None else 1.0,
            fill_opacity=data.get("fillOpacity") if data.get("fillOpacity") is not None else 0.8,
            size=data.get("size") or None,
        )


@dataclass(frozen=True)
class CategoryStyles:
    """
    Category style map.

    Example:
        >>> styles = CategoryStyles({"Erosion": CategoryStyle(fill_color="#a0522d")})
        >>> styles.get_category_style_for_feature(feature).fill_color
        '#a0522d'
    """

    styles: Mapping[str, CategoryStyle] = field(default_factory=dict)
    default: CategoryStyle = field(default_factory=CategoryStyle)

    @property
    def category_names(self) -> list[str]:
        """Configured category names in definition order."""
        return list(self.styles)

    def get(self, category: str) -> CategoryStyle:
        return self.styles.get(category, self.default)

    def get_category_style_for_feature(self, feature: Feature) -> CategoryStyle:
        return self.get(feature.category)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CategoryStyles:
        return cls(
            styles={
                str(name): CategoryStyle.from_dict(value)
                for name, value in data.items()
                if isinstance(value, Mapping)
            }
        )


def _parse_rgb(value: str, fallback: str) -> tuple[int, int, int]:
    try:
        rgb = ImageColor.getrgb(value)
    except (ValueError, AttributeError):
        rgb = ImageColor.getrgb(fallback)
    return rgb[0], rgb[1], rgb[2]
