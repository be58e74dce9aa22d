"""
Module: export.layout.stylesheet

Purpose:
    Scoped page stylesheet: font sizes, colors and spacing used by the
    compositor. All lengths are CSS pixels at 96 DPI.

Key Classes:
    - TextStyle: Font size/weight/color/line height/margins
    - Stylesheet: Complete page style (immutable)

Key Functions:
    - load_font(): Cached TrueType font lookup with fallbacks

Dependencies:
    - PIL.ImageFont: Font loading and metrics

Used By:
    - export.layout.compositor: Layout and drawing
    - export.output.footer: Footer font size
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache

from PIL import ImageFont

logger = logging.getLogger(__name__)

_REGULAR_FONTS = (
    "Inter-Regular.ttf",
    "arial.ttf",        # Windows
    "Arial.ttf",        # Mac
    "DejaVuSans.ttf",
    "LiberationSans-Regular.ttf",
)
_BOLD_FONTS = (
    "Inter-Bold.ttf",
    "arialbd.ttf",
    "Arial Bold.ttf",
    "DejaVuSans-Bold.ttf",
    "LiberationSans-Bold.ttf",
)


@dataclass(frozen=True)
class TextStyle:
    size: int
    bold: bool = False
    color: str = "#333333"
    line_height: float = 1.2
    margin_top: int = 0
    margin_bottom: int = 0

    @property
    def line_px(self) -> int:
        return round(self.size * self.line_height)


@dataclass(frozen=True)
class Stylesheet:
    """
    Page stylesheet (immutable).

    Mirrors the report's print CSS: headings with rules, compact
    tables, severity tags, feature blocks separated by dashed rules.
    """

    background: str = "#ffffff"

    body: TextStyle = TextStyle(10, line_height=1.6, margin_bottom=12)
    h1: TextStyle = TextStyle(28, bold=True, color="#1a202c", margin_bottom=16)
    h1_cover: TextStyle = TextStyle(32, bold=True, color="#1a202c", margin_bottom=16)
    h2: TextStyle = TextStyle(16, bold=True, color="#2d3748", margin_bottom=10)
    h3: TextStyle = TextStyle(14, bold=True, color="#1a202c", margin_bottom=8)
    h4: TextStyle = TextStyle(11, bold=True, color="#1a202c", margin_bottom=10)
    small: TextStyle = TextStyle(9, color="#718096", line_height=1.4)
    cover_description: TextStyle = TextStyle(14, line_height=1.6)
    table: TextStyle = TextStyle(9, line_height=1.3)
    table_header: TextStyle = TextStyle(9, bold=True, color="#4a5568", line_height=1.3)
    tag: TextStyle = TextStyle(9, bold=True)
    map_title: TextStyle = TextStyle(18, bold=True, color="#1a202c")
    fallback: TextStyle = TextStyle(12, color="#666666")

    rule_color: str = "#e2e8f0"
    h1_rule_width: int = 2
    h1_rule_gap: int = 8
    h2_rule_gap: int = 6

    table_border: str = "#e2e8f0"
    table_header_fill: str = "#f8fafc"
    cell_padding_x: int = 8
    cell_padding_y: int = 6
    table_margin_bottom: int = 12
    table_label_ratio: float = 0.35

    feature_gap: int = 15
    feature_padding_bottom: int = 10
    column_gap: int = 15
    snapshot_height: int = 250
    snapshot_border: str = "#000000"
    info_section_fill: str = "#f8fafc"
    info_section_padding: int = 8

    observation_indent: int = 12
    observation_rule: str = "#cbd5e0"
    observation_rule_width: int = 3
    observation_separator: str = "#edf2f7"
    observation_spacing: int = 10

    image_columns: int = 3
    image_gap: int = 8
    image_aspect: float = 0.75
    image_border: str = "#cbd5e0"

    legend_min_column: int = 200
    legend_gap: int = 6
    legend_swatch: int = 20
    legend_item_padding: int = 4

    logo_max: int = 100
    avatar_size: int = 50

    severity_colors: dict = field(default_factory=lambda: {
        "low": ("#dbeafe", "#1e40af"),
        "medium": ("#fef9c3", "#854d0e"),
        "high": ("#fee2e2", "#991b1b"),
        "critical": ("#fca5a5", "#7f1d1d"),
    })

    placeholder_fill: str = "#f0f0f0"
    placeholder_border: str = "#cccccc"


DEFAULT_STYLESHEET = Stylesheet()


@lru_cache(maxsize=128)
def load_font(size: int, bold: bool = False) -> ImageFont.ImageFont:
    """
    Load a font for text layout and rendering.

    Tries common TrueType families in order, falling back to Pillow's
    bundled default font at the requested size.

    Args:
        size: Font size in pixels
        bold: Prefer bold variants

    Returns:
        Font object
    """
    size = max(1, int(size))
    for font_name in _BOLD_FONTS if bold else _REGULAR_FONTS:
        try:
            return ImageFont.truetype(font_name, size)
        except (IOError, OSError):
            continue

    logger.debug(f"Could not load TrueType font (bold={bold}), using default")
    return ImageFont.load_default(size)
