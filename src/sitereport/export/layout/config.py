"""
Module: export.layout.config

Purpose:
    Physical page geometry for the report. Pages are specified in
    millimetres and laid out in CSS pixels at 96 DPI.

Key Classes:
    - PageSize: Immutable physical page size

Key Functions:
    - mm_to_px(): Millimetres to pixels
    - max_content_height(): Pagination budget for a page size

Dependencies:
    - dataclasses (std)

Used By:
    - export.layout.compositor: Page element sizing
    - export.layout.paginator: Content budget
    - export.output: PDF page sizes
"""

from __future__ import annotations

from dataclasses import dataclass

LAYOUT_DPI = 96
DEFAULT_PADDING_MM = 15.0

# Bottom strip kept clear for the footer pass
FOOTER_PLACEHOLDER_PX = 20

# Pagination budget = page height minus this many paddings
CONTENT_BUDGET_PADDING_FACTOR = 2.5


def mm_to_px(mm: float, dpi: float = LAYOUT_DPI) -> int:
    """
    Convert millimetres to whole pixels.

    Example:
        >>> mm_to_px(210)
        794
    """
    return round(mm * dpi / 25.4)


@dataclass(frozen=True)
class PageSize:
    """
    Physical page size (immutable).

    Attributes:
        width_mm: Page width in millimetres
        height_mm: Page height in millimetres

    Example:
        >>> A4_PORTRAIT.width_px
        794
    """

    width_mm: float
    height_mm: float

    def __post_init__(self) -> None:
        if self.width_mm <= 0 or self.height_mm <= 0:
            raise ValueError(f"Page dimensions must be positive: {self.width_mm}x{self.height_mm}")

    @property
    def orientation(self) -> str:
        return "landscape" if self.width_mm > self.height_mm else "portrait"

    @property
    def width_px(self) -> int:
        return mm_to_px(self.width_mm)

    @property
    def height_px(self) -> int:
        return mm_to_px(self.height_mm)


A4_PORTRAIT = PageSize(210.0, 297.0)
LEDGER_LANDSCAPE = PageSize(431.8, 279.4)


def max_content_height(
    page_size: PageSize = A4_PORTRAIT,
    padding_mm: float = DEFAULT_PADDING_MM,
) -> int:
    """
    Pixel budget for a page's measured content.

    Example:
        >>> max_content_height()  # A4, 15 mm padding
        981
    """
    budget = mm_to_px(page_size.height_mm - padding_mm * CONTENT_BUDGET_PADDING_FACTOR)
    if budget <= 0:
        raise ValueError("Padding exceeds page height")
    return budget
