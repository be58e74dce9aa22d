"""
Module: export.layout.models

Purpose:
    Data models for page layout.
    Immutable dataclasses representing planned pages, the pagination
    result and rasterized page bitmaps.

Key Classes:
    - PagePlan: Blocks assigned to one page
    - LayoutResult: Pagination output with diagnostics
    - RasterizedPage: Captured page bitmap with physical size

Dependencies:
    - PIL: Image type
    - export.content: Content blocks

Used By:
    - export.layout.paginator: Creates PagePlans
    - export.layout.compositor: Composes PagePlans
    - export.output: Assembles RasterizedPages
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from PIL import Image

from sitereport.core.models import Feature
from sitereport.export.content import ContentBlock, PageContent, is_feature_block

from .config import A4_PORTRAIT, DEFAULT_PADDING_MM, PageSize

CONTINUED_SUFFIX = " (continued)"


def category_header(category: str, continued: bool = False) -> str:
    """
    Header text for a category detail page.

    Example:
        >>> category_header("Erosion", continued=True)
        'Feature Details: Erosion (continued)'
    """
    header = f"Feature Details: {category}"
    return header + CONTINUED_SUFFIX if continued else header


@dataclass(frozen=True)
class PagePlan:
    """
    Complete layout plan for a single page.

    Attributes:
        index: Page number within its sequence (0-indexed)
        category: Category the page belongs to (None for front matter)
        blocks: Blocks placed on this page, in order
        is_continuation: True for every page after a category's first
        page_size: Physical page size
        padding_mm: Content padding
        height_used: Measured content height (0 if never measured)

    Example:
        >>> plan = PagePlan(index=0, category="Erosion", blocks=(b1, b2))
        >>> plan.header
        'Feature Details: Erosion'
    """

    index: int
    category: Optional[str]
    blocks: tuple[ContentBlock, ...]
    is_continuation: bool = False
    page_size: PageSize = A4_PORTRAIT
    padding_mm: float = DEFAULT_PADDING_MM
    height_used: float = 0

    @property
    def header(self) -> Optional[str]:
        if self.category is None:
            return None
        return category_header(self.category, self.is_continuation)

    @property
    def features(self) -> tuple[Feature, ...]:
        """Features owning a block on this page."""
        return tuple(b.owning_feature for b in self.blocks if is_feature_block(b))

    @property
    def block_count(self) -> int:
        return len(self.blocks)

    @property
    def is_empty(self) -> bool:
        return not self.blocks

    def to_content(self) -> PageContent:
        return PageContent(blocks=self.blocks, header=self.header)


@dataclass(frozen=True)
class LayoutResult:
    """
    Final pagination output with diagnostics.

    Attributes:
        pages: Tuple of PagePlans
        warnings: Warning messages (oversized blocks)
        feature_page_map: Mapping of feature internal id to page indices

    Example:
        >>> result = LayoutResult(pages=(page1, page2))
        >>> result.page_count
        2
    """

    pages: tuple[PagePlan, ...]
    warnings: list[str] = field(default_factory=list)
    feature_page_map: dict[str, list[int]] = field(default_factory=dict)

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def total_blocks(self) -> int:
        """Total number of blocks across all pages."""
        return sum(p.block_count for p in self.pages)


@dataclass(frozen=True)
class RasterizedPage:
    """A captured page bitmap and the physical size it is printed at."""

    bitmap: Image.Image
    width_mm: float
    height_mm: float

    @property
    def orientation(self) -> str:
        return "landscape" if self.width_mm > self.height_mm else "portrait"
