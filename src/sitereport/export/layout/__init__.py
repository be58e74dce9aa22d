"""
Module: export.layout

Purpose:
    Page composition and pagination for report export.
    Turns content blocks into measured, physically-sized pages.

Key Functions:
    - build_page(): Compose content onto an off-screen page
    - paginate(): Assign feature blocks to pages
    - iter_document_pages(): Lazy pagination

Key Classes:
    - PageSize: Physical page size
    - PageElement: Composed off-screen page
    - PagePlan: Single page plan

Dependencies:
    - PIL: Text metrics and drawing
    - export.content: Content blocks

Used By:
    - export.controller: Main export controller
"""

from .config import (
    A4_PORTRAIT,
    DEFAULT_PADDING_MM,
    LEDGER_LANDSCAPE,
    PageSize,
    max_content_height,
    mm_to_px,
)
from .models import LayoutResult, PagePlan, RasterizedPage, category_header
from .stylesheet import DEFAULT_STYLESHEET, Stylesheet, TextStyle
from .compositor import (
    DEFAULT_REGION,
    ImageSlot,
    MapSlot,
    OffscreenRegion,
    PageElement,
    PageOptions,
    SlotState,
    build_page,
    compose_plan,
)
from .paginator import (
    MeasureFn,
    group_by_category,
    iter_category_pages,
    iter_document_pages,
    measure_with_compositor,
    paginate,
)

__all__ = [
    # Config
    "A4_PORTRAIT",
    "DEFAULT_PADDING_MM",
    "LEDGER_LANDSCAPE",
    "PageSize",
    "max_content_height",
    "mm_to_px",
    "Stylesheet",
    "TextStyle",
    "DEFAULT_STYLESHEET",
    # Models
    "LayoutResult",
    "PagePlan",
    "RasterizedPage",
    "category_header",
    # Compositor
    "DEFAULT_REGION",
    "ImageSlot",
    "MapSlot",
    "OffscreenRegion",
    "PageElement",
    "PageOptions",
    "SlotState",
    "build_page",
    "compose_plan",
    # Pagination
    "MeasureFn",
    "group_by_category",
    "iter_category_pages",
    "iter_document_pages",
    "measure_with_compositor",
    "paginate",
]
