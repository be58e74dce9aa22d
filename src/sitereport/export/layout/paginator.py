"""
Module: export.layout.paginator

Purpose:
    Assign feature detail blocks to portrait pages by measuring real
    page candidates. Blocks are atomic: a block moves to the next page
    as a whole and is never split.

Key Functions:
    - group_by_category(): Alphabetical category/feature grouping
    - iter_category_pages(): Lazy pagination of one category
    - iter_document_pages(): Lazy pagination of all categories
    - paginate(): Eager pagination into a LayoutResult
    - measure_with_compositor(): Default measurement strategy

Algorithm:
    Per category:
    1. Append the next feature's block to the current page
    2. Compose header + all current blocks off-screen and measure
    3. Over budget: take the new block back, emit the page, and start
       the next page ("(continued)") with only that block
    4. Emit whatever remains after the last feature
    A block over budget on its own still gets a page of its own.

Dependencies:
    - export.layout.compositor: Default measurement
    - export.content.builders: Feature detail blocks

Used By:
    - export.controller: Category detail pages
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Iterator, List, Optional, Sequence

from sitereport.core.models import UNCATEGORIZED, Feature
from sitereport.export.content import ContentBlock, build_feature_detail_block, is_feature_block

from .compositor import PageOptions, compose_plan
from .config import A4_PORTRAIT, DEFAULT_PADDING_MM, PageSize, max_content_height
from .models import LayoutResult, PagePlan

logger = logging.getLogger(__name__)

MeasureFn = Callable[[PagePlan], float]
BlockBuilder = Callable[[Feature], ContentBlock]


def group_by_category(features: Iterable[Feature]) -> List[tuple[str, List[Feature]]]:
    """
    Group features by category.

    Categories are sorted alphabetically (case-insensitive) and features
    within a category by name. Missing categories group under
    "Uncategorized".

    Example:
        >>> [name for name, _ in group_by_category(features)]
        ['Drainage', 'Erosion']
    """
    groups: dict[str, List[Feature]] = {}
    for feature in features:
        groups.setdefault(feature.category or UNCATEGORIZED, []).append(feature)

    return [
        (name, sorted(groups[name], key=_name_key))
        for name in sorted(groups, key=lambda n: (n.casefold(), n))
    ]


def measure_with_compositor(options: Optional[PageOptions] = None) -> MeasureFn:
    """
    Measurement strategy that composes the full candidate page.

    The measurement element is removed whether or not composition
    succeeds.
    """
    def measure(plan: PagePlan) -> float:
        element = compose_plan(plan, options)
        try:
            return element.content_height
        finally:
            element.remove()

    return measure


def iter_category_pages(
    category: str,
    features: Sequence[Feature],
    *,
    measure: MeasureFn,
    budget: float,
    build_block: BlockBuilder = build_feature_detail_block,
    page_size: PageSize = A4_PORTRAIT,
    padding_mm: float = DEFAULT_PADDING_MM,
    start_index: int = 0,
    warnings: Optional[List[str]] = None,
) -> Iterator[PagePlan]:
    """
    Paginate one category's features.

    Pages are yielded as soon as they are final, so the caller can
    capture each page before the next candidate is measured. Only the
    category's first page is unmarked; every later one is a
    continuation.

    Args:
        category: Category name (page header)
        features: Features in display order
        measure: Returns a candidate page's content height in pixels
        budget: Maximum content height in pixels
        build_block: Builds a feature's block (never raises)
        page_size: Physical page size
        padding_mm: Content padding
        start_index: Index of the first yielded page
        warnings: Collects oversized-block warnings

    Yields:
        PagePlan per finalized page
    """
    warnings = warnings if warnings is not None else []
    index = start_index
    continued = False
    page_blocks: List[ContentBlock] = []
    fitted_height = 0.0

    def plan(blocks: Sequence[ContentBlock], height: float = 0) -> PagePlan:
        return PagePlan(
            index=index,
            category=category,
            blocks=tuple(blocks),
            is_continuation=continued,
            page_size=page_size,
            padding_mm=padding_mm,
            height_used=height,
        )

    def check_oversized(block: ContentBlock, height: float) -> None:
        if height <= budget:
            return
        owner = block.owning_feature.label if is_feature_block(block) else "block"
        message = (
            f"{owner} in '{category}' measures {height:.0f}px, over the "
            f"{budget:.0f}px page budget; placed alone on its own page"
        )
        logger.warning(message)
        warnings.append(message)

    for feature in features:
        block = build_block(feature)
        page_blocks.append(block)
        height = measure(plan(page_blocks))
        logger.debug(f"{category}: {len(page_blocks)} block(s) measure {height:.0f}px (budget {budget:.0f}px)")

        if height <= budget:
            fitted_height = height
            continue

        if len(page_blocks) == 1:
            # Oversized on its own: it keeps this page, nothing to emit yet
            check_oversized(block, height)
            fitted_height = height
            continue

        overflow = page_blocks.pop()
        yield plan(page_blocks, fitted_height)
        index += 1
        continued = True

        page_blocks = [overflow]
        fitted_height = measure(plan(page_blocks))
        check_oversized(overflow, fitted_height)

    if page_blocks:
        yield plan(page_blocks, fitted_height)


def iter_document_pages(
    features: Iterable[Feature],
    *,
    measure: Optional[MeasureFn] = None,
    budget: Optional[float] = None,
    build_block: BlockBuilder = build_feature_detail_block,
    page_size: PageSize = A4_PORTRAIT,
    padding_mm: float = DEFAULT_PADDING_MM,
    options: Optional[PageOptions] = None,
    warnings: Optional[List[str]] = None,
) -> Iterator[PagePlan]:
    """
    Paginate all categories lazily, category by category.

    Args:
        features: All report features
        measure: Measurement strategy (default composes each candidate)
        budget: Content budget in pixels (default from page size/padding)
        build_block: Feature block builder
        page_size: Physical page size
        padding_mm: Content padding
        options: Compositor options for the default measurement
        warnings: Collects oversized-block warnings

    Yields:
        PagePlan per finalized page, indices continuing across categories
    """
    measure = measure or measure_with_compositor(options)
    budget = budget if budget is not None else max_content_height(page_size, padding_mm)

    index = 0
    for category, members in group_by_category(features):
        for page in iter_category_pages(
            category,
            members,
            measure=measure,
            budget=budget,
            build_block=build_block,
            page_size=page_size,
            padding_mm=padding_mm,
            start_index=index,
            warnings=warnings,
        ):
            index += 1
            yield page


def paginate(
    features: Iterable[Feature],
    **kwargs,
) -> LayoutResult:
    """
    Paginate all features eagerly.

    Accepts the same keyword arguments as iter_document_pages().

    Returns:
        LayoutResult with pages, warnings and the feature -> pages map

    Example:
        >>> result = paginate(features, measure=lambda plan: 100 * plan.block_count, budget=250)
        >>> [p.block_count for p in result.pages]
        [2, 1]
    """
    features = list(features)
    warnings: List[str] = kwargs.pop("warnings", None) or []
    pages = tuple(iter_document_pages(features, warnings=warnings, **kwargs))

    feature_page_map: dict[str, list[int]] = {}
    for page in pages:
        for feature in page.features:
            _track_feature(feature_page_map, feature.internal_id, page.index)

    logger.info(f"Paginated {len(features)} features onto {len(pages)} pages")

    return LayoutResult(
        pages=pages,
        warnings=warnings,
        feature_page_map=feature_page_map,
    )


def _track_feature(feature_page_map: dict[str, list[int]], feature_id: str, page_index: int) -> None:
    """Track which pages a feature appears on."""
    feature_page_map.setdefault(feature_id, []).append(page_index)


def _name_key(feature: Feature) -> tuple[str, str]:
    name = feature.name
    return name.casefold(), name
