"""
Module: export.output.rasterizer

Purpose:
    Capture a composed page element as a bitmap once its asynchronous
    content has arrived. Image loads are bounded and non-fatal; the
    element is always removed, whether capture succeeds or fails.

Key Functions:
    - capture_element(): Wait for images, settle, rasterize, clean up

Key Classes:
    - CaptureError: Page could not be rasterized

Dependencies:
    - asyncio: Concurrent image waits, settle delay
    - export.images: ImageLoader
    - export.layout: PageElement, RasterizedPage

Used By:
    - export.controller: Every page of the document
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from sitereport.export.images import AsyncResourceTimeout, ImageLoader, ImageLoadError
from sitereport.export.layout import ImageSlot, PageElement, RasterizedPage, SlotState

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_TIMEOUT = 1.5
DEFAULT_SETTLE_DELAY = 0.5


class CaptureError(RuntimeError):
    """A composed page could not be rasterized."""
    pass


async def capture_element(
    element: PageElement,
    width_mm: float,
    height_mm: float,
    scale: float,
    *,
    loader: Optional[ImageLoader] = None,
    image_timeout: float = DEFAULT_IMAGE_TIMEOUT,
    settle_delay: float = DEFAULT_SETTLE_DELAY,
) -> RasterizedPage:
    """
    Rasterize a composed page.

    Steps:
    1. Wait for every pending image slot concurrently: each one loads,
       fails, or times out after ``image_timeout`` seconds. Failed slots
       draw a placeholder.
    2. Wait ``settle_delay`` seconds.
    3. Render at ``scale`` x nominal size.
    4. Remove the element (on every exit path).

    Args:
        element: Composed page (ownership passes to this function)
        width_mm: Physical page width
        height_mm: Physical page height
        scale: Render scale
        loader: Image loader (a temporary one is used if None)
        image_timeout: Per-image bound in seconds
        settle_delay: Seconds to wait before rendering

    Returns:
        RasterizedPage

    Raises:
        CaptureError: If rendering fails (after cleanup)
    """
    try:
        pending = [slot for slot in element.image_slots if slot.state is SlotState.PENDING]
        if pending:
            if loader is None:
                async with ImageLoader() as temp_loader:
                    await _load_slots(pending, temp_loader, image_timeout)
            else:
                await _load_slots(pending, loader, image_timeout)

        if settle_delay > 0:
            await asyncio.sleep(settle_delay)

        try:
            bitmap = element.render(scale)
        except Exception as e:
            logger.error(f"Capture error: {e}")
            raise CaptureError(f"Failed to rasterize page: {e}") from e

        logger.debug(f"Captured page {bitmap.width}x{bitmap.height}px ({width_mm}x{height_mm}mm)")
        return RasterizedPage(bitmap=bitmap, width_mm=width_mm, height_mm=height_mm)
    finally:
        element.remove()


async def _load_slots(slots: list[ImageSlot], loader: ImageLoader, timeout: float) -> None:
    await asyncio.gather(*(_fill_slot(slot, loader, timeout) for slot in slots))


async def _fill_slot(slot: ImageSlot, loader: ImageLoader, timeout: float) -> None:
    try:
        slot.resolve(await loader.load_with_timeout(slot.ref.src, timeout))
    except AsyncResourceTimeout as e:
        logger.warning(f"Image timed out, using placeholder: {e}")
        slot.fail(str(e))
    except ImageLoadError as e:
        logger.warning(f"Image failed to load, using placeholder: {e}")
        slot.fail(str(e))
