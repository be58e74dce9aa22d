"""
Module: export.images

Purpose:
    Image loading for report pages.

Key Classes:
    - ImageLoader: Async image loader
    - ImageLoadError: Image missing or invalid
    - AsyncResourceTimeout: Load exceeded its time bound
"""

from .loader import AsyncResourceTimeout, ImageLoader, ImageLoadError

__all__ = [
    "AsyncResourceTimeout",
    "ImageLoader",
    "ImageLoadError",
]
