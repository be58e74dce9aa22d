"""
Module: export.config

Purpose:
    Configuration dataclass for the report export pipeline. Immutable
    configuration with validation on construction.

Key Classes:
    - ExportConfig: Main configuration for generating a report

Dependencies:
    - dataclasses (std)
    - pathlib (std)

Used By:
    - export.controller: Main export controller
    - sitereport.cli: Command-line options
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from sitereport.export.layout.config import A4_PORTRAIT, DEFAULT_PADDING_MM

DEFAULT_CREATOR = "Site Report Builder"


@dataclass(frozen=True)
class ExportConfig:
    """
    Configuration for generating a report PDF (immutable).

    Attributes:
        output_dir: Directory the PDF is written to
        capture_scale: Render scale for portrait pages
        map_scale: Render scale for landscape overview pages
        minimap_scale: Render scale for feature snapshot maps (None = capture_scale)
        padding_mm: Page content padding
        image_timeout: Per-image load bound in seconds
        capture_settle_delay: Wait before rasterizing a page
        map_settle_delay: Wait after re-rendering the overview map
        minimap_settle_delay: Wait after drawing a feature snapshot
        creator: PDF creator metadata
        include_overview_maps: Whether to add landscape overview pages
        background: Page background color
        image_base_dir: Base directory for relative image paths

    Example:
        >>> config = ExportConfig(output_dir=Path("out"), capture_scale=2)
    """

    output_dir: Path = Path(".")

    # Rendering
    capture_scale: float = 3.0
    map_scale: float = 3.0
    minimap_scale: Optional[float] = None
    padding_mm: float = DEFAULT_PADDING_MM
    background: str = "#ffffff"

    # Waits (seconds)
    image_timeout: float = 1.5
    capture_settle_delay: float = 0.5
    map_settle_delay: float = 1.0
    minimap_settle_delay: float = 1.0

    # Output
    creator: str = DEFAULT_CREATOR
    include_overview_maps: bool = True
    image_base_dir: Optional[Path] = None

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if self.capture_scale <= 0:
            raise ValueError(f"capture_scale must be positive: {self.capture_scale}")
        if self.map_scale <= 0:
            raise ValueError(f"map_scale must be positive: {self.map_scale}")
        if self.minimap_scale is not None and self.minimap_scale <= 0:
            raise ValueError(f"minimap_scale must be positive: {self.minimap_scale}")
        if self.padding_mm < 0:
            raise ValueError(f"padding_mm must be non-negative: {self.padding_mm}")
        if self.padding_mm * 2 >= min(A4_PORTRAIT.width_mm, A4_PORTRAIT.height_mm):
            raise ValueError(f"padding_mm leaves no content area: {self.padding_mm}")
        for name in ("image_timeout", "capture_settle_delay", "map_settle_delay", "minimap_settle_delay"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative: {getattr(self, name)}")

    @property
    def snapshot_scale(self) -> float:
        return self.minimap_scale if self.minimap_scale is not None else self.capture_scale

    @classmethod
    def fast(cls, **overrides) -> ExportConfig:
        """Configuration with no waits and scale 1, for previews and tests."""
        values = dict(
            capture_scale=1.0,
            map_scale=1.0,
            image_timeout=1.5,
            capture_settle_delay=0.0,
            map_settle_delay=0.0,
            minimap_settle_delay=0.0,
        )
        values.update(overrides)
        return cls(**values)
