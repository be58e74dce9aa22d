"""
Module: export.content

Purpose:
    Semantic page content: typed content blocks, the text sanitizer and
    the pure functions that build blocks from report data.

Key Functions:
    - build_title_block(), build_team_block(), build_legend_block()
    - build_feature_detail_block(): Never raises; degrades to ErrorBlock
    - safe_text(): Free-text sanitizer
"""

from .blocks import (
    BlockKind,
    ContentBlock,
    ErrorBlock,
    FeatureDetailBlock,
    ImageRef,
    LegendBlock,
    OverviewMapBlock,
    PageContent,
    TeamBlock,
    TitleBlock,
    is_feature_block,
)
from .builders import (
    PerBlockDataError,
    build_error_block,
    build_feature_detail_block,
    build_legend_block,
    build_team_block,
    build_title_block,
    snapshot_id_for,
)
from .sanitize import safe_text

__all__ = [
    "BlockKind",
    "ContentBlock",
    "ErrorBlock",
    "FeatureDetailBlock",
    "ImageRef",
    "LegendBlock",
    "OverviewMapBlock",
    "PageContent",
    "TeamBlock",
    "TitleBlock",
    "is_feature_block",
    "PerBlockDataError",
    "build_error_block",
    "build_feature_detail_block",
    "build_legend_block",
    "build_team_block",
    "build_title_block",
    "snapshot_id_for",
    "safe_text",
]
