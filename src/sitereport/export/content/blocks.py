"""
Module: export.content.blocks

Purpose:
    Content block models. A content block is the atomic unit of page
    content: the paginator may move a block to another page but never
    splits one. Blocks carry typed, already-sanitized fields rather than
    markup.

Key Classes:
    - BlockKind: Block discriminator
    - TitleBlock, TeamBlock, LegendBlock: Front matter
    - FeatureDetailBlock: One feature's details, snapshot and observations
    - ErrorBlock: Placeholder for a feature that could not be built
    - OverviewMapBlock: Full-page overview map screenshot
    - PageContent: Optional page header + ordered blocks

Dependencies:
    - PIL: Screenshot image type
    - core.models: Feature, Severity, CategoryStyle

Used By:
    - export.content.builders: Creates blocks
    - export.layout: Lays out and paginates blocks
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Optional, Union

from PIL import Image

from sitereport.core.geodata import GeoDatum
from sitereport.core.models import CategoryStyle, Feature, Severity


class BlockKind(str, Enum):
    TITLE = "title"
    TEAM = "team"
    LEGEND = "legend"
    FEATURE_DETAIL = "feature_detail"
    ERROR = "error"
    OVERVIEW_MAP = "overview_map"


@dataclass(frozen=True)
class ImageRef:
    """Image to load at capture time."""

    src: str
    caption: str = ""


@dataclass(frozen=True)
class TitleBlock:
    kind: ClassVar[BlockKind] = BlockKind.TITLE

    title: str
    description: str = ""
    logo: Optional[ImageRef] = None


@dataclass(frozen=True)
class ContributorRow:
    name: str
    role: str
    bio: str
    image: Optional[ImageRef] = None


@dataclass(frozen=True)
class TeamBlock:
    """Project details table and contributors table."""

    kind: ClassVar[BlockKind] = BlockKind.TEAM

    details: tuple[tuple[str, str], ...]
    contributors: tuple[ContributorRow, ...] = ()


@dataclass(frozen=True)
class LegendEntry:
    name: str
    style: CategoryStyle
    severity: Optional[Severity] = None


@dataclass(frozen=True)
class LegendCategory:
    name: str
    entries: tuple[LegendEntry, ...]


@dataclass(frozen=True)
class LegendBlock:
    kind: ClassVar[BlockKind] = BlockKind.LEGEND

    categories: tuple[LegendCategory, ...]
    intro: str = "The following categories and features are included in this site analysis report:"


@dataclass(frozen=True)
class ObservationRow:
    observation_type: str
    severity: Severity
    severity_label: str
    recommendation: str


@dataclass(frozen=True)
class FeatureDetailBlock:
    """
    Details for one feature.

    Attributes:
        feature: Owning feature
        snapshot_id: Identifier of the mini-map slot for this feature
        name: Display name
        category: Display category
        description: Description text
        geo_rows: Geometry statistics (label, value)
        observations: Observation rows in input order
        images: All observation images flattened into one grid
    """

    kind: ClassVar[BlockKind] = BlockKind.FEATURE_DETAIL

    feature: Feature
    snapshot_id: str
    name: str
    category: str
    description: str
    geo_rows: tuple[GeoDatum, ...] = ()
    observations: tuple[ObservationRow, ...] = ()
    images: tuple[ImageRef, ...] = ()

    @property
    def owning_feature(self) -> Feature:
        return self.feature

    @property
    def has_observations(self) -> bool:
        return bool(self.observations)


@dataclass(frozen=True)
class ErrorBlock:
    """Stands in for a feature whose data could not be rendered."""

    kind: ClassVar[BlockKind] = BlockKind.ERROR

    title: str
    message: str
    feature: Optional[Feature] = None

    @property
    def owning_feature(self) -> Optional[Feature]:
        return self.feature


@dataclass(frozen=True)
class OverviewMapBlock:
    kind: ClassVar[BlockKind] = BlockKind.OVERVIEW_MAP

    title: str
    screenshot: Image.Image


ContentBlock = Union[
    TitleBlock,
    TeamBlock,
    LegendBlock,
    FeatureDetailBlock,
    ErrorBlock,
    OverviewMapBlock,
]


@dataclass(frozen=True)
class PageContent:
    """What goes inside one page's content area."""

    blocks: tuple[ContentBlock, ...] = field(default_factory=tuple)
    header: Optional[str] = None

    @classmethod
    def single(cls, block: ContentBlock, header: Optional[str] = None) -> PageContent:
        return cls(blocks=(block,), header=header)


def is_feature_block(block: ContentBlock) -> bool:
    """True for blocks that represent one input feature (detail or error)."""
    return isinstance(block, (FeatureDetailBlock, ErrorBlock)) and block.owning_feature is not None
