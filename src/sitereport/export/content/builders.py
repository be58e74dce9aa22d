"""
Module: export.content.builders

Purpose:
    Build content blocks from report data. Pure functions: no I/O, no
    async, no layout. Feature detail building never raises; malformed
    input degrades to an ErrorBlock so one bad feature cannot abort an
    export.

Key Functions:
    - build_title_block(): Title page content
    - build_team_block(): Project information content
    - build_legend_block(): Legend content
    - build_feature_detail_block(): One feature's detail block
    - build_error_block(): Error placeholder for a feature

Dependencies:
    - core.models: Feature, ReportMetadata, CategoryStyles
    - core.geodata: Default geometry collaborator

Used By:
    - export.controller: Front matter pages
    - export.layout.paginator: Category detail pages
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Mapping, Optional, Sequence

from sitereport.core.geodata import GeoDataFn, GeoDatum, calculate_geo_data
from sitereport.core.models import (
    CategoryStyles,
    Feature,
    Observation,
    ReportMetadata,
    Severity,
    highest_severity,
)

from .blocks import (
    ContributorRow,
    ErrorBlock,
    FeatureDetailBlock,
    ImageRef,
    LegendBlock,
    LegendCategory,
    LegendEntry,
    ObservationRow,
    TeamBlock,
    TitleBlock,
)
from .sanitize import safe_text, truncate

logger = logging.getLogger(__name__)

LEGEND_NAME_LIMIT = 35
NO_GEOMETRY_STATS = GeoDatum("", "No geometry stats")


class PerBlockDataError(ValueError):
    """Feature or observation data cannot be turned into a block."""
    pass


def build_title_block(metadata: ReportMetadata) -> TitleBlock:
    """Title page: optional logo, title, description."""
    logo = ImageRef(src=str(metadata.logo)) if metadata.has_logo else None
    return TitleBlock(
        title=safe_text(metadata.title) or "Site Analysis Report",
        description=safe_text(metadata.description),
        logo=logo,
    )


def build_team_block(metadata: ReportMetadata) -> TeamBlock:
    """Project detail rows followed by the contributors table."""
    details = (
        ("Client Name", safe_text(metadata.client_name)),
        ("Client Contact", safe_text(metadata.client_contact)),
        ("Client Address", safe_text(metadata.client_address)),
        ("Project ID", safe_text(metadata.project_id)),
        ("Report Date", safe_text(metadata.report_date)),
        ("Report Status", safe_text(metadata.report_status)),
    )
    contributors = tuple(
        ContributorRow(
            name=safe_text(c.name),
            role=safe_text(c.role),
            bio=safe_text(c.bio),
            image=ImageRef(src=c.image) if c.image else None,
        )
        for c in metadata.contributors
    )
    return TeamBlock(details=details, contributors=contributors)


def build_legend_block(
    features: Iterable[Feature],
    styles: Optional[CategoryStyles] = None,
) -> LegendBlock:
    """
    Legend of categories and their features.

    Categories defined in the style map come first, in definition order,
    followed by any other categories present in the data (alphabetical).
    Categories without features are omitted.

    Args:
        features: All report features
        styles: Category style map (defaults apply when None)

    Returns:
        LegendBlock with one LegendCategory per non-empty category
    """
    styles = styles or CategoryStyles()
    by_category: dict[str, List[Feature]] = {}
    for feature in features:
        by_category.setdefault(feature.category, []).append(feature)

    ordered = [name for name in styles.category_names if name in by_category]
    ordered += sorted((name for name in by_category if name not in ordered), key=str.casefold)

    categories = []
    for name in ordered:
        entries = []
        for feature in by_category[name]:
            observations = feature.observations
            entries.append(LegendEntry(
                name=truncate(safe_text(feature.name) or "Unnamed", LEGEND_NAME_LIMIT),
                style=styles.get_category_style_for_feature(feature),
                severity=highest_severity(observations) if observations else None,
            ))
        categories.append(LegendCategory(name=safe_text(name), entries=tuple(entries)))

    return LegendBlock(categories=tuple(categories))


def build_feature_detail_block(
    feature: Feature,
    geodata: GeoDataFn = calculate_geo_data,
) -> FeatureDetailBlock | ErrorBlock:
    """
    Build the detail block for one feature.

    Never raises. Missing properties produce an "Invalid Feature Data"
    ErrorBlock; any other failure produces an "Error Rendering Feature"
    ErrorBlock. Geometry statistics and individual observations degrade
    independently.

    Args:
        feature: Feature to describe
        geodata: Geometry collaborator returning GeoDatum rows

    Returns:
        FeatureDetailBlock, or ErrorBlock on malformed data

    Example:
        >>> block = build_feature_detail_block(feature)
        >>> block.kind
        <BlockKind.FEATURE_DETAIL: 'feature_detail'>
    """
    try:
        if feature is None or not isinstance(feature.properties, Mapping):
            raise PerBlockDataError("Missing feature properties")
        return _build_detail(feature, geodata)
    except PerBlockDataError as e:
        logger.warning(f"Invalid feature data for {_identity(feature)}: {e}")
        return build_error_block(feature, str(e), title="Invalid Feature Data")
    except Exception as e:
        logger.error(f"Error building feature detail block for {_identity(feature)}: {e}")
        return build_error_block(feature, _fallback_name(feature))


def build_error_block(
    feature: Optional[Feature],
    message: str,
    *,
    title: str = "Error Rendering Feature",
) -> ErrorBlock:
    return ErrorBlock(title=title, message=safe_text(message), feature=feature)


def snapshot_id_for(feature: Feature) -> str:
    """Mini-map slot identifier, restricted to ``[A-Za-z0-9_-]``."""
    return "feature-snapshot-" + re.sub(r"[^a-zA-Z0-9_-]", "", feature.internal_id)


def _build_detail(feature: Feature, geodata: GeoDataFn) -> FeatureDetailBlock:
    geo_rows = _geo_rows(feature, geodata)

    observations: List[ObservationRow] = []
    images: List[ImageRef] = []
    for raw in feature.raw_observations:
        try:
            obs = raw if isinstance(raw, Observation) else Observation.from_dict(raw)
        except TypeError as e:
            logger.warning(f"Skipping malformed observation on {feature.label}: {e}")
            continue
        observations.append(_observation_row(obs))
        images.extend(ImageRef(src=safe_text(img.src), caption=safe_text(img.caption))
                      for img in obs.images if img.src)

    return FeatureDetailBlock(
        feature=feature,
        snapshot_id=snapshot_id_for(feature),
        name=safe_text(feature.name) or "Unnamed Feature",
        category=safe_text(feature.category),
        description=safe_text(feature.description) or "N/A",
        geo_rows=tuple(geo_rows),
        observations=tuple(observations),
        images=tuple(images),
    )


def _geo_rows(feature: Feature, geodata: GeoDataFn) -> Sequence[GeoDatum]:
    try:
        rows = geodata(feature) or []
    except Exception as e:
        logger.error(f"Error calculating geometry data for {feature.label}: {e}")
        rows = []
    if not rows:
        return [NO_GEOMETRY_STATS]
    return [GeoDatum(safe_text(r.label), safe_text(r.value)) for r in rows]


def _observation_row(obs: Observation) -> ObservationRow:
    level = Severity.parse(obs.severity)
    return ObservationRow(
        observation_type=safe_text(obs.observation_type) or "Observation",
        severity=level,
        severity_label=safe_text(obs.severity) or level.value,
        recommendation=safe_text(obs.recommendation) or "N/A",
    )


def _fallback_name(feature: Optional[Feature]) -> str:
    try:
        return safe_text(feature.name) or "Unknown feature"
    except Exception:
        return "Unknown feature"


def _identity(feature: Optional[Feature]) -> str:
    try:
        return feature.label
    except Exception:
        return "<unidentifiable feature>"
