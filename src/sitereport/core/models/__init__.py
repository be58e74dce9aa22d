"""
Module: core.models

Purpose:
    Immutable data models for site reports: features with observations,
    report metadata and category styles.
"""

from .features import (
    UNCATEGORIZED,
    Feature,
    FeatureCollection,
    Observation,
    ObservationImage,
    Severity,
    highest_severity,
)
from .report import Contributor, ReportMetadata
from .styles import CategoryStyle, CategoryStyles

__all__ = [
    "UNCATEGORIZED",
    "Feature",
    "FeatureCollection",
    "Observation",
    "ObservationImage",
    "Severity",
    "highest_severity",
    "Contributor",
    "ReportMetadata",
    "CategoryStyle",
    "CategoryStyles",
]
