"""
Serialization Utilities

Provides JSON loading for the export inputs: GeoJSON feature
collections, report metadata and category style maps.

Loading is deliberately lenient about feature *properties* (a malformed
feature becomes an Error block at render time, not a load failure) and
strict about document *structure* (a payload that is not a
FeatureCollection cannot be exported at all).
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping, Union

from ..models.features import Feature, FeatureCollection
from ..models.report import ReportMetadata
from ..models.styles import CategoryStyles

logger = logging.getLogger(__name__)

JsonSource = Union[Path, str, Mapping[str, Any]]


class SchemaError(ValueError):
    """Input document does not have the expected structure."""
    pass


# ─────────────────────────────────────────────────────────────────────────────
# Feature Collections
# ─────────────────────────────────────────────────────────────────────────────

def deserialize_feature_collection(data: Mapping[str, Any]) -> FeatureCollection:
    """
    Deserialize a GeoJSON FeatureCollection.

    Features without ``_internalId`` or ``id`` are assigned a positional
    internal id so their snapshot slots stay addressable.

    Args:
        data: Parsed GeoJSON document

    Returns:
        FeatureCollection in document order

    Raises:
        SchemaError: If data is not a FeatureCollection
    """
    if not isinstance(data, Mapping) or data.get("type") != "FeatureCollection":
        raise SchemaError("Expected a GeoJSON FeatureCollection")

    raw_features = data.get("features")
    if not isinstance(raw_features, list):
        raise SchemaError("FeatureCollection.features must be a list")

    features = []
    for index, raw in enumerate(raw_features):
        if not isinstance(raw, Mapping):
            logger.warning(f"Skipping non-object feature at index {index}")
            continue
        feature = Feature.from_geojson(raw)
        props = feature.properties
        if isinstance(props, Mapping) and props.get("_internalId") is None and feature.id is None:
            feature = Feature(
                geometry=feature.geometry,
                properties={**props, "_internalId": f"feature-{index}"},
                id=None,
            )
        features.append(feature)

    logger.debug(f"Deserialized {len(features)} features")
    return FeatureCollection.of(features)


def serialize_feature_collection(collection: FeatureCollection) -> dict[str, Any]:
    """Serialize a FeatureCollection back to GeoJSON."""
    return {
        "type": "FeatureCollection",
        "features": [f.to_geojson() for f in collection],
    }


# ─────────────────────────────────────────────────────────────────────────────
# File Loading
# ─────────────────────────────────────────────────────────────────────────────

def load_feature_collection(source: JsonSource) -> FeatureCollection:
    """Load a FeatureCollection from a path or an already-parsed mapping."""
    return deserialize_feature_collection(_read_json(source))


def load_report_metadata(source: JsonSource) -> ReportMetadata:
    """Load report metadata (title, client details, contributors)."""
    data = _read_json(source)
    if not isinstance(data, Mapping):
        raise SchemaError("Report metadata must be a JSON object")
    return ReportMetadata.from_dict(data)


def load_category_styles(source: JsonSource) -> CategoryStyles:
    """Load a category name -> style map."""
    data = _read_json(source)
    if not isinstance(data, Mapping):
        raise SchemaError("Category styles must be a JSON object")
    return CategoryStyles.from_dict(data)


def _read_json(source: JsonSource) -> Any:
    if isinstance(source, Mapping):
        return source
    path = Path(source)
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise SchemaError(f"Invalid JSON in {path}: {e}") from e
