"""
Module: core.models.features

Purpose:
    Feature and observation models for site reports. A Feature wraps a
    GeoJSON feature (geometry + properties) and exposes the report fields
    the export pipeline reads: name, category, description, observations.

Key Classes:
    - Severity: Observation severity levels (ordered)
    - ObservationImage: Image attached to an observation
    - Observation: Categorized finding on a feature
    - Feature: Annotated map feature
    - FeatureCollection: Ordered collection of features

Key Functions:
    - highest_severity(): Most severe level among observations

Dependencies:
    - dataclasses (std)
    - enum (std)

Used By:
    - core.utils.serialization: Builds models from GeoJSON
    - export.content.builders: Content block construction
    - export.layout.paginator: Category grouping
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence

UNCATEGORIZED = "Uncategorized"


class Severity(str, Enum):
    """Observation severity, ordered from least to most severe."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"

    @property
    def rank(self) -> int:
        """Position in severity order (0 = Low)."""
        return _SEVERITY_ORDER.index(self)

    @property
    def css_class(self) -> str:
        """Lowercase tag name, e.g. ``"high"``."""
        return self.value.lower()

    @classmethod
    def parse(cls, value: Any) -> Severity:
        """
        Parse a severity from free-form input.

        Matching is case-insensitive. Unknown or missing values fall back
        to ``Severity.LOW``.

        Example:
            >>> Severity.parse("critical")
            <Severity.CRITICAL: 'Critical'>
        """
        if isinstance(value, Severity):
            return value
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return cls.LOW


_SEVERITY_ORDER = (Severity.LOW, Severity.MEDIUM, Severity.HIGH, Severity.CRITICAL)


@dataclass(frozen=True)
class ObservationImage:
    """Image reference (URL, file path or data URL) with a caption."""

    src: str
    caption: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ObservationImage:
        return cls(src=str(data.get("src") or ""), caption=str(data.get("caption") or ""))


@dataclass(frozen=True)
class Observation:
    """
    A categorized finding recorded against a feature.

    Attributes:
        observation_type: Short type label (``observationType`` in GeoJSON)
        severity: Raw severity value as supplied; see ``level``
        recommendation: Recommended action text
        images: Attached images
    """

    observation_type: Any = None
    severity: Any = None
    recommendation: Any = None
    images: tuple[ObservationImage, ...] = ()

    @property
    def level(self) -> Severity:
        """Parsed severity level."""
        return Severity.parse(self.severity)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Observation:
        """
        Build an observation from its GeoJSON properties payload.

        Raises:
            TypeError: If ``data`` is not a mapping
        """
        if not isinstance(data, Mapping):
            raise TypeError(f"Observation must be a mapping, got {type(data).__name__}")
        raw_images = data.get("images") or []
        images = tuple(
            ObservationImage.from_dict(img)
            for img in raw_images
            if isinstance(img, Mapping)
        )
        return cls(
            observation_type=data.get("observationType"),
            severity=data.get("severity"),
            recommendation=data.get("recommendation"),
            images=images,
        )


@dataclass(frozen=True)
class Feature:
    """
    Annotated map feature.

    Properties are kept as the raw GeoJSON mapping so that malformed
    input survives loading; accessors apply the report defaults and the
    content builders decide how to degrade.

    Attributes:
        geometry: GeoJSON geometry mapping (may be None)
        properties: GeoJSON properties mapping (may be None)
        id: GeoJSON feature id, if any
    """

    geometry: Optional[Mapping[str, Any]]
    properties: Optional[Mapping[str, Any]]
    id: Any = None

    @property
    def _props(self) -> Mapping[str, Any]:
        return self.properties if isinstance(self.properties, Mapping) else {}

    @property
    def internal_id(self) -> str:
        """
        Identifier used to address the feature's snapshot slot.

        Falls back to a digest of geometry and name, which is the same
        in every process.
        """
        props = self._props
        raw = props.get("_internalId")
        if raw is None:
            raw = self.id
        if raw is None:
            digest = hashlib.sha1(f"{self.geometry!r}|{props.get('Name')}".encode("utf-8")).hexdigest()
            raw = f"f{digest[:12]}"
        return str(raw)

    @property
    def name(self) -> str:
        value = self._props.get("Name")
        return str(value) if value else ""

    @property
    def category(self) -> str:
        value = self._props.get("category")
        return str(value) if value else UNCATEGORIZED

    @property
    def description(self) -> Any:
        return self._props.get("Description")

    @property
    def raw_observations(self) -> list[Any]:
        """Observation payloads; a non-list value is treated as empty."""
        value = self._props.get("observations")
        return list(value) if isinstance(value, list) else []

    @property
    def observations(self) -> list[Observation]:
        """Well-formed observations (malformed entries skipped)."""
        result = []
        for raw in self.raw_observations:
            if isinstance(raw, Observation):
                result.append(raw)
            elif isinstance(raw, Mapping):
                result.append(Observation.from_dict(raw))
        return result

    @property
    def label(self) -> str:
        """Identity for log messages."""
        return f"{self.name or 'Unnamed'} [{self.internal_id}]"

    @classmethod
    def from_geojson(cls, data: Mapping[str, Any]) -> Feature:
        return cls(
            geometry=data.get("geometry"),
            properties=data.get("properties"),
            id=data.get("id"),
        )

    def to_geojson(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "type": "Feature",
            "geometry": self.geometry,
            "properties": dict(self._props),
        }
        if self.id is not None:
            payload["id"] = self.id
        return payload


@dataclass(frozen=True)
class FeatureCollection:
    """Ordered, immutable collection of features."""

    features: tuple[Feature, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.features)

    def __iter__(self) -> Iterator[Feature]:
        return iter(self.features)

    @property
    def categories(self) -> list[str]:
        """Distinct categories, sorted alphabetically."""
        return sorted({f.category for f in self.features})

    @classmethod
    def of(cls, features: Iterable[Feature]) -> FeatureCollection:
        return cls(features=tuple(features))


def highest_severity(observations: Sequence[Observation]) -> Optional[Severity]:
    """
    Most severe level among observations.

    Args:
        observations: Observations to inspect

    Returns:
        Highest Severity, or None if there are no observations

    Example:
        >>> highest_severity([Observation(severity="Low"), Observation(severity="High")])
        <Severity.HIGH: 'High'>
    """
    if not observations:
        return None
    return max((o.level for o in observations), key=lambda s: s.rank)
