"""
Module: core.models.report

Purpose:
    Report metadata shown on the title and project information pages.

Key Classes:
    - Contributor: Project team member
    - ReportMetadata: Title, client and project details

Dependencies:
    - dataclasses (std)

Used By:
    - export.content.builders: Title and team blocks
    - export.controller: Document naming and PDF metadata
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Mapping, Optional

DEFAULT_TITLE = "Site Analysis Report"
PLACEHOLDER_HOST = "placehold.co"


@dataclass(frozen=True)
class Contributor:
    """Project team member listed on the project information page."""

    name: Any = None
    role: Any = None
    bio: Any = None
    image: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Contributor:
        return cls(
            name=data.get("name"),
            role=data.get("role"),
            bio=data.get("bio"),
            image=data.get("image") or None,
        )


@dataclass(frozen=True)
class ReportMetadata:
    """
    Report-level information (immutable).

    Free-text fields are typed ``Any`` on purpose: values arrive from
    form inputs and are passed through ``safe_text`` at render time.

    Attributes:
        title: Report title (also used for the running footer and file name)
        description: Subtitle shown on the title page
        logo: Logo image reference (URL, path or data URL)
        client_name: Client name
        client_contact: Client contact details
        client_address: Client postal address
        project_id: Project identifier
        report_date: Report date (date or preformatted string)
        report_status: Draft / Under Review / Final / Archived
        contributors: Project team
    """

    title: Any = DEFAULT_TITLE
    description: Any = ""
    logo: Optional[str] = None
    client_name: Any = None
    client_contact: Any = None
    client_address: Any = None
    project_id: Any = None
    report_date: Any = None
    report_status: Any = None
    contributors: tuple[Contributor, ...] = field(default_factory=tuple)

    @property
    def has_logo(self) -> bool:
        """True when a real logo (not a placeholder service image) is set."""
        return bool(self.logo) and PLACEHOLDER_HOST not in str(self.logo)

    @property
    def formatted_date(self) -> str:
        """Report date as ``YYYY-MM-DD`` (today if unset)."""
        value = self.report_date
        if isinstance(value, date):
            return value.isoformat()
        if value:
            return str(value)
        return date.today().isoformat()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ReportMetadata:
        """
        Build metadata from the report info payload.

        Accepts the camelCase keys used by the report editor
        (``clientName``, ``projectId``...).
        """
        contributors = tuple(
            Contributor.from_dict(c)
            for c in data.get("contributors") or []
            if isinstance(c, Mapping)
        )
        return cls(
            title=data.get("title") or DEFAULT_TITLE,
            description=data.get("description") or "",
            logo=data.get("logo") or None,
            client_name=data.get("clientName"),
            client_contact=data.get("clientContact"),
            client_address=data.get("clientAddress"),
            project_id=data.get("projectId"),
            report_date=data.get("reportDate"),
            report_status=data.get("reportStatus"),
            contributors=contributors,
        )
