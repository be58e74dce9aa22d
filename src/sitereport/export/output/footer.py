"""
Module: export.output.footer

Purpose:
    Final pass over the assembled PDF. The total page count is only
    known once every page is captured, so page numbers and the running
    title are stamped afterwards with PyMuPDF. The first (title) page
    is left unnumbered.

Key Functions:
    - apply_footers(): Stamp "Page i of N" footers and set metadata
    - footer_title_for(): Running title for a page

Dependencies:
    - fitz (PyMuPDF): PDF editing

Used By:
    - export.controller: Footer pass
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

import fitz

from sitereport.export.layout.config import DEFAULT_PADDING_MM

logger = logging.getLogger(__name__)

FOOTER_FONT = "helv"
FOOTER_FONT_SIZE = 8
FOOTER_TEXT_COLOR = (100 / 255, 100 / 255, 100 / 255)
FOOTER_RULE_COLOR = (226 / 255, 232 / 255, 240 / 255)
FOOTER_RULE_WIDTH = 0.5
LANDSCAPE_TITLE = "Site Map"

# Rule sits this far above the footer baseline
RULE_OFFSET_MM = 3.0

_METADATA_KEYS = ("title", "subject", "creator", "author", "producer", "keywords")

PT_PER_MM = 72 / 25.4


def footer_title_for(page: fitz.Page, title: str) -> str:
    """Running title: the report title, or "Site Map" on landscape pages."""
    rect = page.rect
    return LANDSCAPE_TITLE if rect.width > rect.height else title


def page_label(index: int, total: int) -> str:
    """
    Example:
        >>> page_label(2, 7)
        'Page 2 of 7'
    """
    return f"Page {index} of {total}"


def apply_footers(
    pdf_bytes: bytes,
    *,
    title: str,
    padding_mm: float = DEFAULT_PADDING_MM,
    metadata: Optional[Mapping[str, str]] = None,
) -> bytes:
    """
    Stamp footers on every page except the first.

    Each footer has a thin rule, the running title on the left and
    "Page i of N" on the right, with the baseline half a padding above
    the bottom edge.

    Args:
        pdf_bytes: Assembled PDF
        title: Report title for portrait pages
        padding_mm: Page padding (footer inset)
        metadata: Document metadata to set (title, subject, creator, ...)

    Returns:
        Updated PDF bytes

    Example:
        >>> stamped = apply_footers(pdf, title="Site Report")
    """
    with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
        total = doc.page_count
        for number, page in enumerate(doc, start=1):
            if number == 1:
                continue
            _stamp_footer(page, footer_title_for(page, title), page_label(number, total), padding_mm)

        if metadata:
            current = {k: v for k, v in (doc.metadata or {}).items() if k in _METADATA_KEYS and v}
            current.update({k: v for k, v in metadata.items() if k in _METADATA_KEYS and v is not None})
            doc.set_metadata(current)

        logger.info(f"Stamped footers on {max(0, total - 1)} of {total} pages")
        return doc.tobytes(garbage=3, deflate=True)


def _stamp_footer(page: fitz.Page, left_text: str, right_text: str, padding_mm: float) -> None:
    rect = page.rect
    inset = padding_mm * PT_PER_MM
    baseline = rect.height - inset / 2
    rule_y = baseline - RULE_OFFSET_MM * PT_PER_MM
    right_x = rect.width - inset

    page.draw_line(
        fitz.Point(inset, rule_y),
        fitz.Point(right_x, rule_y),
        color=FOOTER_RULE_COLOR,
        width=FOOTER_RULE_WIDTH,
    )
    page.insert_text(
        fitz.Point(inset, baseline),
        left_text,
        fontname=FOOTER_FONT,
        fontsize=FOOTER_FONT_SIZE,
        color=FOOTER_TEXT_COLOR,
    )
    text_width = fitz.get_text_length(right_text, fontname=FOOTER_FONT, fontsize=FOOTER_FONT_SIZE)
    page.insert_text(
        fitz.Point(right_x - text_width, baseline),
        right_text,
        fontname=FOOTER_FONT,
        fontsize=FOOTER_FONT_SIZE,
        color=FOOTER_TEXT_COLOR,
    )
