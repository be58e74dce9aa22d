"""
Module: export.output.assembler

Purpose:
    Assemble rasterized pages into a PDF using ReportLab. Each page is
    drawn as soon as it is added, at its own physical size, so bitmaps
    can be released page by page.

Key Classes:
    - DocumentAssembler: Incremental PDF builder

Key Functions:
    - assemble_document(): One-shot assembly of a page sequence

Dependencies:
    - reportlab: PDF generation
    - PIL: Bitmap encoding

Used By:
    - export.controller: Document assembly
"""

from __future__ import annotations

import io
import logging
from typing import Iterable

from PIL import Image
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from sitereport.export.layout import RasterizedPage

logger = logging.getLogger(__name__)


class DocumentAssembler:
    """
    Incremental PDF assembler.

    Example:
        >>> assembler = DocumentAssembler(title="Site Report")
        >>> assembler.add_page(page)
        >>> pdf_bytes = assembler.finish()
    """

    def __init__(
        self,
        *,
        title: str = "",
        subject: str = "",
        creator: str = "",
    ) -> None:
        self._buffer = io.BytesIO()
        self._canvas = canvas.Canvas(self._buffer, pageCompression=1)
        self._canvas.setTitle(title)
        self._canvas.setSubject(subject)
        self._canvas.setCreator(creator)
        self._page_count = 0
        self._finished = False

    @property
    def page_count(self) -> int:
        return self._page_count

    def add_page(self, page: RasterizedPage) -> None:
        """Draw a page's bitmap full-bleed on a new PDF page of its physical size."""
        if self._finished:
            raise RuntimeError("Document already finished")
        width_pt, height_pt = page.width_mm * mm, page.height_mm * mm
        self._canvas.setPageSize((width_pt, height_pt))
        self._canvas.drawImage(_pil_to_reader(page.bitmap), 0, 0, width=width_pt, height=height_pt)
        self._canvas.showPage()
        self._page_count += 1

    def finish(self) -> bytes:
        """
        Close the document.

        Raises:
            ValueError: If no pages were added
        """
        if self._page_count == 0:
            raise ValueError("Cannot assemble a document with no pages")
        if not self._finished:
            self._canvas.save()
            self._finished = True
        logger.info(f"Assembled {self._page_count} pages")
        return self._buffer.getvalue()


def assemble_document(
    pages: Iterable[RasterizedPage],
    *,
    title: str = "",
    subject: str = "",
    creator: str = "",
) -> bytes:
    """Assemble pages into PDF bytes."""
    assembler = DocumentAssembler(title=title, subject=subject, creator=creator)
    for page in pages:
        assembler.add_page(page)
    return assembler.finish()


def _pil_to_reader(img: Image.Image) -> ImageReader:
    """
    Convert PIL image to ReportLab ImageReader.

    Args:
        img: PIL Image

    Returns:
        ImageReader for use with ReportLab
    """
    buf = io.BytesIO()
    img.convert("RGB").save(buf, format="PNG")
    buf.seek(0)
    return ImageReader(buf)
