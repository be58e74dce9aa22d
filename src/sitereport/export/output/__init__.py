"""
Module: export.output

Purpose:
    Page capture and PDF output: rasterize composed pages, assemble
    them into a PDF, then stamp page-number footers.

Key Functions:
    - capture_element(): Rasterize a composed page (async)
    - assemble_document(): Pages to PDF bytes
    - apply_footers(): Footer pass

Dependencies:
    - reportlab: PDF assembly
    - fitz (PyMuPDF): Footer pass
"""

from .rasterizer import CaptureError, capture_element
from .assembler import DocumentAssembler, assemble_document
from .footer import apply_footers, page_label

__all__ = [
    "CaptureError",
    "capture_element",
    "DocumentAssembler",
    "assemble_document",
    "apply_footers",
    "page_label",
]
