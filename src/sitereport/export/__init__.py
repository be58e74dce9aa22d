"""
Module: export

Purpose:
    Paginated PDF export of site reports: content blocks, page layout,
    map rendering, rasterization and document assembly.

Key Functions:
    - generate_document(): Synchronous export entry point

Key Classes:
    - ReportExporter: Export controller
    - ExportConfig: Export configuration
"""

from .config import ExportConfig
from .controller import (
    ExportError,
    ExportInProgressError,
    ExportResult,
    ExportState,
    FatalSetupError,
    ReportExporter,
    document_filename,
    generate_document,
)

__all__ = [
    "ExportConfig",
    "ExportError",
    "ExportInProgressError",
    "ExportResult",
    "ExportState",
    "FatalSetupError",
    "ReportExporter",
    "document_filename",
    "generate_document",
]
