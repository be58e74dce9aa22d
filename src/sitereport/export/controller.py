"""
Module: export.controller

Purpose:
    Main export pipeline controller. Orchestrates the complete document
    export from feature collection to saved PDF.

Key Functions:
    - generate_document(): Synchronous entry point
    - document_filename(): Output file name for a report title
    - check_capabilities(): Verify the rendering backends are installed

Key Classes:
    - ReportExporter: Sequential, non-reentrant export state machine
    - ExportResult: Result of a successful export
    - ExportState: Pipeline stages

Dependencies:
    - export.content: Content blocks
    - export.layout: Composition and pagination
    - export.maps: Mini-maps and overview screenshots
    - export.output: Rasterization, assembly and footers

Used By:
    - sitereport.cli: Command-line export
"""

from __future__ import annotations

import asyncio
import importlib.util
import logging
import re
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, replace
from datetime import date
from enum import Enum
from functools import partial
from pathlib import Path
from typing import AsyncIterator, Iterable, List, Optional

from sitereport.core.geodata import GeoDataFn, calculate_geo_data
from sitereport.core.models import CategoryStyles, Feature, ReportMetadata
from sitereport.core.models.report import DEFAULT_TITLE
from sitereport.export.config import ExportConfig
from sitereport.export.content import (
    ContentBlock,
    FeatureDetailBlock,
    OverviewMapBlock,
    PageContent,
    build_feature_detail_block,
    build_legend_block,
    build_team_block,
    build_title_block,
    safe_text,
)
from sitereport.export.images import ImageLoader
from sitereport.export.layout import (
    A4_PORTRAIT,
    DEFAULT_STYLESHEET,
    LEDGER_LANDSCAPE,
    MeasureFn,
    OffscreenRegion,
    PageOptions,
    PagePlan,
    PageSize,
    RasterizedPage,
    Stylesheet,
    build_page,
    compose_plan,
    iter_document_pages,
)
from sitereport.export.maps import FeatureMapScreenshotSource, ScreenshotSource, render_mini_map
from sitereport.export.output import DocumentAssembler, apply_footers, capture_element
from sitereport.export.progress import ProgressCallback, ProgressTracker

logger = logging.getLogger(__name__)

REQUIRED_MODULES = ("PIL", "reportlab", "fitz")

OVERVIEW_MODES = (
    ("default", "Site Features Overview"),
    ("ortho", "Site Features with Orthophoto"),
    ("dsm", "Site Features with Elevation Model"),
)


class ExportError(Exception):
    """Raised when an export cannot complete."""
    pass


class FatalSetupError(ExportError):
    """Raised before any page is produced (missing backend, no features)."""
    pass


class ExportInProgressError(ExportError):
    """Raised when an export is started while another is running."""
    pass


class ExportState(str, Enum):
    IDLE = "idle"
    PREPARING = "preparing"
    TITLE_PAGE = "title_page"
    TEAM_PAGE = "team_page"
    LEGEND_PAGE = "legend_page"
    OVERVIEW_MAP_PAGES = "overview_map_pages"
    CATEGORY_DETAIL_PAGES = "category_detail_pages"
    FOOTER_PASS = "footer_pass"
    SAVED = "saved"
    FAILED = "failed"


@dataclass(frozen=True)
class ExportResult:
    """
    Result of a successful export.

    Attributes:
        path: Path of the written PDF
        page_count: Number of pages in the document
        feature_count: Number of features exported
        warnings: Non-fatal problems (oversized blocks...)
        elapsed_seconds: Wall-clock export time
    """

    path: Path
    page_count: int
    feature_count: int
    warnings: tuple[str, ...] = ()
    elapsed_seconds: float = 0.0


def check_capabilities(modules: Iterable[str] = REQUIRED_MODULES) -> None:
    """
    Verify that the PDF and raster backends can be imported.

    Raises:
        FatalSetupError: If any backend is missing
    """
    missing = [name for name in modules if importlib.util.find_spec(name) is None]
    if missing:
        raise FatalSetupError(f"Required libraries not available: {', '.join(missing)}")


def document_filename(title: str, on: Optional[date] = None) -> str:
    """
    File name for an exported report.

    Example:
        >>> document_filename("North Field  Survey", date(2024, 5, 1))
        'North_Field_Survey_2024-05-01.pdf'
    """
    stem = re.sub(r"\s+", "_", title.strip()) or re.sub(r"\s+", "_", DEFAULT_TITLE)
    stem = re.sub(r"[\\/]", "_", stem)
    return f"{stem}_{(on or date.today()).isoformat()}.pdf"


class ReportExporter:
    """
    Export controller for one report at a time.

    The pipeline runs through ExportState stages in order; pages are
    captured strictly one after another and added to the PDF as they
    are produced.

    Example:
        >>> exporter = ReportExporter(ExportConfig(output_dir=Path("out")))
        >>> result = await exporter.generate_document(collection, metadata)
        >>> result.path.name
        'Site_Analysis_Report_2024-05-01.pdf'
    """

    def __init__(
        self,
        config: Optional[ExportConfig] = None,
        *,
        styles: Optional[CategoryStyles] = None,
        screenshot_source: Optional[ScreenshotSource] = None,
        geodata: GeoDataFn = calculate_geo_data,
        loader: Optional[ImageLoader] = None,
        measure: Optional[MeasureFn] = None,
        stylesheet: Stylesheet = DEFAULT_STYLESHEET,
        region: Optional[OffscreenRegion] = None,
    ) -> None:
        self.config = config or ExportConfig()
        self.styles = styles or CategoryStyles()
        self.screenshot_source = screenshot_source
        self.geodata = geodata
        self.measure = measure
        self.state = ExportState.IDLE
        self.state_history: List[ExportState] = []
        self._loader = loader
        self._options = PageOptions(
            padding_mm=self.config.padding_mm,
            background=self.config.background,
            stylesheet=stylesheet,
            region=region,
        )
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def generate_document(
        self,
        collection: Iterable[Feature],
        metadata: Optional[ReportMetadata] = None,
        *,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ExportResult:
        """
        Export the report to a PDF file.

        Args:
            collection: Report features
            metadata: Title page and project information
            on_progress: Called with each progress message ("" when done)

        Returns:
            ExportResult for the written file

        Raises:
            ExportInProgressError: If an export is already running
            FatalSetupError: If a backend is missing or there are no features
            CaptureError: If a page cannot be rasterized
        """
        if self._running:
            raise ExportInProgressError("An export is already in progress")

        self._running = True
        self.state_history = []
        progress = ProgressTracker(on_progress)
        start = time.perf_counter()
        try:
            result = await self._run(list(collection), metadata or ReportMetadata(), progress, start)
            self._enter(ExportState.SAVED)
            return result
        except Exception as e:
            self._enter(ExportState.FAILED)
            logger.exception(f"Export failed: {e}")
            progress.update(f"PDF Export Error: {e}")
            raise
        finally:
            progress.clear()
            self._running = False

    async def _run(
        self,
        features: List[Feature],
        metadata: ReportMetadata,
        progress: ProgressTracker,
        start: float,
    ) -> ExportResult:
        config = self.config
        title = safe_text(metadata.title) or DEFAULT_TITLE
        warnings: List[str] = []

        # Stage 1: Prepare
        self._enter(ExportState.PREPARING, progress, "Loading libraries...")
        check_capabilities()
        if not features:
            raise FatalSetupError("No features to export")

        assembler = DocumentAssembler(
            title=title,
            subject=safe_text(metadata.description),
            creator=config.creator,
        )

        async with self._loader_scope() as loader:
            # Stage 2: Front matter
            self._enter(ExportState.TITLE_PAGE, progress, "Building title page...")
            assembler.add_page(await self._capture_block(build_title_block(metadata), loader))

            self._enter(ExportState.TEAM_PAGE, progress, "Adding project team...")
            assembler.add_page(await self._capture_block(build_team_block(metadata), loader))

            self._enter(ExportState.LEGEND_PAGE, progress, "Building legend...")
            assembler.add_page(await self._capture_block(build_legend_block(features, self.styles), loader))
            logger.info(f"Front matter complete: {assembler.page_count} pages")

            # Stage 3: Overview maps
            self._enter(ExportState.OVERVIEW_MAP_PAGES, progress, "Capturing maps...")
            if config.include_overview_maps:
                source = self.screenshot_source or FeatureMapScreenshotSource(features, self.styles)
                for mode, map_title in OVERVIEW_MODES:
                    if (mode == "ortho" and not source.has_ortho) or (mode == "dsm" and not source.has_dsm):
                        continue
                    assembler.add_page(await self._capture_overview(source, mode, map_title, loader))
            else:
                logger.info("Overview maps disabled")

            # Stage 4: Category detail pages
            self._enter(ExportState.CATEGORY_DETAIL_PAGES)
            detail_pages = 0
            for plan in iter_document_pages(
                features,
                measure=self.measure,
                build_block=partial(build_feature_detail_block, geodata=self.geodata),
                page_size=A4_PORTRAIT,
                padding_mm=config.padding_mm,
                options=self._options,
                warnings=warnings,
            ):
                progress.update(f"Processing page for {plan.category} with {plan.block_count} feature(s)...")
                assembler.add_page(await self._capture_plan(plan, progress, loader))
                detail_pages += 1
            logger.info(f"Captured {detail_pages} category detail pages")

        # Stage 5: Footer pass
        self._enter(ExportState.FOOTER_PASS, progress, "Adding page numbers...")
        pdf = apply_footers(
            assembler.finish(),
            title=title,
            padding_mm=config.padding_mm,
            metadata={
                "title": title,
                "subject": safe_text(metadata.description),
                "creator": config.creator,
            },
        )

        # Stage 6: Save
        progress.update("Finalizing PDF...")
        path = _write_pdf(pdf, config.output_dir / document_filename(title))

        elapsed = time.perf_counter() - start
        logger.info(f"Export complete: {path} ({assembler.page_count} pages, {elapsed:.2f}s)")

        return ExportResult(
            path=path,
            page_count=assembler.page_count,
            feature_count=len(features),
            warnings=tuple(warnings),
            elapsed_seconds=elapsed,
        )

    async def _capture_block(
        self,
        block: ContentBlock,
        loader: ImageLoader,
        *,
        page_size: PageSize = A4_PORTRAIT,
    ) -> RasterizedPage:
        element = build_page(PageContent.single(block), page_size.width_mm, page_size.height_mm, self._options)
        return await capture_element(
            element,
            page_size.width_mm,
            page_size.height_mm,
            self.config.capture_scale,
            loader=loader,
            image_timeout=self.config.image_timeout,
            settle_delay=self.config.capture_settle_delay,
        )

    async def _capture_overview(
        self,
        source: ScreenshotSource,
        mode: str,
        map_title: str,
        loader: ImageLoader,
    ) -> RasterizedPage:
        """Screenshot one raster mode and capture it as a landscape page."""
        saved = source.layer_visibility.copy()
        try:
            visibility = source.layer_visibility
            visibility.features = True
            visibility.ortho = mode == "ortho"
            visibility.dsm = mode == "dsm"
            visibility.dtm = False
            source.render_layers()
            if self.config.map_settle_delay > 0:
                await asyncio.sleep(self.config.map_settle_delay)
            screenshot = await source.get_screenshot()
        finally:
            source.layer_visibility = saved
            source.render_layers()

        logger.info(f"Captured overview map: {map_title}")
        page = LEDGER_LANDSCAPE
        element = build_page(
            PageContent.single(OverviewMapBlock(title=map_title, screenshot=screenshot)),
            page.width_mm,
            page.height_mm,
            replace(self._options, padding_mm=0),
        )
        return await capture_element(
            element,
            page.width_mm,
            page.height_mm,
            self.config.map_scale,
            loader=loader,
            image_timeout=self.config.image_timeout,
            settle_delay=self.config.capture_settle_delay,
        )

    async def _capture_plan(self, plan: PagePlan, progress: ProgressTracker, loader: ImageLoader) -> RasterizedPage:
        element = compose_plan(plan, self._options)
        try:
            details = [block for block in plan.blocks if isinstance(block, FeatureDetailBlock)]
            progress.update(f"Rendering maps for {len(details)} feature(s)...")
            await asyncio.gather(*(
                render_mini_map(
                    slot,
                    slot.feature,
                    self.styles.get_category_style_for_feature,
                    scale=self.config.snapshot_scale,
                    settle_delay=self.config.minimap_settle_delay,
                )
                for slot in element.map_slots
            ))
        except BaseException:
            element.remove()
            raise

        progress.update("Capturing page image...")
        return await capture_element(
            element,
            plan.page_size.width_mm,
            plan.page_size.height_mm,
            self.config.capture_scale,
            loader=loader,
            image_timeout=self.config.image_timeout,
            settle_delay=self.config.capture_settle_delay,
        )

    @asynccontextmanager
    async def _loader_scope(self) -> AsyncIterator[ImageLoader]:
        if self._loader is not None:
            yield self._loader
            return
        async with ImageLoader(base_dir=self.config.image_base_dir) as loader:
            yield loader

    def _enter(
        self,
        state: ExportState,
        progress: Optional[ProgressTracker] = None,
        message: Optional[str] = None,
    ) -> None:
        logger.debug(f"Export state: {self.state.value} -> {state.value}")
        self.state = state
        self.state_history.append(state)
        if progress is not None and message:
            progress.update(message)


def generate_document(
    collection: Iterable[Feature],
    metadata: Optional[ReportMetadata] = None,
    config: Optional[ExportConfig] = None,
    *,
    on_progress: Optional[ProgressCallback] = None,
    **kwargs,
) -> ExportResult:
    """
    Export a report synchronously.

    Args:
        collection: Report features
        metadata: Report metadata
        config: Export configuration (defaults apply when None)
        on_progress: Progress callback
        **kwargs: Passed to ReportExporter (styles, screenshot_source...)

    Returns:
        ExportResult

    Example:
        >>> result = generate_document(load_features("site.geojson"), metadata)
        >>> result.page_count
        7
    """
    exporter = ReportExporter(config, **kwargs)
    return asyncio.run(exporter.generate_document(collection, metadata, on_progress=on_progress))


def _write_pdf(pdf: bytes, path: Path) -> Path:
    """Write via a temporary file so a failed write leaves no partial PDF."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".part")
    try:
        tmp.write_bytes(pdf)
        tmp.replace(path)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise
    logger.info(f"Saved PDF: {path} ({len(pdf)} bytes)")
    return path
