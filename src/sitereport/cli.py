"""Command line export of a site report to PDF.

Usage:
    sitereport FEATURES.geojson --metadata report.json [--styles styles.json]
        [--output-dir DIR] [--ortho IMG --ortho-bounds W S E N]
        [--dsm IMG --dsm-bounds W S E N] [--no-overview] [--fast] [-v]
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from sitereport import __version__
from sitereport.core.models import ReportMetadata
from sitereport.core.utils import load_category_styles, load_feature_collection, load_report_metadata
from sitereport.export import ExportConfig, ExportError, generate_document
from sitereport.export.maps import FeatureMapScreenshotSource, GeoRaster

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sitereport",
        description="Export a paginated site report PDF from GeoJSON features",
    )
    parser.add_argument("features", type=Path, help="GeoJSON FeatureCollection")
    parser.add_argument("--metadata", "-m", type=Path, help="Report metadata JSON (title, client, contributors)")
    parser.add_argument("--styles", "-s", type=Path, help="Category styles JSON")
    parser.add_argument("--output-dir", "-o", type=Path, default=Path("."), help="Output directory")
    parser.add_argument("--ortho", type=Path, help="Orthophoto image")
    parser.add_argument("--ortho-bounds", type=float, nargs=4, metavar=("W", "S", "E", "N"))
    parser.add_argument("--dsm", type=Path, help="Elevation model image")
    parser.add_argument("--dsm-bounds", type=float, nargs=4, metavar=("W", "S", "E", "N"))
    parser.add_argument("--no-overview", action="store_true", help="Skip overview map pages")
    parser.add_argument("--fast", action="store_true", help="Preview quality: scale 1, no settle waits")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.ortho and not args.ortho_bounds:
        parser.error("--ortho requires --ortho-bounds")
    if args.dsm and not args.dsm_bounds:
        parser.error("--dsm requires --dsm-bounds")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s | %(levelname)s | %(message)s",
    )

    try:
        collection = load_feature_collection(args.features)
        metadata = load_report_metadata(args.metadata) if args.metadata else ReportMetadata()
        styles = load_category_styles(args.styles) if args.styles else None
        ortho = GeoRaster.open(args.ortho, args.ortho_bounds) if args.ortho else None
        dsm = GeoRaster.open(args.dsm, args.dsm_bounds) if args.dsm else None
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    source = FeatureMapScreenshotSource(collection, styles, ortho=ortho, dsm=dsm)
    settings = dict(output_dir=args.output_dir, include_overview_maps=not args.no_overview)
    config = ExportConfig.fast(**settings) if args.fast else ExportConfig(**settings)

    try:
        result = generate_document(
            collection,
            metadata,
            config,
            styles=styles,
            screenshot_source=source,
            on_progress=_print_progress,
        )
    except (ExportError, RuntimeError, OSError) as e:
        print(f"Export failed: {e}", file=sys.stderr)
        return 1

    for warning in result.warnings:
        print(f"Warning: {warning}")
    print(f"Saved {result.path} ({result.page_count} pages, {result.feature_count} features, "
          f"{result.elapsed_seconds:.1f}s)")
    return 0


def _print_progress(message: str) -> None:
    if message:
        print(message)


if __name__ == "__main__":
    sys.exit(main())
