"""
Module: export.layout.compositor

Purpose:
    Compose page content into off-screen, physically-sized page elements.
    A PageElement holds positioned drawing operations plus slots for
    content that arrives asynchronously (observation images, logos and
    feature mini-maps). The element's measured content height drives
    pagination; render() draws it to a bitmap at any scale.

Key Functions:
    - build_page(): Compose PageContent onto a page of the given size
    - compose_plan(): Compose a paginated PagePlan
    - wrap_text(): Word-wrap text to a pixel width

Key Classes:
    - OffscreenRegion: Registry of live (not yet removed) page elements
    - PageElement: Composed page with image and map slots
    - PageOptions: Padding, background and stylesheet for a page
    - ImageSlot, MapSlot: Placeholders filled before capture

Dependencies:
    - PIL: Font metrics and drawing
    - export.layout.stylesheet: Page style
    - export.content: Content blocks

Used By:
    - export.layout.paginator: Candidate measurement
    - export.output.rasterizer: Capture
    - export.controller: Front matter and map pages
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Sequence, Union

from PIL import Image, ImageDraw, ImageOps

from sitereport.core.models import Feature
from sitereport.export.content import (
    ErrorBlock,
    FeatureDetailBlock,
    ImageRef,
    LegendBlock,
    OverviewMapBlock,
    PageContent,
    TeamBlock,
    TitleBlock,
)
from sitereport.export.content.blocks import ContributorRow, ObservationRow

from .config import DEFAULT_PADDING_MM, FOOTER_PLACEHOLDER_PX, mm_to_px
from .models import PagePlan
from .stylesheet import DEFAULT_STYLESHEET, Stylesheet, TextStyle, load_font

logger = logging.getLogger(__name__)

IMAGE_PLACEHOLDER_TEXT = "Image unavailable"
NO_OBSERVATIONS_TEXT = "No observations were recorded for this feature."


class OffscreenRegion:
    """
    Registry of page elements that have been built but not removed.

    Every PageElement attaches itself on creation and detaches on
    remove(), so leaks are observable as a non-zero ``len(region)``.
    """

    def __init__(self) -> None:
        self._elements: List[PageElement] = []

    def attach(self, element: PageElement) -> None:
        self._elements.append(element)

    def detach(self, element: PageElement) -> None:
        self._elements = [e for e in self._elements if e is not element]

    def __contains__(self, element: object) -> bool:
        return any(e is element for e in self._elements)

    def __len__(self) -> int:
        return len(self._elements)


DEFAULT_REGION = OffscreenRegion()


@dataclass(frozen=True)
class PageOptions:
    """
    Page composition options (immutable).

    Attributes:
        padding_mm: Content padding on all sides (0 for map pages)
        background: Page background color
        stylesheet: Fonts, colors and spacing
        region: Registry for the created element (None = shared default)
    """

    padding_mm: float = DEFAULT_PADDING_MM
    background: str = "#ffffff"
    stylesheet: Stylesheet = DEFAULT_STYLESHEET
    region: Optional[OffscreenRegion] = None

    def __post_init__(self) -> None:
        if self.padding_mm < 0:
            raise ValueError(f"padding_mm must be >= 0, got {self.padding_mm}")

    @property
    def padding_px(self) -> int:
        return mm_to_px(self.padding_mm)


# --------------------------------------------------------------------------
# Drawing operations (page pixel coordinates, scaled at render time)
# --------------------------------------------------------------------------

Box = tuple[float, float, float, float]


def _scaled(box: Box, scale: float) -> tuple[int, int, int, int]:
    return tuple(round(v * scale) for v in box)  # type: ignore[return-value]


@dataclass
class TextOp:
    x: float
    y: float
    text: str
    style: TextStyle

    def translate(self, dy: float) -> None:
        self.y += dy

    def draw(self, canvas: Image.Image, draw: ImageDraw.ImageDraw, scale: float) -> None:
        font = load_font(round(self.style.size * scale), self.style.bold)
        offset = (self.style.line_px - self.style.size) / 2
        draw.text(
            (round(self.x * scale), round((self.y + offset) * scale)),
            self.text,
            fill=self.style.color,
            font=font,
        )


@dataclass
class RectOp:
    box: Box
    fill: Optional[Union[str, tuple]] = None
    outline: Optional[str] = None
    width: int = 1
    radius: float = 0

    def translate(self, dy: float) -> None:
        x1, y1, x2, y2 = self.box
        self.box = (x1, y1 + dy, x2, y2 + dy)

    def draw(self, canvas: Image.Image, draw: ImageDraw.ImageDraw, scale: float) -> None:
        draw.rounded_rectangle(
            _scaled(self.box, scale),
            radius=round(self.radius * scale),
            fill=self.fill,
            outline=self.outline,
            width=max(1, round(self.width * scale)) if self.outline else 0,
        )


@dataclass
class LineOp:
    """Horizontal or vertical rule, optionally dashed."""

    start: tuple[float, float]
    end: tuple[float, float]
    color: str
    width: int = 1
    dashed: bool = False

    def translate(self, dy: float) -> None:
        self.start = (self.start[0], self.start[1] + dy)
        self.end = (self.end[0], self.end[1] + dy)

    def draw(self, canvas: Image.Image, draw: ImageDraw.ImageDraw, scale: float) -> None:
        width = max(1, round(self.width * scale))
        (x1, y1), (x2, y2) = self.start, self.end
        if not self.dashed:
            draw.line([(x1 * scale, y1 * scale), (x2 * scale, y2 * scale)], fill=self.color, width=width)
            return
        length = max(abs(x2 - x1), abs(y2 - y1))
        dash, gap = 4.0, 3.0
        pos = 0.0
        while pos < length:
            seg_end = min(pos + dash, length)
            t0, t1 = pos / length, seg_end / length
            draw.line(
                [
                    ((x1 + (x2 - x1) * t0) * scale, (y1 + (y2 - y1) * t0) * scale),
                    ((x1 + (x2 - x1) * t1) * scale, (y1 + (y2 - y1) * t1) * scale),
                ],
                fill=self.color,
                width=width,
            )
            pos += dash + gap


class SlotState(str, Enum):
    PENDING = "pending"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass(eq=False)
class ImageSlot:
    """
    Image awaiting load at capture time.

    A slot with no ``ref`` (e.g. a contributor without a photo) is
    already failed and draws its placeholder.
    """

    box: Box
    ref: Optional[ImageRef]
    fit: str = "contain"
    placeholder_text: str = IMAGE_PLACEHOLDER_TEXT
    image: Optional[Image.Image] = None
    state: SlotState = SlotState.PENDING
    error: Optional[str] = None
    stylesheet: Stylesheet = DEFAULT_STYLESHEET

    def __post_init__(self) -> None:
        if self.image is not None:
            self.state = SlotState.LOADED
        elif self.ref is None or not self.ref.src:
            self.state = SlotState.FAILED
            self.error = "no source"

    @property
    def size(self) -> tuple[int, int]:
        x1, y1, x2, y2 = self.box
        return max(1, round(x2 - x1)), max(1, round(y2 - y1))

    def resolve(self, image: Image.Image) -> None:
        self.image = image
        self.state = SlotState.LOADED
        self.error = None

    def fail(self, reason: str) -> None:
        self.image = None
        self.state = SlotState.FAILED
        self.error = reason

    def translate(self, dy: float) -> None:
        x1, y1, x2, y2 = self.box
        self.box = (x1, y1 + dy, x2, y2 + dy)

    def draw(self, canvas: Image.Image, draw: ImageDraw.ImageDraw, scale: float) -> None:
        box = _scaled(self.box, scale)
        target = (max(1, box[2] - box[0]), max(1, box[3] - box[1]))
        if self.image is None:
            _draw_placeholder(draw, box, self.placeholder_text, self.stylesheet, scale)
            return

        source = self.image.convert("RGBA")
        if self.fit == "cover":
            fitted = ImageOps.fit(source, target, Image.Resampling.LANCZOS)
        else:
            fitted = ImageOps.contain(source, target, Image.Resampling.LANCZOS)
        left = box[0] + (target[0] - fitted.width) // 2
        top = box[1] + (target[1] - fitted.height) // 2
        canvas.paste(fitted, (left, top), fitted)


@dataclass(eq=False)
class MapSlot:
    """Feature snapshot slot filled by the mini-map renderer."""

    box: Box
    snapshot_id: str
    feature: Optional[Feature]
    image: Optional[Image.Image] = None
    message: Optional[str] = None
    attempts: int = 0
    stylesheet: Stylesheet = DEFAULT_STYLESHEET

    @property
    def size(self) -> tuple[int, int]:
        x1, y1, x2, y2 = self.box
        return max(1, round(x2 - x1)), max(1, round(y2 - y1))

    @property
    def is_fallback(self) -> bool:
        return self.message is not None

    def show(self, image: Image.Image) -> None:
        self.image = image
        self.message = None

    def show_fallback(self, message: str) -> None:
        self.image = None
        self.message = message

    def translate(self, dy: float) -> None:
        x1, y1, x2, y2 = self.box
        self.box = (x1, y1 + dy, x2, y2 + dy)

    def draw(self, canvas: Image.Image, draw: ImageDraw.ImageDraw, scale: float) -> None:
        box = _scaled(self.box, scale)
        if self.image is not None:
            target = (max(1, box[2] - box[0]), max(1, box[3] - box[1]))
            fitted = ImageOps.fit(self.image.convert("RGBA"), target, Image.Resampling.LANCZOS)
            canvas.paste(fitted, (box[0], box[1]), fitted)
        elif self.message is not None:
            _draw_placeholder(draw, box, self.message, self.stylesheet, scale)
        draw.rounded_rectangle(
            box,
            radius=round(4 * scale),
            outline=self.stylesheet.snapshot_border,
            width=max(1, round(scale)),
        )


DrawOp = Union[TextOp, RectOp, LineOp, ImageSlot, MapSlot]


def _draw_placeholder(
    draw: ImageDraw.ImageDraw,
    box: tuple[int, int, int, int],
    message: str,
    css: Stylesheet,
    scale: float,
) -> None:
    draw.rectangle(box, fill=css.placeholder_fill, outline=css.placeholder_border, width=max(1, round(scale)))
    font = load_font(round(css.fallback.size * scale), css.fallback.bold)
    draw.text(
        ((box[0] + box[2]) / 2, (box[1] + box[3]) / 2),
        message,
        fill=css.fallback.color,
        font=font,
        anchor="mm",
    )


# --------------------------------------------------------------------------
# Page element
# --------------------------------------------------------------------------

class PageElement:
    """
    Off-screen composed page.

    Attributes:
        width_px, height_px: Page size in CSS pixels (96 DPI)
        padding_px: Content padding
        ops: Drawing operations in paint order
        image_slots: Slots awaiting image loads
        map_slots: Mini-map slots in paint order, one per feature block
        content_height: Measured height of header + blocks in pixels
    """

    def __init__(
        self,
        width_px: int,
        height_px: int,
        *,
        padding_px: int = 0,
        background: str = "#ffffff",
        region: Optional[OffscreenRegion] = None,
    ) -> None:
        self.width_px = width_px
        self.height_px = height_px
        self.padding_px = padding_px
        self.background = background
        self.ops: List[DrawOp] = []
        self.image_slots: List[ImageSlot] = []
        self.map_slots: List[MapSlot] = []
        self.content_height: float = 0
        self._region = region if region is not None else DEFAULT_REGION
        self._removed = False
        self._region.attach(self)

    @property
    def is_attached(self) -> bool:
        return not self._removed

    @property
    def content_width(self) -> int:
        return self.width_px - 2 * self.padding_px

    @property
    def available_height(self) -> int:
        """Height of the padded content area above the footer placeholder."""
        return self.height_px - 2 * self.padding_px - FOOTER_PLACEHOLDER_PX

    def add(self, op: DrawOp) -> None:
        self.ops.append(op)
        if isinstance(op, ImageSlot):
            self.image_slots.append(op)
        elif isinstance(op, MapSlot):
            self.map_slots.append(op)

    def remove(self) -> None:
        """Detach from the off-screen region. Safe to call repeatedly."""
        if not self._removed:
            self._removed = True
            self._region.detach(self)

    def render(self, scale: float = 1.0) -> Image.Image:
        """
        Draw the page to an RGB bitmap at ``scale`` x nominal size.

        Raises:
            RuntimeError: If the element has already been removed
        """
        if self._removed:
            raise RuntimeError("Cannot render a removed page element")
        size = (max(1, round(self.width_px * scale)), max(1, round(self.height_px * scale)))
        canvas = Image.new("RGB", size, self.background)
        draw = ImageDraw.Draw(canvas)
        for op in self.ops:
            op.draw(canvas, draw, scale)
        return canvas


# --------------------------------------------------------------------------
# Text layout
# --------------------------------------------------------------------------

def wrap_text(text: str, style: TextStyle, max_width: float) -> List[str]:
    """
    Word-wrap text to fit ``max_width`` pixels.

    Explicit newlines start new lines; words longer than the width are
    broken between characters. Empty text yields one empty line.

    Example:
        >>> wrap_text("a b", TextStyle(10), 1000)
        ['a b']
    """
    font = load_font(style.size, style.bold)
    max_width = max(1.0, max_width)
    lines: List[str] = []
    for paragraph in str(text).split("\n"):
        words = paragraph.split()
        if not words:
            lines.append("")
            continue
        current = ""
        for word in words:
            candidate = f"{current} {word}" if current else word
            if font.getlength(candidate) <= max_width:
                current = candidate
                continue
            if current:
                lines.append(current)
            current = ""
            # Break overlong words by character
            for char in word:
                if current and font.getlength(current + char) > max_width:
                    lines.append(current)
                    current = ""
                current += char
        lines.append(current)
    return lines or [""]


def text_width(text: str, style: TextStyle) -> float:
    return load_font(style.size, style.bold).getlength(text)


@dataclass
class _Cell:
    parts: tuple[tuple[str, TextStyle], ...] = ()
    header: bool = False
    avatar: bool = False
    image: Optional[ImageRef] = None
    span: int = 1


class _Flow:
    """Vertical flow cursor inside a column of the page."""

    def __init__(self, element: PageElement, css: Stylesheet, x: float, y: float, width: float) -> None:
        self.element = element
        self.css = css
        self.x = x
        self.y = y
        self.top = y
        self.width = width

    @property
    def height(self) -> float:
        return self.y - self.top

    def sub(self, offset: float, width: float) -> _Flow:
        return _Flow(self.element, self.css, self.x + offset, self.y, width)

    def space(self, px: float) -> None:
        self.y += px

    def text(self, text: str, style: TextStyle, *, indent: float = 0, center: bool = False) -> List[str]:
        lines = wrap_text(text, style, self.width - indent)
        self.y += style.margin_top
        for line in lines:
            x = self.x + indent
            if center:
                x = self.x + (self.width - text_width(line, style)) / 2
            self.element.add(TextOp(x, self.y, line, style))
            self.y += style.line_px
        self.y += style.margin_bottom
        return lines

    def heading(self, text: str, style: TextStyle, *, rule_gap: int = 0, rule_width: int = 0) -> None:
        self.text(text, replace(style, margin_bottom=0))
        if rule_width:
            self.y += rule_gap
            self.rule(self.css.rule_color, rule_width)
        self.y += style.margin_bottom

    def rule(self, color: str, width: int = 1, *, dashed: bool = False) -> None:
        y = self.y + width / 2
        self.element.add(LineOp((self.x, y), (self.x + self.width, y), color, width, dashed))
        self.y += width

    def table(
        self,
        rows: Sequence[Sequence[_Cell]],
        widths: Sequence[float],
    ) -> None:
        css = self.css
        pad_x, pad_y = css.cell_padding_x, css.cell_padding_y
        for cells in rows:
            layouts = []
            x = self.x
            col = 0
            row_height = 0.0
            for cell in cells:
                width = sum(widths[col:col + cell.span])
                col += cell.span
                inner = width - 2 * pad_x
                if cell.avatar:
                    content: list = []
                    height = css.avatar_size
                else:
                    content = []
                    height = 0.0
                    for text, style in cell.parts:
                        lines = wrap_text(text, style, inner)
                        content.append((lines, style))
                        height += len(lines) * style.line_px
                layouts.append((cell, x, width, content))
                row_height = max(row_height, height + 2 * pad_y)
                x += width

            for cell, x, width, content in layouts:
                fill = css.table_header_fill if cell.header else None
                self.element.add(RectOp((x, self.y, x + width, self.y + row_height),
                                        fill=fill, outline=css.table_border))
                if cell.avatar:
                    size = css.avatar_size
                    self.element.add(ImageSlot(
                        (x + pad_x, self.y + pad_y, x + pad_x + size, self.y + pad_y + size),
                        cell.image,
                        fit="cover",
                        placeholder_text="NA",
                        stylesheet=css,
                    ))
                    continue
                ty = self.y + pad_y
                for lines, style in content:
                    for line in lines:
                        self.element.add(TextOp(x + pad_x, ty, line, style))
                        ty += style.line_px
            self.y += row_height
        self.y += css.table_margin_bottom


# --------------------------------------------------------------------------
# Block layouts
# --------------------------------------------------------------------------

def _shift_ops(element: PageElement, start: int, dy: float) -> None:
    for op in element.ops[start:]:
        op.translate(dy)


def _layout_title(flow: _Flow, block: TitleBlock) -> None:
    css = flow.css
    start = len(flow.element.ops)
    if block.logo is not None:
        size = css.logo_max
        left = flow.x + (flow.width - size) / 2
        flow.element.add(ImageSlot((left, flow.y, left + size, flow.y + size), block.logo, stylesheet=css))
        flow.space(size + 16)
    flow.text(block.title, css.h1_cover, center=True)
    if block.description:
        flow.text(block.description, css.cover_description, center=True)

    # Vertically centered in the content area
    dy = (flow.element.available_height - flow.height) / 2
    if dy > 0:
        _shift_ops(flow.element, start, dy)


def _layout_team(flow: _Flow, block: TeamBlock) -> None:
    css = flow.css
    flow.heading("Project Information", css.h1, rule_gap=css.h1_rule_gap, rule_width=css.h1_rule_width)
    flow.heading("Project Details", css.h2, rule_gap=css.h2_rule_gap, rule_width=1)
    label_w = flow.width * css.table_label_ratio
    flow.table(
        [(_Cell(((label, css.table_header),), header=True), _Cell(((value, css.table),)))
         for label, value in block.details],
        (label_w, flow.width - label_w),
    )

    flow.space(20 - css.table_margin_bottom)
    flow.heading("Contributors", css.h2, rule_gap=css.h2_rule_gap, rule_width=1)
    image_w = 60 + 2 * css.cell_padding_x
    rest = flow.width - image_w
    rows: List[Sequence[_Cell]] = [(
        _Cell((("Image", css.table_header),), header=True),
        _Cell((("Contributor", css.table_header),), header=True),
        _Cell((("Bio", css.table_header),), header=True),
    )]
    rows.extend(_contributor_row(c, css) for c in block.contributors)
    flow.table(rows, (image_w, rest * 0.4, rest * 0.6))


def _contributor_row(row: ContributorRow, css: Stylesheet) -> Sequence[_Cell]:
    return (
        _Cell(avatar=True, image=row.image),
        _Cell(((row.name, replace(css.table, bold=True)), (row.role, css.small))),
        _Cell(((row.bio, css.table),)),
    )


def _layout_legend(flow: _Flow, block: LegendBlock) -> None:
    css = flow.css
    flow.heading("Legend", css.h1, rule_gap=css.h1_rule_gap, rule_width=css.h1_rule_width)
    flow.text(block.intro, css.body)

    item_style = replace(css.body, line_height=1.3, margin_bottom=0)
    columns = max(1, int((flow.width + css.legend_gap) // (css.legend_min_column + css.legend_gap)))
    col_w = (flow.width - css.legend_gap * (columns - 1)) / columns
    pad = css.legend_item_padding
    swatch = css.legend_swatch

    for category in block.categories:
        flow.text(category.name, css.h3)
        for row_start in range(0, len(category.entries), columns):
            entries = category.entries[row_start:row_start + columns]
            laid = []
            row_h = swatch + 2 * pad
            for i, entry in enumerate(entries):
                x = flow.x + i * (col_w + css.legend_gap)
                tag_w = (text_width("!", css.tag) + 16 + 6) if entry.severity else 0
                name_w = col_w - 2 * pad - swatch - 6 - tag_w
                lines = wrap_text(entry.name, item_style, name_w)
                row_h = max(row_h, len(lines) * item_style.line_px + 2 * pad)
                laid.append((entry, x, lines))
            for entry, x, lines in laid:
                sx, sy = x + pad, flow.y + (row_h - swatch) / 2
                flow.element.add(RectOp((sx, sy, sx + swatch, sy + swatch),
                                        fill=entry.style.fill_rgba[:3], outline="#cccccc", radius=3))
                tx = sx + swatch + 6
                ty = flow.y + (row_h - len(lines) * item_style.line_px) / 2
                widest = 0.0
                for line in lines:
                    flow.element.add(TextOp(tx, ty, line, item_style))
                    widest = max(widest, text_width(line, item_style))
                    ty += item_style.line_px
                if entry.severity:
                    _severity_tag(flow.element, css, tx + widest + 6, flow.y + row_h / 2, "!", entry.severity.css_class)
            flow.space(row_h + css.legend_gap)
        flow.space(12 - css.legend_gap)


def _severity_tag(element: PageElement, css: Stylesheet, x: float, mid_y: float, label: str, level: str) -> float:
    """Draw a pill-shaped severity tag; returns its width."""
    background, color = css.severity_colors.get(level, css.severity_colors["low"])
    style = replace(css.tag, color=color)
    width = text_width(label, style) + 16
    height = style.line_px + 4
    top = mid_y - height / 2
    element.add(RectOp((x, top, x + width, top + height), fill=background, radius=height / 2))
    element.add(TextOp(x + 8, top + 2, label, style))
    return width


def _layout_feature(flow: _Flow, block: FeatureDetailBlock) -> None:
    css = flow.css
    col_w = (flow.width - css.column_gap) / 2
    left = flow.sub(0, col_w)
    right = flow.sub(col_w + css.column_gap, col_w)

    left.text(block.name, css.h3)
    left.text("Feature Details & Geodata", css.h4)
    section_index = len(flow.element.ops)
    section_top = left.y
    inner = left.sub(css.info_section_padding, col_w - 2 * css.info_section_padding)
    inner.space(css.info_section_padding)
    label_w = inner.width * css.table_label_ratio
    rows: List[Sequence[_Cell]] = [
        (_Cell((("Category", css.table_header),), header=True), _Cell(((block.category, css.table),))),
        (_Cell((("Description", css.table_header),), header=True), _Cell(((block.description, css.table),))),
    ]
    for datum in block.geo_rows:
        if datum.label:
            rows.append((_Cell(((datum.label, css.table_header),), header=True),
                         _Cell(((datum.value, css.table),))))
        else:
            rows.append((_Cell(((datum.value, css.small),), span=2),))
    inner.table(rows, (label_w, inner.width - label_w))
    section_bottom = inner.y - css.table_margin_bottom + css.info_section_padding
    flow.element.ops.insert(section_index, RectOp(
        (left.x, section_top, left.x + col_w, section_bottom),
        fill=css.info_section_fill, outline=css.rule_color, radius=4,
    ))
    left.y = section_bottom + 8

    right.text("Feature Snapshot", css.h4)
    right.space(8)
    flow.element.add(MapSlot(
        (right.x, right.y, right.x + col_w, right.y + css.snapshot_height),
        block.snapshot_id,
        block.feature,
        stylesheet=css,
    ))
    right.space(css.snapshot_height)

    flow.y = max(left.y, right.y)
    flow.space(8)
    flow.text("Observations" if block.has_observations else "No Observations", css.h4)
    if block.has_observations:
        _layout_observations(flow, block.observations)
    else:
        flow.text(NO_OBSERVATIONS_TEXT, css.small)

    if block.images:
        flow.space(8)
        flow.text("Annotated Images", css.h4)
        _layout_image_grid(flow, block.images)


def _layout_observations(flow: _Flow, observations: Sequence[ObservationRow]) -> None:
    css = flow.css
    flow.space(8)
    top = flow.y
    indent = css.observation_rule_width + css.observation_indent
    items = flow.sub(indent, flow.width - indent)
    type_style = replace(css.body, bold=True, line_height=1.4, margin_bottom=0)
    rec_style = replace(css.small, margin_top=4, margin_bottom=4)

    for i, obs in enumerate(observations):
        tag_w = text_width(obs.severity_label, css.tag) + 16
        lines = wrap_text(obs.observation_type, type_style, items.width - tag_w - 8)
        for line in lines:
            flow.element.add(TextOp(items.x, items.y, line, type_style))
            items.y += type_style.line_px
        last_y = items.y - type_style.line_px
        _severity_tag(flow.element, css, items.x + text_width(lines[-1], type_style) + 8,
                      last_y + type_style.line_px / 2, obs.severity_label, obs.severity.css_class)
        items.text(f"Recommendation: {obs.recommendation}", rec_style)
        if i < len(observations) - 1:
            items.space(css.observation_spacing - rec_style.margin_bottom)
            items.rule(css.observation_separator)
            items.space(css.observation_spacing)

    rule_x = flow.x + css.observation_rule_width / 2
    flow.element.add(LineOp((rule_x, top), (rule_x, items.y), css.observation_rule, css.observation_rule_width))
    flow.y = items.y + 8


def _layout_image_grid(flow: _Flow, images: Sequence[ImageRef]) -> None:
    css = flow.css
    columns = css.image_columns
    cell_w = (flow.width - css.image_gap * (columns - 1)) / columns
    cell_h = cell_w * css.image_aspect
    for row_start in range(0, len(images), columns):
        row_h = cell_h
        for i, ref in enumerate(images[row_start:row_start + columns]):
            x = flow.x + i * (cell_w + css.image_gap)
            flow.element.add(ImageSlot((x, flow.y, x + cell_w, flow.y + cell_h), ref, stylesheet=css))
            caption = flow.sub(i * (cell_w + css.image_gap), cell_w)
            caption.y = flow.y + cell_h + 4
            if ref.caption:
                caption.text(ref.caption, css.small)
            row_h = max(row_h, caption.y - flow.y)
        flow.space(row_h + css.image_gap)


def _layout_error(flow: _Flow, block: ErrorBlock) -> None:
    flow.text(block.title, flow.css.h3)
    flow.text(block.message, flow.css.body)


def _layout_overview(element: PageElement, block: OverviewMapBlock, css: Stylesheet) -> None:
    element.add(ImageSlot((0, 0, element.width_px, element.height_px), None,
                          fit="cover", image=block.screenshot, stylesheet=css))
    style = css.map_title
    width = text_width(block.title, style) + 32
    height = style.line_px + 16
    left = (element.width_px - width) / 2
    element.add(RectOp((left, 12, left + width, 12 + height), fill="#ffffff", outline="#718096", radius=4))
    element.add(TextOp(left + 16, 20, block.title, style))
    element.content_height = element.height_px


_LAYOUTS = {
    TitleBlock: _layout_title,
    TeamBlock: _layout_team,
    LegendBlock: _layout_legend,
    FeatureDetailBlock: _layout_feature,
    ErrorBlock: _layout_error,
}


# --------------------------------------------------------------------------
# Public API
# --------------------------------------------------------------------------

def build_page(
    content: PageContent,
    width_mm: float,
    height_mm: float,
    options: Optional[PageOptions] = None,
) -> PageElement:
    """
    Compose content onto an off-screen page element.

    The element is registered in the options' OffscreenRegion until the
    caller removes it. Feature blocks are separated by a dashed rule.

    Args:
        content: Optional header and ordered blocks
        width_mm: Page width in millimetres
        height_mm: Page height in millimetres
        options: Padding, background and stylesheet

    Returns:
        PageElement with ``content_height`` measured

    Example:
        >>> element = build_page(PageContent.single(block), 210, 297)
        >>> element.width_px, element.height_px
        (794, 1123)
        >>> element.remove()
    """
    options = options or PageOptions()
    css = options.stylesheet
    element = PageElement(
        mm_to_px(width_mm),
        mm_to_px(height_mm),
        padding_px=options.padding_px,
        background=options.background,
        region=options.region,
    )

    try:
        pad = element.padding_px
        flow = _Flow(element, css, pad, pad, element.content_width)
        if content.header:
            flow.heading(content.header, css.h1, rule_gap=css.h1_rule_gap, rule_width=css.h1_rule_width)

        blocks = content.blocks
        for i, block in enumerate(blocks):
            if isinstance(block, OverviewMapBlock):
                _layout_overview(element, block, css)
                return element
            _LAYOUTS[type(block)](flow, block)
            if isinstance(block, (FeatureDetailBlock, ErrorBlock)) and i < len(blocks) - 1:
                flow.space(css.feature_padding_bottom)
                flow.rule(css.rule_color, dashed=True)
                flow.space(css.feature_gap)

        element.content_height = flow.height
    except Exception:
        element.remove()
        raise

    logger.debug(
        f"Composed page {element.width_px}x{element.height_px}px, "
        f"{len(content.blocks)} block(s), content height {element.content_height:.0f}px"
    )
    return element


def compose_plan(plan: PagePlan, options: Optional[PageOptions] = None) -> PageElement:
    """Compose a paginated page (header + blocks) at the plan's size and padding."""
    options = replace(options or PageOptions(), padding_mm=plan.padding_mm)
    return build_page(plan.to_content(), plan.page_size.width_mm, plan.page_size.height_mm, options)
