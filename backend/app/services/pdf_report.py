"""
PDF report generator — renders a roast's feedback as a one-file download.

The report is a single flowing document on A4 pages:
1. Header: logo (or a text fallback), roast id, title and the one-liner
2. Score card: the overall score out of 100
3. Section grid: three critique cards in two columns
4. Red flags: one roast/fix pair per flagged issue (omitted when empty)
5. Top fixes: a numbered list (omitted when empty)
6. Footer: one centered line on the last page

Unlike the Platypus flowables used elsewhere in ReportLab, this module
draws straight onto a canvas and does its own pagination. A LayoutCursor
(vertical offset from the top of the page + page count) is threaded
through every render step, and ensure_space() is the ONLY place that
starts a new page. It always runs before a block is drawn, never in the
middle of one, so nothing is ever reflowed after the fact.

Key ReportLab concepts:
- Canvas: a drawing surface; its origin is the BOTTOM-left corner, so
  every draw call converts our top-down y with _pdf_y()
- stringWidth: font metrics used by measure() to word-wrap text
- ImageReader: loads the optional logo from raw bytes
"""

import logging
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen.canvas import Canvas

from app.schemas.roasts import RoastPair, RoastResult

logger = logging.getLogger(__name__)


# --- Brand Colors ---
COLOR_PAGE_BG = colors.HexColor("#fcfcfc")
COLOR_CARD = colors.HexColor("#ffffff")
COLOR_BORDER = colors.HexColor("#e4e4e4")
COLOR_TEXT = colors.HexColor("#1a1a1a")
COLOR_MUTED = colors.HexColor("#646464")
COLOR_ROAST = colors.HexColor("#e16464")     # Roast labels
COLOR_FIX = colors.HexColor("#34d399")       # Fix labels
COLOR_PRIMARY = colors.HexColor("#dc2626")   # Score and banner accents

FONT_REGULAR = "Helvetica"
FONT_BOLD = "Helvetica-Bold"

PRODUCT_NAME = "Roast My Resume"
SECTION_TITLES = ("First impression", "Skills section", "Work experience")


class ReportError(Exception):
    """Base class for report failures."""


class ReportInputError(ReportError):
    """The feedback record is missing or has the wrong shape."""


class ReportGenerationError(ReportError):
    """Measuring or drawing failed; no document was produced."""


@dataclass(frozen=True)
class FontSizes:
    tiny: float = 7
    small: float = 8
    body: float = 9
    label: float = 8
    title: float = 10
    main_title: float = 14
    score: float = 20


@dataclass(frozen=True)
class PageGeometry:
    """Fixed layout constants, in points. Shared read-only by every render."""
    page_width: float = A4[0]
    page_height: float = A4[1]
    margin: float = 20
    bottom_margin: float = 36
    gap: float = 10
    card_pad: float = 12
    card_radius: float = 4
    col_gap: float = 10
    line_height_factor: float = 1.32
    label_gap: float = 5           # between a "Roast"/"Fix" label and its text
    score_card_height: float = 42
    logo_width: float = 160
    logo_aspect: float = 630 / 1200
    fonts: FontSizes = field(default_factory=FontSizes)

    @property
    def content_width(self) -> float:
        return self.page_width - self.margin * 2

    @property
    def column_width(self) -> float:
        return (self.content_width - self.col_gap) / 2

    @property
    def printable_bottom(self) -> float:
        return self.page_height - self.bottom_margin

    @property
    def logo_height(self) -> float:
        return self.logo_width * self.logo_aspect

    def line_height(self, font_size: float) -> float:
        return font_size * self.line_height_factor


DEFAULT_GEOMETRY = PageGeometry()


@dataclass(frozen=True)
class LayoutCursor:
    """Where the next block goes: y from the top of the current page."""
    y: float
    page_count: int = 1


@dataclass(frozen=True)
class MeasuredBlock:
    lines: tuple[str, ...]
    height: float


@dataclass(frozen=True)
class PlacedBlock:
    """A record of something drawn (or painted) on a page."""
    kind: str
    page: int
    top: float
    height: float
    label: str = ""
    column: Optional[int] = None

    @property
    def bottom(self) -> float:
        return self.top + self.height


@dataclass(frozen=True)
class LayoutResult:
    pdf_bytes: bytes
    page_count: int
    score_text: str
    blocks: tuple[PlacedBlock, ...]

    def blocks_of(self, kind: str) -> list[PlacedBlock]:
        return [b for b in self.blocks if b.kind == kind]


# ----------------------------------------------------------------------
# MEASUREMENT
# ----------------------------------------------------------------------

def _fit_prefix(word: str, max_width: float, font_name: str, font_size: float) -> int:
    """Longest prefix of `word` that fits, never less than one character."""
    cut = 1
    while cut < len(word) and stringWidth(word[:cut + 1], font_name, font_size) <= max_width:
        cut += 1
    return cut


def wrap_text(text: str, max_width: float, font_size: float, font_name: str = FONT_REGULAR) -> list[str]:
    """Greedy word wrap. Words wider than the line are split by character."""
    lines: list[str] = []
    for paragraph in text.replace("\r\n", "\n").split("\n"):
        words = paragraph.split()
        if not words:
            lines.append("")
            continue

        current = ""
        for word in words:
            candidate = f"{current} {word}" if current else word
            if stringWidth(candidate, font_name, font_size) <= max_width:
                current = candidate
                continue
            if current:
                lines.append(current)
            while len(word) > 1 and stringWidth(word, font_name, font_size) > max_width:
                cut = _fit_prefix(word, max_width, font_name, font_size)
                lines.append(word[:cut])
                word = word[cut:]
            current = word
        lines.append(current)
    return lines


def measure(
    text: str,
    max_width: float,
    font_size: float,
    geometry: PageGeometry = DEFAULT_GEOMETRY,
    font_name: str = FONT_REGULAR,
) -> MeasuredBlock:
    """Wrap `text` into `max_width` and report the lines and their height.

    Pure: the same inputs always give the same lines, so a block can be
    measured once to size its container and again to draw it.
    """
    lines = tuple(wrap_text(text or "", max_width, font_size, font_name))
    return MeasuredBlock(lines=lines, height=len(lines) * geometry.line_height(font_size))


def resolve_score(overall_score: Optional[int], stored_score: Optional[int]) -> int:
    """Score shown on the card: the record's, else the stored one, else 0."""
    if overall_score is not None:
        return int(overall_score)
    if stored_score is not None:
        return int(stored_score)
    return 0


def column_for(index: int) -> int:
    """Positional grid placement: even indices left, odd indices right."""
    return index % 2


def read_logo(path: Union[str, Path]) -> Optional[bytes]:
    """Load the logo from disk, or None when it isn't there."""
    logo_path = Path(path)
    try:
        return logo_path.read_bytes()
    except OSError:
        logger.warning("Logo not found at %s, report will use a text header", logo_path)
        return None


# ----------------------------------------------------------------------
# ONE RENDER PASS
# ----------------------------------------------------------------------

class ReportLayout:
    """Drawing surface + block log for a single render.

    Created fresh by RoastReportRenderer for every document, so two
    renders never share a canvas.
    """

    def __init__(self, canvas: Canvas, geometry: PageGeometry = DEFAULT_GEOMETRY):
        self.canvas = canvas
        self.geometry = geometry
        self.blocks: list[PlacedBlock] = []

    def start(self) -> LayoutCursor:
        """Paint the first page and return the initial cursor."""
        self._paint_background(page=1)
        return LayoutCursor(y=self.geometry.margin, page_count=1)

    # --- pagination ---

    def ensure_space(self, cursor: LayoutCursor, needed_height: float) -> LayoutCursor:
        """Start a new page if `needed_height` won't fit below the cursor.

        A block that is taller than a whole page is left where it is when
        the cursor already sits at the top of a fresh page, so we never
        emit blank pages.
        """
        g = self.geometry
        if cursor.y + needed_height <= g.printable_bottom:
            return cursor
        if cursor.y <= g.margin:
            return cursor

        self.canvas.showPage()
        page = cursor.page_count + 1
        self._paint_background(page=page)
        return LayoutCursor(y=g.margin, page_count=page)

    # --- sections ---

    def render_header(
        self,
        cursor: LayoutCursor,
        roast_id: str,
        one_liner: str,
        logo: Optional[bytes] = None,
    ) -> LayoutCursor:
        g = self.geometry
        top = cursor.y
        y = cursor.y

        if not self._draw_logo(logo, y):
            self._text(g.margin, y + g.fonts.main_title, PRODUCT_NAME,
                       FONT_BOLD, g.fonts.main_title, COLOR_PRIMARY)
        y += g.logo_height + 6

        self._text(g.margin, y + g.fonts.tiny, f"Roast ID: {roast_id}",
                   FONT_REGULAR, g.fonts.tiny, COLOR_MUTED)
        y += g.line_height(g.fonts.tiny)

        self._text(g.margin, y + g.fonts.main_title, "Roast results",
                   FONT_BOLD, g.fonts.main_title, COLOR_TEXT)
        y += g.line_height(g.fonts.main_title) + 2

        # The header never breaks the page, so the one-liner is cut to what fits.
        lines = measure(one_liner, g.content_width, g.fonts.body, g).lines
        room = int((g.printable_bottom - y) // g.line_height(g.fonts.body))
        if len(lines) > room:
            logger.warning("One-liner for roast %s truncated to %d lines", roast_id, room)
            lines = lines[:max(room, 0)]
        y = self._draw_lines(lines, g.margin, y, g.fonts.body, COLOR_MUTED)

        self._place("header", cursor.page_count, top, y - top, label=roast_id)
        return LayoutCursor(y=y + g.gap, page_count=cursor.page_count)

    def render_score_card(self, cursor: LayoutCursor, score: int) -> LayoutCursor:
        g = self.geometry
        height = g.score_card_height
        cursor = self.ensure_space(cursor, height)
        y = cursor.y
        c = self.canvas

        self._card(g.margin, y, g.content_width, height, COLOR_PRIMARY)
        self._text(g.margin + g.card_pad, y + 14, "Overall Roast Score",
                   FONT_BOLD, g.fonts.small, COLOR_TEXT)

        c.setFont(FONT_REGULAR, g.fonts.tiny)
        c.setFillColor(COLOR_MUTED)
        c.drawRightString(g.page_width - g.margin - g.card_pad, self._pdf_y(y + 14),
                          "Higher is less terrible (allegedly)")

        score_text = str(score)
        self._text(g.margin + g.card_pad, y + 34, score_text,
                   FONT_BOLD, g.fonts.score, COLOR_PRIMARY)
        score_width = stringWidth(score_text, FONT_BOLD, g.fonts.score)
        self._text(g.margin + g.card_pad + score_width + 4, y + 34, "/ 100",
                   FONT_REGULAR, g.fonts.body, COLOR_MUTED)

        self._place("score_card", cursor.page_count, y, height, label=score_text)
        return LayoutCursor(y=y + height + g.gap, page_count=cursor.page_count)

    def render_section_grid(
        self,
        cursor: LayoutCursor,
        sections: list[tuple[str, RoastPair]],
    ) -> LayoutCursor:
        """Lay the three critique cards out in two columns.

        Card heights are measured first; the grid moves to a new page as a
        whole when its taller column doesn't fit.
        """
        if len(sections) != 3:
            raise ReportInputError(f"Expected 3 sections, got {len(sections)}")

        g = self.geometry
        offsets = [0.0, 0.0]
        planned = []
        for index, (title, pair) in enumerate(sections):
            col = column_for(index)
            height = self.section_card_height(pair)
            planned.append((title, pair, col, offsets[col], height))
            offsets[col] += height + g.gap

        grid_height = max(offsets)
        cursor = self.ensure_space(cursor, grid_height - g.gap)

        for title, pair, col, offset, height in planned:
            x = g.margin + col * (g.column_width + g.col_gap)
            top = cursor.y + offset
            self._card(x, top, g.column_width, height)
            self._draw_pair(pair, x + g.card_pad, top + g.card_pad,
                            g.column_width - g.card_pad * 2, title=title)
            self._place("section_card", cursor.page_count, top, height,
                        label=title, column=col)

        return LayoutCursor(y=cursor.y + grid_height, page_count=cursor.page_count)

    def render_flagged_list(self, cursor: LayoutCursor, items: list[RoastPair]) -> LayoutCursor:
        """Red flags banner plus one pair per item; later items may break the page."""
        if not items:
            return cursor

        g = self.geometry
        inner_w = g.content_width - g.card_pad * 2
        inner_x = g.margin + g.card_pad
        banner_h = g.card_pad + g.line_height(g.fonts.title) + 4

        # Keep the banner with its first item: room for both is reserved here,
        # so the first item never breaks the page again.
        first_h = self.pair_height(items[0], inner_w) + 6
        cursor = self.ensure_space(cursor, banner_h + g.gap + first_h)
        self._banner(cursor.y, banner_h, "Red flags", COLOR_PRIMARY, COLOR_PRIMARY)
        self._place("red_flags_banner", cursor.page_count, cursor.y, banner_h, label="Red flags")
        cursor = LayoutCursor(y=cursor.y + banner_h + g.gap, page_count=cursor.page_count)

        for number, item in enumerate(items, 1):
            item_h = self.pair_height(item, inner_w) + 6
            if number > 1:
                cursor = self.ensure_space(cursor, item_h)
            self._draw_pair(item, inner_x, cursor.y, inner_w)
            self._place("red_flag", cursor.page_count, cursor.y, item_h, label=str(number))
            cursor = LayoutCursor(y=cursor.y + item_h, page_count=cursor.page_count)

        return LayoutCursor(y=cursor.y + g.gap, page_count=cursor.page_count)

    def render_fix_list(self, cursor: LayoutCursor, items: list[str]) -> LayoutCursor:
        """Numbered list of top fixes, one page-break check per line."""
        if not items:
            return cursor

        g = self.geometry
        inner_w = g.content_width - g.card_pad * 2
        inner_x = g.margin + g.card_pad
        banner_h = g.card_pad + g.line_height(g.fonts.title) + 4
        lines = [f"{number}. {fix}" for number, fix in enumerate(items, 1)]

        first_h = measure(lines[0], inner_w, g.fonts.body, g).height + 2
        cursor = self.ensure_space(cursor, banner_h + 4 + first_h)
        self._banner(cursor.y, banner_h, "Top 5 things to fix", COLOR_TEXT)
        self._place("fixes_banner", cursor.page_count, cursor.y, banner_h, label="Top 5 things to fix")
        cursor = LayoutCursor(y=cursor.y + banner_h + 4, page_count=cursor.page_count)

        for number, line in enumerate(lines, 1):
            line_h = measure(line, inner_w, g.fonts.body, g).height + 2
            if number > 1:
                cursor = self.ensure_space(cursor, line_h)
            self._draw_wrapped(line, inner_x, cursor.y, inner_w, g.fonts.body, COLOR_MUTED)
            self._place("fix_line", cursor.page_count, cursor.y, line_h, label=line)
            cursor = LayoutCursor(y=cursor.y + line_h, page_count=cursor.page_count)

        return LayoutCursor(y=cursor.y + g.gap, page_count=cursor.page_count)

    def render_footer(self, cursor: LayoutCursor) -> None:
        """Centered credit line at the bottom of whatever page we're on."""
        g = self.geometry
        baseline = g.page_height - 14
        c = self.canvas
        c.setFont(FONT_REGULAR, g.fonts.tiny)
        c.setFillColor(COLOR_MUTED)
        c.drawCentredString(g.page_width / 2, self._pdf_y(baseline),
                            f"Generated by {PRODUCT_NAME}")
        self._place("footer", cursor.page_count, baseline - g.fonts.tiny, g.fonts.tiny)

    # --- sizing ---

    def pair_height(self, pair: RoastPair, width: float) -> float:
        """Height of a Roast label + text + Fix label + text stack."""
        g = self.geometry
        label_h = g.line_height(g.fonts.label) + g.label_gap
        roast_h = measure(pair.roast, width, g.fonts.body, g).height
        fix_h = measure(pair.fix, width, g.fonts.body, g).height
        return label_h + roast_h + 2 + label_h + fix_h

    def section_card_height(self, pair: RoastPair) -> float:
        g = self.geometry
        inner_w = g.column_width - g.card_pad * 2
        title_h = g.line_height(g.fonts.title) + 3
        return g.card_pad + title_h + self.pair_height(pair, inner_w) + g.card_pad

    # ------------------------------------------------------------------
    # DRAWING HELPERS
    # ------------------------------------------------------------------

    def _pdf_y(self, y: float) -> float:
        """Convert a top-down offset to ReportLab's bottom-up coordinate."""
        return self.geometry.page_height - y

    def _place(self, kind, page, top, height, label="", column=None):
        self.blocks.append(PlacedBlock(kind, page, top, height, label, column))

    def _paint_background(self, page: int):
        g = self.geometry
        c = self.canvas
        c.setFillColor(COLOR_PAGE_BG)
        c.rect(0, 0, g.page_width, g.page_height, stroke=0, fill=1)
        self._place("background", page, 0, g.page_height)

    def _draw_logo(self, logo: Optional[bytes], y: float) -> bool:
        """Draw the logo centered at the top. False means use the text fallback."""
        if not logo:
            return False
        g = self.geometry
        try:
            reader = ImageReader(BytesIO(logo))
            reader.getSize()
            x = (g.page_width - g.logo_width) / 2
            self.canvas.drawImage(
                reader, x, self._pdf_y(y - 2 + g.logo_height),
                width=g.logo_width, height=g.logo_height, mask="auto",
            )
        except Exception as e:
            logger.warning("Could not draw report logo, using text header: %s", e)
            return False
        return True

    def _text(self, x, baseline, text, font_name, font_size, color):
        c = self.canvas
        c.setFont(font_name, font_size)
        c.setFillColor(color)
        c.drawString(x, self._pdf_y(baseline), text)

    def _draw_wrapped(self, text, x, y, width, font_size, color) -> float:
        """Draw wrapped text with its top at y. Returns the y below it."""
        block = measure(text, width, font_size, self.geometry)
        return self._draw_lines(block.lines, x, y, font_size, color)

    def _draw_lines(self, lines, x, y, font_size, color) -> float:
        line_h = self.geometry.line_height(font_size)
        c = self.canvas
        c.setFont(FONT_REGULAR, font_size)
        c.setFillColor(color)
        for i, line in enumerate(lines):
            c.drawString(x, self._pdf_y(y + font_size + i * line_h), line)
        return y + len(lines) * line_h

    def _draw_pair(self, pair: RoastPair, x: float, y: float, width: float, title: str = ""):
        g = self.geometry
        if title:
            self._text(x, y + g.fonts.title * 0.8, title, FONT_BOLD, g.fonts.title, COLOR_TEXT)
            y += g.line_height(g.fonts.title) + 3

        self._text(x, y + 6, "Roast", FONT_BOLD, g.fonts.label, COLOR_ROAST)
        y += g.line_height(g.fonts.label) + g.label_gap
        y = self._draw_wrapped(pair.roast, x, y, width, g.fonts.body, COLOR_TEXT) + 2

        self._text(x, y + 6, "Fix", FONT_BOLD, g.fonts.label, COLOR_FIX)
        y += g.line_height(g.fonts.label) + g.label_gap
        self._draw_wrapped(pair.fix, x, y, width, g.fonts.body, COLOR_MUTED)

    def _card(self, x, y, w, h, border=COLOR_BORDER):
        c = self.canvas
        c.setFillColor(COLOR_CARD)
        c.setStrokeColor(border)
        c.roundRect(x, self._pdf_y(y + h), w, h, self.geometry.card_radius, stroke=1, fill=1)

    def _banner(self, y, height, title, title_color, border=COLOR_BORDER):
        g = self.geometry
        self._card(g.margin, y, g.content_width, height, border)
        self._text(g.margin + g.card_pad, y + g.card_pad + 8, title,
                   FONT_BOLD, g.fonts.title, title_color)


# ----------------------------------------------------------------------
# PUBLIC API
# ----------------------------------------------------------------------

class RoastReportRenderer:
    """Renders roast feedback to PDF.

    Usage:
        renderer = RoastReportRenderer()
        result = renderer.render(feedback, roast_id, stored_score=62, logo=logo_bytes)
        result.pdf_bytes   # ready to stream
        result.blocks      # where everything landed
    """

    def __init__(self, geometry: PageGeometry = DEFAULT_GEOMETRY):
        self.geometry = geometry

    def render(
        self,
        record: Union[RoastResult, dict, None],
        roast_id: str,
        stored_score: Optional[int] = None,
        logo: Optional[bytes] = None,
    ) -> LayoutResult:
        """Render the whole report, or raise without producing anything.

        Raises:
            ReportInputError: the record or id is missing/invalid.
            ReportGenerationError: anything failed while laying out or drawing.
        """
        feedback = self._coerce(record)
        if not roast_id:
            raise ReportInputError("Missing roast id")

        try:
            return self._render(feedback, str(roast_id), stored_score, logo)
        except ReportError:
            raise
        except Exception as e:
            logger.exception("PDF generation failed for roast %s", roast_id)
            raise ReportGenerationError("Failed to generate PDF") from e

    def _render(self, feedback: RoastResult, roast_id: str,
                stored_score: Optional[int], logo: Optional[bytes]) -> LayoutResult:
        g = self.geometry
        buffer = BytesIO()
        canvas = Canvas(buffer, pagesize=(g.page_width, g.page_height))
        canvas.setTitle(f"Roast {roast_id}")
        canvas.setAuthor(PRODUCT_NAME)

        layout = ReportLayout(canvas, g)
        score = resolve_score(feedback.overall_score, stored_score)
        sections = [
            (SECTION_TITLES[0], feedback.first_impression),
            (SECTION_TITLES[1], feedback.skills_section),
            (SECTION_TITLES[2], feedback.work_experience),
        ]

        cursor = layout.start()
        cursor = layout.render_header(cursor, roast_id, feedback.one_liner, logo)
        cursor = layout.render_score_card(cursor, score)
        cursor = layout.render_section_grid(cursor, sections)
        cursor = layout.render_flagged_list(cursor, feedback.red_flags)
        cursor = layout.render_fix_list(cursor, feedback.top_fixes)
        layout.render_footer(cursor)

        canvas.save()
        return LayoutResult(
            pdf_bytes=buffer.getvalue(),
            page_count=cursor.page_count,
            score_text=str(score),
            blocks=tuple(layout.blocks),
        )

    @staticmethod
    def _coerce(record) -> RoastResult:
        if record is None:
            raise ReportInputError("Missing feedback record")
        if isinstance(record, RoastResult):
            return record
        if not isinstance(record, dict):
            raise ReportInputError(f"Unsupported feedback record type: {type(record).__name__}")
        try:
            return RoastResult.model_validate(record)
        except ValidationError as e:
            raise ReportInputError(f"Invalid feedback record: {e.error_count()} error(s)") from e


def render_roast_report(
    record: Union[RoastResult, dict, None],
    roast_id: str,
    stored_score: Optional[int] = None,
    logo: Optional[bytes] = None,
    geometry: PageGeometry = DEFAULT_GEOMETRY,
) -> bytes:
    """Render a roast report and return just the PDF bytes."""
    return RoastReportRenderer(geometry).render(record, roast_id, stored_score, logo).pdf_bytes
