"""
DocuFlow Layout Engine

Cursor-driven placement on top of a reportlab canvas:
- Labeled "Label: value" lines with a bold label
- Wrapped paragraphs (left, centred or right aligned)
- Section headings and captions
- Bordered image cells that degrade to an empty box
- Automatic page breaks when content would cross the bottom margin

Positions handed to and returned from the engine are measured from the TOP
of the page; conversion to reportlab's bottom-up coordinates happens only
at draw time.
"""

import io
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from reportlab.lib.pagesizes import A4, letter
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from ..config_loader import config
from .vision import fit_within, prepare_image

logger = logging.getLogger(__name__)

PAGE_SIZES = {
    'letter': letter,
    'a4': A4,
}

ELLIPSIS = "…"


@dataclass
class LayoutCursor:
    """
    Current drawing position.

    Attributes:
        page_index: Zero-based index of the page being drawn
        x: Horizontal position in points from the left edge
        y: Vertical position in points from the top edge
        top: First usable y on every page
        bottom: Last usable y on every page
        anchor: Left edge of the active column
    """
    page_index: int
    x: float
    y: float
    top: float
    bottom: float
    anchor: float


class LayoutEngine:
    """
    Places text and images on a paginated PDF.

    One engine renders one document; it is not shared between requests.
    """

    def __init__(
        self,
        page_size: Optional[Tuple[float, float]] = None,
        margin: Optional[float] = None,
        line_height: Optional[float] = None,
        column_gap: Optional[float] = None,
        fonts: Optional[Dict[str, Any]] = None,
        invariant: bool = False
    ):
        """
        Initialize engine with configuration values.

        Args:
            page_size: (width, height) in points. If None, uses config value.
            margin: Page margin on all sides in points
            line_height: Vertical advance of a body text line
            column_gap: Distance between column anchors
            fonts: Overrides for the document.fonts config section
            invariant: Produce byte-stable output (fixed creation date/ID)
        """
        if page_size is None:
            page_name = str(config.get('document.page_size', 'letter')).lower()
            page_size = PAGE_SIZES.get(page_name, letter)

        self.page_width, self.page_height = page_size
        self.margin = margin if margin is not None else config.get('document.margin', 40)
        self.line_height = line_height or config.get('document.line_height', 16)
        self.column_gap = column_gap or config.get('document.column_gap', 270)
        self.border_inset = config.get('image_processing.border_inset', 1.5)

        font_config = dict(config.get('document.fonts', {}) or {})
        font_config.update(fonts or {})
        self.font_regular = font_config.get('regular', 'Helvetica')
        self.font_bold = font_config.get('bold', 'Helvetica-Bold')
        self.body_size = font_config.get('body_size', 11)
        self.heading_size = font_config.get('heading_size', 13)
        self.caption_size = font_config.get('caption_size', 8)

        self._buffer = io.BytesIO()
        self._canvas = canvas.Canvas(
            self._buffer,
            pagesize=page_size,
            invariant=1 if invariant else 0
        )
        self._finished = False
        self._page_has_content = False

        self.cursor = LayoutCursor(
            page_index=0,
            x=self.margin,
            y=self.margin,
            top=self.margin,
            bottom=self.page_height - self.margin,
            anchor=self.margin
        )

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    @property
    def left_margin(self) -> float:
        return self.margin

    @property
    def right_edge(self) -> float:
        return self.page_width - self.margin

    @property
    def content_width(self) -> float:
        return self.right_edge - self.left_margin

    @property
    def y(self) -> float:
        return self.cursor.y

    @property
    def page_count(self) -> int:
        """Pages in the finished PDF; a trailing page with nothing drawn on it is not emitted."""
        if self.cursor.page_index > 0 and not self._page_has_content:
            return self.cursor.page_index
        return self.cursor.page_index + 1

    def column_anchor(self, index: int) -> float:
        """X position of column `index` (0 = left margin)."""
        return self.left_margin + index * self.column_gap

    def move_to(self, y: Optional[float] = None, x: Optional[float] = None) -> None:
        """Reposition the cursor on the current page."""
        if y is not None:
            self.cursor.y = y
        if x is not None:
            self.cursor.x = x
            self.cursor.anchor = x

    def move_down(self, lines: float = 1.0) -> None:
        self.cursor.y += lines * self.line_height

    def _pdf_y(self, y: float) -> float:
        return self.page_height - y

    def _baseline(self, leading: float, size: float) -> float:
        # Centre the glyph box vertically within the row
        return self._pdf_y(self.cursor.y + (leading + size * 0.7) / 2)

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------

    def ensure_vertical_space(self, height: float) -> bool:
        """
        Start a new page if `height` points do not fit below the cursor.

        Args:
            height: Vertical space the caller is about to use

        Returns:
            True if a page break occurred
        """
        if self.cursor.y + height <= self.cursor.bottom:
            return False

        if self.cursor.y <= self.cursor.top:
            # Already at the top of a page, a break would only add a blank page
            logger.debug(f"Element of {height:.0f}pt is taller than the page content area")
            return False

        self._canvas.showPage()
        self._page_has_content = False
        self.cursor.page_index += 1
        self.cursor.y = self.cursor.top
        self.cursor.x = self.cursor.anchor

        logger.debug(f"Page break: now on page {self.cursor.page_index + 1}")
        return True

    # ------------------------------------------------------------------
    # Text primitives
    # ------------------------------------------------------------------

    def _fit_text(self, text: str, font: str, size: float, max_width: float) -> str:
        """Truncate text with an ellipsis so it fits max_width."""
        if max_width <= 0:
            return ""
        if stringWidth(text, font, size) <= max_width:
            return text

        while text and stringWidth(text + ELLIPSIS, font, size) > max_width:
            text = text[:-1]
        return text + ELLIPSIS if text else ""

    def _split_labeled(
        self,
        label: str,
        value: Optional[str],
        max_width: float,
        wrap: bool
    ) -> Tuple[str, float, List[str]]:
        """Label text, its width and the value lines that follow it."""
        label_text = f"{label}: "
        label_width = stringWidth(label_text, self.font_bold, self.body_size)
        value_text = "" if value is None else str(value)
        available = max_width - label_width

        if wrap and available > 0:
            lines = simpleSplit(value_text, self.font_regular, self.body_size, available) or [""]
        else:
            lines = [self._fit_text(value_text, self.font_regular, self.body_size, available)]

        return label_text, label_width, lines

    def labeled_line_height(
        self,
        label: str,
        value: Optional[str],
        max_width: float,
        wrap: bool = True
    ) -> float:
        """Vertical space write_labeled_line() will use for this value."""
        _, _, lines = self._split_labeled(label, value, max_width, wrap)
        return len(lines) * self.line_height

    def write_labeled_line(
        self,
        label: str,
        value: Optional[str],
        column_anchor: Optional[float] = None,
        max_width: Optional[float] = None,
        wrap: bool = False
    ) -> int:
        """
        Write "Label: value" with a bold label and regular value.

        Args:
            label: Field label (colon is added)
            value: Field value; None renders as an empty string
            column_anchor: X position of the column (defaults to left margin)
            max_width: Width available to the whole line
            wrap: Continue long values on further lines, indented past the
                label. Otherwise they are truncated with an ellipsis.

        Returns:
            Number of lines written
        """
        x = self.left_margin if column_anchor is None else column_anchor
        if max_width is None:
            max_width = self.right_edge - x

        label_text, label_width, lines = self._split_labeled(label, value, max_width, wrap)

        for index, line in enumerate(lines):
            self.ensure_vertical_space(self.line_height)
            baseline = self._baseline(self.line_height, self.body_size)

            if index == 0:
                self._canvas.setFont(self.font_bold, self.body_size)
                self._canvas.drawString(x, baseline, label_text)
            if line:
                self._canvas.setFont(self.font_regular, self.body_size)
                self._canvas.drawString(x + label_width, baseline, line)

            self._page_has_content = True
            self.cursor.y += self.line_height

        self.cursor.x = x
        return len(lines)

    def write_paragraph(
        self,
        text: Optional[str],
        width: Optional[float] = None,
        align: str = "left",
        font: Optional[str] = None,
        size: Optional[float] = None,
        x: Optional[float] = None
    ) -> int:
        """
        Write wrapped text, breaking pages between lines as needed.

        Args:
            text: Text to write; embedded newlines are kept
            width: Wrap width (defaults to the remaining content width)
            align: 'left', 'center' or 'right'
            font: Font name (defaults to regular body font)
            size: Font size (defaults to body size)
            x: Left edge of the text block (defaults to left margin)

        Returns:
            Number of lines written
        """
        if not text:
            return 0

        font = font or self.font_regular
        size = size or self.body_size
        x = self.left_margin if x is None else x
        width = width or (self.right_edge - x)
        leading = self.line_height if size == self.body_size else size * 1.4

        lines = simpleSplit(str(text), font, size, width)

        for line in lines:
            self.ensure_vertical_space(leading)
            baseline = self._baseline(leading, size)
            self._canvas.setFont(font, size)

            if align == "right":
                self._canvas.drawRightString(x + width, baseline, line)
            elif align == "center":
                self._canvas.drawCentredString(x + width / 2, baseline, line)
            else:
                self._canvas.drawString(x, baseline, line)

            self._page_has_content = True
            self.cursor.y += leading

        self.cursor.x = x
        return len(lines)

    def write_section_heading(self, text: str, keep_with_next: float = 0) -> None:
        """
        Write a bold heading with a rule underneath.

        Args:
            text: Heading text
            keep_with_next: Extra height that must fit on the same page, so a
                heading is never stranded at the bottom of a page
        """
        leading = self.heading_size * 1.6
        self.ensure_vertical_space(leading + keep_with_next)

        baseline = self._baseline(leading, self.heading_size)
        self._canvas.setFont(self.font_bold, self.heading_size)
        self._canvas.drawString(self.left_margin, baseline, text)

        rule_y = self._pdf_y(self.cursor.y + leading - 2)
        self._canvas.setLineWidth(0.5)
        self._canvas.line(self.left_margin, rule_y, self.right_edge, rule_y)
        self._page_has_content = True

        self.cursor.y += leading + 2
        self.cursor.x = self.left_margin

    def write_caption(self, text: str, x: float, y: float, width: float) -> None:
        """Draw a single centred caption line at (x, y) without moving the cursor."""
        caption = self._fit_text(text or "", self.font_regular, self.caption_size, width)
        if not caption:
            return

        baseline = self._pdf_y(y + self.caption_size * 1.2)
        self._canvas.setFont(self.font_regular, self.caption_size)
        self._canvas.drawCentredString(x + width / 2, baseline, caption)
        self._page_has_content = True

    def draw_rule(self, gap: float = 4) -> None:
        """Horizontal line across the content width below the cursor."""
        self.cursor.y += gap
        y = self._pdf_y(self.cursor.y)
        self._canvas.setLineWidth(1)
        self._canvas.line(self.left_margin, y, self.right_edge, y)
        self._page_has_content = True
        self.cursor.y += gap

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def place_bordered_image(
        self,
        data: Optional[bytes],
        x: float,
        y: float,
        width: float,
        height: float
    ) -> bool:
        """
        Draw a bordered cell and the image scaled to fit, centred inside it.

        Does not move the cursor. A missing or unreadable image leaves the
        empty bordered box in place.

        Args:
            data: Raw image bytes (None draws the empty box)
            x: Left edge of the cell
            y: Top edge of the cell
            width: Cell width
            height: Cell height

        Returns:
            True if the image was drawn
        """
        inset = self.border_inset
        cell_bottom = self._pdf_y(y + height)

        self._canvas.setLineWidth(0.75)
        self._canvas.rect(
            x + inset,
            cell_bottom + inset,
            width - 2 * inset,
            height - 2 * inset,
            stroke=1,
            fill=0
        )
        self._page_has_content = True

        if not data:
            return False

        padding = inset * 2
        try:
            img = prepare_image(data)
            draw_w, draw_h, offset_x, offset_y = fit_within(
                img.width,
                img.height,
                width - 2 * padding,
                height - 2 * padding
            )
            self._canvas.drawImage(
                ImageReader(img),
                x + padding + offset_x,
                cell_bottom + padding + offset_y,
                width=draw_w,
                height=draw_h
            )
            return True
        except Exception as e:
            logger.warning(f"Could not draw image ({len(data)} bytes), leaving empty box: {e}")
            return False

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def finish(self) -> bytes:
        """
        Finalize the document.

        Returns:
            PDF bytes
        """
        if not self._finished:
            self._canvas.save()
            self._finished = True
            logger.debug(f"Finalized document: {self.page_count} page(s)")

        return self._buffer.getvalue()
