"""
DocuFlow Document Composer

Builds the OSD sign-off PDF from a RenderModel, section by section:
1. Title and generation stamp
2. Shipment details (two columns)
3. Recipients (configurable)
4. Notes / exceptions
5. Signature (only when one was submitted)
6. Photo grid (only when at least one photo decoded)

Each section is a presence predicate plus a renderer driving the
LayoutEngine; absent sections are skipped.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from ..config_loader import config
from .layout import LayoutEngine
from .normalizer import RenderModel

logger = logging.getLogger(__name__)

EM_DASH = "—"


@dataclass(frozen=True)
class Section:
    """A document section and the rule deciding whether it is emitted."""
    name: str
    is_present: Callable[[RenderModel], bool]
    render: Callable[[LayoutEngine, RenderModel], None]


def _always(model: RenderModel) -> bool:
    return True


class DocumentComposer:
    """
    Renders sign-off documents.

    Holds configuration only; every compose() call gets its own
    LayoutEngine, so one composer can serve concurrent requests.
    """

    def __init__(
        self,
        include_recipients: Optional[bool] = None,
        max_photos: Optional[int] = None,
        invariant: bool = False
    ):
        """
        Initialize composer with configuration values.

        Args:
            include_recipients: Render the To/CC/BCC summary. If None, uses config value.
            max_photos: Photos considered for the grid. If None, uses config value.
            invariant: Byte-stable PDF metadata (tests and archival diffs)
        """
        if include_recipients is None:
            include_recipients = config.get('document.sections.recipients', True)
        self.include_recipients = bool(include_recipients)

        self.title = config.get('document.title', 'OSD – Driver Sign-Off')
        self.title_size = config.get('document.fonts.title_size', 18)
        self.stamp_size = config.get('document.fonts.stamp_size', 9)
        self.invariant = invariant

        self.signature_config = config.get_section('document').get('signature', {}) or {}

        photo_config = config.get_section('document').get('photos', {}) or {}
        self.max_photos = max_photos or photo_config.get('max_photos', 12)
        self.photos_per_row = photo_config.get('per_row', 3)
        self.cell_height = photo_config.get('cell_height', 130)
        self.cell_gap = photo_config.get('cell_gap', 10)
        self.caption_height = photo_config.get('caption_height', 14)
        self.caption_max_chars = photo_config.get('caption_max_chars', 24)

    def sections(self, generated_at: datetime) -> List[Section]:
        """Ordered section list for one document."""
        def render_header(engine: LayoutEngine, model: RenderModel) -> None:
            self._render_header(engine, generated_at)

        return [
            Section("header", _always, render_header),
            Section("details", _always, self._render_details),
            Section("recipients", lambda m: self.include_recipients, self._render_recipients),
            Section("notes", _always, self._render_notes),
            Section("signature", self._has_signature, self._render_signature),
            Section("photos", lambda m: bool(m.photos), self._render_photos),
        ]

    def compose(self, model: RenderModel, generated_at: Optional[datetime] = None) -> bytes:
        """
        Render a sign-off document.

        Args:
            model: Normalized submission
            generated_at: Stamp printed under the title (defaults to now, local time)

        Returns:
            PDF bytes
        """
        generated_at = generated_at or datetime.now().astimezone()
        engine = LayoutEngine(invariant=self.invariant)

        emitted = []
        for section in self.sections(generated_at):
            if not section.is_present(model):
                continue
            section.render(engine, model)
            emitted.append(section.name)

        pdf_bytes = engine.finish()

        logger.info(
            f"Rendered sign-off PDF: {engine.page_count} page(s), "
            f"{len(pdf_bytes)} bytes, sections={emitted}"
        )

        return pdf_bytes

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def _render_header(self, engine: LayoutEngine, generated_at: datetime) -> None:
        engine.write_paragraph(self.title, font=engine.font_bold, size=self.title_size)
        engine.write_paragraph(
            f"Generated {generated_at.strftime('%Y-%m-%d %H:%M %Z').strip()}",
            size=self.stamp_size,
            align="right",
            width=engine.content_width
        )
        engine.draw_rule()
        engine.move_down(0.5)

    def _render_details(self, engine: LayoutEngine, model: RenderModel) -> None:
        left = [
            ("Date/Time", model.timestamp),
            ("Location", model.location),
            ("Load ID / BOL #", model.load_id),
            ("PO Number", model.po_number),
            ("Trailer #", model.trailer_number),
            ("Stop #", model.stop_number),
        ]
        right = [
            ("Carrier", model.carrier),
            ("Vendor ID", model.vendor_id),
            ("Vendor Name", model.vendor_name),
            ("Driver Name", model.driver_name),
            ("PRO #", model.pro_number),
        ]

        left_x = engine.column_anchor(0)
        right_x = engine.column_anchor(1)
        left_width = right_x - left_x - 10
        right_width = engine.right_edge - right_x

        # Both columns must land on the same page, wrapped values included
        engine.ensure_vertical_space(max(
            sum(engine.labeled_line_height(label, value, left_width) for label, value in left),
            sum(engine.labeled_line_height(label, value, right_width) for label, value in right)
        ))
        start_y = engine.y

        for label, value in left:
            engine.write_labeled_line(label, value, column_anchor=left_x, max_width=left_width, wrap=True)
        left_end = engine.y

        engine.move_to(y=start_y)
        for label, value in right:
            engine.write_labeled_line(label, value, column_anchor=right_x, max_width=right_width, wrap=True)
        right_end = engine.y

        engine.move_to(y=max(left_end, right_end), x=left_x)
        engine.move_down(0.5)

    def _render_recipients(self, engine: LayoutEngine, model: RenderModel) -> None:
        engine.write_section_heading("Recipients", keep_with_next=engine.line_height)
        for label, addresses in (("To", model.to), ("CC", model.cc), ("BCC", model.bcc)):
            engine.write_labeled_line(label, ", ".join(addresses) or EM_DASH, wrap=True)
        engine.move_down(0.5)

    def _render_notes(self, engine: LayoutEngine, model: RenderModel) -> None:
        engine.write_section_heading("Notes / Exceptions", keep_with_next=engine.line_height)
        engine.write_paragraph(model.notes or EM_DASH, width=engine.content_width)
        engine.move_down(0.5)

    @staticmethod
    def _has_signature(model: RenderModel) -> bool:
        return model.signature is not None or model.signature_provided

    def _render_signature(self, engine: LayoutEngine, model: RenderModel) -> None:
        box_width = min(self.signature_config.get('box_width', 260), engine.content_width)
        box_height = self.signature_config.get('box_height', 110)

        engine.write_section_heading("Driver Signature", keep_with_next=box_height)
        engine.ensure_vertical_space(box_height)

        top = engine.y
        data = model.signature.data if model.signature is not None else None
        engine.place_bordered_image(data, engine.left_margin, top, box_width, box_height)

        engine.move_to(y=top + box_height)
        engine.move_down(0.5)

    def _render_photos(self, engine: LayoutEngine, model: RenderModel) -> None:
        photos = list(model.photos[:self.max_photos])
        per_row = self.photos_per_row
        cell_width = (engine.content_width - (per_row - 1) * self.cell_gap) / per_row
        row_height = self.cell_height + self.caption_height

        engine.write_section_heading(f"Photos ({len(photos)})", keep_with_next=row_height)

        for row_start in range(0, len(photos), per_row):
            engine.ensure_vertical_space(row_height)
            row_top = engine.y

            for column, photo in enumerate(photos[row_start:row_start + per_row]):
                x = engine.left_margin + column * (cell_width + self.cell_gap)
                engine.place_bordered_image(photo.image.data, x, row_top, cell_width, self.cell_height)
                engine.write_caption(
                    photo.name[:self.caption_max_chars],
                    x,
                    row_top + self.cell_height,
                    cell_width
                )

            engine.move_to(y=row_top + row_height + self.cell_gap)
