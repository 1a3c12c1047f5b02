"""
Document Composer Tests

Section presence rules, photo grid limits, graceful image degradation,
pagination of the grid and repeatability.
"""

import sys
import unittest
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fixtures import data_url, pdf_page_count, pdf_page_texts, photo, png_bytes
from osd_signoff.docuflow.composer import DocumentComposer
from osd_signoff.docuflow.decoder import DecodedImage
from osd_signoff.docuflow.layout import LayoutEngine
from osd_signoff.docuflow.normalizer import PhotoEntry, RenderModel, normalize_submission

GENERATED_AT = datetime(2026, 10, 19, 8, 0)
ORIGINAL_PLACE = LayoutEngine.place_bordered_image


class PlacementSpy:
    """Records every place_bordered_image call with the engine's page/cursor."""

    def __init__(self):
        self.calls = []

    def __call__(self, engine, data, x, y, width, height):
        result = ORIGINAL_PLACE(engine, data, x, y, width, height)
        self.calls.append({
            "page": engine.cursor.page_index,
            "top": engine.cursor.top,
            "bottom": engine.cursor.bottom,
            "data": data,
            "x": x,
            "y": y,
            "height": height,
            "drawn": result,
        })
        return result


def compose_with_spy(composer, model):
    spy = PlacementSpy()
    with patch.object(LayoutEngine, "place_bordered_image", autospec=True, side_effect=spy):
        pdf_bytes = composer.compose(model, generated_at=GENERATED_AT)
    return pdf_bytes, spy.calls


def full_payload(photo_count: int = 0) -> dict:
    return {
        "timestamp": "2026-10-19 07:45",
        "location": "Dock 4",
        "loadId": "BOL-77",
        "poNumber": "PO-1",
        "trailerNumber": "TR-9",
        "stopNumber": "2",
        "carrier": "Acme Freight",
        "vendorId": "V-100",
        "vendorName": "Widget Co",
        "driverName": "Sam Rivera",
        "proNumber": "PRO-5",
        "notes": "Two cartons crushed on pallet 3.",
        "toEmail": "ops@co.com",
        "ccEmail": "lead@co.com",
        "photos": [photo(f"cell-{i:02d}") for i in range(photo_count)],
    }


class TestSections(unittest.TestCase):

    def setUp(self):
        self.composer = DocumentComposer(include_recipients=True)

    def test_plain_submission_is_one_page_without_images(self):
        model = normalize_submission(full_payload())
        pdf_bytes, calls = compose_with_spy(self.composer, model)

        self.assertEqual(calls, [])
        self.assertEqual(pdf_page_count(pdf_bytes), 1)

        text = pdf_page_texts(pdf_bytes)[0]
        for expected in ("Driver Sign-Off", "PO-1", "Dock 4", "Acme Freight", "PRO-5",
                         "Notes / Exceptions", "Two cartons crushed", "ops@co.com"):
            self.assertIn(expected, text)
        self.assertNotIn("Driver Signature", text)
        self.assertNotIn("Photos", text)

    def test_empty_submission_renders_blank_fields(self):
        pdf_bytes, calls = compose_with_spy(self.composer, RenderModel())

        self.assertEqual(calls, [])
        self.assertEqual(pdf_page_count(pdf_bytes), 1)
        text = pdf_page_texts(pdf_bytes)[0]
        self.assertIn("Load ID / BOL #:", text)
        self.assertIn("Vendor Name:", text)
        self.assertNotIn("None", text)

    def test_recipient_section_can_be_disabled(self):
        model = normalize_submission(full_payload())
        pdf_bytes = DocumentComposer(include_recipients=False).compose(model, generated_at=GENERATED_AT)

        text = pdf_page_texts(pdf_bytes)[0]
        self.assertNotIn("Recipients", text)
        self.assertNotIn("ops@co.com", text)

    def test_long_recipient_lists_and_details_wrap_without_loss(self):
        to = [f"receiving.manager{i}@warehouse-example.com" for i in range(6)]
        cc = [f"dock.supervisor{i}@carrier-example.com" for i in range(4)]
        location = "Distribution Center 14, 4500 Industrial Parkway Building C, Springfield"
        payload = dict(full_payload(), toEmail=", ".join(to), ccEmail="; ".join(cc), location=location)

        pdf_bytes = self.composer.compose(normalize_submission(payload), generated_at=GENERATED_AT)
        text = pdf_page_texts(pdf_bytes)[0]

        self.assertNotIn("…", text)
        missing = [address for address in to + cc if address not in text]
        self.assertEqual(missing, [])
        for word in location.split():
            self.assertIn(word.rstrip(","), text)

    def test_wrapped_details_keep_columns_aligned(self):
        payload = dict(full_payload(), location="Distribution Center 14, 4500 Industrial Parkway Building C, Springfield")
        original = LayoutEngine.write_labeled_line
        rows = {}

        def record(engine, label, *args, **kwargs):
            top = engine.y
            lines = original(engine, label, *args, **kwargs)
            rows[label] = (top, engine.y, lines)
            return lines

        with patch.object(LayoutEngine, "write_labeled_line", autospec=True, side_effect=record):
            self.composer.compose(normalize_submission(payload), generated_at=GENERATED_AT)

        self.assertGreater(rows["Location"][2], 1)
        self.assertEqual(rows["Date/Time"][0], rows["Carrier"][0])
        # Next section starts below the taller (left) column
        details_end = max(end for label, (_, end, _) in rows.items() if label not in ("To", "CC", "BCC"))
        self.assertGreaterEqual(rows["To"][0], details_end)
        self.assertGreater(rows["Stop #"][1], rows["PRO #"][1])

    def test_signature_is_drawn(self):
        payload = dict(full_payload(), signatureImage=data_url(png_bytes(300, 100)))
        pdf_bytes, calls = compose_with_spy(self.composer, normalize_submission(payload))

        self.assertEqual(len(calls), 1)
        self.assertTrue(calls[0]["drawn"])
        self.assertIn("Driver Signature", pdf_page_texts(pdf_bytes)[0])

    def test_malformed_signature_renders_empty_box(self):
        payload = dict(full_payload(), signatureImage="data:image/png;base64,%%%")
        pdf_bytes, calls = compose_with_spy(self.composer, normalize_submission(payload))

        self.assertEqual(len(calls), 1)
        self.assertIsNone(calls[0]["data"])
        self.assertFalse(calls[0]["drawn"])
        self.assertIn("Driver Signature", pdf_page_texts(pdf_bytes)[0])

    def test_undrawable_signature_bytes_render_empty_box(self):
        model = RenderModel(signature=DecodedImage("image/png", b"not really a png"), signature_provided=True)
        _, calls = compose_with_spy(self.composer, model)

        self.assertEqual(len(calls), 1)
        self.assertFalse(calls[0]["drawn"])


class TestPhotoGrid(unittest.TestCase):

    def setUp(self):
        self.composer = DocumentComposer(include_recipients=True)

    def test_only_first_twelve_photos_rendered(self):
        model = normalize_submission(full_payload(photo_count=15))
        pdf_bytes, calls = compose_with_spy(self.composer, model)

        self.assertEqual(len(calls), 12)
        text = "\n".join(pdf_page_texts(pdf_bytes))
        self.assertIn("cell-00", text)
        self.assertIn("cell-11", text)
        for dropped in ("cell-12", "cell-13", "cell-14"):
            self.assertNotIn(dropped, text)

    def test_composer_caps_photos_itself(self):
        image = DecodedImage("image/png", png_bytes())
        model = RenderModel(photos=tuple(PhotoEntry(f"p{i}", image) for i in range(20)))
        _, calls = compose_with_spy(self.composer, model)

        self.assertEqual(len(calls), 12)

    def test_three_cells_per_row(self):
        model = normalize_submission(full_payload(photo_count=5))
        _, calls = compose_with_spy(self.composer, model)

        rows = [calls[0:3], calls[3:5]]
        for row in rows:
            self.assertEqual(len({c["y"] for c in row}), 1)
            xs = [c["x"] for c in row]
            self.assertEqual(xs, sorted(xs))
        self.assertEqual(rows[0][0]["x"], rows[1][0]["x"])
        self.assertGreater(rows[1][0]["y"], rows[0][0]["y"])

    def test_undecodable_photo_has_no_cell(self):
        payload = full_payload()
        payload["photos"] = [photo("good-a"), photo("broken", valid=False), photo("good-b")]
        pdf_bytes, calls = compose_with_spy(self.composer, normalize_submission(payload))

        self.assertEqual(len(calls), 2)
        text = pdf_page_texts(pdf_bytes)[0]
        self.assertIn("good-a", text)
        self.assertIn("good-b", text)
        self.assertNotIn("broken", text)

    def test_only_invalid_photos_omit_heading(self):
        payload = full_payload()
        payload["photos"] = [photo("broken", valid=False)]
        pdf_bytes, calls = compose_with_spy(self.composer, normalize_submission(payload))

        self.assertEqual(calls, [])
        self.assertNotIn("Photos", pdf_page_texts(pdf_bytes)[0])

    def test_caption_truncated_to_24_characters(self):
        long_name = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123"
        payload = full_payload()
        payload["photos"] = [{"name": long_name, "image": data_url(png_bytes())}]
        pdf_bytes = self.composer.compose(normalize_submission(payload), generated_at=GENERATED_AT)

        text = pdf_page_texts(pdf_bytes)[0]
        self.assertIn(long_name[:24], text)
        self.assertNotIn(long_name[:25], text)

    def test_fourth_row_moves_to_new_page(self):
        composer = DocumentComposer(include_recipients=False)
        payload = full_payload(photo_count=12)
        payload["notes"] = "Short note."
        pdf_bytes, calls = compose_with_spy(composer, normalize_submission(payload))

        self.assertEqual(len(calls), 12)
        rows = [calls[i:i + 3] for i in range(0, 12, 3)]

        for row in rows[:3]:
            self.assertTrue(all(c["page"] == 0 for c in row))
        for cell in rows[3]:
            self.assertEqual(cell["page"], 1)
            self.assertEqual(cell["y"], cell["top"])

        self.assertEqual(pdf_page_count(pdf_bytes), 2)

    def test_cells_never_cross_bottom_margin(self):
        payload = dict(full_payload(photo_count=12), signatureImage=data_url(png_bytes()))
        payload["notes"] = "\n".join(f"Exception {i}" for i in range(12))
        pdf_bytes, calls = compose_with_spy(self.composer, normalize_submission(payload))

        self.assertEqual(len(calls), 13)
        for cell in calls:
            self.assertGreaterEqual(cell["y"], cell["top"])
            self.assertLessEqual(cell["y"] + cell["height"], cell["bottom"])

        pages = [cell["page"] for cell in calls]
        self.assertEqual(pages, sorted(pages))
        self.assertGreaterEqual(pdf_page_count(pdf_bytes), 2)


class TestRepeatability(unittest.TestCase):

    def test_same_payload_same_visible_content(self):
        payload = dict(full_payload(photo_count=4), signatureImage=data_url(png_bytes(200, 80)))
        composer = DocumentComposer()

        first = composer.compose(normalize_submission(payload), generated_at=datetime(2026, 10, 19, 8, 0))
        second = composer.compose(normalize_submission(payload), generated_at=datetime(2026, 10, 20, 9, 30))

        first_pages = [t.replace("Generated 2026-10-19 08:00", "") for t in pdf_page_texts(first)]
        second_pages = [t.replace("Generated 2026-10-20 09:30", "") for t in pdf_page_texts(second)]
        self.assertEqual(first_pages, second_pages)

    def test_invariant_mode_is_byte_identical(self):
        payload = dict(full_payload(photo_count=2), signatureImage=data_url(png_bytes()))
        composer = DocumentComposer(invariant=True)

        first = composer.compose(normalize_submission(payload), generated_at=GENERATED_AT)
        second = composer.compose(normalize_submission(payload), generated_at=GENERATED_AT)

        self.assertEqual(first, second)


if __name__ == "__main__":
    unittest.main()
