"""
Shared test builders: images, encoded-image fields, PDF inspection and a
mail transport that records instead of sending.
"""

import base64
import io
import sys
from pathlib import Path
from typing import List

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from PIL import Image
from PyPDF2 import PdfReader


def png_bytes(width: int = 40, height: int = 30, color=(200, 30, 30), mode: str = "RGB") -> bytes:
    """Small solid-colour PNG."""
    if mode == "RGBA":
        color = tuple(color) + (128,)
    img = Image.new(mode, (width, height), color)
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def data_url(data: bytes, mime: str = "image/png") -> str:
    """Encoded-image field as a browser would send it."""
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def photo(name: str, valid: bool = True) -> dict:
    image = data_url(png_bytes()) if valid else "data:image/png;base64,@@not-base64@@"
    return {"name": name, "image": image}


def pdf_page_texts(pdf_bytes: bytes) -> List[str]:
    """Extracted text of every page."""
    reader = PdfReader(io.BytesIO(pdf_bytes))
    return [page.extract_text() or "" for page in reader.pages]


def pdf_page_count(pdf_bytes: bytes) -> int:
    return len(PdfReader(io.BytesIO(pdf_bytes)).pages)


class RecordingMailer:
    """Mail transport that keeps sent messages in memory."""

    name = "recording"

    def __init__(self):
        self.sent = []

    def send(self, mail) -> str:
        self.sent.append(mail)
        return f"<recorded-{len(self.sent)}@test>"
