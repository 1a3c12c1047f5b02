"""
DocuFlow Vision Module

Prepares decoded photos and signatures for embedding:
- EXIF orientation (phone cameras store rotation as metadata)
- Transparency flattened onto white
- RGB conversion
- Downscaling to keep e-mailed PDFs small

All functions are pure and configurable via parameters.
"""

import io
import logging
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from ..config_loader import config

logger = logging.getLogger(__name__)


def prepare_image(data: bytes, max_dimension: Optional[int] = None) -> Image.Image:
    """
    Open raw image bytes and normalize them for PDF embedding.
    
    Args:
        data: Raw image bytes (PNG, JPEG, ...)
        max_dimension: Longest allowed side in pixels. If None, uses config value.
        
    Returns:
        RGB PIL image, upright and within max_dimension
        
    Raises:
        ValueError: If the bytes are not a readable image
    """
    max_dimension = max_dimension or config.get('image_processing.max_dimension', 1600)
    
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Unreadable image data: {e}") from e
    
    img = ImageOps.exif_transpose(img)
    img = _flatten(img)
    
    if max(img.size) > max_dimension:
        original = img.size
        img.thumbnail((max_dimension, max_dimension), Image.LANCZOS)
        logger.debug(f"Downscaled image {original} -> {img.size}")
    
    return img


def _flatten(img: Image.Image) -> Image.Image:
    """
    Convert to RGB, painting transparent areas white.
    
    Signature pads export transparent PNGs; a black background would hide
    the strokes.
    """
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[-1])
        return background
    
    if img.mode != "RGB":
        return img.convert("RGB")
    
    return img


def fit_within(
    image_width: float,
    image_height: float,
    box_width: float,
    box_height: float
) -> tuple:
    """
    Scale dimensions to fit a box while preserving aspect ratio.
    
    Returns:
        (width, height, x_offset, y_offset) with offsets centring the result
    """
    scale = min(box_width / image_width, box_height / image_height)
    width = image_width * scale
    height = image_height * scale
    return width, height, (box_width - width) / 2, (box_height - height) / 2
