"""
DocuFlow Image Decoder

Turns encoded-image fields (``<descriptor>;base64,<payload>``, typically a
browser data URL such as ``data:image/png;base64,iVBOR...``) into raw bytes.

Malformed input is not an error: callers receive ``None`` and simply skip
the visual element.
"""

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)

ENCODED_IMAGE_PATTERN = re.compile(
    r"^\s*(?P<descriptor>[^;,]+);base64,(?P<payload>.*?)\s*$",
    re.DOTALL
)


@dataclass(frozen=True)
class DecodedImage:
    """Raw image bytes plus the mime type announced by the descriptor."""
    mime_type: str
    data: bytes


def decode_image(value: Any) -> Optional[DecodedImage]:
    """
    Decode an encoded-image field.
    
    Args:
        value: Candidate field value from the submission payload
        
    Returns:
        DecodedImage, or None when the value is absent, not a string,
        structurally wrong, not valid base64 or decodes to nothing
    """
    if not isinstance(value, str) or not value.strip():
        return None
    
    match = ENCODED_IMAGE_PATTERN.match(value)
    if not match:
        logger.debug("Encoded image does not match '<descriptor>;base64,<payload>'")
        return None
    
    # Browsers may wrap long payloads; base64 itself has no whitespace
    payload = re.sub(r"\s+", "", match.group("payload"))
    
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        logger.debug(f"Invalid base64 image payload: {e}")
        return None
    
    if not data:
        return None
    
    descriptor = match.group("descriptor").strip()
    mime_type = descriptor[5:] if descriptor.lower().startswith("data:") else descriptor
    
    return DecodedImage(mime_type=mime_type.lower(), data=data)
