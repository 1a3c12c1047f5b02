"""
DocuFlow Payload Normalizer

Validates and defaults an incoming sign-off submission:
- Scalar fields become plain strings ('' when absent)
- Encoded images are decoded (failures become "no image")
- Recipient strings are split into ordered address lists

The raw payload is never modified; everything downstream reads the
resulting RenderModel.
"""

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from ..config_loader import config
from ..errors import MalformedPayload
from .decoder import DecodedImage, decode_image

logger = logging.getLogger(__name__)

ADDRESS_SEPARATORS = re.compile(r"[,;\s]+")

# Payload key -> RenderModel attribute
SCALAR_FIELDS = {
    'timestamp': 'timestamp',
    'location': 'location',
    'loadId': 'load_id',
    'poNumber': 'po_number',
    'trailerNumber': 'trailer_number',
    'stopNumber': 'stop_number',
    'carrier': 'carrier',
    'vendorId': 'vendor_id',
    'vendorName': 'vendor_name',
    'driverName': 'driver_name',
    'proNumber': 'pro_number',
    'notes': 'notes',
}


@dataclass(frozen=True)
class PhotoEntry:
    """A photo that decoded successfully, ready for the grid."""
    name: str
    image: DecodedImage


@dataclass(frozen=True)
class RenderModel:
    """Normalized, decoded submission consumed read-only by the composer."""
    timestamp: str = ""
    location: str = ""
    load_id: str = ""
    po_number: str = ""
    trailer_number: str = ""
    stop_number: str = ""
    carrier: str = ""
    vendor_id: str = ""
    vendor_name: str = ""
    driver_name: str = ""
    pro_number: str = ""
    notes: str = ""
    signature: Optional[DecodedImage] = None
    signature_provided: bool = False
    photos: Tuple[PhotoEntry, ...] = ()
    photos_received: int = 0
    to: Tuple[str, ...] = ()
    cc: Tuple[str, ...] = ()
    bcc: Tuple[str, ...] = ()
    subject: str = ""
    message: str = ""

    @property
    def recipients(self) -> List[str]:
        """Every destination address, in To/CC/BCC order."""
        return list(self.to) + list(self.cc) + list(self.bcc)


def parse_address_list(value: Any) -> List[str]:
    """
    Split a recipient field into addresses.
    
    Splits on any run of commas, semicolons or whitespace, drops empty
    tokens and keeps the original order. Duplicates are kept.
    
    Args:
        value: String (or list of strings) from the payload
        
    Returns:
        Ordered list of address tokens
        
    Examples:
        >>> parse_address_list(" a@x.com, b@y.com ; c@z.com")
        ['a@x.com', 'b@y.com', 'c@z.com']
    """
    if value is None:
        return []
    
    if isinstance(value, (list, tuple)):
        addresses = []
        for item in value:
            addresses.extend(parse_address_list(item))
        return addresses
    
    return [token for token in ADDRESS_SEPARATORS.split(str(value)) if token]


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return str(value).strip()


def _decode_photos(raw_photos: Any, max_photos: int) -> Tuple[List[PhotoEntry], int]:
    if not isinstance(raw_photos, (list, tuple)):
        return [], 0
    
    photos = []
    for index, raw in enumerate(raw_photos[:max_photos]):
        if not isinstance(raw, Mapping):
            logger.debug(f"Skipping photo {index}: not an object")
            continue
        
        image = decode_image(raw.get('image'))
        if image is None:
            logger.info(f"Skipping photo {index}: image could not be decoded")
            continue
        
        photos.append(PhotoEntry(name=_text(raw.get('name')), image=image))
    
    if len(raw_photos) > max_photos:
        logger.info(
            f"Received {len(raw_photos)} photos, only the first {max_photos} are rendered"
        )
    
    return photos, len(raw_photos)


def default_subject(po_number: str) -> str:
    prefix = config.get('mail.subject_prefix', 'OSD Sign-Off')
    return f"{prefix} – {po_number}" if po_number else prefix


def normalize_submission(
    payload: Any,
    default_recipient: Optional[str] = None,
    max_photos: Optional[int] = None
) -> RenderModel:
    """
    Build a RenderModel from a raw submission.
    
    Args:
        payload: Decoded JSON request body
        default_recipient: Address list used when the payload has no toEmail
        max_photos: Photo cap (defaults to document.photos.max_photos)
        
    Returns:
        RenderModel with defaulted strings, decoded images and address lists
        
    Raises:
        MalformedPayload: If payload is not a JSON object
    """
    if not isinstance(payload, Mapping):
        raise MalformedPayload("Request body must be a JSON object")
    
    if max_photos is None:
        max_photos = config.get('document.photos.max_photos', 12)
    
    fields = {attr: _text(payload.get(key)) for key, attr in SCALAR_FIELDS.items()}
    
    raw_signature = payload.get('signatureImage')
    signature = decode_image(raw_signature)
    signature_provided = isinstance(raw_signature, str) and bool(raw_signature.strip())
    if signature_provided and signature is None:
        logger.info("Signature image could not be decoded, rendering an empty box")
    
    photos, photos_received = _decode_photos(payload.get('photos'), max_photos)
    
    to = parse_address_list(payload.get('toEmail'))
    if not to:
        to = parse_address_list(default_recipient)
    
    subject = _text(payload.get('subject')) or default_subject(fields['po_number'])
    message = _text(payload.get('message')) or config.get(
        'mail.default_message', 'Attached: OSD sign-off PDF.'
    )
    
    model = RenderModel(
        signature=signature,
        signature_provided=signature_provided,
        photos=tuple(photos),
        photos_received=photos_received,
        to=tuple(to),
        cc=tuple(parse_address_list(payload.get('ccEmail'))),
        bcc=tuple(parse_address_list(payload.get('bccEmail'))),
        subject=subject,
        message=message,
        **fields
    )
    
    logger.debug(
        f"Normalized submission: po={model.po_number!r}, photos={len(model.photos)}/"
        f"{photos_received}, signature={model.signature is not None}, "
        f"recipients={len(model.recipients)}"
    )
    
    return model
