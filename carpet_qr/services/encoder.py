#  File: carpet_qr/services/encoder.py

import base64
import json
from io import BytesIO
from typing import Callable, List, Optional, Tuple, Union
from urllib.parse import quote

import qrcode
from qrcode.constants import ERROR_CORRECT_H, ERROR_CORRECT_L, ERROR_CORRECT_M, ERROR_CORRECT_Q
from qrcode.exceptions import DataOverflowError
from PIL import Image

from carpet_qr.api.schemas import Kind, ReferencePayload, Scheme, coerce_record
from carpet_qr.core.config import settings
from carpet_qr.core.errors import EncodingFailure
from carpet_qr.core.logger import setup_logger
from carpet_qr.services.envelope import encode_envelope

logger = setup_logger(__name__)

ERROR_CORRECTION_LEVELS = {
    "L": ERROR_CORRECT_L,
    "M": ERROR_CORRECT_M,
    "Q": ERROR_CORRECT_Q,
    "H": ERROR_CORRECT_H,
}

# encodeURIComponent leaves these unescaped
URI_COMPONENT_SAFE = "-_.!~*'()"

Renderer = Callable[[str, int], Union[str, bytes]]


def reference_url(payload: ReferencePayload, base_url: Optional[str] = None) -> str:
    base = (base_url or settings.BASE_URL).rstrip("/")
    body = json.dumps(
        payload.model_dump(by_alias=True, exclude_none=True, mode="json"),
        separators=(",", ":"),
    )
    return f"{base}{settings.RESULT_PATH}?data={quote(body, safe=URI_COMPONENT_SAFE)}"


def encode_reference(record, kind: Kind, base_url: Optional[str] = None) -> str:
    """
    Build the reference link printed on a product label.

    Only the ids travel in the link; the full record is looked up by whoever
    opens it. The individual item id is omitted for catalog products.
    """
    record = coerce_record(record, kind)
    kind = Kind(kind)

    if kind == Kind.individual:
        payload = ReferencePayload(
            kind=kind, product_id=record.product_id, individual_item_id=record.id
        )
    else:
        payload = ReferencePayload(kind=kind, product_id=record.product_id)

    return reference_url(payload, base_url)


def encode(record, kind: Kind, scheme: Scheme) -> str:
    try:
        scheme = Scheme(scheme)
    except ValueError as e:
        raise EncodingFailure(f"Unknown encoding scheme: {scheme}") from e

    if scheme == Scheme.reference:
        return encode_reference(record, kind)
    return encode_envelope(kind, record)


# ------------------------- Rendering -------------------------
def render_qr_png(text: str, width: Optional[int] = None) -> bytes:
    """Render `text` as a square PNG exactly `width` pixels wide."""
    width = width or settings.QR_WIDTH
    if not text:
        raise EncodingFailure("Cannot render an empty QR code")

    try:
        qr = qrcode.QRCode(
            error_correction=ERROR_CORRECTION_LEVELS[settings.QR_ERROR_CORRECTION.upper()],
            border=settings.QR_MARGIN,
        )
        qr.add_data(text)
        qr.make(fit=True)
    except (DataOverflowError, ValueError) as e:
        logger.error(f"QR renderer rejected {len(text)} chars: {e}")
        raise EncodingFailure(f"Text does not fit in a QR code: {e}") from e

    # whole pixels per module, then scale to the exact width
    qr.box_size = max(1, width // (qr.modules_count + 2 * qr.border))
    img = qr.make_image(
        fill_color=settings.QR_DARK_COLOR,
        back_color=settings.QR_LIGHT_COLOR,
    ).get_image().convert("RGB")
    if img.size != (width, width):
        img = img.resize((width, width), Image.NEAREST)

    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def render_qr(text: str, width: Optional[int] = None) -> str:
    png = render_qr_png(text, width)
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")


def render_reference(record, kind: Kind, renderer: Renderer = render_qr) -> Tuple[str, str]:
    """Encode `record` as a reference link and render it. Returns (content, image)."""
    content = encode_reference(record, kind)
    image = renderer(content, settings.QR_WIDTH)
    logger.debug(f"Rendered {Kind(kind).value} QR for {content}")
    return content, image


def encode_batch(items: List[str], renderer: Renderer = render_qr) -> list:
    """
    Render each string independently at the batch width, keeping input order.

    All-or-nothing: the first failing item aborts the batch.
    """
    images = []
    for i, item in enumerate(items):
        try:
            images.append(renderer(item, settings.BATCH_QR_WIDTH))
        except EncodingFailure as e:
            raise EncodingFailure(f"Batch item {i} failed: {e.message}") from e
    return images
