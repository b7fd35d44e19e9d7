#  File: carpet_qr/services/envelope.py

import json
from datetime import datetime, timezone
from typing import Optional

from carpet_qr.api.schemas import ENVELOPE_TYPE_BY_KIND, Kind, TransferEnvelope, coerce_record
from carpet_qr.core.logger import setup_logger

logger = setup_logger(__name__)

ENVELOPE_FIELDS = ("type", "data", "timestamp")


def iso_timestamp(now: Optional[datetime] = None) -> str:
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def encode_envelope(kind: Kind, record, now: Optional[datetime] = None) -> str:
    """Wrap the full record in a self-describing envelope for clipboard export."""
    record = coerce_record(record, kind)
    envelope = {
        "type": ENVELOPE_TYPE_BY_KIND[Kind(kind)].value,
        "data": record.model_dump(mode="json", exclude_none=True),
        "timestamp": iso_timestamp(now),
    }
    return json.dumps(envelope, ensure_ascii=False)


def is_present(value) -> bool:
    # JSON truthiness: {} and [] are present
    return isinstance(value, (dict, list)) or bool(value)


def decode_envelope(raw: str) -> Optional[TransferEnvelope]:
    """
    Best-effort probe for a transfer envelope.

    Returns None when `raw` is not a JSON object or lacks a non-empty
    type, data or timestamp. The type tag is not checked here.
    """
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError, RecursionError):
        return None

    if not isinstance(parsed, dict):
        return None
    if not all(is_present(parsed.get(field)) for field in ENVELOPE_FIELDS):
        logger.debug(f"JSON object is missing envelope fields: {sorted(parsed)}")
        return None
    if not isinstance(parsed["type"], str) or not isinstance(parsed["timestamp"], str):
        return None

    return TransferEnvelope(
        type=parsed["type"], data=parsed["data"], timestamp=parsed["timestamp"]
    )
