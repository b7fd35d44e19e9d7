#  File: carpet_qr/services/dispatcher.py

import json
from typing import Optional, Union
from urllib.parse import parse_qs, urlsplit

from pydantic import ValidationError

from carpet_qr.api.schemas import (
    KIND_BY_ENVELOPE_TYPE,
    RECORD_MODEL_BY_KIND,
    Kind,
    ReferencePayload,
    Rejected,
    ResolvedRecord,
    ResolvedReference,
    TransferEnvelope,
)
from carpet_qr.core.config import settings
from carpet_qr.core.errors import (
    REASON_MESSAGES,
    CodecError,
    InvalidRecord,
    MalformedJSON,
    ReasonCode,
    UnrecognizedCode,
    UnsupportedPayload,
)
from carpet_qr.core.logger import setup_logger
from carpet_qr.services.envelope import decode_envelope

logger = setup_logger(__name__)

DispatchResult = Union[ResolvedRecord, ResolvedReference, Rejected]


def reject(reason: ReasonCode, message: Optional[str] = None) -> Rejected:
    return Rejected(reason=reason, message=message or REASON_MESSAGES[reason])


def record_from_envelope(envelope: TransferEnvelope) -> ResolvedRecord:
    kind = KIND_BY_ENVELOPE_TYPE.get(envelope.type)
    if kind is None:
        raise UnsupportedPayload(f"Unsupported payload type: {envelope.type}")

    try:
        record = RECORD_MODEL_BY_KIND[kind].model_validate(envelope.data)
    except ValidationError as e:
        raise InvalidRecord(
            f"{envelope.type} data is invalid: {e.error_count()} field error(s)"
        ) from e
    return ResolvedRecord(kind=kind, record=record)


KIND_MESSAGE = "Reference data does not name a known product kind"
PRODUCT_ID_MESSAGE = "Reference data has no valid product id"
ITEM_ID_MESSAGE = "Reference data has an invalid item id"

# errors are located by whichever key the payload used
REFERENCE_FIELD_MESSAGES = {
    "kind": KIND_MESSAGE,
    "type": KIND_MESSAGE,
    "productId": PRODUCT_ID_MESSAGE,
    "product_id": PRODUCT_ID_MESSAGE,
    "individualItemId": ITEM_ID_MESSAGE,
    "individualProductId": ITEM_ID_MESSAGE,
}


def reference_error_message(error: ValidationError) -> str:
    loc = error.errors()[0]["loc"]
    field = loc[0] if loc else None
    return REFERENCE_FIELD_MESSAGES.get(field, "Reference data is invalid")


def reference_from_url(raw: str) -> Optional[ResolvedReference]:
    """
    Decode a reference link. Returns None when `raw` is not a link to the
    result page at all; raises when it is one but its payload is bad.
    """
    try:
        parts = urlsplit(raw.strip())
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return None
    if parts.path.rstrip("/") != settings.RESULT_PATH.rstrip("/"):
        return None

    values = parse_qs(parts.query).get("data")
    if not values:
        raise UnrecognizedCode("Reference link carries no product data")

    try:
        body = json.loads(values[0])
    except (ValueError, RecursionError) as e:
        raise MalformedJSON() from e
    if not isinstance(body, dict):
        raise UnrecognizedCode("Reference data is not a JSON object")

    try:
        reference = ReferencePayload.model_validate(body)
    except ValidationError as e:
        raise UnrecognizedCode(reference_error_message(e)) from e

    if reference.kind == Kind.individual and not reference.individual_item_id:
        raise UnrecognizedCode("Individual product reference has no item id")
    if reference.kind == Kind.main and reference.individual_item_id:
        reference = reference.model_copy(update={"individual_item_id": None})

    return ResolvedReference(kind=reference.kind, reference=reference)


def looks_like_json(raw: str) -> bool:
    return raw.lstrip().startswith(("{", "["))


def resolve(raw: str) -> DispatchResult:
    """
    Classify a scanned string and return what it carries.

    Envelopes are tried first; an envelope with an unknown type is rejected
    outright rather than retried as a link.
    """
    if not isinstance(raw, str) or not raw.strip():
        return reject(ReasonCode.unrecognized_code)

    try:
        envelope = decode_envelope(raw)
        if envelope is not None:
            result = record_from_envelope(envelope)
            logger.info(f"Scanned {result.kind.value} product envelope for {result.record.product_id}")
            return result

        reference = reference_from_url(raw)
        if reference is not None:
            logger.info(f"Scanned {reference.kind.value} reference for {reference.reference.product_id}")
            return reference
    except CodecError as e:
        logger.warning(f"Rejected scan ({e.reason.value}): {e.message}")
        return reject(e.reason, e.message)

    if looks_like_json(raw):
        try:
            json.loads(raw)
        except (ValueError, RecursionError):
            logger.warning("Rejected scan (MalformedJSON): unparseable JSON")
            return reject(ReasonCode.malformed_json)

    logger.warning("Rejected scan (UnrecognizedCode)")
    return reject(ReasonCode.unrecognized_code)
