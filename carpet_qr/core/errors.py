#carpet_qr\core\errors.py
from enum import Enum


class ReasonCode(str, Enum):
    encoding_failure = "EncodingFailure"
    malformed_json = "MalformedJSON"
    unsupported_payload = "UnsupportedPayload"
    unrecognized_code = "UnrecognizedCode"
    invalid_record = "InvalidRecord"
    reference_resolution_failure = "ReferenceResolutionFailure"


# user-facing text shown by scan handlers
REASON_MESSAGES = {
    ReasonCode.encoding_failure: "Failed to generate QR code",
    ReasonCode.malformed_json: "Invalid QR code data format",
    ReasonCode.unsupported_payload: "This QR code is not a valid product QR code",
    ReasonCode.unrecognized_code: "Unable to parse QR code data",
    ReasonCode.invalid_record: "QR code data does not match the product format",
    ReasonCode.reference_resolution_failure: "Product referenced by this QR code was not found",
}


class CodecError(Exception):
    reason: ReasonCode = ReasonCode.unrecognized_code

    def __init__(self, message: str = None):
        self.message = message or REASON_MESSAGES[self.reason]
        super().__init__(self.message)


class EncodingFailure(CodecError):
    reason = ReasonCode.encoding_failure


class MalformedJSON(CodecError):
    reason = ReasonCode.malformed_json


class UnsupportedPayload(CodecError):
    reason = ReasonCode.unsupported_payload


class UnrecognizedCode(CodecError):
    reason = ReasonCode.unrecognized_code


class InvalidRecord(CodecError):
    reason = ReasonCode.invalid_record


class ReferenceResolutionFailure(CodecError):
    """Raised by the record lookup, never by the codec itself."""
    reason = ReasonCode.reference_resolution_failure
