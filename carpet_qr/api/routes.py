#  carpet_qr/api/routes.py

import json
import re
import zipfile
from functools import lru_cache
from io import BytesIO
from urllib.parse import quote

from fastapi import APIRouter, Body, Depends, File, Request, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse

from carpet_qr.api.schemas import (
    BatchRequest,
    BatchResponse,
    EncodedCode,
    EnvelopeResponse,
    IdInfo,
    IndividualProductRecord,
    Kind,
    MainProductRecord,
    QRResultResponse,
    Rejected,
    ResolvedRecord,
    ResolvedReference,
    ScanQuery,
    ScanResponse,
    coerce_record,
)
from carpet_qr.core.config import settings
from carpet_qr.core.errors import CodecError, ReasonCode
from carpet_qr.core.logger import setup_logger
from carpet_qr.services.detection import read_code
from carpet_qr.services.dispatcher import DispatchResult, resolve
from carpet_qr.services.encoder import encode_batch, render_qr_png, render_reference
from carpet_qr.services.envelope import encode_envelope
from carpet_qr.services.id_rules import parse_id
from carpet_qr.services.product_lookup import ProductCatalog

logger = setup_logger(__name__)

router = APIRouter()

REASON_STATUS = {
    ReasonCode.encoding_failure: 400,
    ReasonCode.malformed_json: 400,
    ReasonCode.unsupported_payload: 400,
    ReasonCode.unrecognized_code: 400,
    ReasonCode.invalid_record: 422,
    ReasonCode.reference_resolution_failure: 404,
}


@lru_cache
def get_catalog() -> ProductCatalog:
    return ProductCatalog.from_file()


def error_response(reason: ReasonCode, message: str) -> JSONResponse:
    return JSONResponse(
        {"error": reason.value, "message": message},
        status_code=REASON_STATUS[reason],
    )


def codec_error_response(exc: CodecError) -> JSONResponse:
    return error_response(exc.reason, exc.message)


def attachment(filename: str) -> dict:
    # filename* keeps non-ASCII product names intact
    ascii_fallback = re.sub(r'[^\x00-\x7F]+', '_', filename)
    quoted = quote(filename, safe='')
    return {"Content-Disposition": f'attachment; filename="{ascii_fallback}"; filename*=UTF-8\'\'{quoted}'}


def scanned_ids(result: DispatchResult) -> dict:
    if isinstance(result, ResolvedRecord):
        ids = {"product_id": result.record.product_id}
        if result.kind == Kind.individual:
            ids["individual_item_id"] = result.record.id
    elif isinstance(result, ResolvedReference):
        ids = {"product_id": result.reference.product_id}
        if result.reference.individual_item_id:
            ids["individual_item_id"] = result.reference.individual_item_id
    elif isinstance(result, Rejected):
        ids = {}
    else:
        raise TypeError(f"Unhandled scan result: {result!r}")

    info = {}
    for name, value in ids.items():
        parsed = parse_id(value)
        if parsed:
            info[name] = IdInfo(**parsed)
    return info


def scan_response(raw: str) -> ScanResponse:
    result = resolve(raw)
    return ScanResponse(result=result, id_info=scanned_ids(result))


# ------------------------- Code generation -------------------------
@router.post("/qr/individual", response_model=EncodedCode)
async def individual_product_qr(record: IndividualProductRecord):
    content, image = render_reference(record, Kind.individual)
    return EncodedCode(kind=Kind.individual, content=content, image=image)


@router.post("/qr/main", response_model=EncodedCode)
async def main_product_qr(record: MainProductRecord):
    content, image = render_reference(record, Kind.main)
    return EncodedCode(kind=Kind.main, content=content, image=image)


@router.post("/qr/{kind}/png")
async def download_product_qr(kind: Kind, record: dict = Body(...)):
    record = coerce_record(record, kind)
    png = render_reference(record, kind, renderer=render_qr_png)[1]

    if kind == Kind.individual:
        filename = f"individual_product_{record.serial_number}_qr.png"
    else:
        name = re.sub(r"\s+", "_", record.product_name)
        filename = f"main_product_{name}_qr.png"

    return StreamingResponse(BytesIO(png), media_type="image/png", headers=attachment(filename))


@router.post("/envelope/{kind}", response_model=EnvelopeResponse)
async def export_envelope(kind: Kind, record: dict = Body(...)):
    return EnvelopeResponse(kind=kind, envelope=encode_envelope(kind, record))


@router.post("/qr/batch")
async def batch_qr(payload: BatchRequest):
    if not payload.download_zip:
        return BatchResponse(images=encode_batch(payload.items))

    pngs = encode_batch(payload.items, renderer=render_qr_png)

    zip_buffer = BytesIO()
    with zipfile.ZipFile(zip_buffer, "w", zipfile.ZIP_DEFLATED) as zipf:
        for i, png in enumerate(pngs):
            zipf.writestr(f"qr_{i}.png", png)
        zipf.writestr("codes.json", json.dumps(payload.items, indent=4, ensure_ascii=False))
    zip_buffer.seek(0)

    return StreamingResponse(
        zip_buffer,
        media_type="application/zip",
        headers=attachment("batch_qr_codes.zip"),
    )


# ------------------------- Scanning -------------------------
@router.post("/scan/text", response_model=ScanResponse)
async def scan_text(payload: ScanQuery):
    return scan_response(payload.code)


@router.post("/scan/image", response_model=ScanResponse)
async def scan_image(file: UploadFile = File(...)):
    contents = await file.read()
    raw = read_code(contents)
    if raw is None:
        logger.info(f"No QR code found in {file.filename}")
        return ScanResponse(code_found=False)
    return scan_response(raw)


@router.get(settings.RESULT_PATH, response_model=QRResultResponse)
async def qr_result(request: Request, catalog: ProductCatalog = Depends(get_catalog)):
    if "data" not in request.query_params:
        return error_response(ReasonCode.unrecognized_code, "No QR code data found")

    result = resolve(str(request.url))
    if isinstance(result, Rejected):
        return error_response(result.reason, result.message)
    if not isinstance(result, ResolvedReference):
        return error_response(ReasonCode.unrecognized_code, "QR code is not a product link")

    product, individual_product = catalog.resolve_reference(result.reference)
    return QRResultResponse(
        kind=result.kind, product=product, individual_product=individual_product
    )
