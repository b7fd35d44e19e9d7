import io
import json
import zipfile
from urllib.parse import parse_qs, urlsplit

import pytest
from fastapi.testclient import TestClient

from conftest import individual_product_data, main_product_data

from carpet_qr.api.routes import get_catalog
from carpet_qr.api.schemas import IndividualProductRecord, Kind, MainProductRecord
from carpet_qr.main import app
from carpet_qr.services.encoder import encode_reference, render_qr_png
from carpet_qr.services.envelope import encode_envelope
from carpet_qr.services.product_lookup import ProductCatalog


@pytest.fixture
def catalog():
    return ProductCatalog(
        products=[MainProductRecord.model_validate(main_product_data("PRO-250110-001"))],
        individual_products=[
            IndividualProductRecord.model_validate(
                individual_product_data("IPD-250115-004", "PRO-250110-001")
            )
        ],
    )


@pytest.fixture
def client(catalog):
    app.dependency_overrides[get_catalog] = lambda: catalog
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_main_product_qr(client):
    response = client.post("/qr/main", json=main_product_data())
    assert response.status_code == 200

    body = response.json()
    assert body["kind"] == "main"
    assert body["image"].startswith("data:image/png;base64,")
    data = json.loads(parse_qs(urlsplit(body["content"]).query)["data"][0])
    assert data == {"kind": "main", "productId": "P-100"}


def test_individual_product_qr(client):
    response = client.post("/qr/individual", json=individual_product_data())
    assert response.status_code == 200
    assert "individualItemId" in parse_qs(urlsplit(response.json()["content"]).query)["data"][0]


def test_product_qr_validates_body(client):
    data = individual_product_data()
    del data["id"]
    assert client.post("/qr/individual", json=data).status_code == 422


def test_download_png(client):
    response = client.post("/qr/individual/png", json=individual_product_data())

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert "individual_product_QR-250115-004_qr.png" in response.headers["content-disposition"]
    assert response.content.startswith(b"\x89PNG")


def test_download_png_with_wrong_shape(client):
    response = client.post("/qr/individual/png", json=main_product_data())

    assert response.status_code == 400
    assert response.json()["error"] == "EncodingFailure"


def test_export_envelope(client):
    response = client.post("/envelope/main", json=main_product_data())
    assert response.status_code == 200

    envelope = json.loads(response.json()["envelope"])
    assert envelope["type"] == "main_product"
    assert envelope["data"]["product_id"] == "P-100"


def test_batch_images_in_order(client):
    response = client.post("/qr/batch", json={"items": ["a", "b", "c"]})
    assert response.status_code == 200
    assert len(response.json()["images"]) == 3


def test_batch_zip(client):
    response = client.post("/qr/batch", json={"items": ["a", "b"], "download_zip": True})
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/zip"

    with zipfile.ZipFile(io.BytesIO(response.content)) as zipf:
        assert sorted(zipf.namelist()) == ["codes.json", "qr_0.png", "qr_1.png"]
        assert json.loads(zipf.read("codes.json")) == ["a", "b"]


def test_batch_failure_rejects_whole_batch(client):
    response = client.post("/qr/batch", json={"items": ["a", "x" * 5000]})
    assert response.status_code == 400
    assert "Batch item 1" in response.json()["message"]


def test_scan_text_envelope(client):
    raw = encode_envelope(Kind.main, main_product_data("PRO-250110-001"))
    body = client.post("/scan/text", json={"code": raw}).json()

    assert body["code_found"] is True
    assert body["result"]["outcome"] == "record"
    assert body["result"]["kind"] == "main"
    assert body["result"]["record"]["product_id"] == "PRO-250110-001"
    assert body["id_info"]["product_id"]["date"] == "2025-01-10"


def test_scan_text_reference(client):
    record = individual_product_data("IPD-250115-004", "PRO-250110-001")
    body = client.post("/scan/text", json={"code": encode_reference(record, Kind.individual)}).json()

    assert body["result"]["outcome"] == "reference"
    assert body["result"]["reference"] == {
        "kind": "individual",
        "productId": "PRO-250110-001",
        "individualItemId": "IPD-250115-004",
    }
    assert body["id_info"]["individual_item_id"]["type"] == "Individual Product"


def test_scan_text_rejected(client):
    raw = '{"type":"vehicle_product","data":{},"timestamp":"2024-01-01T00:00:00Z"}'
    response = client.post("/scan/text", json={"code": raw})

    assert response.status_code == 200
    body = response.json()
    assert body["result"]["outcome"] == "rejected"
    assert body["result"]["reason"] == "UnsupportedPayload"
    assert body["id_info"] == {}


def test_scan_image_without_code(client):
    response = client.post("/scan/image", files={"file": ("label.png", b"not an image", "image/png")})

    assert response.status_code == 200
    assert response.json()["code_found"] is False
    assert response.json()["result"] is None


def test_qr_result_main(client, catalog):
    link = encode_reference(catalog.products["PRO-250110-001"], Kind.main)
    response = client.get(link[link.index("/qr-result"):])

    assert response.status_code == 200
    body = response.json()
    assert body["kind"] == "main"
    assert body["product"]["product_id"] == "PRO-250110-001"
    assert body["individual_product"] is None


def test_qr_result_individual(client, catalog):
    link = encode_reference(catalog.individual_products["IPD-250115-004"], Kind.individual)
    body = client.get(link[link.index("/qr-result"):]).json()

    assert body["kind"] == "individual"
    assert body["individual_product"]["serial_number"] == "QR-250115-004"
    assert body["product"]["product_id"] == "PRO-250110-001"


def test_qr_result_unknown_product(client):
    link = encode_reference(main_product_data("PRO-250110-999"), Kind.main)
    response = client.get(link[link.index("/qr-result"):])

    assert response.status_code == 404
    assert response.json()["error"] == "ReferenceResolutionFailure"


@pytest.mark.parametrize(
    "path,reason",
    [
        ("/qr-result", "UnrecognizedCode"),
        ("/qr-result?data=%7Bnot-json", "MalformedJSON"),
        ("/qr-result?data=%7B%22kind%22%3A%22vehicle%22%7D", "UnrecognizedCode"),
    ],
)
def test_qr_result_bad_links(client, path, reason):
    response = client.get(path)

    assert response.status_code == 400
    assert response.json()["error"] == reason


def test_scan_image_with_reference(client, catalog):
    link = encode_reference(catalog.products["PRO-250110-001"], Kind.main)
    png = render_qr_png(link, 256)

    response = client.post("/scan/image", files={"file": ("label.png", png, "image/png")})

    assert response.status_code == 200
    body = response.json()
    assert body["code_found"] is True
    assert body["result"]["outcome"] == "reference"
    assert body["result"]["reference"]["productId"] == "PRO-250110-001"
