from datetime import date

import pytest

from carpet_qr.services.id_rules import format_id, parse_id, type_description


@pytest.mark.parametrize(
    "id_value,expected",
    [
        ("PRO-250314-007", {"prefix": "PRO", "type": "Product", "date": "2025-03-14", "sequence": 7}),
        ("IPD-241231-120", {"prefix": "IPD", "type": "Individual Product", "date": "2024-12-31", "sequence": 120}),
        ("RECMAT-250101-001", {"prefix": "RECMAT", "type": "Recipe Material", "date": "2025-01-01", "sequence": 1}),
        ("XYZ-250101-002", {"prefix": "XYZ", "type": "XYZ", "date": "2025-01-01", "sequence": 2}),
        ("CUST-012", {"prefix": "CUST", "type": "Customer", "date": None, "sequence": 12}),
        (" QR-250320-001 ", {"prefix": "QR", "type": "QR Code", "date": "2025-03-20", "sequence": 1}),
    ],
)
def test_parse_id(id_value, expected):
    assert parse_id(id_value) == expected


@pytest.mark.parametrize(
    "id_value",
    ["", None, "P-100", "PRO-2503-007", "pro-250314-007", "PRO-251399-001", "PRO-250314-0007"],
)
def test_parse_id_rejects_other_formats(id_value):
    assert parse_id(id_value) is None


@pytest.mark.parametrize(
    "id_value,expected",
    [
        ("RM-250101-003", "Raw Material"),
        ("RECIPE-250101-003", "Recipe"),
        ("ABC-1", "ABC"),
        ("p-100", "Unknown"),
        ("", "Unknown"),
    ],
)
def test_type_description(id_value, expected):
    assert type_description(id_value) == expected


def test_format_id():
    assert format_id("ipd", 4, on=date(2025, 1, 15)) == "IPD-250115-004"
    assert format_id("CUST", 7) == "CUST-007"
    assert parse_id(format_id("PRO", 42, on=date(2026, 10, 19)))["date"] == "2026-10-19"
