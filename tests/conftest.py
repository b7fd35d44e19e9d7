import pytest

from carpet_qr.api.schemas import IndividualProductRecord, MainProductRecord


def main_product_data(product_id="P-100"):
    return {
        "product_id": product_id,
        "product_name": "Kashan Wool Rug",
        "description": "Dense-pile wool rug",
        "category": "Rugs",
        "base_price": 320.5,
        "total_quantity": 40,
        "available_quantity": 25,
        "recipe": {
            "materials": [
                {"material_id": "RM-250101-001", "material_name": "Wool Yarn", "quantity": 5.0, "unit": "kg"},
                {"material_id": "RM-250101-002", "material_name": "Latex", "quantity": 1.5, "unit": "litre"},
            ],
            "production_time": 36,
            "difficulty_level": "medium",
        },
        "machines_required": ["Tufting Machine"],
        "production_steps": ["Tufting", "Backing", "Inspection"],
        "quality_standards": {
            "min_weight": 7.5,
            "max_weight": 9.0,
            "dimensions_tolerance": 1.5,
            "quality_criteria": ["Even pile height"],
        },
        "created_at": "2025-01-10T08:00:00.000Z",
        "updated_at": "2025-02-01T12:00:00.000Z",
    }


def individual_product_data(item_id="IPD-250115-004", product_id="P-100"):
    return {
        "id": item_id,
        "product_id": product_id,
        "product_name": "Kashan Wool Rug",
        "batch_id": "BATCH-250115-02",
        "serial_number": "QR-250115-004",
        "production_date": "2025-01-15",
        "quality_grade": "A",
        "dimensions": {"length": 2.0, "width": 1.4},
        "weight": 8.1,
        "color": "Navy",
        "pattern": "Floral",
        "material_composition": ["Wool Yarn", "Latex"],
        "production_steps": [
            {"step_name": "Tufting", "completed_at": "2025-01-14T10:00:00.000Z", "operator": "S. Rao", "quality_check": True},
            {"step_name": "Backing", "completed_at": "2025-01-15T09:30:00.000Z", "operator": "S. Rao", "quality_check": False},
        ],
        "machine_used": ["Tufting Machine"],
        "inspector": "K. Iyer",
        "status": "active",
        "created_at": "2025-01-15T17:00:00.000Z",
    }


@pytest.fixture
def main_record():
    return MainProductRecord.model_validate(main_product_data())


@pytest.fixture
def individual_record():
    return IndividualProductRecord.model_validate(individual_product_data())
