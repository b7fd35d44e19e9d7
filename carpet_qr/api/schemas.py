#\carpet_qr\api\schemas.py
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from carpet_qr.core.errors import EncodingFailure, ReasonCode


class Kind(str, Enum):
    individual = "individual"
    main = "main"


class EnvelopeType(str, Enum):
    individual_product = "individual_product"
    main_product = "main_product"


ENVELOPE_TYPE_BY_KIND = {
    Kind.individual: EnvelopeType.individual_product,
    Kind.main: EnvelopeType.main_product,
}
KIND_BY_ENVELOPE_TYPE = {v.value: k for k, v in ENVELOPE_TYPE_BY_KIND.items()}


class Scheme(str, Enum):
    reference = "reference"
    envelope = "envelope"


class ProductStatus(str, Enum):
    active = "active"
    sold = "sold"
    damaged = "damaged"
    returned = "returned"


class Record(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


# ------------------------- Individual item -------------------------
class Dimensions(Record):
    length: float
    width: float
    thickness: Optional[float] = None


class ProductionStepRecord(Record):
    step_name: str
    completed_at: str
    operator: str
    quality_check: bool


class IndividualProductRecord(Record):
    id: str = Field(..., min_length=1)
    product_id: str = Field(..., min_length=1)
    product_name: str
    batch_id: str
    serial_number: str
    production_date: str
    quality_grade: str
    dimensions: Dimensions
    weight: float
    color: str
    pattern: str
    material_composition: List[str] = []
    production_steps: List[ProductionStepRecord] = []
    machine_used: List[str] = []
    inspector: str
    location: Optional[str] = None
    status: ProductStatus = ProductStatus.active
    created_at: str


# ------------------------- Catalog product -------------------------
class RecipeMaterial(Record):
    material_id: str
    material_name: str
    quantity: float
    unit: str


class Recipe(Record):
    materials: List[RecipeMaterial] = []
    production_time: float
    difficulty_level: str


class QualityStandards(Record):
    min_weight: float
    max_weight: float
    dimensions_tolerance: float
    quality_criteria: List[str] = []


class MainProductRecord(Record):
    product_id: str = Field(..., min_length=1)
    product_name: str
    description: str = ""
    category: str
    base_price: float
    total_quantity: int
    available_quantity: int
    recipe: Recipe
    machines_required: List[str] = []
    production_steps: List[str] = []
    quality_standards: QualityStandards
    created_at: str
    updated_at: str


RECORD_MODEL_BY_KIND = {
    Kind.individual: IndividualProductRecord,
    Kind.main: MainProductRecord,
}

ProductRecord = Union[IndividualProductRecord, MainProductRecord]


# ------------------------- Wire payloads -------------------------
class ReferencePayload(Record):
    """Ids carried by a reference link; `type`/`individualProductId` are accepted for older labels."""
    model_config = ConfigDict(populate_by_name=True)

    kind: Kind = Field(
        validation_alias=AliasChoices("kind", "type"),
        serialization_alias="kind",
    )
    product_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("productId", "product_id"),
        serialization_alias="productId",
    )
    individual_item_id: Optional[str] = Field(
        default=None,
        min_length=1,
        validation_alias=AliasChoices("individualItemId", "individualProductId"),
        serialization_alias="individualItemId",
    )

    @field_validator("individual_item_id", mode="before")
    @classmethod
    def blank_item_id_is_absent(cls, value):
        return value or None


class TransferEnvelope(Record):
    type: str
    data: Any
    timestamp: str


# ------------------------- Dispatch results -------------------------
class ResolvedRecord(Record):
    outcome: Literal["record"] = "record"
    kind: Kind
    record: ProductRecord


class ResolvedReference(Record):
    outcome: Literal["reference"] = "reference"
    kind: Kind
    reference: ReferencePayload


class Rejected(Record):
    outcome: Literal["rejected"] = "rejected"
    reason: ReasonCode
    message: str


ScanResult = Annotated[
    Union[ResolvedRecord, ResolvedReference, Rejected],
    Field(discriminator="outcome"),
]


# ------------------------- API bodies -------------------------
class EncodedCode(BaseModel):
    kind: Kind
    content: str
    image: str


class EnvelopeResponse(BaseModel):
    kind: Kind
    envelope: str


class BatchRequest(BaseModel):
    items: List[str]
    download_zip: bool = False


class BatchResponse(BaseModel):
    images: List[str]


class ScanQuery(BaseModel):
    code: str


class IdInfo(BaseModel):
    prefix: str
    type: str
    date: Optional[str] = None
    sequence: int


class ScanResponse(BaseModel):
    code_found: bool = True
    result: Optional[ScanResult] = None
    id_info: Dict[str, IdInfo] = {}


class QRResultResponse(BaseModel):
    kind: Kind
    product: Optional[MainProductRecord] = None
    individual_product: Optional[IndividualProductRecord] = None


def coerce_record(record, kind: Kind) -> ProductRecord:
    """Return `record` as the model for `kind`, raising EncodingFailure on a shape mismatch."""
    try:
        kind = Kind(kind)
    except ValueError as e:
        raise EncodingFailure(f"Unknown product kind: {kind}") from e
    model = RECORD_MODEL_BY_KIND[kind]
    if isinstance(record, model):
        return record
    if isinstance(record, Mapping):
        try:
            return model.model_validate(record)
        except ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise EncodingFailure(f"Record is not a valid {kind.value} product: {fields}") from e
    raise EncodingFailure(f"Expected a {kind.value} product record, got {type(record).__name__}")
