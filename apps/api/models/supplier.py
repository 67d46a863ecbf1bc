from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

Rating = Annotated[Decimal, Field(ge=0, le=5, max_digits=3, decimal_places=2)]
Money = Annotated[Decimal, Field(ge=0, max_digits=15, decimal_places=2)]

# Width of the suppliers.name column.
MAX_NAME_LENGTH = 255


class SupplierStatus(str, Enum):
    active = "active"
    inactive = "inactive"
    suspended = "suspended"


class SupplierType(str, Enum):
    manufacturer = "manufacturer"
    distributor = "distributor"
    service_provider = "service_provider"
    consultant = "consultant"
    other = "other"


class Supplier(BaseModel):
    id: UUID = Field(
        ...,
        examples=["98681ed3-d1e5-4440-b249-85f181f32b0e"],
        description="Supplier UUID"
    )
    user_id: str = Field(..., description="Owning account")
    name: str = Field(
        ...,
        examples=["Apex Office Supply"],
        description="Display name of the supplier"
    )
    status: SupplierStatus = SupplierStatus.active
    performance_rating: float = 0
    total_spend: float = 0
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_address: Optional[str] = None
    tax_id: Optional[str] = None
    website: Optional[str] = None
    supplier_type: Optional[SupplierType] = None
    payment_terms: Optional[str] = None
    credit_limit: Optional[float] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Columns that exist but may never be set to NULL through an update.
NON_NULLABLE_FIELDS = ("name", "status", "performance_rating", "total_spend")


class SupplierUpdate(BaseModel):
    """Typed partial update for a supplier.

    Only keys the caller actually sent are applied; unknown keys are
    rejected so they never reach the store.
    """

    model_config = ConfigDict(extra="forbid", use_enum_values=True)

    name: Optional[str] = Field(None, max_length=MAX_NAME_LENGTH)
    status: Optional[SupplierStatus] = None
    performance_rating: Optional[Rating] = None
    total_spend: Optional[Money] = None
    contact_email: Optional[str] = Field(None, max_length=255)
    contact_phone: Optional[str] = Field(None, max_length=50)
    contact_address: Optional[str] = None
    tax_id: Optional[str] = Field(None, max_length=100)
    website: Optional[str] = Field(None, max_length=255)
    supplier_type: Optional[SupplierType] = None
    payment_terms: Optional[str] = Field(None, max_length=100)
    credit_limit: Optional[Money] = None
    notes: Optional[str] = None

    @field_validator(
        "name", "contact_email", "contact_phone", "contact_address",
        "tax_id", "website", "payment_terms", "notes",
    )
    @classmethod
    def _reject_nul(cls, v: Optional[str]) -> Optional[str]:
        # Postgres text columns cannot store NUL.
        if v is not None and "\x00" in v:
            raise ValueError("must not contain NUL characters")
        return v

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    @model_validator(mode="after")
    def _reject_null_required(self):
        nulled = [k for k in NON_NULLABLE_FIELDS if k in self.model_fields_set and getattr(self, k) is None]
        if nulled:
            raise ValueError(f"fields cannot be null: {', '.join(nulled)}")
        return self

    def to_fields(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ResolveSupplierRequest(_CamelModel):
    supplier_name: Optional[str] = None
    user_id: Optional[str] = None


class ResolveSupplierResponse(_CamelModel):
    success: bool = True
    supplier_id: UUID
    is_new: bool
    supplier: Supplier


class UpdateSupplierRequest(_CamelModel):
    supplier_id: Optional[str] = None
    update_data: Optional[Dict[str, Any]] = None
    user_id: Optional[str] = None


class UpdateSupplierResponse(_CamelModel):
    success: bool = True
    message: str
    supplier: Supplier


class SupplierPage(BaseModel):
    items: List[Supplier]
    limit: int
    offset: int
