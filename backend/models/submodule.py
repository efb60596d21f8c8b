"""
backend/models/submodule.py

Submodule catalog entries and tenant entitlement records.

Handles:
- SubmoduleDefinition: one catalog entry (frozen, camelCase on the wire)
- PricingEntry: public projection of an addon for the pricing page
- TenantSubmodule: durable per-tenant record
- EnabledSubmodule / BatchEnableResult / InitializeDefaultsResult: service results
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel


class ModuleCode(str, Enum):
    CRM = "CRM"
    ORDERS = "ORDERS"
    PRODUCTS = "PRODUCTS"
    WMS = "WMS"
    PRICING = "PRICING"
    LOYALTY = "LOYALTY"
    PRODUCTION = "PRODUCTION"
    QUOTES = "QUOTES"
    INVOICES = "INVOICES"
    REPORTS = "REPORTS"
    AI_BRANDING = "AI_BRANDING"


class SubmoduleCategory(str, Enum):
    INCLUDED = "INCLUDED"  # part of the parent module price
    ADDON = "ADDON"  # sold separately


_WIRE_CONFIG = ConfigDict(
    frozen=True,
    alias_generator=to_camel,
    populate_by_name=True,
)


class SubmoduleDefinition(BaseModel):
    """One catalog entry. Built at boot, never mutated."""
    model_config = _WIRE_CONFIG

    code: str
    parent_module: ModuleCode
    name: str
    name_pl: str
    description: str = ""
    description_pl: str = ""
    icon: Optional[str] = None
    category: SubmoduleCategory = SubmoduleCategory.INCLUDED
    price: Optional[Decimal] = None
    currency: str = "PLN"
    is_active: bool = True
    is_beta: bool = False
    default_enabled: bool = False
    required_submodules: Tuple[str, ...] = ()
    conflicts_with: Tuple[str, ...] = ()
    features: Tuple[str, ...] = ()
    routes: Tuple[str, ...] = ()
    api_endpoints: Tuple[str, ...] = ()
    sort_order: int = 0

    @field_serializer("price", when_used="json")
    def serialize_price(self, price: Optional[Decimal]):
        return float(price) if price is not None else None

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class PricingEntry(BaseModel):
    model_config = _WIRE_CONFIG

    code: str
    parent_module: ModuleCode
    name: str
    name_pl: str
    description: str
    description_pl: str
    price: Decimal
    currency: str
    features: Tuple[str, ...]
    category: SubmoduleCategory
    is_beta: bool

    @field_serializer("price", when_used="json")
    def serialize_price(self, price: Decimal):
        return float(price)

    @classmethod
    def from_definition(cls, definition: SubmoduleDefinition) -> "PricingEntry":
        return cls(
            code=definition.code,
            parent_module=definition.parent_module,
            name=definition.name,
            name_pl=definition.name_pl,
            description=definition.description,
            description_pl=definition.description_pl,
            price=definition.price,
            currency=definition.currency,
            features=definition.features,
            category=definition.category,
            is_beta=definition.is_beta,
        )

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class TenantSubmodule(BaseModel):
    """Durable entitlement record keyed by (tenant_id, module_code, submodule_code)."""
    model_config = _WIRE_CONFIG

    tenant_id: str
    module_code: str
    submodule_code: str
    is_enabled: bool
    enabled_at: Optional[datetime] = None
    enabled_by_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class EnabledSubmodule(BaseModel):
    model_config = _WIRE_CONFIG

    code: str
    definition: SubmoduleDefinition
    enabled_at: Optional[datetime] = None
    enabled_by_id: Optional[str] = None

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class BatchEnableResult(BaseModel):
    model_config = _WIRE_CONFIG

    enabled: Tuple[str, ...] = ()
    skipped: Tuple[str, ...] = ()
    errors: Tuple[str, ...] = Field(default=(), description="'<code>: <message>' per failed code")


class InitializeDefaultsResult(BaseModel):
    model_config = _WIRE_CONFIG

    initialized: Tuple[str, ...] = ()
    already_enabled: Tuple[str, ...] = ()
