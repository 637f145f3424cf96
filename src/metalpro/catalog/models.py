"""Catalog product schema shared by the BOM matcher and the estimate cart."""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ProductFamily(str, Enum):
    """Top-level product families of the catalog."""

    PROFILES = "profiles"
    PLATES = "plates"
    PIPES = "pipes"
    FASTENERS = "fasteners"
    STAINLESS = "stainless"
    NONFERROUS = "nonferrous"


class CartUnit(str, Enum):
    """Units a cart line (and a product's base unit) can be expressed in."""

    M = "m"
    KG = "kg"
    PCS = "pcs"
    BUNDLE = "bundle"


class Availability(str, Enum):
    IN_STOCK = "in_stock"
    ON_ORDER = "on_order"
    BACKORDER = "backorder"


class IndicativePrice(BaseModel):
    """Indicative (non-binding) price range per base unit."""

    currency: str = "RON"
    unit: CartUnit = CartUnit.KG
    min: Optional[float] = Field(default=None, ge=0.0)
    max: Optional[float] = Field(default=None, ge=0.0)

    model_config = ConfigDict(extra="forbid")


class SectionProps(BaseModel):
    """Physical section properties used for weight estimates."""

    linear_mass_kg_per_m: Optional[float] = Field(
        default=None, ge=0.0, alias="linearMassKgPerM"
    )
    weight_per_piece: Optional[float] = Field(default=None, ge=0.0, alias="weightPerPiece")

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class Product(BaseModel):
    """A catalog product.

    Only ``id``, ``title``, ``family``, ``grade``, ``standards`` and
    ``is_active`` take part in BOM auto-matching; the rest feeds the catalog
    listing and the estimate cart. Products loaded without an explicit
    ``isActive`` flag are considered active.
    """

    id: str
    title: str
    sku: str = ""
    slug: Optional[str] = None
    family: str = ""
    grade: str = ""
    standards: List[str] = Field(default_factory=list)
    is_active: bool = Field(default=True, alias="isActive")
    category_id: Optional[str] = Field(default=None, alias="categoryId")
    description: Optional[str] = None
    dimensions: Dict[str, Union[float, str]] = Field(default_factory=dict)
    base_unit: CartUnit = Field(default=CartUnit.KG, alias="baseUnit")
    indicative_price: IndicativePrice = Field(
        default_factory=IndicativePrice, alias="indicativePrice"
    )
    section_props: SectionProps = Field(default_factory=SectionProps, alias="sectionProps")
    availability: Availability = Availability.IN_STOCK
    producer: Optional[str] = None

    model_config = ConfigDict(extra="ignore", populate_by_name=True)
