"""Indicative pricing for the estimate cart.

Prices here are estimates shown before a formal quote: the product's minimum
indicative price per base unit, scaled by length or weight and by the finish
surcharge. VAT and the delivery band are indicative as well.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from metalpro.bom.models import BOMRow, BOMUnit
from metalpro.catalog.models import CartUnit, Product
from metalpro.catalog.store import ProductCatalog

logger = logging.getLogger(__name__)

VAT_RATE = 0.19
CURRENCY = "RON"
DEFAULT_BAR_LENGTH_M = 6.0
KG_PER_TON = 1000.0

STANDARD_FINISH = "Standard (laminat la cald)"
FINISH_MULTIPLIERS: Dict[str, float] = {
    STANDARD_FINISH: 1.0,
    "Zincat (+15%)": 1.15,
    "Vopsit (+20%)": 1.20,
    "Lustruit (+30%)": 1.30,
}

DELIVERY_ON_QUOTE = "Se calculează la ofertă"
# (upper weight bound in kg, band label); the last band is open-ended
DELIVERY_BANDS = (
    (100.0, "50-150 RON"),
    (500.0, "150-300 RON"),
    (1000.0, "300-500 RON"),
)
DELIVERY_SPECIAL = "Transport special - se confirmă"


class UnknownProductError(LookupError):
    """Raised when a cart line references a product missing from the catalog."""

    def __init__(self, product_id: str) -> None:
        super().__init__(f"Unknown product: {product_id}")
        self.product_id = product_id


class CutListEntry(BaseModel):
    length_m: float = Field(gt=0)
    qty: int = Field(ge=1)

    model_config = ConfigDict(extra="forbid")


class CartLineSpecs(BaseModel):
    grade: Optional[str] = None
    standard: Optional[str] = None
    dimension_summary: Optional[str] = None
    length_m: Optional[float] = Field(default=None, gt=0)
    finish: Optional[str] = None
    cut_list: List[CutListEntry] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


class CartLineRequest(BaseModel):
    product_id: str
    quantity: float = Field(gt=0)
    unit: CartUnit
    specs: CartLineSpecs = Field(default_factory=CartLineSpecs)

    model_config = ConfigDict(extra="forbid")


class CartLine(BaseModel):
    id: str
    product_id: str
    title: str
    specs: CartLineSpecs
    quantity: float
    unit: CartUnit
    est_weight_kg: float = 0.0
    indicative_unit_price: float = 0.0
    indicative_subtotal: float = 0.0

    model_config = ConfigDict(extra="forbid")


class CartTotals(BaseModel):
    est_weight_kg: float = 0.0
    est_subtotal: float = 0.0
    vat_indicative: float = 0.0
    vat_rate: float = VAT_RATE
    delivery_fee_band: str = DELIVERY_ON_QUOTE
    grand_total: float = 0.0

    model_config = ConfigDict(extra="forbid")


class EstimateCart(BaseModel):
    id: str
    lines: List[CartLine] = Field(default_factory=list)
    totals: CartTotals = Field(default_factory=CartTotals)
    currency: str = CURRENCY
    disclaimer_accepted: bool = False
    created_at: str
    updated_at: str

    model_config = ConfigDict(extra="forbid")


def _new_line_id() -> str:
    return f"line_{uuid.uuid4().hex[:12]}"


def finish_multiplier(finish: Optional[str]) -> float:
    return FINISH_MULTIPLIERS.get(finish or STANDARD_FINISH, 1.0)


def delivery_fee_band(weight_kg: float) -> str:
    if weight_kg <= 0:
        return DELIVERY_ON_QUOTE
    for upper, label in DELIVERY_BANDS:
        if weight_kg < upper:
            return label
    return DELIVERY_SPECIAL


def price_line(request: CartLineRequest, product: Product, line_id: Optional[str] = None) -> CartLine:
    """Estimate weight and indicative price for one cart line.

    ``m`` lines need the product's linear mass; without it, as for
    ``bundle`` lines, the line is kept but priced at zero and left to the
    quote.
    """

    base_price = product.indicative_price.min or 0.0
    weight = 0.0
    unit_price = 0.0
    subtotal = 0.0
    specs = request.specs

    if request.unit is CartUnit.KG:
        weight = request.quantity
        unit_price = base_price
        subtotal = request.quantity * base_price
    elif request.unit is CartUnit.M and product.section_props.linear_mass_kg_per_m:
        weight_per_m = product.section_props.linear_mass_kg_per_m
        if specs.cut_list:
            total_length = sum(cut.length_m * cut.qty for cut in specs.cut_list)
        else:
            total_length = (specs.length_m or DEFAULT_BAR_LENGTH_M) * request.quantity
        weight = total_length * weight_per_m
        unit_price = base_price
        subtotal = total_length * base_price
    elif request.unit is CartUnit.PCS:
        weight = request.quantity * (product.section_props.weight_per_piece or 0.0)
        unit_price = base_price
        subtotal = request.quantity * base_price

    multiplier = finish_multiplier(specs.finish)

    return CartLine(
        id=line_id or _new_line_id(),
        product_id=product.id,
        title=product.title,
        specs=specs,
        quantity=request.quantity,
        unit=request.unit,
        est_weight_kg=weight,
        indicative_unit_price=unit_price * multiplier,
        indicative_subtotal=subtotal * multiplier,
    )


def calculate_totals(lines: Iterable[CartLine]) -> CartTotals:
    line_list = list(lines)
    subtotal = sum(line.indicative_subtotal for line in line_list)
    weight = sum(line.est_weight_kg for line in line_list)
    vat = subtotal * VAT_RATE
    return CartTotals(
        est_weight_kg=weight,
        est_subtotal=subtotal,
        vat_indicative=vat,
        vat_rate=VAT_RATE,
        delivery_fee_band=delivery_fee_band(weight),
        grand_total=subtotal + vat,
    )


def build_cart(
    requests: Iterable[CartLineRequest],
    catalog: ProductCatalog,
    *,
    disclaimer_accepted: bool = False,
) -> EstimateCart:
    """Price every requested line and total the cart.

    Raises:
        UnknownProductError: a line references a product not in ``catalog``.
    """

    lines: List[CartLine] = []
    for request in requests:
        product = catalog.get(request.product_id)
        if product is None:
            raise UnknownProductError(request.product_id)
        lines.append(price_line(request, product))

    now = datetime.now(timezone.utc).isoformat()
    return EstimateCart(
        id=f"cart_{uuid.uuid4().hex[:12]}",
        lines=lines,
        totals=calculate_totals(lines),
        disclaimer_accepted=disclaimer_accepted,
        created_at=now,
        updated_at=now,
    )


def bom_row_to_line_request(row: BOMRow, product: Product) -> CartLineRequest:
    """Translate a matched BOM row into a cart line request.

    BOM pieces (``buc``) are cart pieces and tonnes are priced as kilograms.
    A zero or negative BOM length leaves the bar length to the default.
    """

    length_m = row.length_m if row.length_m and row.length_m > 0 else None
    quantity = row.qty
    if row.unit is BOMUnit.BUC:
        unit = CartUnit.PCS
    elif row.unit is BOMUnit.TON:
        unit = CartUnit.KG
        quantity = row.qty * KG_PER_TON
    else:
        unit = CartUnit(row.unit.value)

    return CartLineRequest(
        product_id=product.id,
        quantity=quantity,
        unit=unit,
        specs=CartLineSpecs(length_m=length_m, finish=row.finish),
    )


def bom_rows_to_line_requests(rows: Iterable[BOMRow], catalog: ProductCatalog) -> List[CartLineRequest]:
    """Cart requests for the matched rows; unmatched or unknown rows are skipped."""

    requests: List[CartLineRequest] = []
    for row in rows:
        if not row.matched_product_id:
            continue
        product = catalog.get(row.matched_product_id)
        if product is None:
            logger.warning(
                "BOM row %d references unknown product %s", row.row_index, row.matched_product_id
            )
            continue
        requests.append(bom_row_to_line_request(row, product))
    return requests


def bom_rows_to_cart_lines(rows: Iterable[BOMRow], catalog: ProductCatalog) -> List[CartLine]:
    """Priced cart lines for the matched rows of a parsed BOM."""

    lines: List[CartLine] = []
    for request in bom_rows_to_line_requests(rows, catalog):
        product = catalog.get(request.product_id)
        if product is not None:
            lines.append(price_line(request, product))
    return lines
