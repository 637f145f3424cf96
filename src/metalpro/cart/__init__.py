"""Estimate cart pricing."""

from metalpro.cart.estimate import (
    CartLine,
    CartLineRequest,
    CartLineSpecs,
    CartTotals,
    CutListEntry,
    EstimateCart,
    UnknownProductError,
    bom_rows_to_cart_lines,
    bom_rows_to_line_requests,
    build_cart,
    calculate_totals,
    delivery_fee_band,
    price_line,
)

__all__ = [
    "CartLine",
    "CartLineRequest",
    "CartLineSpecs",
    "CartTotals",
    "CutListEntry",
    "EstimateCart",
    "UnknownProductError",
    "bom_rows_to_cart_lines",
    "bom_rows_to_line_requests",
    "build_cart",
    "calculate_totals",
    "delivery_fee_band",
    "price_line",
]
