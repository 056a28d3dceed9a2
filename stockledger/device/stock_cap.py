# Overview: Pure clamping of cart quantities against last-known stock.
"""
Stock cap rules

- Unknown stock (None) never lets a quantity grow: an add is refused and an
  absolute target above the current quantity is held at the current quantity.
  Decreases are always allowed.
- Known stock <= 0 blocks any positive quantity (out of stock).
- Otherwise the result is min(requested, stock); capped is set whenever the
  clamp reduced the request.

Results are plain values. Callers decide what to show the cashier.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class CapAddResult:
    requested_qty: int
    next_qty: int
    added_qty: int
    capped: bool
    out_of_stock: bool
    unknown_stock: bool


@dataclass(frozen=True)
class CapUpdateResult:
    requested_qty: int
    next_qty: int
    capped: bool
    out_of_stock: bool
    unknown_stock: bool


def _as_finite_float(value) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(parsed):
        return None
    return parsed


def normalize_quantity(value) -> int:
    """Non-negative whole quantity, rounding half up. Garbage becomes 0."""
    parsed = _as_finite_float(value)
    if parsed is None:
        return 0
    return max(0, math.floor(parsed + 0.5))


def normalize_stock(value) -> int | None:
    """Non-negative whole stock (floored), or None when unknown."""
    parsed = _as_finite_float(value)
    if parsed is None:
        return None
    return max(0, math.floor(parsed))


def cap_add_quantity(current_qty, add_qty, available_stock) -> CapAddResult:
    """Clamp an incremental add (e.g. one scan) against available stock."""
    current = normalize_quantity(current_qty)
    add = normalize_quantity(add_qty)
    requested = current + add
    stock = normalize_stock(available_stock)

    if stock is None:
        return CapAddResult(
            requested_qty=requested,
            next_qty=current,
            added_qty=0,
            capped=False,
            out_of_stock=False,
            unknown_stock=add > 0,
        )

    if stock <= 0:
        return CapAddResult(
            requested_qty=requested,
            next_qty=current,
            added_qty=0,
            capped=add > 0,
            out_of_stock=add > 0,
            unknown_stock=False,
        )

    next_qty = min(requested, stock)
    return CapAddResult(
        requested_qty=requested,
        next_qty=next_qty,
        added_qty=max(0, next_qty - current),
        capped=next_qty < requested,
        out_of_stock=False,
        unknown_stock=False,
    )


def cap_requested_quantity(current_qty, requested_qty, available_stock) -> CapUpdateResult:
    """Clamp an absolute target quantity (typed by the cashier)."""
    current = normalize_quantity(current_qty)
    requested = normalize_quantity(requested_qty)
    stock = normalize_stock(available_stock)

    if stock is None:
        grows = requested > current
        return CapUpdateResult(
            requested_qty=requested,
            next_qty=current if grows else requested,
            capped=grows,
            out_of_stock=False,
            unknown_stock=grows,
        )

    if stock <= 0:
        return CapUpdateResult(
            requested_qty=requested,
            next_qty=0,
            capped=requested > 0,
            out_of_stock=requested > 0,
            unknown_stock=False,
        )

    next_qty = min(requested, stock)
    return CapUpdateResult(
        requested_qty=requested,
        next_qty=next_qty,
        capped=next_qty < requested,
        out_of_stock=False,
        unknown_stock=False,
    )
