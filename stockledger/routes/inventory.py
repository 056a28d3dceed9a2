# Overview: Flask routes for inventory movements, stock reads, and availability checks.
"""
Inventory routes.

All stock changes go through ledger_service.apply_movement; nothing here
touches snapshot rows directly.

Status mapping:
- 400: malformed input (ValidationError)
- 409: the movement or availability check ran out of stock
- 500: unexpected failure (logged)
"""
from flask import Blueprint, current_app, jsonify, request

from ..services import ledger_service
from ..services.availability_service import InsufficientStockError, ensure_availability
from ..services.ledger_service import InsufficientStock
from ..validation import ValidationError


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.post("/movements")
def apply_movement_route():
    """
    Apply one RECEIVE, SELL or ADJUST movement.

    Body: store_id, product_id, movement_type, quantity and optionally
    unit_cost_minor, unit_sell_minor, reason, reference_type, reference_id.
    """
    payload = request.get_json(silent=True) or {}

    try:
        result = ledger_service.apply_movement(
            store_id=payload.get("store_id"),
            product_id=payload.get("product_id"),
            movement_type=payload.get("movement_type"),
            quantity=payload.get("quantity"),
            unit_cost_minor=payload.get("unit_cost_minor"),
            unit_sell_minor=payload.get("unit_sell_minor"),
            reason=payload.get("reason"),
            reference_type=payload.get("reference_type"),
            reference_id=payload.get("reference_id"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except InsufficientStock as e:
        return jsonify(e.to_dict()), 409
    except Exception:
        current_app.logger.exception("Failed to apply inventory movement")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"movement": result.to_dict()}), 201


@inventory_bp.get("/<store_id>/<product_id>/stock")
def product_stock_route(store_id: str, product_id: str):
    """Snapshot quantity next to the ledger-derived quantity for one product."""
    try:
        available = ledger_service.get_snapshot_quantity(store_id, product_id)
        ledger_qty = ledger_service.fetch_ledger_stock(store_id, product_id)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({
        "store_id": store_id,
        "product_id": product_id,
        "available_qty": available,
        "ledger_qty": ledger_qty,
    }), 200


@inventory_bp.get("/<store_id>/stock")
def store_stock_route(store_id: str):
    # Shape consumed by device stock cache refresh
    rows = ledger_service.list_store_stock(store_id)
    return jsonify({
        "products": [{"id": row.product_id, "stock": row.available_qty} for row in rows],
    }), 200


@inventory_bp.get("/<store_id>/ledger")
def store_ledger_route(store_id: str):
    limit = request.args.get("limit", default=100, type=int)
    rows = ledger_service.list_ledger_entries(
        store_id,
        product_id=request.args.get("product_id"),
        reference_type=request.args.get("reference_type"),
        reference_id=request.args.get("reference_id"),
        limit=limit,
    )
    return jsonify({"entries": [row.to_dict() for row in rows]}), 200


@inventory_bp.post("/availability")
def availability_route():
    """
    Advisory pre-check. Body: store_id, items [{skuId, quantity, name?}].

    409 carries one detail per short product.
    """
    payload = request.get_json(silent=True) or {}
    items = payload.get("items")
    if not isinstance(items, list):
        return jsonify({"error": "items must be an array"}), 400

    try:
        ensure_availability(payload.get("store_id"), items)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except InsufficientStockError as e:
        return jsonify({"error": "insufficient_stock", "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to check availability")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"ok": True}), 200
