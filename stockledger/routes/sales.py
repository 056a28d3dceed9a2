# Overview: Flask routes for the two-phase sale lifecycle (record, pay, void).

from flask import Blueprint, current_app, jsonify, request

from ..services import sales_service
from ..services.availability_service import InsufficientStockError
from ..services.ledger_service import InsufficientStock
from ..services.sales_service import SaleError
from ..validation import ValidationError


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
def create_sale_route():
    """
    Record a PENDING sale. No stock moves until payment is confirmed.

    Body: store_id, sale_id, items, optional device_id and discount_minor.
    """
    data = request.get_json(silent=True) or {}
    try:
        sale = sales_service.create_sale(
            store_id=data.get("store_id"),
            sale_id=data.get("sale_id"),
            items=data.get("items"),
            device_id=data.get("device_id"),
            discount_minor=data.get("discount_minor") or 0,
        )
        return jsonify({"sale": sale.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except InsufficientStockError as e:
        return jsonify({"error": "insufficient_stock", "details": e.details}), 409
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/<sale_id>/pay")
def pay_sale_route(sale_id: str):
    """Confirm payment; deducts stock for every line or for none."""
    data = request.get_json(silent=True) or {}
    try:
        sale = sales_service.confirm_payment(
            store_id=data.get("store_id"),
            sale_id=sale_id,
            amount_minor=data.get("amount_minor"),
            mode=data.get("mode") or "CASH",
        )
        return jsonify({"sale": sale.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except InsufficientStock as e:
        return jsonify(e.to_dict()), 409
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to confirm sale payment")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/<sale_id>/void")
def void_sale_route(sale_id: str):
    data = request.get_json(silent=True) or {}
    try:
        sale = sales_service.void_sale(store_id=data.get("store_id"), sale_id=sale_id)
        return jsonify({"sale": sale.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to void sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<sale_id>")
def get_sale_route(sale_id: str):
    store_id = request.args.get("store_id")
    if not store_id:
        return jsonify({"error": "store_id is required"}), 400

    try:
        sale = sales_service.get_sale(store_id, sale_id)
    except SaleError as e:
        return jsonify({"error": str(e)}), e.status_code

    return jsonify({"sale": sale.to_dict()}), 200
