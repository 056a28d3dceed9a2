# Overview: Flask route for recording supplier purchases (stock receipts).

from flask import Blueprint, current_app, jsonify, request

from ..services.purchase_service import PurchaseError, record_purchase
from ..validation import ValidationError


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.post("")
def create_purchase_route():
    """
    Record a purchase and receive its lines into stock.

    Body: store_id, items [{product_id, quantity, unit_cost_minor, name?}],
    optional purchase_id and supplier_name.
    """
    data = request.get_json(silent=True) or {}
    try:
        purchase = record_purchase(
            store_id=data.get("store_id"),
            items=data.get("items"),
            purchase_id=data.get("purchase_id"),
            supplier_name=data.get("supplier_name"),
        )
        return jsonify({"purchase": purchase.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PurchaseError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record purchase")
        return jsonify({"error": "Internal server error"}), 500
