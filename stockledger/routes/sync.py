# Overview: Flask route that receives device outbox batches.
"""
POS sync endpoint.

Body:
    {
      "deviceId": "...",
      "storeId": "...",
      "pendingOutboxCount": 3,
      "events": [{"eventId": "...", "type": "SALE_CREATED", "payload": {...}}]
    }

Every event gets a status (applied | duplicate_ignored | rejected). A 200
response does not mean every event was applied; the device inspects results.
"""
from flask import Blueprint, current_app, jsonify, request

from ..services.sync_service import process_sync_batch
from ..validation import ValidationError


sync_bp = Blueprint("sync", __name__, url_prefix="/api/pos")


@sync_bp.post("/sync")
def sync_route():
    data = request.get_json(silent=True) or {}

    pending = data.get("pendingOutboxCount")
    if not isinstance(pending, int) or isinstance(pending, bool):
        pending = None

    try:
        result = process_sync_batch(
            device_id=data.get("deviceId"),
            store_id=data.get("storeId"),
            events=data.get("events"),
            pending_outbox_count=pending,
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to process sync batch")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(result.to_dict()), 200
