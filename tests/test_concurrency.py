"""
Concurrency tests against a file-backed SQLite database.

Threads share one database file so writers really contend; each worker runs
in its own app context and removes its session afterwards.
"""
import os
import tempfile
import threading

import pytest

from stockledger import create_app
from stockledger.extensions import db
from stockledger.services import ledger_service, sales_service
from stockledger.services.sync_service import process_sync_batch


@pytest.fixture
def file_app():
    tmpdir = tempfile.TemporaryDirectory()
    db_path = os.path.join(tmpdir.name, "concurrency.db")
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
        "MOVEMENT_RETRY_ATTEMPTS": 12,
        "MOVEMENT_RETRY_BACKOFF": 0.01,
    })
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()
    tmpdir.cleanup()


def _run_threads(targets):
    threads = [threading.Thread(target=t) for t in targets]
    for t in threads:
        t.start()
    for t in threads:
        t.join()


def test_concurrent_sells_never_oversell(file_app):
    with file_app.app_context():
        ledger_service.apply_movement(store_id="S", product_id="P", movement_type="RECEIVE", quantity=5)

    results = []
    lock = threading.Lock()

    def worker():
        with file_app.app_context():
            try:
                ledger_service.apply_movement(store_id="S", product_id="P", movement_type="SELL", quantity=1)
                outcome = "sold"
            except Exception as exc:
                outcome = exc
            finally:
                db.session.remove()
            with lock:
                results.append(outcome)

    _run_threads([worker] * 10)

    sold = sum(1 for r in results if r == "sold")
    with file_app.app_context():
        on_hand = ledger_service.get_snapshot_quantity("S", "P")
        assert ledger_service.fetch_ledger_stock("S", "P") == on_hand
        assert ledger_service.reconcile_store("S") == []

    assert len(results) == 10
    assert sold <= 5
    assert on_hand == 5 - sold
    assert on_hand >= 0


def test_concurrent_payments_cannot_both_deduct(file_app):
    with file_app.app_context():
        ledger_service.apply_movement(store_id="S", product_id="P", movement_type="RECEIVE", quantity=10)
        for sale_id in ("sale-1", "sale-2"):
            sales_service.create_sale(
                store_id="S",
                sale_id=sale_id,
                items=[{"product_id": "P", "quantity": 6, "unit_sell_minor": 100}],
            )

    results = []
    lock = threading.Lock()

    def pay(sale_id):
        def _worker():
            with file_app.app_context():
                try:
                    sales_service.confirm_payment(store_id="S", sale_id=sale_id)
                    outcome = "paid"
                except Exception as exc:
                    outcome = exc
                finally:
                    db.session.remove()
                with lock:
                    results.append(outcome)
        return _worker

    _run_threads([pay("sale-1"), pay("sale-2")])

    with file_app.app_context():
        on_hand = ledger_service.get_snapshot_quantity("S", "P")

    assert sum(1 for r in results if r == "paid") <= 1
    assert on_hand in (4, 10)


def test_same_event_delivered_twice_concurrently_applies_once(file_app):
    event = {
        "eventId": "evt-1",
        "type": "STOCK_ADJUSTED",
        "payload": {"productId": "P", "quantityDelta": 4},
    }
    statuses = []
    lock = threading.Lock()

    def deliver():
        with file_app.app_context():
            try:
                result = process_sync_batch(device_id="dev-1", store_id="S", events=[event])
                outcome = result.results[0].status
            except Exception as exc:
                outcome = exc
            finally:
                db.session.remove()
            with lock:
                statuses.append(outcome)

    _run_threads([deliver, deliver])

    applied = [s for s in statuses if s == "applied"]
    assert len(applied) <= 1

    # The device resends whatever was not acknowledged; afterwards exactly one application exists
    deliver()

    with file_app.app_context():
        on_hand = ledger_service.get_snapshot_quantity("S", "P")
        entries = ledger_service.list_ledger_entries("S", product_id="P")

    assert statuses[-1] in ("applied", "duplicate_ignored")
    assert statuses.count("applied") == 1
    assert len(entries) == 1
    assert on_hand == 4
