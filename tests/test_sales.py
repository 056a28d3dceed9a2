import pytest

from stockledger.extensions import db
from stockledger.models import LedgerEntry, Sale
from stockledger.services import ledger_service, sales_service
from stockledger.services.availability_service import InsufficientStockError
from stockledger.services.ledger_service import InsufficientStock
from stockledger.services.sales_service import SaleError


ITEMS = [
    {"productId": "milk", "barcode": "890001", "name": "Milk", "quantity": 2, "priceMinor": 3000},
    {"productId": "bread", "name": "Bread", "quantity": 1, "priceMinor": 4000},
]


def test_create_sale_moves_no_stock(db_session, receive):
    receive("S", "milk", 5)
    receive("S", "bread", 5)

    sale = sales_service.create_sale(store_id="S", sale_id="sale-1", items=ITEMS, device_id="dev-1")

    assert sale.status == "PENDING"
    assert sale.total_minor == 10000
    assert [line.product_id for line in sale.lines] == ["milk", "bread"]
    assert ledger_service.get_snapshot_quantity("S", "milk") == 5
    assert db.session.query(LedgerEntry).filter_by(reference_type="SALE").count() == 0


def test_create_sale_runs_availability_precheck(db_session, receive):
    receive("S", "milk", 1)

    with pytest.raises(InsufficientStockError) as exc_info:
        sales_service.create_sale(store_id="S", sale_id="sale-1", items=ITEMS)

    assert {d["skuId"] for d in exc_info.value.details} == {"milk", "bread"}
    assert db.session.get(Sale, "sale-1") is None


def test_confirm_payment_deducts_each_line(db_session, receive):
    receive("S", "milk", 5)
    receive("S", "bread", 5)
    sales_service.create_sale(store_id="S", sale_id="sale-1", items=ITEMS)

    sale = sales_service.confirm_payment(store_id="S", sale_id="sale-1", amount_minor=10000)

    assert sale.status == "PAID"
    assert sale.payment_mode == "CASH"
    assert ledger_service.get_snapshot_quantity("S", "milk") == 3
    assert ledger_service.get_snapshot_quantity("S", "bread") == 4
    rows = ledger_service.list_ledger_entries("S", reference_type="SALE", reference_id="sale-1")
    assert sorted((r.product_id, r.quantity_delta) for r in rows) == [("bread", -1), ("milk", -2)]


def test_confirm_payment_twice_is_a_no_op(db_session, receive):
    receive("S", "milk", 5)
    receive("S", "bread", 5)
    sales_service.create_sale(store_id="S", sale_id="sale-1", items=ITEMS)

    sales_service.confirm_payment(store_id="S", sale_id="sale-1")
    sales_service.confirm_payment(store_id="S", sale_id="sale-1")

    assert ledger_service.get_snapshot_quantity("S", "milk") == 3


def test_failed_confirmation_deducts_nothing(db_session, receive):
    receive("S", "milk", 5)
    receive("S", "bread", 1)
    sales_service.create_sale(store_id="S", sale_id="sale-1", items=ITEMS)

    # Stock drops between record and payment
    ledger_service.apply_movement(store_id="S", product_id="bread", movement_type="SELL", quantity=1)

    with pytest.raises(InsufficientStock):
        sales_service.confirm_payment(store_id="S", sale_id="sale-1")

    assert ledger_service.get_snapshot_quantity("S", "milk") == 5
    assert sales_service.get_sale("S", "sale-1").status == "PENDING"


def test_void_pending_sale(db_session, receive):
    receive("S", "milk", 5)
    receive("S", "bread", 5)
    sales_service.create_sale(store_id="S", sale_id="sale-1", items=ITEMS)

    sale = sales_service.void_sale(store_id="S", sale_id="sale-1")

    assert sale.status == "VOIDED"
    with pytest.raises(SaleError):
        sales_service.confirm_payment(store_id="S", sale_id="sale-1")
    assert ledger_service.get_snapshot_quantity("S", "milk") == 5


def test_paid_sale_cannot_be_voided(db_session, receive):
    receive("S", "milk", 5)
    receive("S", "bread", 5)
    sales_service.create_sale(store_id="S", sale_id="sale-1", items=ITEMS)
    sales_service.confirm_payment(store_id="S", sale_id="sale-1")

    with pytest.raises(SaleError):
        sales_service.void_sale(store_id="S", sale_id="sale-1")


def test_resubmitting_sale_id_returns_existing(db_session, receive):
    receive("S", "milk", 5)
    receive("S", "bread", 5)
    first = sales_service.create_sale(store_id="S", sale_id="sale-1", items=ITEMS)
    again = sales_service.create_sale(store_id="S", sale_id="sale-1", items=ITEMS[:1])

    assert again.id == first.id
    assert len(again.lines) == 2

    with pytest.raises(SaleError) as exc_info:
        sales_service.create_sale(store_id="OTHER", sale_id="sale-1", items=ITEMS)
    assert exc_info.value.status_code == 409


def test_unknown_sale_is_404(db_session):
    with pytest.raises(SaleError) as exc_info:
        sales_service.confirm_payment(store_id="S", sale_id="nope")
    assert exc_info.value.status_code == 404
