import pytest

from stockledger.device.outbox import Outbox


@pytest.fixture
def outbox(tmp_path):
    return Outbox(str(tmp_path / "outbox.db"))


def test_events_come_back_in_enqueue_order(outbox):
    ids = [outbox.enqueue("STOCK_ADJUSTED", {"n": n}) for n in range(5)]

    pending = outbox.pending()

    assert [e.event_id for e in pending] == ids
    assert [e.payload["n"] for e in pending] == [0, 1, 2, 3, 4]
    assert pending[0].to_wire()["type"] == "STOCK_ADJUSTED"
    assert pending[0].created_at.endswith("Z")
    assert [e.event_id for e in outbox.pending(limit=2)] == ids[:2]


def test_mark_synced_removes_only_acked_events(outbox):
    first = outbox.enqueue("SALE_CREATED", {"saleId": "s1"})
    second = outbox.enqueue("PAYMENT_CASH", {"saleId": "s1"})

    assert outbox.mark_synced([first, "unknown"]) == 1
    assert outbox.mark_synced([]) == 0

    assert [e.event_id for e in outbox.pending()] == [second]
    assert outbox.pending_count() == 1


def test_record_failure_keeps_event_queued(outbox):
    event_id = outbox.enqueue("PAYMENT_CASH", {"saleId": "s1"})

    outbox.record_failure(event_id, "milk: insufficient_stock")
    outbox.record_failure(event_id, "milk: insufficient_stock")

    event = outbox.pending()[0]
    assert event.attempts == 2
    assert event.last_error == "milk: insufficient_stock"


def test_queue_survives_reopen(tmp_path):
    path = str(tmp_path / "outbox.db")
    event_id = Outbox(path).enqueue("SALE_CREATED", {"saleId": "s1"})

    reopened = Outbox(path)

    assert [e.event_id for e in reopened.pending()] == [event_id]


def test_clear_and_validation(outbox):
    outbox.enqueue("SALE_CREATED", {})
    outbox.enqueue("SALE_CREATED", {})

    assert outbox.clear() == 2
    assert outbox.pending_count() == 0

    with pytest.raises(ValueError):
        outbox.enqueue("  ", {})
