import pytest

from stockledger.device.stock_cap import (
    cap_add_quantity,
    cap_requested_quantity,
    normalize_quantity,
    normalize_stock,
)


def test_add_within_and_beyond_stock():
    within = cap_add_quantity(0, 1, 3)
    assert (within.next_qty, within.added_qty, within.capped) == (1, 1, False)

    beyond = cap_add_quantity(2, 2, 3)
    assert (beyond.next_qty, beyond.added_qty, beyond.capped) == (3, 1, True)

    full = cap_add_quantity(3, 1, 3)
    assert (full.next_qty, full.added_qty, full.capped) == (3, 0, True)


def test_add_out_of_stock():
    result = cap_add_quantity(0, 1, 0)
    assert result.next_qty == 0
    assert result.added_qty == 0
    assert result.out_of_stock is True
    assert result.capped is True


def test_add_with_unknown_stock_is_refused():
    result = cap_add_quantity(1, 2, None)
    assert result.next_qty == 1
    assert result.added_qty == 0
    assert result.unknown_stock is True
    assert result.requested_qty == 3


def test_twenty_rapid_scans_against_one_unit():
    qty = 0
    results = []
    for _ in range(20):
        result = cap_add_quantity(qty, 1, 1)
        qty = result.next_qty
        results.append(result)

    assert qty == 1
    assert results[0].capped is False
    assert all(r.capped for r in results[1:])


def test_requested_quantity_rules():
    assert cap_requested_quantity(2, 2, 5).next_qty == 2

    beyond = cap_requested_quantity(2, 99, 3)
    assert (beyond.next_qty, beyond.capped) == (3, True)

    out = cap_requested_quantity(1, 1, 0)
    assert (out.next_qty, out.out_of_stock) == (0, True)


def test_requested_quantity_with_unknown_stock():
    grow = cap_requested_quantity(4, 7, None)
    assert (grow.next_qty, grow.unknown_stock, grow.capped) == (4, True, True)

    shrink = cap_requested_quantity(4, 2, None)
    assert (shrink.next_qty, shrink.unknown_stock) == (2, False)


@pytest.mark.parametrize("current", [0, 1, 5, 40])
@pytest.mark.parametrize("add", [0, 1, 3, 100])
@pytest.mark.parametrize("stock", [1, 2, 7, 50])
def test_next_quantity_never_exceeds_known_stock(current, add, stock):
    assert cap_requested_quantity(current, current + add, stock).next_qty <= stock
    if current <= stock:
        assert cap_add_quantity(current, add, stock).next_qty <= stock


@pytest.mark.parametrize("current", [0, 2, 9])
@pytest.mark.parametrize("add", [0, 1, 50])
def test_unknown_stock_never_grows_the_line(current, add):
    assert cap_add_quantity(current, add, None).next_qty <= current
    assert cap_requested_quantity(current, current + add, None).next_qty <= current


def test_normalization_of_odd_inputs():
    assert normalize_quantity("3") == 3
    assert normalize_quantity(2.5) == 3
    assert normalize_quantity(-4) == 0
    assert normalize_quantity(float("nan")) == 0
    assert normalize_quantity("abc") == 0

    assert normalize_stock(2.9) == 2
    assert normalize_stock(-1) == 0
    assert normalize_stock(None) is None
    assert normalize_stock(float("inf")) is None
    assert normalize_stock(True) is None
