from stockledger.device.cart import CartItem
from stockledger.device.sale_scope import (
    build_sale_created_payload,
    build_stock_deduction_logs,
    partition_sale_items,
)


def _items():
    return [
        CartItem(id="a", name="A", price_minor=100, quantity=1, sku="sku-a"),
        CartItem(id="b", name="B", price_minor=200, quantity=2),
        CartItem(id="c", name="C", price_minor=300, quantity=1, barcode="999"),
    ]


def test_partial_sale_only_deducts_selected_lines():
    items = _items()
    partition = partition_sale_items(items, ["a"])

    assert [item.id for item in partition.sale_items] == ["a"]
    assert [item.id for item in partition.remaining_items] == ["b", "c"]
    assert partition.is_partial is True
    assert build_stock_deduction_logs(partition.sale_items) == ["stock_deducted:sku-a:1"]


def test_no_selection_sells_everything():
    for selection in (None, []):
        partition = partition_sale_items(_items(), selection)
        assert [item.id for item in partition.sale_items] == ["a", "b", "c"]
        assert partition.remaining_items == []
        assert partition.is_partial is False


def test_partition_is_exact_and_keeps_order():
    items = _items()
    partition = partition_sale_items(items, ["c", "a", "not-in-cart"])

    assert [item.id for item in partition.sale_items] == ["a", "c"]
    assert sorted(i.id for i in partition.sale_items + partition.remaining_items) == ["a", "b", "c"]
    assert not set(i.id for i in partition.sale_items) & set(i.id for i in partition.remaining_items)


def test_deduction_log_key_fallback_and_sale_suffix():
    logs = build_stock_deduction_logs(_items(), sale_id="s-1")

    assert logs == [
        "stock_deducted:sku-a:1:saleId=s-1",
        "stock_deducted:b:2:saleId=s-1",
        "stock_deducted:999:1:saleId=s-1",
    ]


def test_sale_created_payload_covers_only_sold_lines():
    partition = partition_sale_items(_items(), ["b"])

    payload = build_sale_created_payload("s-1", partition, discount_minor=50)

    assert payload["saleId"] == "s-1"
    assert payload["discountMinor"] == 50
    assert payload["items"] == [
        {"productId": "b", "barcode": None, "name": "B", "quantity": 2, "priceMinor": 200}
    ]
