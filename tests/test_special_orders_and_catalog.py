# tests/test_special_orders_and_catalog.py

from app.core.catalog_service import CatalogService
from app.core.special_order_service import SpecialOrderService
from app.schemas.special_orders import SpecialOrderStatus


def _by_id(summary):
    return {order.order_id: order for order in summary.orders}


def test_special_order_summary(special_orders_payload):
    summary = SpecialOrderService.build_summary(special_orders_payload)
    orders = _by_id(summary)

    assert summary.order_count == 4
    assert summary.sold_benefit == 50000
    assert summary.sold_benefit_display == "50 000 CFA"
    assert orders[1].status == SpecialOrderStatus.SOLD
    assert orders[1].status_label == "VENDU"
    assert orders[1].imei == "356000000000031"
    assert orders[2].client_sale_price == 420000


def test_special_order_actions(special_orders_payload):
    orders = _by_id(SpecialOrderService.build_summary(special_orders_payload))

    assert orders[1].actions == ["cancel", "replace"]
    assert orders[2].actions == ["update_payment", "cancel", "mark_sold", "replace"]
    assert orders[3].actions == ["update_payment", "cancel", "mark_ordered"]
    assert orders[4].actions == []


def test_received_order_with_balance_cannot_be_sold(special_orders_payload):
    payload = [dict(special_orders_payload[1], montant_restant=20000)]
    order = SpecialOrderService.build_summary(payload).orders[0]
    assert "mark_sold" not in order.actions


def test_special_order_search_limits_benefit(special_orders_payload):
    summary = SpecialOrderService.build_summary(special_orders_payload, "dubaï")

    assert {order.order_id for order in summary.orders} == {2, 4}
    assert summary.sold_benefit == 0


def test_special_order_unknown_status_is_skipped(special_orders_payload):
    payload = special_orders_payload + [{"order_id": 5, "statut": "perdu"}]
    assert SpecialOrderService.build_summary(payload).order_count == 4


def test_catalog_groups_models_by_brand(products_payload):
    catalog = CatalogService.build_catalog(products_payload)

    assert catalog.brands == {
        "Apple": ["iPhone 11", "iPhone 13"],
        "Samsung": ["Galaxy S21"],
    }
    assert catalog.storages == ["64 Go", "128 Go", "256 Go", "1 To"]


def test_catalog_is_rebuilt_from_each_payload(products_payload):
    first = CatalogService.build_catalog(products_payload)
    second = CatalogService.build_catalog(products_payload[:1])

    assert second.brands == {"Apple": ["iPhone 13"]}
    assert "Samsung" in first.brands
