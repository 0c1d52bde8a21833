# tests/test_sales_ledger_service.py

from datetime import datetime, timezone

import pytest

from app.core.exceptions import ConflictException, NotFoundException, ValidationException
from app.core.sales_ledger_service import SalesLedgerService
from app.schemas.sales import FlatSaleRow, PaymentStatus, SaleStatus

SOON_AFTER_SALE_1 = datetime(2025, 3, 1, 20, 0, tzinfo=timezone.utc)
DAYS_LATER = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def sales(sales_payload):
    return SalesLedgerService.parse_sales(sales_payload)


@pytest.fixture
def rows(sales):
    return SalesLedgerService.flatten(sales)


def _row(rows, item_id):
    return next(row for row in rows if row.item_id == item_id)


# ---------- parsing ----------
def test_parse_sales_skips_malformed_records(sales_payload):
    payload = [{"client_nom": "no id"}, "garbage", {"vente_id": 7, "articles": "oops"}] + sales_payload
    sales = SalesLedgerService.parse_sales(payload)
    assert [sale.sale_id for sale in sales] == [1, 2, 3, 4]


def test_parse_sales_empty_payload():
    assert SalesLedgerService.parse_sales(None) == []


# ---------- flattening ----------
def test_flatten_emits_one_row_per_line_item(sales, rows):
    assert len(rows) == sum(len(sale.line_items) for sale in sales)
    assert [row.item_id for row in rows] == [11, 12, 21, 31, 41]


def test_flatten_sale_without_items_emits_nothing():
    sales = SalesLedgerService.parse_sales([{"vente_id": 5, "montant_total": 1000, "articles": []}])
    assert SalesLedgerService.flatten(sales) == []


def test_flatten_counts_no_cost_for_items_without_quantity():
    sales = SalesLedgerService.parse_sales([{
        "vente_id": 6, "montant_total": 1000,
        "articles": [
            {"item_id": 61, "prix_unitaire_achat": 80},
            {"item_id": 62, "prix_unitaire_achat": 80, "quantite_vendue": None},
        ],
    }])
    rows = SalesLedgerService.flatten(sales)
    assert [row.quantity_sold for row in rows] == [0, 0]
    assert [row.total_purchase_cost_of_sale for row in rows] == [0, 0]


def test_purchase_cost_is_sale_scoped_and_identical_on_every_row(rows):
    sale_1_rows = [row for row in rows if row.sale_id == 1]
    # Cancelled items still count towards the sale's purchase cost
    assert {row.total_purchase_cost_of_sale for row in sale_1_rows} == {200000}


def test_remaining_due_is_whole_sale_balance_on_active_rows_only(rows):
    assert _row(rows, 11).remaining_due_for_row == 150000
    assert _row(rows, 12).remaining_due_for_row == 0
    assert _row(rows, 21).remaining_due_for_row == 80000
    assert _row(rows, 41).remaining_due_for_row == 0


def test_non_active_rows_never_carry_a_balance(rows):
    for row in rows:
        if row.sale_status != SaleStatus.ACTIVE:
            assert row.remaining_due_for_row == 0


def test_status_labels(rows):
    assert _row(rows, 11).status_label == "EN COURS"
    assert _row(rows, 12).status_label == "ANNULÉ"
    assert _row(rows, 41).status_label == "VENDU"


@pytest.mark.parametrize(
    "status, label",
    [
        (SaleStatus.RETURNED, "REMPLACER"),
        (SaleStatus.REPLACED, "REMPLACÉ"),
        (SaleStatus.RENDERED, "RENDU"),
    ],
)
def test_status_label_for_closed_items(status, label):
    assert SalesLedgerService.status_label(status, 5000) == label


@pytest.mark.parametrize(
    "total, paid, expected",
    [
        (100000, 100000, PaymentStatus.PAID),
        (100000, 120000, PaymentStatus.PAID),
        (100000, 1, PaymentStatus.PARTIAL),
        (100000, 0, PaymentStatus.PENDING),
        (0, 0, PaymentStatus.PENDING),
    ],
)
def test_derive_payment_status(total, paid, expected):
    assert SalesLedgerService.derive_payment_status(total, paid) == expected


# ---------- actions ----------
def test_actions_within_cancel_window(rows):
    assert SalesLedgerService.row_actions(_row(rows, 11), SOON_AFTER_SALE_1) == [
        "update_payment", "cancel", "return"
    ]


def test_actions_after_cancel_window(rows):
    assert SalesLedgerService.row_actions(_row(rows, 11), DAYS_LATER) == [
        "update_payment", "return", "mark_rendered"
    ]


def test_no_payment_action_on_paid_or_special_rows(rows):
    assert SalesLedgerService.row_actions(_row(rows, 41), DAYS_LATER) == ["return", "mark_rendered"]
    assert "update_payment" not in SalesLedgerService.row_actions(_row(rows, 31), DAYS_LATER)


def test_no_actions_on_cancelled_rows(rows):
    assert SalesLedgerService.row_actions(_row(rows, 12), SOON_AFTER_SALE_1) == []


def test_undated_sale_is_past_cancel_window():
    assert SalesLedgerService.is_older_than_cancel_window(None, DAYS_LATER) is True


def test_naive_sale_date_is_read_as_utc():
    sale_date = datetime(2025, 3, 10, 0, 0)
    assert SalesLedgerService.is_older_than_cancel_window(sale_date, DAYS_LATER) is False


def test_with_actions_does_not_mutate_input(rows):
    decorated = SalesLedgerService.with_actions(rows, DAYS_LATER)
    assert all(row.actions == [] for row in rows)
    assert _row(decorated, 11).actions == ["update_payment", "return", "mark_rendered"]


# ---------- search / lookup ----------
def test_search_matches_client_imei_brand_and_model(rows):
    assert {row.item_id for row in SalesLedgerService.search(rows, "kofi")} == {21, 41}
    assert {row.item_id for row in SalesLedgerService.search(rows, "000000000012")} == {12}
    assert {row.item_id for row in SalesLedgerService.search(rows, "SAMSUNG")} == {12, 41}
    assert len(SalesLedgerService.search(rows, "")) == len(rows)


def test_find_item_row_and_missing_items(rows):
    assert SalesLedgerService.find_item_row(rows, "1", "11").item_id == 11
    with pytest.raises(NotFoundException):
        SalesLedgerService.find_sale_rows(rows, 999)
    with pytest.raises(NotFoundException):
        SalesLedgerService.find_item_row(rows, 1, 99)


# ---------- status changes ----------
def test_allowed_transitions():
    SalesLedgerService.validate_status_change(SaleStatus.ACTIVE, SaleStatus.CANCELLED)
    SalesLedgerService.validate_status_change(SaleStatus.ACTIVE, SaleStatus.RETURNED, "écran cassé")
    SalesLedgerService.validate_status_change(SaleStatus.RETURNED, SaleStatus.REPLACED)


@pytest.mark.parametrize(
    "current, target",
    [
        (SaleStatus.CANCELLED, SaleStatus.ACTIVE),
        (SaleStatus.CANCELLED, SaleStatus.RETURNED),
        (SaleStatus.RENDERED, SaleStatus.ACTIVE),
        (SaleStatus.REPLACED, SaleStatus.RETURNED),
        (SaleStatus.ACTIVE, SaleStatus.REPLACED),
    ],
)
def test_forbidden_transitions(current, target):
    with pytest.raises(ConflictException):
        SalesLedgerService.validate_status_change(current, target, "raison")


def test_return_requires_a_reason():
    with pytest.raises(ValidationException):
        SalesLedgerService.validate_status_change(SaleStatus.ACTIVE, SaleStatus.RETURNED, "   ")


def test_guard_enforces_cancel_window(rows):
    row = _row(rows, 11)
    SalesLedgerService.guard_status_change(row, SaleStatus.CANCELLED, now=SOON_AFTER_SALE_1)
    with pytest.raises(ConflictException):
        SalesLedgerService.guard_status_change(row, SaleStatus.CANCELLED, now=DAYS_LATER)


def test_guard_only_renders_old_items(rows):
    row = _row(rows, 11)
    SalesLedgerService.guard_status_change(row, SaleStatus.RENDERED, "client rend", now=DAYS_LATER)
    with pytest.raises(ConflictException):
        SalesLedgerService.guard_status_change(row, SaleStatus.RENDERED, "client rend", now=SOON_AFTER_SALE_1)


def test_cancel_payload(rows):
    payload = SalesLedgerService.status_change_payload(_row(rows, 11), SaleStatus.CANCELLED)
    assert payload == {
        "venteId": 1,
        "itemId": 11,
        "produitId": 101,
        "imei": "356000000000011",
        "quantite": 1,
        "reason": "Annulation standard",
        "is_special_sale_item": False,
    }


def test_return_payload_carries_product_identity(rows):
    payload = SalesLedgerService.status_change_payload(_row(rows, 31), SaleStatus.RETURNED, " écran ")
    assert payload["vente_item_id"] == 31
    assert payload["vente_id"] == 3
    assert payload["client_nom"] == "Awa"
    assert payload["reason"] == "écran"
    assert payload["is_special_sale_item"] is True
    assert payload["source_achat_id"] == 9001
    assert (payload["marque"], payload["modele"], payload["stockage"]) == ("Apple", "iPhone 15 Pro", "256 Go")


def test_replaced_has_no_direct_payload(rows):
    with pytest.raises(ValidationException):
        SalesLedgerService.status_change_payload(_row(rows, 11), SaleStatus.REPLACED)


# ---------- payment edits ----------
def test_payment_update_with_new_total(rows):
    payload = SalesLedgerService.validate_payment_update(_row(rows, 11), 150000, 210000)
    assert payload == {"montant_paye": 150000, "new_total_amount": 210000}


def test_payment_update_keeps_unchanged_total_out_of_payload(rows):
    payload = SalesLedgerService.validate_payment_update(_row(rows, 11), 120000, 250000)
    assert payload == {"montant_paye": 120000}


def test_new_total_must_exceed_purchase_cost(rows):
    with pytest.raises(ValidationException):
        SalesLedgerService.validate_payment_update(_row(rows, 11), 100000, 200000)


def test_paid_cannot_exceed_total(rows):
    with pytest.raises(ValidationException):
        SalesLedgerService.validate_payment_update(_row(rows, 11), 270000, 260000)


def test_negative_or_missing_paid_is_rejected(rows):
    with pytest.raises(ValidationException):
        SalesLedgerService.validate_payment_update(_row(rows, 11), -1, 250000)
    with pytest.raises(ValidationException):
        SalesLedgerService.validate_payment_update(_row(rows, 11), None, 250000)


def test_new_total_cannot_drop_below_already_paid():
    row = FlatSaleRow(
        sale_id=8, total_amount=100000, paid_amount=90000,
        payment_status="paiement_partiel", total_purchase_cost_of_sale=50000
    )
    with pytest.raises(ValidationException):
        SalesLedgerService.validate_payment_update(row, 70000, 80000)


def test_closed_sale_payment_cannot_be_edited(rows):
    with pytest.raises(ConflictException):
        SalesLedgerService.validate_payment_update(_row(rows, 41), 70000, 80000)


def test_payment_guards_apply_to_the_whole_amounts_sent():
    row = FlatSaleRow(
        sale_id=9, total_amount=150, paid_amount=0,
        payment_status="en_attente", total_purchase_cost_of_sale=100
    )
    # 100.5 is sent as 100, which does not exceed the purchase cost
    with pytest.raises(ValidationException):
        SalesLedgerService.validate_payment_update(row, 50, 100.5)

    assert SalesLedgerService.validate_payment_update(row, 50.9, 150.7) == {"montant_paye": 50}
