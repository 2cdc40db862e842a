# Overview: Pytest coverage for receipts: checkout, edits, deletes and returns with stock compensation.

import re

import pytest

from shopdesk.models import Receipt, StockItem
from shopdesk.services import receipt_service
from shopdesk.services.receipt_service import (
    ReceiptError,
    calculate_total,
    generate_transaction_id,
    return_items,
    save_receipt,
)
from shopdesk.validation import ValidationError


def _quantity(db_session, item_id):
    return db_session.get(StockItem, item_id).quantity


def _payload(*items, **extra):
    body = {"cashier_name": "Ayesha", "items": list(items)}
    body.update(extra)
    return body


def _line(name, quantity, price_cents=100, unit="units", **extra):
    return {"name": name, "quantity": quantity, "price_cents": price_cents, "quantity_unit": unit, **extra}


class TestCalculation:

    def test_calculate_total(self):
        items = [
            {"price_cents": 250, "quantity": 2},
            {"price_cents": 199, "quantity": 1.5},
        ]
        # 500 + 298.5 -> 299 (rounded per line), less discount
        assert calculate_total(items, 50) == 749

    def test_half_cents_round_up(self):
        assert calculate_total([{"price_cents": 197, "quantity": 0.5}]) == 99
        assert calculate_total([{"price_cents": 201, "quantity": 0.5}]) == 101

    def test_transaction_id_format(self):
        assert re.fullmatch(r"[0-9A-F]{8}", generate_transaction_id())


class TestSaveReceipt:

    def test_save_decrements_stock_and_snapshots_shop(self, db_session, shop, add_stock):
        rice = add_stock(shop.id, "Rice", 10, "kg", cost_price_cents=80)
        milk = add_stock(shop.id, "Milk", 3)

        receipt, stock_sync = save_receipt(shop, _payload(
            _line("rice", 2.5, 120, "kg"),
            _line("Milk", 5, 150),
            cash_given_cents=2000,
        ))

        assert receipt.total_amount_cents == 300 + 750
        assert receipt.change_cents == 2000 - 1050
        assert receipt.shop_details["name"] == "Corner Store"
        assert receipt.items[0]["cost_price_cents"] == 80
        assert stock_sync.ok
        assert _quantity(db_session, rice.id) == pytest.approx(7.5)
        assert _quantity(db_session, milk.id) == 0  # clamped, sale not rejected

    def test_receipt_is_committed_even_when_nothing_matches(self, db_session, shop):
        receipt, stock_sync = save_receipt(shop, _payload(_line("Unlisted", 1)))

        assert db_session.get(Receipt, receipt.id) is not None
        assert stock_sync.skipped[0].reason == "not_in_inventory"

    def test_unit_mismatch_line_leaves_stock(self, db_session, shop, add_stock):
        sugar = add_stock(shop.id, "Sugar", 10, "units")

        _, stock_sync = save_receipt(shop, _payload(_line("Sugar", 1.5, 100, "kg")))

        assert stock_sync.skipped[0].reason == "unit_mismatch"
        assert _quantity(db_session, sugar.id) == 10

    @pytest.mark.parametrize("payload", [
        {"items": [_line("A", 1)]},                                   # no cashier
        _payload(),                                                   # no items
        _payload(_line("A", 0)),                                      # zero quantity
        _payload(_line("A", 1.5)),                                    # fractional units
        _payload(_line("A", 1, 0)),                                   # zero price
        _payload(_line("A", 1), discount_cents=101),                  # discount above subtotal
        _payload(_line("A", 1), cash_given_cents=50),                 # not enough cash
        _payload(_line("A", 1), payment_method="Barter"),
        _payload(_line("A", 2, 999_999_999)),                          # total above the money ceiling
        _payload(_line("A", 10_000_000)),                             # absurd quantity
    ])
    def test_rejects_invalid_payloads(self, db_session, shop, payload):
        with pytest.raises(ValidationError):
            save_receipt(shop, payload)

    def test_card_payment_has_no_change(self, db_session, shop):
        receipt, _ = save_receipt(shop, _payload(_line("A", 2), payment_method="Credit Card"))

        assert receipt.cash_given_cents == 0
        assert receipt.change_cents == 0

    def test_later_profile_edit_does_not_rewrite_history(self, db_session, shop):
        receipt, _ = save_receipt(shop, _payload(_line("A", 1)))

        shop.shop_name = "Renamed"
        db_session.commit()

        assert db_session.get(Receipt, receipt.id).shop_details["name"] == "Corner Store"


class TestDeleteReceipt:

    def test_delete_restores_decremented_quantities(self, db_session, shop, add_stock):
        rice = add_stock(shop.id, "Rice", 10, "kg")
        receipt, _ = save_receipt(shop, _payload(_line("Rice", 3.25, 100, "kg")))

        receipt_service.delete_receipt(shop.id, receipt.id)

        assert db_session.get(Receipt, receipt.id) is None
        assert _quantity(db_session, rice.id) == pytest.approx(10)

    def test_delete_after_partial_return_restores_only_remainder(self, db_session, shop, add_stock):
        eggs = add_stock(shop.id, "Eggs", 12)
        receipt, _ = save_receipt(shop, _payload(_line("Eggs", 6)))
        return_items(shop.id, receipt.id, [{"name": "eggs", "quantity": 2}])
        assert _quantity(db_session, eggs.id) == 8

        receipt_service.delete_receipt(shop.id, receipt.id)

        assert _quantity(db_session, eggs.id) == 12

    def test_delete_other_shops_receipt_is_not_found(self, db_session, shop, other_shop):
        theirs, _ = save_receipt(other_shop, _payload(_line("A", 1)))

        with pytest.raises(LookupError):
            receipt_service.delete_receipt(shop.id, theirs.id)


class TestReturns:

    def test_return_refunds_and_restores(self, db_session, shop, add_stock):
        milk = add_stock(shop.id, "Milk", 10)
        receipt, _ = save_receipt(shop, _payload(_line("Milk", 4, 150)))

        receipt, refund, stock_sync = return_items(shop.id, receipt.id, [{"name": "Milk", "quantity": 1}])

        assert refund == 150
        assert receipt.return_total_cents == 150
        assert receipt.to_dict()["net_amount_cents"] == 450
        assert stock_sync.ok
        assert _quantity(db_session, milk.id) == 7

    def test_cannot_return_more_than_remaining(self, db_session, shop):
        receipt, _ = save_receipt(shop, _payload(_line("Milk", 2)))
        return_items(shop.id, receipt.id, [{"name": "Milk", "quantity": 1}])

        with pytest.raises(ReceiptError):
            return_items(shop.id, receipt.id, [{"name": "Milk", "quantity": 2}])

    def test_cannot_return_item_not_on_receipt(self, db_session, shop):
        receipt, _ = save_receipt(shop, _payload(_line("Milk", 2)))

        with pytest.raises(ReceiptError):
            return_items(shop.id, receipt.id, [{"name": "Bread", "quantity": 1}])

    def test_half_cent_refund_rounds_up(self, db_session, shop):
        receipt, _ = save_receipt(shop, _payload(_line("Rice", 3, 199, "kg")))

        _, refund, _ = return_items(shop.id, receipt.id, [{"name": "Rice", "quantity": 1.5}])

        assert refund == 299

    def test_refund_never_exceeds_amount_paid(self, db_session, shop):
        receipt, _ = save_receipt(shop, _payload(_line("Milk", 2, 100), discount_cents=150))

        _, refund, _ = return_items(shop.id, receipt.id, [{"name": "Milk", "quantity": 2}])

        assert refund == 50


class TestReceiptRoutes:

    def test_create_list_get_patch(self, client, headers, shop, add_stock):
        add_stock(shop.id, "Milk", 5)

        response = client.post('/api/receipts', headers=headers, json=_payload(_line("Milk", 2, 150)))
        assert response.status_code == 201
        body = response.get_json()
        assert body['stock_sync']['ok'] is True
        receipt_id = body['receipt']['id']
        transaction_id = body['receipt']['transaction_id']

        listed = client.get(f'/api/receipts?search={transaction_id.lower()}', headers=headers).get_json()
        assert [r['id'] for r in listed['receipts']] == [receipt_id]

        response = client.patch(f'/api/receipts/{receipt_id}', headers=headers, json={'manager_name': 'Bilal'})
        assert response.get_json()['receipt']['manager_name'] == 'Bilal'

        response = client.patch(f'/api/receipts/{receipt_id}', headers=headers, json={'items': []})
        assert response.status_code == 400

    def test_list_sort_by_total(self, client, headers, shop):
        save_receipt(shop, _payload(_line("A", 1, 500)))
        save_receipt(shop, _payload(_line("B", 1, 100)))

        listed = client.get('/api/receipts?sort=total_amount_cents&direction=asc', headers=headers).get_json()

        assert [r['total_amount_cents'] for r in listed['receipts']] == [100, 500]

    def test_list_rejects_dates_past_the_calendar(self, client, headers):
        response = client.get('/api/receipts?end=9999-12-31', headers=headers)

        assert response.status_code == 400
        assert 'error' in response.get_json()

    def test_oversized_quantity_is_a_bad_request(self, client, headers):
        response = client.post('/api/receipts', headers=headers, json=_payload(_line("Milk", 10_000_000)))

        assert response.status_code == 400

    def test_returns_and_delete_routes(self, client, headers, shop, add_stock, db_session):
        milk = add_stock(shop.id, "Milk", 5)
        receipt, _ = save_receipt(shop, _payload(_line("Milk", 3)))

        response = client.post(f'/api/receipts/{receipt.id}/returns', headers=headers, json={
            'items': [{'name': 'Milk', 'quantity': 1}],
        })
        assert response.status_code == 200
        assert response.get_json()['refund_cents'] == 100

        response = client.delete(f'/api/receipts/{receipt.id}', headers=headers)
        assert response.status_code == 200
        assert _quantity(db_session, milk.id) == 5
