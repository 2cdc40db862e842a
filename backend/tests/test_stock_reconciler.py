# Overview: Pytest coverage for stock CRUD and receipt-driven reconciliation.

import pytest
from sqlalchemy.exc import OperationalError

from shopdesk.extensions import db
from shopdesk.models import StockItem
from shopdesk.services import stock_service
from shopdesk.services.stock_service import (
    StockLine,
    apply_sale,
    check_availability,
    find_stock_item_by_name,
    restore_stock,
)
from shopdesk.validation import ValidationError


def _quantity(db_session, item_id):
    return db_session.get(StockItem, item_id).quantity


def _unreadable_query(*entities, **kwargs):
    raise OperationalError("SELECT stock", {}, Exception("disk I/O error"))


class TestApplySale:

    def test_decrements_matching_item(self, db_session, shop, add_stock):
        item = add_stock(shop.id, "Rice", 10, "kg")

        result = apply_sale(shop.id, [StockLine("Rice", 2.5, "kg")])

        assert result.ok
        assert [o.status for o in result.outcomes] == ["adjusted"]
        assert _quantity(db_session, item.id) == pytest.approx(7.5)

    def test_clamps_at_zero(self, db_session, shop, add_stock):
        item = add_stock(shop.id, "Milk", 2)

        result = apply_sale(shop.id, [StockLine("Milk", 5, "units")])

        assert result.adjusted[0].new_quantity == 0
        assert _quantity(db_session, item.id) == 0

    def test_name_match_is_case_insensitive_and_trimmed(self, db_session, shop, add_stock):
        item = add_stock(shop.id, "Green Tea", 4)

        apply_sale(shop.id, [StockLine("  green TEA ", 1, "units")])

        assert _quantity(db_session, item.id) == 3

    def test_unit_mismatch_skips_adjustment(self, db_session, shop, add_stock):
        item = add_stock(shop.id, "Sugar", 10, "units")

        result = apply_sale(shop.id, [StockLine("Sugar", 1.5, "kg")])

        assert result.skipped[0].reason == "unit_mismatch"
        assert _quantity(db_session, item.id) == 10

    def test_empty_unit_matches_any_stock_unit(self, db_session, shop, add_stock):
        item = add_stock(shop.id, "Flour", 10, "kg")

        apply_sale(shop.id, [StockLine("Flour", 1, None)])

        assert _quantity(db_session, item.id) == 9

    def test_unknown_item_is_skipped(self, db_session, shop):
        result = apply_sale(shop.id, [StockLine("Ghost", 1, "units")])

        assert result.ok
        assert result.skipped[0].reason == "not_in_inventory"

    def test_repeated_lines_accumulate(self, db_session, shop, add_stock):
        item = add_stock(shop.id, "Eggs", 12)

        apply_sale(shop.id, [StockLine("Eggs", 2, "units"), StockLine("eggs", 3, "units")])

        assert _quantity(db_session, item.id) == 7

    def test_other_shops_stock_untouched(self, db_session, shop, other_shop, add_stock):
        theirs = add_stock(other_shop.id, "Rice", 10, "kg")

        result = apply_sale(shop.id, [StockLine("Rice", 1, "kg")])

        assert result.skipped[0].reason == "not_in_inventory"
        assert _quantity(db_session, theirs.id) == 10

    def test_failure_on_one_item_keeps_others(self, db_session, shop, add_stock, monkeypatch):
        first = add_stock(shop.id, "Bread", 5)
        second = add_stock(shop.id, "Butter", 5)

        real_adjust = stock_service._adjust_quantity

        def flaky_adjust(item_id, delta):
            if item_id == second.id:
                raise OperationalError("UPDATE stock", {}, Exception("database is locked"))
            return real_adjust(item_id, delta)

        monkeypatch.setattr(stock_service, "_adjust_quantity", flaky_adjust)
        monkeypatch.setattr("shopdesk.services.concurrency.time.sleep", lambda _: None)

        result = apply_sale(shop.id, [StockLine("Bread", 1, "units"), StockLine("Butter", 1, "units")])

        assert not result.ok
        assert [o.name for o in result.failed] == ["Butter"]
        assert _quantity(db_session, first.id) == 4
        assert _quantity(db_session, second.id) == 5

    def test_unreadable_stock_fails_every_line(self, db_session, shop, add_stock, monkeypatch):
        tea = add_stock(shop.id, "Tea", 5)

        monkeypatch.setattr(db.session, "query", _unreadable_query)
        result = apply_sale(shop.id, [StockLine("Tea", 2, "units"), StockLine("Ghost", 1, "units")])
        monkeypatch.undo()

        assert not result.ok
        assert [(o.name, o.status, o.reason) for o in result.outcomes] == [
            ("Tea", "failed", "stock_unavailable"),
            ("Ghost", "failed", "stock_unavailable"),
        ]
        assert _quantity(db_session, tea.id) == 5

    def test_listing_still_degrades_to_empty(self, db_session, shop, add_stock, monkeypatch):
        add_stock(shop.id, "Tea", 5)

        monkeypatch.setattr(db.session, "query", _unreadable_query)
        items = stock_service.list_shop_stock(shop.id)
        monkeypatch.undo()

        assert items == []


class TestRestoreStock:

    def test_restore_adds_back(self, db_session, shop, add_stock):
        item = add_stock(shop.id, "Rice", 1, "kg")

        restore_stock(shop.id, [StockLine("rice", 2.25, "kg")])

        assert _quantity(db_session, item.id) == pytest.approx(3.25)

    def test_restore_unit_mismatch_skips(self, db_session, shop, add_stock):
        item = add_stock(shop.id, "Rice", 1, "kg")

        result = restore_stock(shop.id, [StockLine("Rice", 2, "units")])

        assert result.skipped[0].reason == "unit_mismatch"
        assert _quantity(db_session, item.id) == 1


class TestAvailability:

    def test_reports_missing_and_insufficient(self, db_session, shop, add_stock):
        add_stock(shop.id, "Milk", 1)
        add_stock(shop.id, "Bread", 10)

        issues = check_availability(shop.id, [
            StockLine("Milk", 2, "units"),
            StockLine("Bread", 2, "units"),
            StockLine("Ghost", 1, "units"),
        ])

        assert issues == [
            {"name": "Milk", "error": "insufficientQuantity", "available": 1},
            {"name": "Ghost", "error": "itemNotInInventory"},
        ]

    def test_check_route(self, client, headers, shop, add_stock):
        add_stock(shop.id, "Milk", 1)

        response = client.post('/api/stock/check', headers=headers, json={
            'items': [{'name': 'milk', 'quantity': 1}],
        })

        assert response.status_code == 200
        assert response.get_json() == {"available": True, "issues": []}


class TestStockCrud:

    def test_create_list_update_delete(self, client, headers):
        response = client.post('/api/stock', headers=headers, json={
            'name': 'Apples',
            'category': 'Fruit',
            'price_cents': 250,
            'cost_price_cents': 150,
            'quantity': 3.5,
            'quantity_unit': 'kg',
        })
        assert response.status_code == 201
        item_id = response.get_json()['item']['id']

        listed = client.get('/api/stock?search=app', headers=headers).get_json()
        assert listed['count'] == 1

        response = client.patch(f'/api/stock/{item_id}', headers=headers, json={'quantity': 10})
        assert response.get_json()['item']['quantity'] == 10

        assert client.delete(f'/api/stock/{item_id}', headers=headers).status_code == 200
        assert client.get(f'/api/stock/{item_id}', headers=headers).status_code == 404

    def test_rejects_negative_quantity(self, client, headers):
        response = client.post('/api/stock', headers=headers, json={'name': 'X', 'quantity': -1})
        assert response.status_code == 400

    def test_rejects_unknown_unit(self, client, headers):
        response = client.post('/api/stock', headers=headers, json={'name': 'X', 'quantity_unit': 'litres'})
        assert response.status_code == 400

    def test_cannot_read_other_shops_item(self, client, headers, other_shop, add_stock):
        theirs = add_stock(other_shop.id, "Secret", 1)
        assert client.get(f'/api/stock/{theirs.id}', headers=headers).status_code == 404

    def test_find_by_name(self, db_session, shop, add_stock):
        item = add_stock(shop.id, "Olive Oil", 2)
        assert find_stock_item_by_name(shop.id, "OLIVE oil").id == item.id
        assert find_stock_item_by_name(shop.id, "Vinegar") is None

    def test_stock_line_requires_name(self):
        with pytest.raises(ValidationError):
            StockLine.from_item({"quantity": 1})
