import unittest
from datetime import date

from shopdesk.models import StockItem
from shopdesk.services.stock_service import STOCK_POLICY
from shopdesk.validation import (
    MAX_AMOUNT_CENTS,
    ValidationError,
    coerce_integer,
    coerce_number,
    enforce_amount_cents,
    enforce_rules_stock,
    validate_payload,
)
from shopdesk.time_utils import get_zone, parse_iso_date, parse_iso_datetime, to_utc_z


class CoercionTests(unittest.TestCase):

    def test_integer_accepts_ints_and_numeric_strings(self):
        self.assertEqual(coerce_integer("x", 5), 5)
        self.assertEqual(coerce_integer("x", " 42 "), 42)

    def test_integer_rejects_decimals_bools_and_notation(self):
        for bad in (1.5, "1.0", "1e3", "", True, None):
            with self.subTest(value=bad):
                with self.assertRaises(ValidationError):
                    coerce_integer("x", bad)

    def test_number_accepts_fractional_quantities(self):
        self.assertEqual(coerce_number("quantity", "2.5"), 2.5)
        self.assertEqual(coerce_number("quantity", 3), 3.0)
        for bad in (False, "nan", float("inf"), "two"):
            with self.subTest(value=bad):
                with self.assertRaises(ValidationError):
                    coerce_number("quantity", bad)

    def test_amount_bounds(self):
        enforce_amount_cents("price_cents", 0)
        enforce_amount_cents("price_cents", MAX_AMOUNT_CENTS)
        with self.assertRaises(ValidationError):
            enforce_amount_cents("price_cents", -1)
        with self.assertRaises(ValidationError):
            enforce_amount_cents("price_cents", 0, allow_zero=False)
        with self.assertRaises(ValidationError):
            enforce_amount_cents("price_cents", MAX_AMOUNT_CENTS + 1)


class PayloadTests(unittest.TestCase):

    def test_create_requires_name(self):
        with self.assertRaises(ValidationError):
            validate_payload(model=StockItem, payload={"quantity": 1}, policy=STOCK_POLICY, partial=False)

    def test_rejects_fields_outside_policy(self):
        with self.assertRaises(ValidationError):
            validate_payload(model=StockItem, payload={"shop_id": 2}, policy=STOCK_POLICY, partial=True)

    def test_normalizes_values(self):
        patch = validate_payload(
            model=StockItem,
            payload={"name": "  Rice ", "quantity": "2.5", "price_cents": "120"},
            policy=STOCK_POLICY,
            partial=False,
        )
        self.assertEqual(patch, {"name": "Rice", "quantity": 2.5, "price_cents": 120})

    def test_blank_name_rejected_on_patch(self):
        with self.assertRaises(ValidationError):
            validate_payload(model=StockItem, payload={"name": "   "}, policy=STOCK_POLICY, partial=True)

    def test_stock_rules(self):
        enforce_rules_stock({"quantity": 0, "quantity_unit": "kg"})
        with self.assertRaises(ValidationError):
            enforce_rules_stock({"quantity_unit": "litres"})


class TimeUtilsTests(unittest.TestCase):

    def test_parse_datetime_normalizes_to_utc(self):
        parsed = parse_iso_datetime("2024-05-02T01:00:00+05:00")
        self.assertEqual(to_utc_z(parsed), "2024-05-01T20:00:00Z")

    def test_parse_date_truncates_datetimes(self):
        self.assertEqual(parse_iso_date("2024-05-02T10:00:00Z"), date(2024, 5, 2))
        self.assertIsNone(parse_iso_date("  "))

    def test_unknown_zone_falls_back_to_utc(self):
        self.assertEqual(str(get_zone("Mars/Olympus")), "UTC")
        self.assertEqual(str(get_zone(None)), "UTC")


if __name__ == "__main__":
    unittest.main()
