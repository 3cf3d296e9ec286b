"""
Unit Tests - Raw Record Normalization
"""
import json
from datetime import date, datetime, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from salesreports.ingestion import (
    Customer,
    LineItem,
    Product,
    Sale,
    coerce_number,
    normalize_records,
    parse_line_items,
    parse_timestamp,
)


class TestCoerceNumber:
    """Tests for coerce_number"""

    @pytest.mark.parametrize("value,expected", [
        (42, 42.0),
        (3.25, 3.25),
        ("200", 200.0),
        ("  -4.5", -4.5),
        ("12.5kg", 12.5),
        (".5", 0.5),
        ("1e3", 1000.0),
        (Decimal("2.5"), 2.5),
        (True, 1.0),
    ])
    def test_parses_numeric_values(self, value, expected):
        """Test numbers and numeric prefixes are read"""
        assert coerce_number(value) == expected

    @pytest.mark.parametrize("value", [
        None, "", "abc", "inf", float("nan"), float("inf"), [], {}, 10 ** 400,
    ])
    def test_unparsable_values_become_zero(self, value):
        """Test malformed and non-finite values coerce to 0"""
        assert coerce_number(value) == 0.0


class TestParseTimestamp:
    """Tests for parse_timestamp"""

    def test_naive_iso_string(self):
        assert parse_timestamp("2026-10-19T09:15:00") == datetime(2026, 10, 19, 9, 15)

    def test_date_only_string(self):
        assert parse_timestamp("2026-10-19") == datetime(2026, 10, 19)

    def test_aware_string_converted_to_zone(self):
        """Test UTC timestamps are localized and made naive"""
        result = parse_timestamp("2026-10-19T10:00:00Z", ZoneInfo("Africa/Nairobi"))

        assert result == datetime(2026, 10, 19, 13, 0)
        assert result.tzinfo is None

    def test_epoch_milliseconds(self):
        assert parse_timestamp(86_400_000, timezone.utc) == datetime(1970, 1, 2)

    def test_datetime_and_date_values(self):
        aware = datetime(2026, 10, 19, 22, 0, tzinfo=timezone.utc)

        assert parse_timestamp(aware, ZoneInfo("Africa/Nairobi")) == datetime(2026, 10, 20, 1, 0)
        assert parse_timestamp(date(2026, 10, 19)) == datetime(2026, 10, 19)

    def test_fallback_format(self):
        assert parse_timestamp("10/19/2026") == datetime(2026, 10, 19)

    @pytest.mark.parametrize("value", [None, "", "not a date", True, float("nan"), object()])
    def test_invalid_values_return_none(self, value):
        assert parse_timestamp(value) is None

    @pytest.mark.parametrize("value", [
        "0001-01-01T00:00:00+05:00",
        "9999-12-31T23:59:59-05:00",
        datetime(1, 1, 1, tzinfo=ZoneInfo("Asia/Kolkata")),
    ])
    def test_aware_values_outside_datetime_range_return_none(self, value):
        """Test localizing past datetime.min or datetime.max yields None"""
        assert parse_timestamp(value, timezone.utc) is None


class TestParseLineItems:
    """Tests for parse_line_items"""

    def test_json_text(self):
        payload = json.dumps([{"productId": "p1", "quantity": 2, "price": 5}])

        assert parse_line_items(payload) == [{"productId": "p1", "quantity": 2, "price": 5}]

    def test_list_passthrough_skips_non_objects(self):
        assert parse_line_items([{"productId": "p1"}, "junk", 3]) == [{"productId": "p1"}]

    @pytest.mark.parametrize("value", [None, "{not json", '{"productId": "p1"}', 42])
    def test_malformed_payloads_yield_empty_list(self, value):
        assert parse_line_items(value) == []


class TestRecordModels:
    """Tests for the record types"""

    def test_line_item_defaults_quantity_to_one(self):
        """Test absent quantity counts as a single unit"""
        item = LineItem.model_validate({"productId": "p1", "price": "4"})

        assert item.product_id == "p1"
        assert item.quantity == 1.0
        assert item.price == 4.0

    def test_line_item_malformed_quantity_is_zero(self):
        item = LineItem.model_validate({"product_id": "p1", "quantity": "many"})

        assert item.quantity == 0.0

    def test_line_item_explicit_zero_quantity_stays_zero(self):
        """Test only an absent quantity defaults to one; an explicit 0 sells nothing"""
        item = LineItem.model_validate({"product_id": "p1", "quantity": 0, "price": 5})

        assert item.quantity == 0.0

    def test_sale_accepts_camel_case_fields(self):
        sale = Sale.model_validate({
            "id": 7,
            "createdAt": "2026-10-19T08:00:00",
            "total": "99.90",
            "customerId": "c1",
            "paymentMethod": "bank_transfer",
            "items": '[{"productId": "p1", "quantity": 3, "price": 33.3}]',
        })

        assert sale.id == "7"
        assert sale.created_at == datetime(2026, 10, 19, 8, 0)
        assert sale.total == 99.9
        assert sale.customer_id == "c1"
        assert sale.payment_method == "bank_transfer"
        assert len(sale.items) == 1
        assert sale.items[0].quantity == 3.0

    def test_sale_with_malformed_fields_never_raises(self):
        sale = Sale.model_validate({
            "id": "s1",
            "created_at": "yesterday",
            "total": "n/a",
            "items": "{broken",
        })

        assert sale.created_at is None
        assert sale.total == 0.0
        assert sale.items == ()

    def test_product_blank_cost_is_missing(self):
        product = Product.model_validate({"id": "p1", "name": "Tea", "price": "3", "cost": "", "stock": None})

        assert product.cost is None
        assert product.stock == 0.0

    def test_records_are_frozen(self):
        customer = Customer.model_validate({"id": "c1", "name": "Alice"})

        with pytest.raises(ValidationError):
            customer.name = "Bob"


class TestNormalizeRecords:
    """Tests for normalize_records"""

    def test_counts_defects(self, raw_sales):
        rows = raw_sales + ["not a row", None]

        records, stats = normalize_records(rows, Sale)

        assert len(records) == 5
        assert stats.record_type == "Sale"
        assert stats.total_rows == 7
        assert stats.rows_normalized == 5
        assert stats.rows_skipped == 2
        assert stats.missing_timestamps == 1
        assert stats.empty_item_lists == 2
        assert not stats.clean

    def test_clean_collection(self, raw_products):
        records, stats = normalize_records(raw_products, Product)

        assert [p.id for p in records] == ["prod-1", "prod-2", "prod-3"]
        assert stats.clean

    def test_out_of_range_values_never_abort_collection(self):
        rows = [
            {"id": "s1", "createdAt": "0001-01-01T00:00:00+05:00", "total": 10},
            {"id": "s2", "createdAt": "2026-10-19T08:00:00", "total": 10 ** 400},
        ]

        records, stats = normalize_records(rows, Sale, tz=timezone.utc)

        assert [s.id for s in records] == ["s1", "s2"]
        assert records[0].created_at is None
        assert records[1].total == 0.0
        assert stats.rows_skipped == 0
        assert stats.missing_timestamps == 1

    def test_timezone_passed_to_sale_timestamps(self):
        rows = [{"id": "s1", "created_at": "2026-10-19T22:30:00+00:00", "total": 10}]

        records, _ = normalize_records(rows, Sale, tz=ZoneInfo("Africa/Nairobi"))

        assert records[0].created_at == datetime(2026, 10, 20, 1, 30)
