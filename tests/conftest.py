"""
Test Suite Configuration
"""
import json
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import pytest

from salesreports.ingestion import (
    Customer,
    DataSnapshot,
    InMemoryDataSource,
    Product,
    Sale,
    normalize_records,
)
from salesreports.reports import ReportAggregator


# Fixed reference moment for deterministic ranges
NOW = datetime(2026, 10, 19, 12, 0, 0)


@pytest.fixture
def now() -> datetime:
    """Reference moment: Monday 19 October 2026, noon"""
    return NOW


@pytest.fixture
def raw_products() -> List[Dict[str, Any]]:
    """Product rows as returned by the client service layer"""
    return [
        {"id": "prod-1", "name": "Espresso Beans", "price": 10, "cost": 6, "stock": 20},
        {"id": "prod-2", "name": "Milk Frother", "price": "25.00", "cost": None, "stock": "4"},
        {"id": "prod-3", "name": "Paper Filters", "price": "5.5", "cost": "2", "stock": 10},
    ]


@pytest.fixture
def raw_customers() -> List[Dict[str, Any]]:
    """Customer rows"""
    return [
        {"id": "cust-1", "name": "Alice Mwangi"},
        {"id": "cust-2", "name": "Brian Otieno"},
        {"id": "cust-3", "name": "Carol Njeri"},
    ]


@pytest.fixture
def raw_sales() -> List[Dict[str, Any]]:
    """
    Sale rows spanning the current and previous month.

    Items arrive either as serialized JSON text or as a list. The last row
    has an unparsable timestamp and must never be counted.
    """
    return [
        {
            "id": "sale-1",
            "created_at": "2026-10-19T09:00:00",
            "total": 100,
            "customer_id": "cust-1",
            "payment_method": "cash",
            "items": json.dumps([
                {"productId": "prod-1", "quantity": 2, "price": 10},
                {"productId": "prod-2", "quantity": 1, "price": 25},
            ]),
        },
        {
            "id": "sale-2",
            "created_at": "2026-10-18T15:30:00",
            "total": "200",
            "customer_id": "cust-2",
            "payment_method": "card",
            "items": [{"productId": "prod-3", "quantity": "4", "price": "5.5"}],
        },
        {
            "id": "sale-3",
            "created_at": "2026-10-05T10:00:00",
            "total": 300,
            "customer_id": "walk-in",
            "payment_method": None,
            "items": json.dumps([{"productId": "prod-1"}]),
        },
        {
            "id": "sale-4",
            "created_at": "2026-09-20T10:00:00",
            "total": 150,
            "customer_id": "cust-1",
            "payment_method": "cash",
            "items": "[]",
        },
        {
            "id": "sale-5",
            "created_at": "not a date",
            "total": 50,
            "customer_id": "cust-3",
            "payment_method": "cash",
            "items": "[]",
        },
    ]


@pytest.fixture
def make_snapshot() -> Callable[..., DataSnapshot]:
    """Factory building a normalized snapshot from raw rows"""

    def _make(
        sales: Optional[List[Dict[str, Any]]] = None,
        products: Optional[List[Dict[str, Any]]] = None,
        customers: Optional[List[Dict[str, Any]]] = None,
    ) -> DataSnapshot:
        return DataSnapshot(
            sales=tuple(normalize_records(sales or [], Sale)[0]),
            products=tuple(normalize_records(products or [], Product)[0]),
            customers=tuple(normalize_records(customers or [], Customer)[0]),
        )

    return _make


@pytest.fixture
def snapshot(make_snapshot, raw_sales, raw_products, raw_customers) -> DataSnapshot:
    """Snapshot of the sample collections"""
    return make_snapshot(raw_sales, raw_products, raw_customers)


@pytest.fixture
def memory_source(raw_sales, raw_products, raw_customers) -> InMemoryDataSource:
    """In-memory data source over the sample collections"""
    return InMemoryDataSource(raw_sales, raw_products, raw_customers)


@pytest.fixture
def aggregator() -> ReportAggregator:
    """Aggregator with the default ranked list length"""
    return ReportAggregator(top_limit=10)
