"""
Unit Tests - Reports API
"""
import time
from datetime import datetime, timedelta
from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient

from salesreports.ingestion import InMemoryDataSource, ReportDataSource
from salesreports.main import create_app


class UnavailableSource(ReportDataSource):
    """Source whose backend is down"""

    async def list_sales(self) -> List[Dict[str, Any]]:
        raise TimeoutError("upstream timed out")

    async def list_products(self) -> List[Dict[str, Any]]:
        return []

    async def list_customers(self) -> List[Dict[str, Any]]:
        return []


@pytest.fixture
def live_source() -> InMemoryDataSource:
    """Sales dated relative to the real clock, since the API resolves ranges against it"""
    current = datetime.now().replace(microsecond=0)
    return InMemoryDataSource(
        sales=[
            {
                "id": "sale-1",
                "created_at": current.isoformat(),
                "total": 120,
                "customer_id": "cust-1",
                "payment_method": "card",
                "items": '[{"productId": "prod-1", "quantity": 3, "price": 40}]',
            },
            {
                "id": "sale-2",
                "created_at": (current - timedelta(days=40)).isoformat(),
                "total": 60,
                "customer_id": "cust-2",
                "payment_method": "cash",
                "items": '[{"productId": "prod-2", "quantity": 2, "price": 30}]',
            },
        ],
        products=[
            {"id": "prod-1", "name": "Cold Brew", "price": 40, "cost": 15, "stock": 10},
            {"id": "prod-2", "name": "Croissant", "price": 30, "cost": 10, "stock": 5},
        ],
        customers=[
            {"id": "cust-1", "name": "Alice Mwangi"},
            {"id": "cust-2", "name": "Brian Otieno"},
        ],
    )


@pytest.fixture
def client(live_source):
    """Test client with the lifespan running"""
    with TestClient(create_app(source=live_source, configure_logs=False)) as test_client:
        yield test_client


class TestHealthEndpoints:
    """Tests for health endpoints"""

    def test_health_reports_snapshot(self, client):
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["snapshot"]["sales"] == 2

    def test_liveness(self, client):
        assert client.get("/api/v1/health/live").json() == {"status": "alive"}

    def test_readiness(self, client):
        response = client.get("/api/v1/health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_not_ready_when_source_down(self):
        with TestClient(create_app(source=UnavailableSource(), configure_logs=False)) as client:
            health = client.get("/api/v1/health")
            ready = client.get("/api/v1/health/ready")

        assert health.json()["status"] == "degraded"
        assert ready.status_code == 503
        assert ready.json()["status"] == "not_ready"


class TestReportEndpoints:
    """Tests for report endpoints"""

    def test_today_report(self, client):
        response = client.get("/api/v1/reports", params={"range": "today"})

        assert response.status_code == 200
        body = response.json()
        assert body["range"] == "today"
        assert body["label"] == "Today"
        assert body["total_revenue"] == 120.0
        assert body["daily_revenue"] == [120.0]
        assert body["metrics"]["total_orders"] == 1
        assert body["top_products"][0]["product_id"] == "prod-1"
        assert body["payment_methods"][0]["percentage"] == 100.0

    def test_year_report_counts_older_sales(self, client):
        body = client.get("/api/v1/reports", params={"range": "year"}).json()

        assert body["total_revenue"] == 180.0
        assert body["metrics"]["unique_customers"] == 2

    def test_unknown_range_falls_back_to_month(self, client):
        body = client.get("/api/v1/reports", params={"range": "decade"}).json()

        assert body["range"] == "month"

    def test_metrics(self, client):
        body = client.get("/api/v1/reports/metrics", params={"range": "today"}).json()

        assert body["average_order_value"] == 120.0
        assert body["inventory_value"] == 550.0

    def test_daily(self, client):
        body = client.get("/api/v1/reports/daily", params={"range": "week"}).json()

        assert len(body) == 8
        assert body[-1]["revenue"] == 120.0

    def test_top_products_by_quantity(self, client):
        body = client.get(
            "/api/v1/reports/top-products",
            params={"range": "year", "by": "quantity", "limit": 1},
        ).json()

        assert [p["product_id"] for p in body] == ["prod-1"]
        assert body[0]["quantity"] == 3.0

    def test_top_products_rejects_unknown_field(self, client):
        response = client.get("/api/v1/reports/top-products", params={"by": "margin"})

        assert response.status_code == 422

    def test_top_customers(self, client):
        body = client.get("/api/v1/reports/top-customers", params={"range": "year"}).json()

        assert [c["customer_id"] for c in body] == ["cust-1", "cust-2"]

    def test_latest_is_404_before_selection(self, client):
        assert client.get("/api/v1/reports/latest").status_code == 404

    def test_selection_commits_latest(self, client):
        response = client.post("/api/v1/reports/selection", json={"range": "year"})

        assert response.status_code == 202
        assert response.json()["range"] == "year"

        latest = None
        for _ in range(100):
            latest = client.get("/api/v1/reports/latest")
            if latest.status_code == 200:
                break
            time.sleep(0.02)

        assert latest.status_code == 200
        assert latest.json()["range"] == "year"

    def test_refresh(self, client, live_source):
        live_source.sales = live_source.sales[:1]

        body = client.post("/api/v1/reports/refresh").json()

        assert body["sales"] == 1
        assert body["products"] == 2

    def test_source_failure_maps_to_503(self):
        with TestClient(create_app(source=UnavailableSource(), configure_logs=False)) as client:
            response = client.get("/api/v1/reports", params={"range": "month"})

        assert response.status_code == 503
        body = response.json()
        assert body["error_code"] == "DATA_SOURCE_UNAVAILABLE"
        assert "upstream timed out" in body["message"]

    def test_failed_selection_surfaces_on_latest(self):
        with TestClient(create_app(source=UnavailableSource(), configure_logs=False)) as client:
            selection = client.post("/api/v1/reports/selection", json={"range": "week"})

            latest = None
            for _ in range(100):
                latest = client.get("/api/v1/reports/latest")
                if latest.status_code != 404:
                    break
                time.sleep(0.02)

        assert selection.status_code == 202
        assert latest.status_code == 503
        assert latest.json()["error_code"] == "DATA_SOURCE_UNAVAILABLE"

    def test_request_id_header(self, client):
        response = client.get("/api/v1/health/live", headers={"X-Request-ID": "req-42"})

        assert response.headers["X-Request-ID"] == "req-42"
        assert "X-Response-Time" in response.headers
