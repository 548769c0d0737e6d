"""Endpoint tests for /api/v1/scan-receipt and /api/v1/expenses/summary."""

import base64
import os
import unittest
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from receipt_scanner.api.v1.expenses import get_vision_client_factory
from receipt_scanner.core.config import get_settings
from receipt_scanner.core.dependencies import get_db
from receipt_scanner.main import app
from receipt_scanner.models.expense import Base, Expense
from receipt_scanner.services.ai.common.providers import MockProvider, ProviderResult
from receipt_scanner.services.ai.common.providers.gemini import GeminiProvider
from receipt_scanner.services.ai.common.router import ResolvedConfig
from receipt_scanner.services.ai.receipt_scan.client import VisionExtractionClient
from receipt_scanner.utils.alerting import alert_tracker

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
PNG_DATA_URL = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")


def _client_for(provider):
    return VisionExtractionClient(
        ResolvedConfig(provider=provider, model=provider.default_model, temperature=0.1, max_tokens=2048, timeout_seconds=5.0)
    )


class ScanReceiptEndpointTests(unittest.TestCase):
    def setUp(self):
        get_settings.cache_clear()
        alert_tracker.reset()
        self.engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(self.engine)
        self.SessionLocal = sessionmaker(bind=self.engine)

        def override_get_db():
            db = self.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        self.provider = MockProvider()
        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_vision_client_factory] = lambda: (lambda **_: _client_for(self.provider))
        self.client = TestClient(app)

    def tearDown(self):
        self.client.close()
        app.dependency_overrides.clear()
        Base.metadata.drop_all(self.engine)
        self.engine.dispose()
        get_settings.cache_clear()
        alert_tracker.reset()

    def _stored(self):
        db = self.SessionLocal()
        try:
            return db.query(Expense).all()
        finally:
            db.close()

    # --- manual entries ---

    def test_manual_entry_created(self):
        resp = self.client.post(
            "/api/v1/scan-receipt",
            json={
                "manual": True,
                "vendor": "Book Shop",
                "date": "2024-02-14",
                "total": 23.5,
                "category": "Education",
                "paymentMethod": "Debit Card",
                "isTaxDeductible": True,
            },
        )
        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertTrue(body["success"])
        data = body["data"]
        self.assertEqual(data["vendor"], "Book Shop")
        self.assertEqual(data["date"], "2024-02-14")
        self.assertEqual(data["total"], 23.5)
        self.assertEqual(data["category"], "Education")
        self.assertEqual(data["paymentMethod"], "Debit Card")
        self.assertTrue(data["isTaxDeductible"])
        self.assertEqual(data["source"], "manual")
        self.assertEqual(data["confidence"], 1.0)
        self.assertEqual(len(self._stored()), 1)

    def test_manual_entry_does_not_need_vision_credentials(self):
        app.dependency_overrides.pop(get_vision_client_factory)
        with patch.dict(os.environ, {"AI_RECEIPT_PROVIDER": "gemini", "GEMINI_API_KEY": "", "GOOGLE_API_KEY": ""}):
            get_settings.cache_clear()
            resp = self.client.post("/api/v1/scan-receipt", json={"manual": True, "vendor": "Kiosk"})
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["data"]["vendor"], "Kiosk")

    def test_manual_entry_with_invalid_enums_is_corrected(self):
        resp = self.client.post(
            "/api/v1/scan-receipt",
            json={"manual": True, "vendor": "X", "category": "Snacks", "expenseType": "Hobby"},
        )
        self.assertEqual(resp.status_code, 201)
        data = resp.json()["data"]
        self.assertEqual(data["category"], "Other")
        self.assertEqual(data["expenseType"], "Personal")

    # --- scanned receipts ---

    def test_scan_creates_expense(self):
        resp = self.client.post("/api/v1/scan-receipt", json={"imageUrl": PNG_DATA_URL})
        self.assertEqual(resp.status_code, 201)
        data = resp.json()["data"]
        self.assertEqual(data["vendor"], "Mock Market")
        self.assertEqual(data["total"], 10.0)
        self.assertEqual(data["category"], "Groceries")
        self.assertEqual([item["name"] for item in data["lineItems"]], ["Bread", "Milk"])
        self.assertEqual(data["source"], "scan")
        self.assertEqual(data["imageUrl"], PNG_DATA_URL)

    def test_scan_passes_mime_type_from_data_url(self):
        self.provider.generate = AsyncMock(
            return_value=ProviderResult(raw_text="Vendor: Quick Stop\nTotal: 3.10", model="m", provider="mock")
        )
        resp = self.client.post("/api/v1/scan-receipt", json={"imageUrl": PNG_DATA_URL})
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["data"]["vendor"], "Quick Stop")
        kwargs = self.provider.generate.await_args.kwargs
        self.assertEqual(kwargs["mime_type"], "image/png")
        self.assertEqual(kwargs["image_bytes"], PNG_BYTES)

    def test_scan_accepts_bare_base64(self):
        resp = self.client.post("/api/v1/scan-receipt", json={"imageUrl": base64.b64encode(PNG_BYTES).decode()})
        self.assertEqual(resp.status_code, 201)

    def test_missing_image_is_400(self):
        for body in ({}, {"manual": False}, {"imageUrl": ""}):
            resp = self.client.post("/api/v1/scan-receipt", json=body)
            self.assertEqual(resp.status_code, 400, body)
            self.assertEqual(resp.json(), {"success": False, "message": "No image data provided."})
        self.assertEqual(self._stored(), [])

    def test_invalid_base64_is_400(self):
        resp = self.client.post("/api/v1/scan-receipt", json={"imageUrl": "data:image/png;base64,@@not-base64@@"})
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(resp.json()["success"])

    def test_non_image_payload_is_400(self):
        resp = self.client.post("/api/v1/scan-receipt", json={"imageUrl": "data:text/plain;base64,aGVsbG8="})
        self.assertEqual(resp.status_code, 400)

    @patch.dict(os.environ, {"MAX_IMAGE_BYTES": "16"})
    def test_oversized_image_is_413(self):
        get_settings.cache_clear()
        resp = self.client.post("/api/v1/scan-receipt", json={"imageUrl": PNG_DATA_URL})
        self.assertEqual(resp.status_code, 413)
        self.assertFalse(resp.json()["success"])
        self.assertEqual(self._stored(), [])

    def test_missing_credentials_is_503(self):
        app.dependency_overrides.pop(get_vision_client_factory)
        with patch.dict(os.environ, {"AI_RECEIPT_PROVIDER": "gemini", "GEMINI_API_KEY": "", "GOOGLE_API_KEY": ""}):
            get_settings.cache_clear()
            resp = self.client.post("/api/v1/scan-receipt", json={"imageUrl": PNG_DATA_URL})
        self.assertEqual(resp.status_code, 503)
        self.assertEqual(resp.json()["success"], False)
        self.assertEqual(alert_tracker.count("VISION_NOT_CONFIGURED"), 1)
        self.assertEqual(self._stored(), [])

    def test_vision_http_failure_is_502(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(500, json={"error": "boom"}))
        self.provider = GeminiProvider("g-key", transport=transport)
        resp = self.client.post("/api/v1/scan-receipt", json={"imageUrl": PNG_DATA_URL})
        self.assertEqual(resp.status_code, 502)
        self.assertEqual(resp.json(), {"success": False, "message": "Failed to process receipt."})
        self.assertEqual(self._stored(), [])
        self.assertEqual(alert_tracker.count("VISION_SERVICE_FAILED"), 1)

    def test_storage_failure_is_500(self):
        Base.metadata.drop_all(self.engine)
        resp = self.client.post("/api/v1/scan-receipt", json={"manual": True, "vendor": "X"})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"success": False, "message": "Failed to save manual entry."})

    def test_malformed_body_uses_error_envelope(self):
        for body in ({"manual": "maybe"}, {"imageUrl": 123}):
            resp = self.client.post("/api/v1/scan-receipt", json=body)
            self.assertEqual(resp.status_code, 422, body)
            payload = resp.json()
            self.assertEqual(set(payload), {"success", "message"})
            self.assertFalse(payload["success"])
        self.assertIn("imageUrl", resp.json()["message"])
        self.assertEqual(self._stored(), [])

    def test_request_override_selects_provider_when_enabled(self):
        app.dependency_overrides.pop(get_vision_client_factory)
        env = {"ENABLE_AI_OVERRIDES": "true", "AI_RECEIPT_PROVIDER": "gemini", "GEMINI_API_KEY": "", "GOOGLE_API_KEY": ""}
        with patch.dict(os.environ, env):
            get_settings.cache_clear()
            resp = self.client.post(
                "/api/v1/scan-receipt",
                json={"imageUrl": PNG_DATA_URL, "overrideProvider": "mock"},
            )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["data"]["vendor"], "Mock Market")

    def test_request_override_ignored_when_disabled(self):
        app.dependency_overrides.pop(get_vision_client_factory)
        env = {"ENABLE_AI_OVERRIDES": "false", "AI_RECEIPT_PROVIDER": "gemini", "GEMINI_API_KEY": "", "GOOGLE_API_KEY": ""}
        with patch.dict(os.environ, env):
            get_settings.cache_clear()
            resp = self.client.post(
                "/api/v1/scan-receipt",
                json={"imageUrl": PNG_DATA_URL, "overrideProvider": "mock"},
            )
        self.assertEqual(resp.status_code, 503)
        self.assertEqual(self._stored(), [])

    def test_override_fields_are_not_stored_on_manual_entries(self):
        resp = self.client.post(
            "/api/v1/scan-receipt",
            json={"manual": True, "vendor": "Kiosk", "overrideProvider": "mock"},
        )
        self.assertEqual(resp.status_code, 201)
        self.assertNotIn("overrideProvider", resp.json()["data"])

    # --- listing and summary ---

    def test_list_is_date_descending(self):
        for day in ("2024-01-05", "2024-03-05", "2024-02-05"):
            resp = self.client.post("/api/v1/scan-receipt", json={"manual": True, "vendor": day, "date": day})
            self.assertEqual(resp.status_code, 201)

        resp = self.client.get("/api/v1/scan-receipt")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([e["date"] for e in resp.json()], ["2024-03-05", "2024-02-05", "2024-01-05"])
        self.assertIn("paymentMethod", resp.json()[0])

    def test_list_storage_failure_is_500(self):
        Base.metadata.drop_all(self.engine)
        resp = self.client.get("/api/v1/scan-receipt")
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"success": False, "message": "Failed to fetch expenses."})

    def test_summary(self):
        for total, category in ((12, "Travel"), (8, "Groceries"), (5, "Travel")):
            self.client.post(
                "/api/v1/scan-receipt",
                json={"manual": True, "vendor": "V", "total": total, "category": category},
            )
        resp = self.client.get("/api/v1/expenses/summary")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["count"], 3)
        self.assertEqual(body["total_spent"], 25.0)
        self.assertEqual(body["currency"], "USD")
        totals = {item["name"]: item["value"] for item in body["by_category"]}
        self.assertEqual(totals, {"Travel": 17.0, "Groceries": 8.0})


class HealthEndpointTests(unittest.TestCase):
    def test_health(self):
        client = TestClient(app)
        resp = client.get("/health")
        client.close()
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"status": "ok"})


@pytest.mark.asyncio
async def test_scan_with_mock_provider_from_settings(client, monkeypatch):
    monkeypatch.setenv("AI_RECEIPT_PROVIDER", "mock")
    get_settings.cache_clear()

    resp = await client.post("/api/v1/scan-receipt", json={"imageUrl": PNG_DATA_URL})
    assert resp.status_code == 201
    assert resp.json()["data"]["vendor"] == "Mock Market"

    listing = await client.get("/api/v1/scan-receipt")
    assert listing.status_code == 200
    assert [e["vendor"] for e in listing.json()] == ["Mock Market"]


@pytest.mark.asyncio
async def test_unknown_provider_is_503(client, monkeypatch):
    monkeypatch.setenv("AI_RECEIPT_PROVIDER", "carrier-pigeon")
    get_settings.cache_clear()

    resp = await client.post("/api/v1/scan-receipt", json={"imageUrl": PNG_DATA_URL})
    assert resp.status_code == 503
    assert resp.json()["success"] is False
