"""Mock provider: a deterministic receipt description for local runs and tests."""

from __future__ import annotations

import json
import time

from .base import BaseProvider, ProviderResult

MOCK_RECEIPT = {
    "vendor": "Mock Market",
    "date": "2024-01-15",
    "subtotal": 9.25,
    "tax": 0.75,
    "total": 10.0,
    "currency": "USD",
    "category": "Groceries",
    "paymentMethod": "Cash",
    "lineItems": [
        {"name": "Bread", "quantity": 1, "unitPrice": 3.25, "totalPrice": 3.25},
        {"name": "Milk", "quantity": 2, "unitPrice": 3.0, "totalPrice": 6.0},
    ],
    "confidence": 1.0,
}


class MockProvider(BaseProvider):
    name = "mock"
    default_model = "mock-vision-v1"

    async def generate(
        self,
        prompt: str,
        *,
        image_bytes: bytes,
        mime_type: str = "image/jpeg",
        model: str = "",
        temperature: float = 0.1,
        max_tokens: int = 2048,
        timeout_seconds: float = 30.0,
    ) -> ProviderResult:
        t0 = time.monotonic()
        text = json.dumps(MOCK_RECEIPT)
        elapsed = (time.monotonic() - t0) * 1000
        return ProviderResult(
            raw_text=text,
            model=model or self.default_model,
            provider=self.name,
            prompt_tokens=len(prompt.split()),
            completion_tokens=len(text.split()),
            latency_ms=round(elapsed, 2),
        )
