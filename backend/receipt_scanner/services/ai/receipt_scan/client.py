"""Vision extraction client: one call to the vision model per receipt."""

from __future__ import annotations

import logging

import httpx

from receipt_scanner.core.errors import ExternalServiceError
from receipt_scanner.schemas.expense import ExpenseCategory, PaymentMethod

from ..common import router as ai_router
from ..common.providers.base import ProviderResult
from ..common.router import ResolvedConfig

logger = logging.getLogger(__name__)

RECEIPT_SCAN_PROMPT = """Analyze this receipt image and extract comprehensive information. Return the data in this exact JSON format:

{{
  "vendor": "[store/restaurant name]",
  "vendorAddress": "[address if visible]",
  "vendorPhone": "[phone if visible]",
  "date": "[YYYY-MM-DD format]",
  "receiptNumber": "[receipt/transaction number if visible]",
  "subtotal": [subtotal amount as number],
  "tax": [tax amount as number],
  "tip": [tip amount as number or null],
  "discount": [discount amount as number or null],
  "total": [total amount as number],
  "currency": "[currency code, default USD]",
  "category": "[categorize as one of: {categories}]",
  "paymentMethod": "[{payment_methods}]",
  "lineItems": [
    {{
      "name": "[item name]",
      "quantity": [quantity as number],
      "unitPrice": [price per unit as number],
      "totalPrice": [total for this item as number]
    }}
  ],
  "rawText": "[all visible text from receipt]",
  "confidence": [confidence score 0.0-1.0 for OCR accuracy]
}}
""".format(
    categories=", ".join(member.value for member in ExpenseCategory),
    payment_methods=", ".join(member.value for member in PaymentMethod),
)


class VisionExtractionClient:
    """Sends an image plus ``RECEIPT_SCAN_PROMPT`` and returns the raw answer.

    No parsing and no retry happen here; the returned text is opaque.
    """

    def __init__(self, config: ResolvedConfig, *, prompt: str = RECEIPT_SCAN_PROMPT) -> None:
        self._config = config
        self._prompt = prompt

    @classmethod
    def from_settings(
        cls,
        *,
        override_provider: str | None = None,
        override_model: str | None = None,
    ) -> VisionExtractionClient:
        """Build a client from settings; raises ``ConfigurationError`` early."""
        config = ai_router.resolve(
            "receipt_scan",
            override_provider=override_provider,
            override_model=override_model,
        )
        return cls(config)

    @property
    def provider_name(self) -> str:
        return self._config.provider.name

    @property
    def model(self) -> str:
        return self._config.model

    async def extract_text(self, image_bytes: bytes, mime_type: str = "image/jpeg") -> ProviderResult:
        config = self._config
        try:
            result = await config.provider.generate(
                self._prompt,
                image_bytes=image_bytes,
                mime_type=mime_type,
                model=config.model,
                temperature=config.temperature,
                max_tokens=config.max_tokens,
                timeout_seconds=config.timeout_seconds,
            )
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.warning("Vision provider %s returned HTTP %s", config.provider.name, status)
            raise ExternalServiceError(
                f"Vision service request failed: {status} {exc.response.reason_phrase}",
                status_code=status,
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("Vision provider %s transport failure: %s", config.provider.name, exc)
            raise ExternalServiceError(f"Vision service unreachable: {exc}") from exc
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            logger.warning("Vision provider %s returned an unexpected body: %s", config.provider.name, exc)
            raise ExternalServiceError("Vision service returned an unexpected response") from exc

        logger.info(
            "Vision call provider=%s model=%s latency_ms=%.1f chars=%d",
            result.provider,
            result.model,
            result.latency_ms,
            len(result.raw_text),
        )
        return result
