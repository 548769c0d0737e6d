from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


@dataclass(frozen=True)
class NormalizationDefaults:
    """Fallback policy applied when a field is missing or malformed."""

    currency: str = "USD"
    scan_vendor: str = "Unknown Vendor"
    manual_vendor: str = "Manual Entry"
    item_name: str = "Unknown Item"
    scan_confidence: float = 0.5
    fallback_confidence: float = 0.5
    manual_confidence: float = 1.0


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="ignore",
        validate_by_name=True,
        populate_by_name=True,
    )
    database_url: str = "sqlite:///./expenses.db"
    auto_create_schema: bool = True

    docs_enabled: bool = Field(default=True)
    openapi_enabled: bool = Field(default=True)
    expose_error_details: bool = False

    gemini_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    )
    anthropic_api_key: str = ""
    openai_api_key: str = ""

    ai_receipt_provider: str = "gemini"
    ai_receipt_model: str = ""
    ai_receipt_timeout_seconds: float = 30.0
    ai_max_tokens: int = 2048
    ai_temperature: float = 0.1
    enable_ai_overrides: bool = False

    max_image_bytes: int = 4 * 1024 * 1024

    default_currency: str = "USD"
    scan_default_vendor: str = "Unknown Vendor"
    manual_default_vendor: str = "Manual Entry"
    receipt_scan_default_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    # Applies to labelled-line fallback results only.
    receipt_fallback_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    manual_default_confidence: float = Field(default=1.0, ge=0.0, le=1.0)

    cors_allow_origins: Annotated[list[str], NoDecode] = Field(default_factory=list)
    cors_allow_methods: Annotated[list[str], NoDecode] = Field(default_factory=lambda: [
        "GET",
        "POST",
        "OPTIONS",
    ])
    cors_allow_headers: Annotated[list[str], NoDecode] = Field(default_factory=lambda: [
        "Content-Type",
        "Accept",
    ])

    @field_validator(
        "cors_allow_origins",
        "cors_allow_methods",
        "cors_allow_headers",
        mode="before",
    )
    @classmethod
    def _split_csv(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            if value.strip() == "":
                return []
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("ai_receipt_provider", mode="before")
    @classmethod
    def _normalize_provider(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    def normalization_defaults(self) -> NormalizationDefaults:
        return NormalizationDefaults(
            currency=self.default_currency,
            scan_vendor=self.scan_default_vendor,
            manual_vendor=self.manual_default_vendor,
            scan_confidence=self.receipt_scan_default_confidence,
            fallback_confidence=self.receipt_fallback_confidence,
            manual_confidence=self.manual_default_confidence,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
