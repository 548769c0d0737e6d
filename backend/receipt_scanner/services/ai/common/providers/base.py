"""Abstract base for all vision providers."""

from __future__ import annotations

import abc
import base64
from dataclasses import dataclass


@dataclass(frozen=True)
class ProviderResult:
    """Immutable result returned by every provider."""

    raw_text: str
    model: str
    provider: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    latency_ms: float = 0.0


class BaseProvider(abc.ABC):
    """Contract that every vision provider must implement."""

    name: str = "base"
    default_model: str = ""

    @abc.abstractmethod
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
        """Send *prompt* with one image and return a ``ProviderResult``."""


def encode_image(image_bytes: bytes) -> str:
    return base64.standard_b64encode(image_bytes).decode("ascii")
