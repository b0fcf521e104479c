from __future__ import annotations

from typing import Any

from tryon_studio.config import settings
from tryon_studio.providers.base import InlineImage
from tryon_studio.request_builder import GenerationRequest


class GeminiProvider:
    name = "gemini"

    def __init__(self, api_key: str, base_url: str | None = None) -> None:
        # Imported lazily so the app can start without the dependency installed.
        from google import genai  # type: ignore
        from google.genai import types  # type: ignore

        base_url = base_url or settings.gemini_base_url
        http_options = types.HttpOptions(base_url=base_url) if base_url else None
        self.client = genai.Client(api_key=api_key, http_options=http_options)

    async def generate(self, request: GenerationRequest) -> InlineImage | None:
        """
        One generate_content call. Sampling is not seeded, so repeated calls with
        the same request give different images.
        """
        resp = await self.client.aio.models.generate_content(
            model=request.model,
            contents=request.to_genai_contents(),
            config=request.to_genai_config(),
        )
        return _first_inline_image(resp)

    async def aclose(self) -> None:
        await self.client.aio.aclose()


def _first_inline_image(resp: Any) -> InlineImage | None:
    # Only the first candidate is inspected and only its first image part is kept.
    candidates = getattr(resp, "candidates", None) or []
    if not candidates:
        return None
    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []
    for part in parts:
        inline = getattr(part, "inline_data", None)
        if not inline:
            continue
        data = getattr(inline, "data", None)
        if not data:
            continue
        return InlineImage(data=data, mime_type=getattr(inline, "mime_type", None) or None)
    return None
