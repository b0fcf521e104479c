from __future__ import annotations

import asyncio
import logging
from typing import Callable

from tryon_studio.config import settings
from tryon_studio.errors import MissingCredentialError
from tryon_studio.providers.base import GeneratedImage, ImageProvider
from tryon_studio.providers.gemini_provider import GeminiProvider
from tryon_studio.request_builder import GenerationRequest

logger = logging.getLogger(__name__)


def resolve_credential(explicit: str | None) -> str:
    """Caller-supplied key first, then the environment (GEMINI_API_KEY / API_KEY)."""
    for candidate in (explicit, settings.gemini_api_key):
        if candidate and candidate.strip():
            return candidate.strip()
    raise MissingCredentialError()


async def dispatch(
    request: GenerationRequest,
    count: int,
    credential: str | None = None,
    provider_factory: Callable[[str], ImageProvider] = GeminiProvider,
) -> list[GeneratedImage]:
    """
    Run `count` generation calls concurrently with the same request.

    Failed calls and calls without an image are dropped; the survivors keep the
    order the calls were started in, not the order they finished in. An empty
    list means every call failed; deciding what that means is up to the caller.
    """
    if count < 1:
        raise ValueError("count must be >= 1")
    api_key = resolve_credential(credential)
    provider = provider_factory(api_key)

    slots: list[GeneratedImage | None] = [None] * count

    async def _run(index: int) -> None:
        try:
            inline = await provider.generate(request)
        except Exception:
            logger.exception("Generation %d/%d failed (model=%s)", index + 1, count, request.model)
            return
        if inline is None or not inline.data:
            logger.warning("Generation %d/%d returned no image (model=%s)", index + 1, count, request.model)
            return
        slots[index] = GeneratedImage.from_inline(inline)

    try:
        await asyncio.gather(*(_run(i) for i in range(count)))
    finally:
        close = getattr(provider, "aclose", None)
        if close is not None:
            await close()

    results = [s for s in slots if s is not None]
    logger.info("Dispatch finished: %d/%d images (model=%s)", len(results), count, request.model)
    return results
