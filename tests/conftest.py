# Test fixtures and configuration
import asyncio

import pytest

from tryon_studio.config import settings
from tryon_studio.intake import accept_file
from tryon_studio.providers.base import InlineImage


@pytest.fixture
def minimal_png_bytes():
    """Minimal valid PNG image bytes."""
    return bytes([
        0x89, 0x50, 0x4E, 0x47, 0x0D, 0x0A, 0x1A, 0x0A,  # PNG signature
        0x00, 0x00, 0x00, 0x0D, 0x49, 0x48, 0x44, 0x52,  # IHDR chunk
        0x00, 0x00, 0x00, 0x01, 0x00, 0x00, 0x00, 0x01,  # 1x1 dimensions
        0x08, 0x02, 0x00, 0x00, 0x00, 0x90, 0x77, 0x53,
        0xDE, 0x00, 0x00, 0x00, 0x0C, 0x49, 0x44, 0x41,  # IDAT chunk
        0x54, 0x08, 0xD7, 0x63, 0xF8, 0xCF, 0xC0, 0x00,
        0x00, 0x00, 0x03, 0x00, 0x01, 0x00, 0x05, 0xFE,
        0xD4, 0xAA, 0x00, 0x00, 0x00, 0x00, 0x49, 0x45,  # IEND chunk
        0x4E, 0x44, 0xAE, 0x42, 0x60, 0x82
    ])


@pytest.fixture
def garment_image(minimal_png_bytes):
    return accept_file(minimal_png_bytes, content_type="image/png", filename="garment.png")


@pytest.fixture
def model_image(minimal_png_bytes):
    return accept_file(minimal_png_bytes, content_type="image/jpeg", filename="model.jpg")


@pytest.fixture
def scene_image(minimal_png_bytes):
    return accept_file(minimal_png_bytes, content_type="image/webp", filename="scene.webp")


@pytest.fixture
def no_env_key(monkeypatch):
    """Make sure no GEMINI_API_KEY / API_KEY from the environment leaks in."""
    monkeypatch.setattr(settings, "gemini_api_key", None)


class FakeProvider:
    """
    Stand-in for GeminiProvider.

    `outcomes[i]` decides what call i returns: bytes -> an image, None -> no
    image, an Exception -> raised. `delays[i]` lets calls finish out of order.
    """

    name = "fake"

    def __init__(self, api_key, outcomes, delays=None):
        self.api_key = api_key
        self.outcomes = list(outcomes)
        self.delays = list(delays or [0.0] * len(self.outcomes))
        self.calls = 0
        self.finished = []
        self.closed = False

    async def generate(self, request):
        index = self.calls
        self.calls += 1
        await asyncio.sleep(self.delays[index])
        self.finished.append(index)
        outcome = self.outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        if outcome is None:
            return None
        return InlineImage(data=outcome, mime_type="image/png")

    async def aclose(self):
        self.closed = True


@pytest.fixture
def fake_provider_factory():
    """Returns a function building a factory plus a holder for the created provider."""

    def make(outcomes, delays=None):
        created = []

        def factory(api_key):
            provider = FakeProvider(api_key, outcomes, delays)
            created.append(provider)
            return provider

        return factory, created

    return make
