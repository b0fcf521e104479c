"""Tests for the concurrent generation dispatcher."""

import pytest

from tryon_studio.config import settings
from tryon_studio.dispatcher import dispatch, resolve_credential
from tryon_studio.errors import MissingCredentialError
from tryon_studio.request_builder import GenerationSettings, build_request


@pytest.fixture
def request_obj(garment_image, model_image):
    return build_request(GenerationSettings(garment_image=garment_image, model_image=model_image))


class TestResolveCredential:
    """Explicit key wins, environment is the fallback."""

    def test_explicit_wins(self, monkeypatch):
        monkeypatch.setattr(settings, "gemini_api_key", "env-key")
        assert resolve_credential("user-key") == "user-key"

    def test_falls_back_to_environment(self, monkeypatch):
        monkeypatch.setattr(settings, "gemini_api_key", "env-key")
        assert resolve_credential(None) == "env-key"
        assert resolve_credential("   ") == "env-key"

    def test_missing_everywhere(self, no_env_key):
        with pytest.raises(MissingCredentialError):
            resolve_credential("")


class TestDispatch:
    """Fan-out, aggregation and ordering."""

    @pytest.mark.asyncio
    async def test_all_succeed(self, request_obj, fake_provider_factory):
        factory, created = fake_provider_factory([b"a", b"b"])

        results = await dispatch(request_obj, 2, credential="key", provider_factory=factory)

        assert [r.content for r in results] == [b"a", b"b"]
        assert len({r.id for r in results}) == 2
        assert all(r.url.startswith("data:image/png;base64,") for r in results)
        assert created[0].api_key == "key"
        assert created[0].calls == 2

    @pytest.mark.asyncio
    async def test_out_of_order_completion_keeps_start_order(self, request_obj, fake_provider_factory):
        outcomes = [b"img0", RuntimeError("boom"), b"img2", None, b"img4"]
        delays = [0.05, 0.0, 0.03, 0.01, 0.0]
        factory, created = fake_provider_factory(outcomes, delays)

        results = await dispatch(request_obj, 5, credential="key", provider_factory=factory)

        # Calls really did finish out of order.
        assert created[0].finished != sorted(created[0].finished)
        assert [r.content for r in results] == [b"img0", b"img2", b"img4"]

    @pytest.mark.asyncio
    async def test_all_fail_returns_empty(self, request_obj, fake_provider_factory):
        factory, _ = fake_provider_factory([RuntimeError("a"), None])

        results = await dispatch(request_obj, 2, credential="key", provider_factory=factory)

        assert results == []

    @pytest.mark.asyncio
    async def test_provider_closed_after_run(self, request_obj, fake_provider_factory):
        factory, created = fake_provider_factory([b"a", RuntimeError("boom")])

        await dispatch(request_obj, 2, credential="key", provider_factory=factory)

        assert created[0].closed is True

    @pytest.mark.asyncio
    async def test_provider_closed_when_every_call_fails(self, request_obj, fake_provider_factory):
        factory, created = fake_provider_factory([RuntimeError("a"), None])

        results = await dispatch(request_obj, 2, credential="key", provider_factory=factory)

        assert results == []
        assert created[0].closed is True

    @pytest.mark.asyncio
    async def test_failures_are_logged(self, request_obj, fake_provider_factory, caplog):
        factory, _ = fake_provider_factory([RuntimeError("quota exceeded"), b"ok"])

        with caplog.at_level("ERROR", logger="tryon_studio.dispatcher"):
            results = await dispatch(request_obj, 2, credential="key", provider_factory=factory)

        assert len(results) == 1
        assert "Generation 1/2 failed" in caplog.text

    @pytest.mark.asyncio
    async def test_missing_credential_fails_before_any_call(self, request_obj, no_env_key, fake_provider_factory):
        factory, created = fake_provider_factory([b"a"])

        with pytest.raises(MissingCredentialError):
            await dispatch(request_obj, 1, credential=None, provider_factory=factory)

        assert created == []

    @pytest.mark.asyncio
    async def test_environment_credential_used(self, request_obj, monkeypatch, fake_provider_factory):
        monkeypatch.setattr(settings, "gemini_api_key", "env-key")
        factory, created = fake_provider_factory([b"a"])

        await dispatch(request_obj, 1, provider_factory=factory)

        assert created[0].api_key == "env-key"

    @pytest.mark.asyncio
    async def test_zero_count_rejected(self, request_obj, fake_provider_factory):
        factory, _ = fake_provider_factory([])
        with pytest.raises(ValueError):
            await dispatch(request_obj, 0, credential="key", provider_factory=factory)
