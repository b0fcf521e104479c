from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from tryon_studio.config import settings as app_settings
from tryon_studio.dispatcher import dispatch, resolve_credential
from tryon_studio.errors import AllCallsFailedError, MissingCredentialError, MissingRequiredImageError, NotAnImageError
from tryon_studio.intake import accept_file
from tryon_studio.providers.base import GeneratedImage, download_filename
from tryon_studio.request_builder import GenerationRequest, QualityTier, Resolution, build_request
from tryon_studio.state import (
    Action,
    AppState,
    AppStatus,
    GenerationFailed,
    GenerationStarted,
    GenerationSucceeded,
    ImageCleared,
    ImageSelected,
    SettingsChanged,
    ValidationFailed,
    reduce,
)

logger = logging.getLogger(__name__)

Dispatcher = Callable[..., Awaitable[list[GeneratedImage]]]

_EDITABLE_SETTINGS = {"credential", "instruction", "requested_count", "quality_tier", "resolution"}


class StudioController:
    """
    Holds the studio session: the current AppState plus the list of statuses it
    went through. All state changes go through `reduce`.
    """

    def __init__(self, dispatcher: Dispatcher = dispatch) -> None:
        self._dispatcher = dispatcher
        self.state = AppState()
        self.history: list[AppStatus] = [self.state.status]

    def _apply(self, action: Action) -> AppState:
        before = self.state.status
        self.state = reduce(self.state, action)
        if self.state.status is not before:
            logger.debug("Status %s -> %s", before.value, self.state.status.value)
            self.history.append(self.state.status)
        return self.state

    def select_image(
        self,
        slot: str,
        content: bytes,
        content_type: str | None = None,
        filename: str | None = None,
    ) -> bool:
        """Store an uploaded image in `slot`. Non-images are ignored and return False."""
        try:
            image = accept_file(content, content_type=content_type, filename=filename)
        except NotAnImageError as e:
            logger.info("Ignoring upload for %s slot: %s", slot, e)
            return False
        self._apply(ImageSelected(slot=slot, image=image))
        return True

    def clear_image(self, slot: str) -> None:
        self._apply(ImageCleared(slot=slot))

    def update_settings(self, **changes: Any) -> AppState:
        unknown = set(changes) - _EDITABLE_SETTINGS
        if unknown:
            raise ValueError(f"unknown settings: {', '.join(sorted(unknown))}")
        if "requested_count" in changes:
            count = int(changes["requested_count"])
            if not 1 <= count <= app_settings.max_image_count:
                raise ValueError(f"requested_count must be between 1 and {app_settings.max_image_count}")
            changes["requested_count"] = count
        if "quality_tier" in changes:
            changes["quality_tier"] = QualityTier(changes["quality_tier"])
        if "resolution" in changes:
            changes["resolution"] = Resolution(changes["resolution"])
        if "credential" in changes:
            changes["credential"] = (changes["credential"] or "").strip() or None
        return self._apply(SettingsChanged(changes=changes))

    @property
    def credential_available(self) -> bool:
        """True when a typed key or an environment key can be used."""
        try:
            resolve_credential(self.state.settings.credential)
        except MissingCredentialError:
            return False
        return True

    def _validation_error(self) -> str | None:
        s = self.state.settings
        if s.garment_image is None:
            return str(MissingRequiredImageError("garment"))
        if s.model_image is None:
            return str(MissingRequiredImageError("model"))
        try:
            resolve_credential(s.credential)
        except MissingCredentialError as e:
            return str(e)
        return None

    async def generate(self) -> AppState:
        if self.state.status is AppStatus.GENERATING:
            return self._apply(ValidationFailed("A generation is already running"))

        message = self._validation_error()
        if message:
            return self._apply(ValidationFailed(message))

        self._apply(GenerationStarted())
        s = self.state.settings
        try:
            request: GenerationRequest = build_request(s)
            credential = resolve_credential(s.credential)
            images = await self._dispatcher(request, s.requested_count, credential=credential)
            if not images:
                raise AllCallsFailedError()
        except AllCallsFailedError as e:
            logger.warning("Generation run produced no images")
            return self._apply(GenerationFailed(str(e)))
        except Exception as e:
            logger.exception("Generation run failed")
            return self._apply(GenerationFailed(str(e) or "Unknown error during generation"))
        return self._apply(GenerationSucceeded(results=tuple(images)))

    def find_result(self, image_id: str) -> GeneratedImage:
        for image in self.state.results:
            if image.id == image_id:
                return image
        raise KeyError(image_id)

    def download(self, image_id: str) -> tuple[str, str, bytes]:
        """Return (filename, media type, bytes) for one result."""
        image = self.find_result(image_id)
        return download_filename(image), image.media_type, image.content
