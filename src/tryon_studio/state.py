from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Union

from tryon_studio.intake import UploadedImage
from tryon_studio.providers.base import GeneratedImage
from tryon_studio.request_builder import GenerationSettings

IMAGE_SLOTS = ("garment", "model", "scene")


class AppStatus(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class AppState:
    status: AppStatus = AppStatus.IDLE
    settings: GenerationSettings = field(default_factory=GenerationSettings)
    results: tuple[GeneratedImage, ...] = ()
    error_message: str = ""


@dataclass(frozen=True)
class ImageSelected:
    slot: str
    image: UploadedImage


@dataclass(frozen=True)
class ImageCleared:
    slot: str


@dataclass(frozen=True)
class SettingsChanged:
    changes: dict[str, Any]


@dataclass(frozen=True)
class GenerationStarted:
    pass


@dataclass(frozen=True)
class GenerationSucceeded:
    results: tuple[GeneratedImage, ...]


@dataclass(frozen=True)
class GenerationFailed:
    message: str


@dataclass(frozen=True)
class ValidationFailed:
    message: str


Action = Union[
    ImageSelected,
    ImageCleared,
    SettingsChanged,
    GenerationStarted,
    GenerationSucceeded,
    GenerationFailed,
    ValidationFailed,
]


def _slot_field(slot: str) -> str:
    if slot not in IMAGE_SLOTS:
        raise ValueError(f"unknown image slot: {slot}")
    return f"{slot}_image"


def reduce(state: AppState, action: Action) -> AppState:
    """Return the state after `action`. Never mutates `state`."""
    if isinstance(action, ImageSelected):
        return replace(state, settings=state.settings.with_changes(**{_slot_field(action.slot): action.image}))
    if isinstance(action, ImageCleared):
        return replace(state, settings=state.settings.with_changes(**{_slot_field(action.slot): None}))
    if isinstance(action, SettingsChanged):
        return replace(state, settings=state.settings.with_changes(**action.changes))
    if isinstance(action, GenerationStarted):
        return replace(state, status=AppStatus.GENERATING, results=(), error_message="")
    if isinstance(action, GenerationSucceeded):
        return replace(state, status=AppStatus.SUCCESS, results=tuple(action.results), error_message="")
    if isinstance(action, GenerationFailed):
        return replace(state, status=AppStatus.ERROR, results=(), error_message=action.message)
    if isinstance(action, ValidationFailed):
        # Guard failures leave the status alone.
        return replace(state, error_message=action.message)
    raise TypeError(f"unknown action: {action!r}")
