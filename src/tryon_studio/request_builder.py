from __future__ import annotations

import base64
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Union

from tryon_studio.config import settings as app_settings
from tryon_studio.errors import MissingRequiredImageError
from tryon_studio.intake import UploadedImage, split_data_uri


class QualityTier(str, Enum):
    FAST = "fast"
    PRO = "pro"


class Resolution(str, Enum):
    R1K = "1K"
    R2K = "2K"
    R4K = "4K"


@dataclass(frozen=True)
class GenerationSettings:
    credential: str | None = None
    garment_image: UploadedImage | None = None
    model_image: UploadedImage | None = None
    scene_image: UploadedImage | None = None
    instruction: str = ""
    requested_count: int = 1
    quality_tier: QualityTier = QualityTier.FAST
    # Only used when quality_tier is PRO.
    resolution: Resolution = Resolution.R1K

    def with_changes(self, **changes: Any) -> GenerationSettings:
        return replace(self, **changes)


@dataclass(frozen=True)
class ImagePart:
    data: str  # base64 payload, no data URI prefix
    mime_type: str


@dataclass(frozen=True)
class TextPart:
    text: str


@dataclass(frozen=True)
class FastImageConfig:
    temperature: float
    aspect_ratio: str
    tier: QualityTier = field(default=QualityTier.FAST, init=False)

    def to_wire(self) -> dict[str, Any]:
        return {"temperature": self.temperature, "imageConfig": {"aspectRatio": self.aspect_ratio}}


@dataclass(frozen=True)
class ProImageConfig:
    temperature: float
    aspect_ratio: str
    image_size: Resolution
    tier: QualityTier = field(default=QualityTier.PRO, init=False)

    def to_wire(self) -> dict[str, Any]:
        return {
            "temperature": self.temperature,
            "imageConfig": {"aspectRatio": self.aspect_ratio, "imageSize": self.image_size.value},
        }


ImageGenConfig = Union[FastImageConfig, ProImageConfig]


@dataclass(frozen=True)
class GenerationRequest:
    model: str
    parts: tuple[ImagePart | TextPart, ...]
    config: ImageGenConfig

    @property
    def prompt(self) -> str:
        return next(p.text for p in self.parts if isinstance(p, TextPart))

    def to_genai_contents(self) -> list[Any]:
        from google.genai import types  # type: ignore

        contents: list[Any] = []
        for part in self.parts:
            if isinstance(part, ImagePart):
                contents.append(types.Part.from_bytes(data=base64.b64decode(part.data), mime_type=part.mime_type))
            else:
                contents.append(types.Part.from_text(text=part.text))
        return contents

    def to_genai_config(self) -> Any:
        from google.genai import types  # type: ignore

        if isinstance(self.config, ProImageConfig):
            image_config = types.ImageConfig(
                aspect_ratio=self.config.aspect_ratio,
                image_size=self.config.image_size.value,
            )
        else:
            image_config = types.ImageConfig(aspect_ratio=self.config.aspect_ratio)
        return types.GenerateContentConfig(
            temperature=self.config.temperature,
            image_config=image_config,
        )


def _image_part(image: UploadedImage) -> ImagePart:
    _, payload = split_data_uri(image.data_uri)
    return ImagePart(data=payload, mime_type=image.media_type)


def build_prompt(has_scene: bool, instruction: str = "", aspect_ratio: str = "9:16") -> str:
    text = "STRICT VIRTUAL TRY-ON TASK.\n"
    text += "REFERENCE IDENTIFICATION:\n"
    text += "- IMAGE 1 is the CLOTHING/GARMENT (The Product).\n"
    text += "- IMAGE 2 is the MODEL (The Person).\n"
    if has_scene:
        text += "- IMAGE 3 is the BACKGROUND SCENE.\n"

    text += "\nINSTRUCTIONS:\n"
    text += (
        "1. DRESS THE MODEL: Take the clothing explicitly shown in IMAGE 1 and put it on the person shown in IMAGE 2.\n"
    )
    text += (
        "2. REPLACE OLD CLOTHES: Completely replace whatever the model in IMAGE 2 is currently wearing. "
        "The final image must show the model wearing the IMAGE 1 garment.\n"
    )
    text += (
        "3. PRESERVE IDENTITY: You MUST keep the face, hair, head shape, and body pose of the model in IMAGE 2 "
        "EXACTLY the same. Do not generate a new person. It must look like the same person.\n"
    )
    if has_scene:
        text += (
            "4. BACKGROUND: Place this newly dressed model into the environment of IMAGE 3. "
            "Adjust lighting on the model to match IMAGE 3.\n"
        )
    else:
        text += (
            "4. BACKGROUND: Keep the background simple and commercial (studio grey or white) "
            "unless specified otherwise.\n"
        )

    text += "\nCONSTRAINTS:\n"
    text += "- High fidelity texture for the clothing (from Image 1).\n"
    text += "- Photorealistic skin texture for the model (from Image 2).\n"
    text += f"- Aspect Ratio: {aspect_ratio}.\n"

    if instruction:
        text += f"\nADDITIONAL REQUIREMENTS: {instruction}"
    return text


def select_model(tier: QualityTier) -> str:
    if tier is QualityTier.PRO:
        return app_settings.gemini_pro_model
    return app_settings.gemini_fast_model


def build_config(tier: QualityTier, resolution: Resolution) -> ImageGenConfig:
    if tier is QualityTier.PRO:
        return ProImageConfig(
            temperature=app_settings.generation_temperature,
            aspect_ratio=app_settings.aspect_ratio,
            image_size=resolution,
        )
    return FastImageConfig(
        temperature=app_settings.generation_temperature,
        aspect_ratio=app_settings.aspect_ratio,
    )


def build_request(settings: GenerationSettings) -> GenerationRequest:
    """
    Assemble the multi-image try-on request:
    - garment, model and (optional) scene image parts, in that order
    - one instruction text part describing which image plays which role
    - model + image config picked from the quality tier
    """
    if settings.garment_image is None:
        raise MissingRequiredImageError("garment")
    if settings.model_image is None:
        raise MissingRequiredImageError("model")

    parts: list[ImagePart | TextPart] = [
        _image_part(settings.garment_image),
        _image_part(settings.model_image),
    ]
    has_scene = settings.scene_image is not None
    if settings.scene_image is not None:
        parts.append(_image_part(settings.scene_image))

    parts.append(
        TextPart(
            text=build_prompt(
                has_scene=has_scene,
                instruction=settings.instruction,
                aspect_ratio=app_settings.aspect_ratio,
            )
        )
    )

    return GenerationRequest(
        model=select_model(settings.quality_tier),
        parts=tuple(parts),
        config=build_config(settings.quality_tier, settings.resolution),
    )
