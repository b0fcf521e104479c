from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Protocol

from tryon_studio.config import settings
from tryon_studio.intake import decode_data_uri, encode_data_uri
from tryon_studio.request_builder import GenerationRequest


@dataclass(frozen=True)
class InlineImage:
    data: bytes
    mime_type: str | None = None


@dataclass(frozen=True)
class GeneratedImage:
    id: str
    url: str  # data URI

    @classmethod
    def from_inline(cls, inline: InlineImage) -> GeneratedImage:
        return cls(id=new_image_id(), url=encode_data_uri(inline.data, inline.mime_type or "image/png"))

    @property
    def media_type(self) -> str:
        return decode_data_uri(self.url)[0] or "image/png"

    @property
    def content(self) -> bytes:
        return decode_data_uri(self.url)[1]


def new_image_id() -> str:
    return f"gen_{uuid.uuid4().hex[:12]}"


def download_filename(image: GeneratedImage) -> str:
    # Always .png, whatever the provider actually returned.
    return f"{settings.download_prefix}{image.id}.png"


class ImageProvider(Protocol):
    name: str

    async def generate(self, request: GenerationRequest) -> InlineImage | None: ...
