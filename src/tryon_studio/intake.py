from __future__ import annotations

import base64
import binascii
import mimetypes
from dataclasses import dataclass
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from tryon_studio.errors import NotAnImageError


@dataclass(frozen=True)
class UploadedImage:
    data_uri: str
    media_type: str
    filename: str | None = None

    @property
    def payload(self) -> str:
        """Base64 payload without the data URI prefix."""
        return split_data_uri(self.data_uri)[1]

    @property
    def content(self) -> bytes:
        return base64.b64decode(self.payload)


def encode_data_uri(data: bytes, media_type: str) -> str:
    return f"data:{media_type};base64,{base64.b64encode(data).decode('ascii')}"


def split_data_uri(value: str) -> tuple[str | None, str]:
    """
    Split `data:<type>;base64,<payload>` into (media type, payload).
    Strings without a comma are treated as a bare payload.
    """
    if "," not in value:
        return None, value
    head, payload = value.split(",", 1)
    media_type = None
    if head.startswith("data:"):
        media_type = head[len("data:") :].split(";", 1)[0] or None
    return media_type, payload


def decode_data_uri(value: str) -> tuple[str | None, bytes]:
    media_type, payload = split_data_uri(value)
    try:
        return media_type, base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError("invalid base64 payload") from e


def _sniff_media_type(content: bytes) -> str | None:
    try:
        with Image.open(BytesIO(content)) as img:
            fmt = img.format
    except (UnidentifiedImageError, OSError):
        return None
    if not fmt:
        return None
    return Image.MIME.get(fmt)


def detect_media_type(content: bytes, content_type: str | None = None, filename: str | None = None) -> str | None:
    # Trust the declared type first, like a browser file picker does.
    declared = (content_type or "").split(";", 1)[0].strip().lower()
    if declared and declared != "application/octet-stream":
        return declared
    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed:
            return guessed
    return _sniff_media_type(content)


def accept_file(
    content: bytes,
    content_type: str | None = None,
    filename: str | None = None,
) -> UploadedImage:
    """
    Read an uploaded file into an UploadedImage.

    The whole file is encoded once as a data URI so the same value can be used
    for the preview and for the generation request.
    """
    media_type = detect_media_type(content, content_type=content_type, filename=filename)
    if not media_type or not media_type.startswith("image/"):
        raise NotAnImageError(media_type)
    return UploadedImage(
        data_uri=encode_data_uri(content, media_type),
        media_type=media_type,
        filename=filename,
    )
