from __future__ import annotations


class TryOnError(Exception):
    """Base class for errors the studio reports to the user."""


class NotAnImageError(TryOnError):
    def __init__(self, media_type: str | None) -> None:
        self.media_type = media_type
        super().__init__(f"not an image: {media_type or 'unknown media type'}")


class MissingRequiredImageError(TryOnError):
    MESSAGES = {
        "garment": "Upload the garment / product image first",
        "model": "Upload the model image first",
    }

    def __init__(self, role: str) -> None:
        self.role = role
        super().__init__(self.MESSAGES.get(role, f"missing {role} image"))


class MissingCredentialError(TryOnError):
    def __init__(self) -> None:
        super().__init__("Provide an API key or set GEMINI_API_KEY in the environment")


class AllCallsFailedError(TryOnError):
    def __init__(self) -> None:
        super().__init__("Generation failed: no usable image was returned")
