"""Pydantic request and response models for the Flux Gallery API.

These models define the JSON schema for every API endpoint.  FastAPI uses
them for automatic request validation, serialisation, and OpenAPI
documentation generation.

Field names follow the wire format used by the browser client, which is
camelCase (``isValidImagePrompt``, ``userId``).  The Python attributes are
snake_case with an alias, and ``populate_by_name`` lets either spelling be
used when constructing a model in code.

Models
------
EnhancementRequest
    Payload for ``POST /api/translate-prompt`` — raw text plus an optional
    style name.
EnhancementResult
    Successful response of ``POST /api/translate-prompt``.
ErrorResponse
    Body of every 400 response.
GalleryNotifyRequest
    Payload for ``POST /api/gallery/notify`` — broadcasts a gallery update.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class EnhancementRequest(BaseModel):
    """Request body for the ``POST /api/translate-prompt`` endpoint.

    ``text`` is declared optional so that a missing value reaches the route
    handler, which answers with the localized 400 message instead of a
    generic schema error.

    Attributes:
        text: Rough prompt typed by the user, in any language.
        style: Artistic style name.  ``None`` means the configured default
            (``"Hyper-realism"`` unless overridden).
    """

    text: str | None = Field(
        default=None,
        description="Rough prompt text to enhance (required, any language).",
    )
    style: str | None = Field(
        default=None,
        description="Style name, e.g. 'Hyper-realism'.",
    )


class EnhancementResult(BaseModel):
    """Response body of a successful prompt enhancement.

    Attributes:
        prompt: Finalized English image-generation prompt.  Never empty.
        is_valid_image_prompt: Always ``True``; serialised as
            ``isValidImagePrompt``.
    """

    model_config = ConfigDict(populate_by_name=True)

    prompt: str = Field(
        ...,
        min_length=1,
        description="Finalized image-generation prompt.",
    )
    is_valid_image_prompt: bool = Field(
        default=True,
        alias="isValidImagePrompt",
        description="Always true; kept for client compatibility.",
    )


class ErrorResponse(BaseModel):
    """Body of a 400 response."""

    error: str


class GalleryNotifyRequest(BaseModel):
    """Request body for the ``POST /api/gallery/notify`` endpoint.

    Attributes:
        user_id: Owner of the gallery that changed (``userId`` on the wire).
    """

    model_config = ConfigDict(populate_by_name=True)

    user_id: str | None = Field(
        default=None,
        alias="userId",
        description="Owner of the updated gallery.",
    )
