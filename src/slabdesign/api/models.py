"""Pydantic request and response models for the design API.

The JSON field names are fixed by the page builder frontend (camelCase);
the Python attributes are snake_case and mapped with aliases.

Models
------
DesignRequestBody
    Payload for ``POST /api/design``.
DesignResponse
    Success body of ``POST /api/design``.
ErrorResponse
    Body of every failed request (``ok`` is always ``False``).
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from slabdesign.core.pipeline import DesignRequest


class DesignRequestBody(BaseModel):
    """Request body for the ``POST /api/design`` endpoint.

    Every field is optional at the schema level: a missing prompt or slab
    reference is reported by the pipeline as a 400 with a readable message
    rather than as a schema error.

    Attributes:
        prompt: Free-text description of the render.
        slab_image_url: Slab image as an ``http(s)`` URL or CMS media URI.
        slab_label: Optional slab label shown in the material directive.
    """

    model_config = ConfigDict(populate_by_name=True)

    prompt: str | None = Field(
        default=None,
        description="Free-text description of the wanted interior render.",
    )
    slab_image_url: str | None = Field(
        default=None,
        alias="slabImageUrl",
        description="Slab image URL or CMS media URI (e.g. 'wix:image://v1/...').",
    )
    slab_label: str | None = Field(
        default=None,
        alias="slabLabel",
        description="Optional slab label, e.g. a lot number.",
    )

    def to_design_request(self) -> DesignRequest:
        return DesignRequest(
            prompt=self.prompt,
            image_reference=self.slab_image_url,
            label=self.slab_label,
        )


class DesignResponse(BaseModel):
    """Success body of ``POST /api/design``.

    Attributes:
        ok: Always ``True``.
        image_base64: The generated image, base64 encoded.
        mime_type: Media type of the generated image.
        model: Identifier of the model that generated it.
        received: Echo of the request fields for client-side correlation.
    """

    model_config = ConfigDict(populate_by_name=True)

    ok: Literal[True] = True
    image_base64: str = Field(..., alias="imageBase64")
    mime_type: str = Field(..., alias="mimeType")
    model: str
    received: DesignRequestBody


class ErrorResponse(BaseModel):
    """Body of every failed request."""

    ok: Literal[False] = False
    error: str
