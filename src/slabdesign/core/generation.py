"""Generation backend client.

The generation backend receives one multimodal user message (prompt text
plus the slab photo as inline bytes) and answers with a list of candidates,
each holding an ordered list of parts.  A part carries either text or inline
binary data.  Only the first candidate is used, and from it the first part
with inline data.

Response Normalisation
----------------------
SDK responses are converted into a plain sequence of :data:`ResponsePart`
values (:class:`TextPart` or :class:`BinaryPart`) by :func:`normalize_parts`,
and :func:`extract_image` searches that sequence.  Keeping the search on our
own types lets it be tested without the SDK.

=================================  ======================================
Response shape                     Outcome
=================================  ======================================
no candidates / no content/parts   MalformedGenerationResponse
parts with at least one binary     first BinaryPart
text parts only                    NoImageReturned (first 100 chars)
SDK raised                         GenerationBackendError
=================================  ======================================

Timeouts
--------
Image generation regularly takes well over a minute.  The SDK client is built
with an explicit ``HttpOptions(timeout=...)`` taken from configuration
(120-300 s), never the library default.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from google import genai
from google.genai import types

from .config import SlabDesignConfig
from .errors import (
    GenerationBackendError,
    MalformedGenerationResponse,
    NoImageReturned,
)
from .fetcher import ResolvedAsset

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_MIME_TYPE = "image/png"
TEXT_SNIPPET_LIMIT = 100


@dataclass(frozen=True)
class TextPart:
    """A text part of a generation response."""

    content: str


@dataclass(frozen=True)
class BinaryPart:
    """An inline binary part of a generation response."""

    data: bytes = field(repr=False)
    mime_type: str = DEFAULT_OUTPUT_MIME_TYPE


ResponsePart = TextPart | BinaryPart


@dataclass(frozen=True)
class GenerationResult:
    """The generated image.

    Attributes:
        image_bytes: Raw image bytes.
        mime_type: Media type reported by the backend.
        model_identifier: Model that produced the image.
    """

    image_bytes: bytes = field(repr=False)
    mime_type: str
    model_identifier: str


def extract_image(parts: Sequence[ResponsePart]) -> BinaryPart:
    """Return the first binary part of *parts*.

    Args:
        parts: Parts of the first candidate, in response order.

    Returns:
        The first :class:`BinaryPart`; text parts before it are ignored.

    Raises:
        NoImageReturned: If no part carries binary data.  The message holds
            the first text part, truncated to 100 characters.
    """
    for part in parts:
        if isinstance(part, BinaryPart):
            return part

    text = next((part.content for part in parts if isinstance(part, TextPart)), None)
    snippet = text.strip()[:TEXT_SNIPPET_LIMIT] if text else None
    raise NoImageReturned(snippet or None)


def normalize_parts(response: types.GenerateContentResponse) -> list[ResponsePart]:
    """Convert the first candidate of an SDK response into tagged parts.

    Thought parts (interim images and reasoning some image models emit
    before the final answer) are skipped, as are parts with neither text nor
    inline data.

    Raises:
        MalformedGenerationResponse: If there is no candidate, or the first
            candidate has no content parts.
    """
    candidates = response.candidates
    if not candidates:
        feedback = response.prompt_feedback
        reason = f" (blocked: {feedback.block_reason})" if feedback and feedback.block_reason else ""
        raise MalformedGenerationResponse(f"The model returned no candidates{reason}.")

    content = candidates[0].content
    if content is None or not content.parts:
        finish_reason = candidates[0].finish_reason
        reason = f" (finish reason: {finish_reason})" if finish_reason else ""
        raise MalformedGenerationResponse(f"The model returned an empty candidate{reason}.")

    parts: list[ResponsePart] = []
    for part in content.parts:
        if part.thought:
            continue
        if part.inline_data is not None and part.inline_data.data:
            parts.append(
                BinaryPart(
                    data=part.inline_data.data,
                    mime_type=part.inline_data.mime_type or DEFAULT_OUTPUT_MIME_TYPE,
                )
            )
        elif part.text:
            parts.append(TextPart(content=part.text))
    return parts


class GenerationClientBase(ABC):
    """Interface of a generation backend.

    Attributes
    ----------
    model_identifier : str
        Identifier of the model used, echoed to API callers.
    """

    model_identifier: str = "unknown"

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        reference: ResolvedAsset | None = None,
    ) -> GenerationResult:
        """Generate one image from *prompt* and an optional reference image.

        Raises:
            GenerationBackendError: The backend call failed.
            MalformedGenerationResponse: The response had no usable candidate.
            NoImageReturned: The response held text only.
        """


class GeminiGenerationClient(GenerationClientBase):
    """Gemini image model client built on the ``google-genai`` SDK.

    Args:
        api_key: Gemini API key.
        model_identifier: Image-capable model name.
        timeout_ms: SDK request timeout in milliseconds.
        reference_first: Send the reference image before the prompt text.
        client: Pre-built SDK client; mostly for tests.
    """

    def __init__(
        self,
        api_key: str,
        model_identifier: str,
        *,
        timeout_ms: int,
        reference_first: bool = False,
        client: genai.Client | None = None,
    ) -> None:
        self.model_identifier = model_identifier
        self.timeout_ms = timeout_ms
        self.reference_first = reference_first
        self.client = client or genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=timeout_ms),
        )
        logger.info(
            f"Gemini client ready: model={model_identifier} timeout={timeout_ms}ms "
            f"reference_first={reference_first}"
        )

    @classmethod
    def from_config(cls, config: SlabDesignConfig) -> GeminiGenerationClient:
        """Build a client from the service configuration."""
        return cls(
            config.gemini_api_key.get_secret_value(),
            config.model_id,
            timeout_ms=config.generation_timeout_ms,
            reference_first=config.reference_first,
        )

    def build_contents(
        self,
        prompt: str,
        reference: ResolvedAsset | None = None,
    ) -> list[types.Content]:
        """Build the single user message sent to the model."""
        parts: list[types.Part] = [types.Part.from_text(text=prompt)]
        if reference is not None and reference.data:
            image_part = types.Part.from_bytes(data=reference.data, mime_type=reference.mime_type)
            if self.reference_first:
                parts.insert(0, image_part)
            else:
                parts.append(image_part)
        return [types.Content(role="user", parts=parts)]

    async def generate(
        self,
        prompt: str,
        reference: ResolvedAsset | None = None,
    ) -> GenerationResult:
        logger.info(f"Generating with {self.model_identifier}. Prompt: {prompt}")

        try:
            response = await self.client.aio.models.generate_content(
                model=self.model_identifier,
                contents=self.build_contents(prompt, reference),
                config=types.GenerateContentConfig(response_modalities=["TEXT", "IMAGE"]),
            )
        except Exception as e:
            logger.error(f"Generation call to {self.model_identifier} failed: {e}", exc_info=True)
            raise GenerationBackendError(e) from e

        parts = normalize_parts(response)
        logger.debug(f"Response parts: {describe_parts(parts) or 'none'}")
        image = extract_image(parts)

        logger.info(f"Generation returned {len(image.data)} bytes ({image.mime_type})")
        return GenerationResult(
            image_bytes=image.data,
            mime_type=image.mime_type,
            model_identifier=self.model_identifier,
        )


def describe_parts(parts: Iterable[ResponsePart]) -> str:
    """Short description of a part list for log lines, e.g. ``text, image/png``."""
    return ", ".join(
        part.mime_type if isinstance(part, BinaryPart) else "text" for part in parts
    )
