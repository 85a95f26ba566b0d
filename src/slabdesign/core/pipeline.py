"""Request orchestration for slab design renders.

:class:`DesignPipeline` runs one design request through its stages, strictly
in order::

    VALIDATING -> RESOLVING -> FETCHING -> COMPOSING -> GENERATING -> RESPONDING

Any error moves the request to ``FAILED``.  The error is tagged with the
stage it came from (``error.stage``), logged, and re-raised unchanged; the
HTTP layer turns it into a response.  Nothing is retried and nothing
outlives the request.

The pipeline holds only read-only collaborators (configuration, fetcher,
generation client), so a single instance serves concurrent requests.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from enum import Enum

from .config import SlabDesignConfig
from .errors import DesignEngineError, InvalidInput
from .fetcher import AssetFetcher, ResolvedAsset
from .generation import GenerationClientBase, GenerationResult
from .prompt_builder import CompositePrompt, compose
from .reference import resolve_reference

logger = logging.getLogger(__name__)

EMPTY_PROMPT_MESSAGE = "Prompt cannot be empty."
MISSING_REFERENCE_MESSAGE = "slabImageUrl is missing. Please select a slab first."


class DesignStage(str, Enum):
    """Stages of a design request."""

    VALIDATING = "validating"
    RESOLVING = "resolving"
    FETCHING = "fetching"
    COMPOSING = "composing"
    GENERATING = "generating"
    RESPONDING = "responding"
    FAILED = "failed"


@dataclass(frozen=True)
class DesignRequest:
    """A caller's design request.

    Attributes:
        prompt: Free-text description of the wanted render.
        image_reference: Slab image as an ``http(s)`` URL or CMS media URI.
        label: Optional slab label, e.g. a lot number.
    """

    prompt: str | None
    image_reference: str | None
    label: str | None = None


@dataclass(frozen=True)
class DesignOutcome:
    """Everything a successful request produced."""

    request: DesignRequest
    source_url: str
    prompt: CompositePrompt
    result: GenerationResult

    @property
    def image_base64(self) -> str:
        """The generated image, base64 encoded for JSON transport."""
        return base64.b64encode(self.result.image_bytes).decode("ascii")


def validate_request(request: DesignRequest) -> None:
    """Reject requests without a prompt or a slab reference.

    Raises:
        InvalidInput: If the prompt is missing or blank, or the slab
            reference is missing or blank.
    """
    if not isinstance(request.prompt, str) or not request.prompt.strip():
        raise InvalidInput(EMPTY_PROMPT_MESSAGE)

    reference = request.image_reference
    if reference is None or (isinstance(reference, str) and not reference.strip()):
        raise InvalidInput(MISSING_REFERENCE_MESSAGE)


class DesignPipeline:
    """Run design requests from validation to the generated image.

    Args:
        config: Service configuration (reference resolution settings).
        fetcher: Downloads the slab image.
        generator: Generation backend client.
    """

    def __init__(
        self,
        config: SlabDesignConfig,
        fetcher: AssetFetcher,
        generator: GenerationClientBase,
    ) -> None:
        self.config = config
        self.fetcher = fetcher
        self.generator = generator

    @property
    def model_identifier(self) -> str:
        return self.generator.model_identifier

    def resolve(self, reference: object) -> str:
        """Resolve a slab reference with the configured host settings."""
        return resolve_reference(
            reference,
            static_host=self.config.static_host,
            raw_passthrough=self.config.raw_passthrough,
            keep_filename=self.config.keep_filename,
        )

    async def run(self, request: DesignRequest) -> DesignOutcome:
        """Process one design request.

        Args:
            request: The caller's request.

        Returns:
            The :class:`DesignOutcome` of the request.

        Raises:
            DesignEngineError: Any stage failure, with ``stage`` set.
        """
        stage = DesignStage.VALIDATING
        try:
            validate_request(request)

            stage = DesignStage.RESOLVING
            url = self.resolve(request.image_reference)
            logger.info(f"Resolved slab reference {request.image_reference!r} -> {url}")

            stage = DesignStage.FETCHING
            asset: ResolvedAsset = await self.fetcher.fetch(url)

            stage = DesignStage.COMPOSING
            prompt = compose(request.prompt, request.label)

            stage = DesignStage.GENERATING
            result = await self.generator.generate(prompt.text, asset)

            stage = DesignStage.RESPONDING
            logger.info(
                f"Design request complete: {result.mime_type}, "
                f"{len(result.image_bytes)} bytes from {result.model_identifier}"
            )
            return DesignOutcome(
                request=request,
                source_url=url,
                prompt=prompt,
                result=result,
            )

        except DesignEngineError as e:
            e.stage = stage.value
            if e.status_code < 500:
                logger.warning(f"Design request rejected while {stage.value}: {e}")
            else:
                logger.error(f"Design request failed while {stage.value}: {e}")
            raise
        except Exception:
            logger.error(
                f"Unexpected error while {stage.value}; request {DesignStage.FAILED.value}",
                exc_info=True,
            )
            raise
