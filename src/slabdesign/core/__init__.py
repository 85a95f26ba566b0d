"""Core functionality for slab design renders.

This package holds the pipeline stages and the configuration they share:

- **reference**: CMS media URI -> fetchable HTTPS URL
- **fetcher**: slab image download (``httpx``)
- **prompt_builder**: fixed directives + caller prompt
- **generation**: Gemini image generation and response parsing
- **pipeline**: stage sequencing and error propagation
- **errors**: error taxonomy with HTTP status mapping
- **config**: ``SlabDesignConfig`` loaded from ``SLABDESIGN_*`` variables

Usage Example
-------------
::

    import httpx
    from slabdesign.core import (
        AssetFetcher, DesignPipeline, DesignRequest,
        GeminiGenerationClient, load_config,
    )

    config = load_config()
    async with httpx.AsyncClient() as http:
        pipeline = DesignPipeline(
            config,
            AssetFetcher(http, timeout=config.fetch_timeout, headers=config.fetch_headers),
            GeminiGenerationClient.from_config(config),
        )
        outcome = await pipeline.run(
            DesignRequest(prompt="Kitchen island", image_reference="wix:image://v1/...")
        )
"""

from slabdesign.core.config import SlabDesignConfig, load_config
from slabdesign.core.errors import (
    AssetFetchFailed,
    DesignEngineError,
    GenerationBackendError,
    InvalidInput,
    InvalidReference,
    MalformedGenerationResponse,
    NoImageReturned,
)
from slabdesign.core.fetcher import AssetFetcher, ResolvedAsset
from slabdesign.core.generation import (
    BinaryPart,
    GeminiGenerationClient,
    GenerationClientBase,
    GenerationResult,
    TextPart,
    extract_image,
)
from slabdesign.core.pipeline import DesignOutcome, DesignPipeline, DesignRequest, DesignStage
from slabdesign.core.prompt_builder import CompositePrompt, build_prompt
from slabdesign.core.reference import resolve_reference

__all__ = [
    "AssetFetchFailed",
    "AssetFetcher",
    "BinaryPart",
    "CompositePrompt",
    "DesignEngineError",
    "DesignOutcome",
    "DesignPipeline",
    "DesignRequest",
    "DesignStage",
    "GeminiGenerationClient",
    "GenerationBackendError",
    "GenerationClientBase",
    "GenerationResult",
    "InvalidInput",
    "InvalidReference",
    "MalformedGenerationResponse",
    "NoImageReturned",
    "ResolvedAsset",
    "SlabDesignConfig",
    "TextPart",
    "build_prompt",
    "extract_image",
    "load_config",
    "resolve_reference",
]
