"""Shared pytest fixtures for Slab Design Engine tests."""

from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from slabdesign.api.main import create_app
from slabdesign.core.config import SlabDesignConfig
from slabdesign.core.errors import DesignEngineError
from slabdesign.core.fetcher import ResolvedAsset
from slabdesign.core.generation import GenerationClientBase, GenerationResult

SLAB_BYTES = b"\xff\xd8\xff\xe0slab-jpeg"
GENERATED_BYTES = b"\x89PNG\r\n\x1a\ngenerated"
TEST_MODEL_ID = "test-image-model"


class StubFetcher:
    """Records requested URLs and returns a fixed slab image (or raises)."""

    def __init__(self, error: DesignEngineError | None = None) -> None:
        self.data = SLAB_BYTES
        self.error = error
        self.calls: list[str] = []

    async def fetch(self, url: str) -> ResolvedAsset:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return ResolvedAsset(data=self.data, mime_type="image/jpeg", source_url=url)


class StubGenerator(GenerationClientBase):
    """Records prompts and returns a fixed PNG (or raises)."""

    def __init__(
        self,
        model_identifier: str = TEST_MODEL_ID,
        error: Exception | None = None,
    ) -> None:
        self.model_identifier = model_identifier
        self.image_bytes = GENERATED_BYTES
        self.error = error
        self.calls: list[tuple[str, ResolvedAsset | None]] = []

    async def generate(
        self,
        prompt: str,
        reference: ResolvedAsset | None = None,
    ) -> GenerationResult:
        self.calls.append((prompt, reference))
        if self.error is not None:
            raise self.error
        return GenerationResult(
            image_bytes=self.image_bytes,
            mime_type="image/png",
            model_identifier=self.model_identifier,
        )


@pytest.fixture
def test_config() -> SlabDesignConfig:
    """Create a test configuration that ignores any local .env file.

    Returns:
        SlabDesignConfig instance for testing
    """
    return SlabDesignConfig(
        gemini_api_key="test-key",
        model_id=TEST_MODEL_ID,
        static_host="static.example.com",
        _env_file=None,
    )


@pytest.fixture
def stub_fetcher() -> StubFetcher:
    return StubFetcher()


@pytest.fixture
def stub_generator() -> StubGenerator:
    return StubGenerator()


@pytest.fixture
def test_client(
    test_config: SlabDesignConfig,
    stub_fetcher: StubFetcher,
    stub_generator: StubGenerator,
) -> Generator[TestClient, None, None]:
    """Create a TestClient whose pipeline uses the stub collaborators.

    Yields:
        TestClient with the application lifespan running

    Cleanup:
        Lifespan shutdown runs when the client context exits
    """
    app = create_app(test_config, fetcher=stub_fetcher, generator=stub_generator)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def make_fetcher() -> type[StubFetcher]:
    """Factory for fetchers with custom behaviour, e.g. ``make_fetcher(error=...)``."""
    return StubFetcher


@pytest.fixture
def make_generator() -> type[StubGenerator]:
    """Factory for generators with custom behaviour, e.g. ``make_generator(error=...)``."""
    return StubGenerator
