"""Slab Design Engine - FastAPI Application.

This module defines the application factory, the REST routes, the error
handlers that shape every failure as ``{"ok": false, "error": ...}``, and the
``main()`` CLI function that launches the uvicorn server.

Architecture
------------
- **Configuration** is built once by :func:`main` (or passed to
  :func:`create_app` by tests) and stored on ``app.state.config``.
- **Outbound clients** (one ``httpx.AsyncClient`` for slab downloads, one
  Gemini SDK client) are created in the lifespan and shared by all requests.
- **The pipeline** (:class:`~slabdesign.core.pipeline.DesignPipeline`) does
  the work; routes only translate between JSON and pipeline types.

Endpoints
---------
========  ================  ==========================================
Method    Path              Purpose
========  ================  ==========================================
GET       ``/``             Plain-text liveness message
GET       ``/api/health``   Model identifier and version
POST      ``/api/design``   Generate a render from a prompt and a slab
========  ================  ==========================================

Usage
-----
CLI (installed entry point)::

    slabdesign

Direct invocation::

    python -m slabdesign.api.main
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError

from slabdesign import __version__
from slabdesign.api.models import DesignRequestBody, DesignResponse, ErrorResponse
from slabdesign.core.config import SlabDesignConfig, load_config
from slabdesign.core.errors import DesignEngineError
from slabdesign.core.fetcher import AssetFetcher
from slabdesign.core.generation import GeminiGenerationClient, GenerationClientBase
from slabdesign.core.pipeline import DesignOutcome, DesignPipeline, DesignRequest

logger = logging.getLogger(__name__)

LIVENESS_MESSAGE = "Slab Design Engine is running"
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred during the design request."

# How often a running design request checks whether its caller went away.
_DISCONNECT_POLL_SECONDS = 1.0


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
    )


# ---------------------------------------------------------------------------
# Application lifecycle - outbound client setup and teardown.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown lifecycle.

    On startup:
        Opens the shared ``httpx.AsyncClient``, builds the fetcher and the
        generation client (unless :func:`create_app` was given
        replacements) and stores a :class:`DesignPipeline` on
        ``app.state.pipeline``.

    On shutdown:
        Closes the ``httpx.AsyncClient``.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    config: SlabDesignConfig = app.state.config

    # --- Startup -----------------------------------------------------------
    async with httpx.AsyncClient() as http_client:
        fetcher = app.state.fetcher or AssetFetcher(
            http_client,
            timeout=config.fetch_timeout,
            headers=config.fetch_headers,
        )
        generator = app.state.generator or GeminiGenerationClient.from_config(config)
        app.state.pipeline = DesignPipeline(config, fetcher, generator)
        logger.info(f"Design pipeline ready (model: {generator.model_identifier}).")

        yield  # Application runs here.

    # --- Shutdown ----------------------------------------------------------
    logger.info("Outbound HTTP client closed on shutdown.")


# ---------------------------------------------------------------------------
# Error handlers - every failure becomes {"ok": false, "error": "..."}.
# ---------------------------------------------------------------------------


async def design_error_handler(request: Request, exc: DesignEngineError) -> JSONResponse:
    return _error_response(exc.status_code, exc.message)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed bodies (not JSON, wrong field types) as 400."""
    details = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "invalid value")
        details.append(f"{location}: {message}" if location else message)
    logger.warning(f"Rejected malformed request to {request.url.path}: {details}")
    return _error_response(400, "Invalid request body. " + "; ".join(details))


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=exc)
    return _error_response(500, str(exc) or UNEXPECTED_ERROR_MESSAGE)


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------

router = APIRouter()


async def _run_until_disconnect(
    request: Request, pipeline: DesignPipeline, design_request: DesignRequest
) -> DesignOutcome | None:
    """Run the pipeline, abandoning it if the caller disconnects.

    Returns:
        The outcome, or ``None`` when the caller went away first.
    """
    task = asyncio.ensure_future(pipeline.run(design_request))
    while True:
        done, _ = await asyncio.wait({task}, timeout=_DISCONNECT_POLL_SECONDS)
        if done:
            return task.result()
        if await request.is_disconnected():
            logger.warning("Caller disconnected; abandoning design request.")
            task.cancel()
            return None


@router.get("/", response_class=PlainTextResponse)
async def index() -> str:
    """Liveness check."""
    return LIVENESS_MESSAGE


@router.get("/api/health")
async def health(request: Request) -> dict:
    """Return the configured model identifier and the service version."""
    pipeline: DesignPipeline = request.app.state.pipeline
    return {"ok": True, "model": pipeline.model_identifier, "version": __version__}


@router.post(
    "/api/design",
    response_model=DesignResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def design(body: DesignRequestBody, request: Request):
    """Generate an interior render from a prompt and a slab image.

    This endpoint:

    1. Validates that a prompt and a slab reference are present.
    2. Resolves a CMS media URI to an HTTPS URL.
    3. Downloads the slab image.
    4. Composes the generation prompt.
    5. Calls the generation model with prompt and slab image.

    Args:
        body: Validated :class:`DesignRequestBody` payload.

    Returns:
        :class:`DesignResponse` with the base64 image.  Failures are
        rendered by the error handlers as :class:`ErrorResponse`.
    """
    logger.info(
        f"[/api/design] prompt={body.prompt!r} slabImageUrl={body.slab_image_url!r} "
        f"slabLabel={body.slab_label!r}"
    )
    pipeline: DesignPipeline = request.app.state.pipeline

    outcome = await _run_until_disconnect(request, pipeline, body.to_design_request())
    if outcome is None:
        return _error_response(499, "Client disconnected before the design was ready.")

    return DesignResponse(
        image_base64=outcome.image_base64,
        mime_type=outcome.result.mime_type,
        model=outcome.result.model_identifier,
        received=body,
    )


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def create_app(
    config: SlabDesignConfig | None = None,
    *,
    fetcher: AssetFetcher | None = None,
    generator: GenerationClientBase | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Service configuration.  Loaded from the environment when
            omitted, which fails if no API key is set.
        fetcher: Replacement slab fetcher (tests).
        generator: Replacement generation client (tests).

    Returns:
        The configured application.
    """
    config = config or load_config()

    app = FastAPI(
        title="Slab Design Engine",
        description="Interior renders from a prompt and a marble slab photo.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.fetcher = fetcher
    app.state.generator = generator

    # The page builder calls the API from its own origin.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(DesignEngineError, design_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    app.include_router(router)
    return app


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Builds the configuration first: a missing API key logs a fatal error
    and exits with status 1 before any port is bound.  The keep-alive
    timeout is taken from :attr:`SlabDesignConfig.server_keep_alive` so the
    transport never gives up before a generation call is allowed to.

    This function is registered as the ``slabdesign`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config()
    except ValidationError as e:
        logger.critical(
            "Invalid configuration. Set SLABDESIGN_GEMINI_API_KEY (or GEMINI_API_KEY) "
            f"in the environment.\n{e}"
        )
        sys.exit(1)

    logging.getLogger().setLevel(config.log_level)
    logger.info(f"Slab Design Engine listening on {config.server_host}:{config.server_port}")

    uvicorn.run(
        create_app(config),
        host=config.server_host,
        port=config.server_port,
        timeout_keep_alive=config.server_keep_alive,
    )


if __name__ == "__main__":
    main()
