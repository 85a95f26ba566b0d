"""Error taxonomy for the design pipeline.

Every failure the pipeline can raise derives from :class:`DesignEngineError`.
The HTTP layer does not need to know which stage failed: each error class
carries the status code it maps to, and its message is shown to the caller
as-is.

========================  ======  ==========================================
Error                     Status  Raised when
========================  ======  ==========================================
InvalidInput              400     prompt or slab reference missing/blank
InvalidReference          400     slab reference is not a URL or CMS URI
AssetFetchFailed          500     slab image host unreachable or non-2xx
GenerationBackendError    500     the model call itself failed
MalformedGenerationResp.  500     model response has no usable candidate
NoImageReturned           500     model answered with text only
========================  ======  ==========================================

Input errors (``InvalidInput``, ``InvalidReference``) must never be retried.
"""

from __future__ import annotations


class DesignEngineError(Exception):
    """Base class for all pipeline failures.

    Attributes:
        status_code: HTTP status the error maps to.
        stage: Name of the pipeline stage the error was raised in.  Set by
            :class:`~slabdesign.core.pipeline.DesignPipeline` when the error
            passes through it; ``None`` when raised outside a pipeline run.
    """

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.stage: str | None = None


class InvalidInput(DesignEngineError):
    """The caller sent a blank prompt or no slab reference."""

    status_code = 400


class InvalidReference(DesignEngineError):
    """The slab reference could not be turned into a fetchable URL."""

    status_code = 400


class AssetFetchFailed(DesignEngineError):
    """Downloading the slab image failed.

    Attributes:
        status: Upstream HTTP status, or ``None`` for transport failures.
        reason: Upstream reason phrase or transport error description.
    """

    def __init__(self, status: int | None, reason: str) -> None:
        if status is None:
            message = f"Slab image download failed: {reason}"
        else:
            message = f"Slab image download failed: {status} {reason}".rstrip()
        super().__init__(message)
        self.status = status
        self.reason = reason


class GenerationBackendError(DesignEngineError):
    """The generation backend call raised (network, auth, quota, timeout)."""

    def __init__(self, cause: BaseException) -> None:
        detail = str(cause) or type(cause).__name__
        super().__init__(f"Image generation request failed: {detail}")
        self.cause = cause


class MalformedGenerationResponse(DesignEngineError):
    """The backend answered, but without a candidate holding any parts."""


class NoImageReturned(DesignEngineError):
    """The first candidate holds no inline image data.

    Attributes:
        text_snippet: Leading characters of the model's text answer, if any.
            Usually a refusal or an explanation.
    """

    def __init__(self, text_snippet: str | None = None) -> None:
        message = "The model response did not contain an image."
        if text_snippet:
            message = f"{message} Model said: {text_snippet}"
        super().__init__(message)
        self.text_snippet = text_snippet
