"""Slab image download.

:class:`AssetFetcher` wraps a shared :class:`httpx.AsyncClient` and performs
exactly one GET per call.  There is no retry and no cache; each request
downloads its slab again.

Upstream error pages are logged for diagnosis but never copied into the
raised :class:`~slabdesign.core.errors.AssetFetchFailed`, whose message is
returned to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import httpx

from .errors import AssetFetchFailed

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/jpeg"
DEFAULT_TIMEOUT = 30.0

# Upstream bodies are logged up to this many characters.
_LOG_BODY_LIMIT = 500


@dataclass(frozen=True)
class ResolvedAsset:
    """A downloaded slab image.

    Attributes:
        data: Raw image bytes as served.
        mime_type: Declared media type without parameters.
        source_url: URL the bytes were downloaded from.
    """

    data: bytes = field(repr=False)
    mime_type: str
    source_url: str


def _media_type(content_type: str | None) -> str:
    """Strip parameters from a Content-Type header, defaulting to JPEG."""
    if not content_type:
        return DEFAULT_MIME_TYPE
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type or DEFAULT_MIME_TYPE


class AssetFetcher:
    """Download slab images over HTTP(S).

    Args:
        client: Shared async client.  The fetcher never closes it.
        timeout: Per-download timeout in seconds.
        headers: Extra request headers, e.g. ``User-Agent`` and ``Referer``
            for hosts with hotlink protection.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.client = client
        self.timeout = timeout
        self.headers = dict(headers or {})

    async def fetch(self, url: str) -> ResolvedAsset:
        """Download *url* and return its bytes and media type.

        Args:
            url: Absolute ``http(s)`` URL.

        Returns:
            The downloaded :class:`ResolvedAsset`.

        Raises:
            AssetFetchFailed: On a non-2xx status, a transport error, or a URL
                httpx cannot request.
        """
        logger.info(f"Downloading slab image: {url}")

        try:
            response = await self.client.get(
                url,
                headers=self.headers or None,
                timeout=self.timeout,
                follow_redirects=True,
            )
        except httpx.TimeoutException as e:
            logger.error(f"Slab image download timed out after {self.timeout}s: {url}")
            raise AssetFetchFailed(None, f"timed out after {self.timeout:g}s") from e
        except httpx.InvalidURL as e:
            logger.error(f"Slab image URL cannot be requested: {url}: {e}")
            raise AssetFetchFailed(None, f"invalid URL ({e})") from e
        except httpx.HTTPError as e:
            logger.error(f"Slab image download error for {url}: {e}", exc_info=True)
            raise AssetFetchFailed(None, str(e) or type(e).__name__) from e

        if not response.is_success:
            body = response.text[:_LOG_BODY_LIMIT] if response.content else ""
            logger.error(
                f"Slab image download failed: {response.status_code} "
                f"{response.reason_phrase} ({url})"
                + (f"\nResponse body: {body}" if body else "")
            )
            raise AssetFetchFailed(response.status_code, response.reason_phrase)

        mime_type = _media_type(response.headers.get("content-type"))
        logger.info(f"Downloaded slab image: {len(response.content)} bytes, {mime_type}")

        return ResolvedAsset(data=response.content, mime_type=mime_type, source_url=url)
