"""Tests for slabdesign.core.fetcher - slab image download.

All tests route the shared ``httpx.AsyncClient`` through an
``httpx.MockTransport`` so no real network access occurs.
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from slabdesign.core.errors import AssetFetchFailed
from slabdesign.core.fetcher import DEFAULT_MIME_TYPE, AssetFetcher, ResolvedAsset

SLAB_URL = "https://static.example.com/media/abc~mv2.jpg?raw=1"


def _fetch(handler, url: str = SLAB_URL, **kwargs) -> ResolvedAsset:
    """Run one fetch against a mock transport.

    Args:
        handler: ``httpx.MockTransport`` request handler.
        url: URL to fetch.
        **kwargs: Extra ``AssetFetcher`` arguments.

    Returns:
        The fetched asset.
    """

    async def run() -> ResolvedAsset:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await AssetFetcher(client, **kwargs).fetch(url)

    return asyncio.run(run())


class TestFetchSuccess:
    def test_returns_bytes_and_type(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"jpeg-bytes", headers={"content-type": "image/jpeg"})

        asset = _fetch(handler)
        assert asset.data == b"jpeg-bytes"
        assert asset.mime_type == "image/jpeg"
        assert asset.source_url == SLAB_URL

    def test_missing_content_type_defaults(self):
        """A missing Content-Type is not an error."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"bytes")

        asset = _fetch(handler)
        assert asset.mime_type == DEFAULT_MIME_TYPE == "image/jpeg"

    def test_content_type_parameters_stripped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, content=b"bytes", headers={"content-type": "Image/WebP; charset=binary"}
            )

        assert _fetch(handler).mime_type == "image/webp"

    def test_single_get_request(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=b"x", headers={"content-type": "image/png"})

        _fetch(handler)
        assert len(seen) == 1
        assert seen[0].method == "GET"
        assert str(seen[0].url) == SLAB_URL

    def test_follows_redirects(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/old.jpg":
                return httpx.Response(302, headers={"location": "https://static.example.com/new.jpg"})
            return httpx.Response(200, content=b"moved", headers={"content-type": "image/jpeg"})

        asset = _fetch(handler, url="https://static.example.com/old.jpg")
        assert asset.data == b"moved"

    def test_custom_headers_sent(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=b"x")

        _fetch(handler, headers={"User-Agent": "Mozilla/5.0", "Referer": "https://www.example.com/"})
        assert seen[0].headers["user-agent"] == "Mozilla/5.0"
        assert seen[0].headers["referer"] == "https://www.example.com/"


class TestFetchFailure:
    @pytest.mark.parametrize("status", [403, 404, 500, 503])
    def test_non_success_status(self, status):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, text="<html>upstream error page</html>")

        with pytest.raises(AssetFetchFailed) as exc_info:
            _fetch(handler)

        error = exc_info.value
        assert error.status == status
        assert str(status) in str(error)
        assert error.status_code == 500

    def test_upstream_body_not_leaked(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, text="SECRET-UPSTREAM-PAGE")

        with pytest.raises(AssetFetchFailed) as exc_info:
            _fetch(handler)
        assert "SECRET-UPSTREAM-PAGE" not in str(exc_info.value)
        assert "Forbidden" in str(exc_info.value)

    def test_connection_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("name resolution failed", request=request)

        with pytest.raises(AssetFetchFailed) as exc_info:
            _fetch(handler)
        assert exc_info.value.status is None
        assert "name resolution failed" in str(exc_info.value)

    def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(AssetFetchFailed) as exc_info:
            _fetch(handler, timeout=5.0)
        assert "timed out after 5s" in str(exc_info.value)

    def test_invalid_url_reported_as_fetch_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.InvalidURL("Invalid non-printable ASCII character in URL")

        with pytest.raises(AssetFetchFailed) as exc_info:
            _fetch(handler)
        assert exc_info.value.status is None
        assert "invalid URL" in str(exc_info.value)


class TestUnencodedUrl:
    def test_space_in_path_is_encoded_on_the_wire(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=b"x", headers={"content-type": "image/jpeg"})

        asset = _fetch(handler, url="https://example.com/my slab.jpg")
        assert asset.source_url == "https://example.com/my slab.jpg"
        assert seen[0].url.raw_path == b"/my%20slab.jpg"
