"""Resolve CMS media references into fetchable HTTPS URLs.

The page builder hands out slab images as proprietary media URIs rather than
web URLs, for example::

    wix:image://v1/2e3f8a_edf394df10ed48cd9e77420bb7f920c7~mv2.jpg/blue-jeans-1_-lot-2490.jpg#originWidth=2228&originHeight=1350

Only the segment right after ``v1/`` (the media identifier) is known to the
static media host.  The display filename and the ``#`` metadata are dropped,
and the identifier is placed under ``https://<static_host>/media/``::

    https://static.wixstatic.com/media/2e3f8a_edf394df10ed48cd9e77420bb7f920c7~mv2.jpg?raw=1

Plain ``http://`` and ``https://`` URLs are passed through with only
surrounding whitespace removed.
"""

from __future__ import annotations

import re
from urllib.parse import quote

from .errors import InvalidReference

# <scheme>://v1/<mediaId>[/<displayName>][#<metadata>]
# The scheme may itself contain a colon (``wix:image``).
_MEDIA_URI = re.compile(
    r"^(?P<scheme>[A-Za-z][A-Za-z0-9+.\-]*(?::[A-Za-z][A-Za-z0-9+.\-]*)*)://v1/"
    r"(?P<media_id>[^/#?\s]+)"
    r"(?:/(?P<display_name>[^#?]*))?"
    r"(?:[?#].*)?$"
)

# Only the scheme prefix is checked; the fetcher reports URLs it cannot fetch.
_HTTP_URL = re.compile(r"^https?://\S", re.IGNORECASE)

RAW_PASSTHROUGH_QUERY = "raw=1"


def is_http_url(value: str) -> bool:
    """Return ``True`` for absolute ``http``/``https`` URLs."""
    return bool(_HTTP_URL.match(value))


def resolve_reference(
    reference: object,
    *,
    static_host: str = "static.wixstatic.com",
    raw_passthrough: bool = True,
    keep_filename: bool = False,
) -> str:
    """Turn a slab reference into a URL the asset fetcher can download.

    Args:
        reference: Either an absolute ``http(s)`` URL or a CMS media URI.
        static_host: Host serving media files by identifier.
        raw_passthrough: Append ``?raw=1`` so the media host serves the
            stored file instead of rejecting a bare hotlink.
        keep_filename: Append the display filename after the identifier,
            when the URI carries one.

    Returns:
        An absolute URL.  Surrounding whitespace is stripped from the
        reference; ``http(s)`` input is otherwise returned unchanged, even
        when it contains characters that still need percent-encoding.

    Raises:
        InvalidReference: If *reference* is not a string, is blank, or
            matches neither recognised form.
    """
    if not isinstance(reference, str):
        raise InvalidReference(
            f"Slab image reference must be a string, got {type(reference).__name__}."
        )

    value = reference.strip()
    if not value:
        raise InvalidReference("Slab image reference is empty.")

    if is_http_url(value):
        return value

    match = _MEDIA_URI.match(value)
    if match is None:
        raise InvalidReference(f"Unrecognised slab image reference: {value}")

    media_id = match.group("media_id")
    url = f"https://{static_host}/media/{quote(media_id, safe='~._-')}"

    display_name = match.group("display_name")
    if keep_filename and display_name:
        url = f"{url}/{quote(display_name.strip('/'), safe='~._-/')}"

    if raw_passthrough:
        url = f"{url}?{RAW_PASSTHROUGH_QUERY}"

    return url
