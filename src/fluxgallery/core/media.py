"""Helpers for gallery image payloads.

Gallery images are referenced either by an absolute ``http(s)`` URL on one
of the image hosts, or by an embedded ``data:`` URL carrying the bytes
inline.  These helpers decode data URLs, fetch remote images, and name
downloaded files.
"""

from __future__ import annotations

import base64
import binascii
import logging
import mimetypes
import re
import time
from urllib.parse import unquote_to_bytes, urlparse

import httpx

logger = logging.getLogger(__name__)

DOWNLOAD_PREFIX = "flux"
FILENAME_PROMPT_CHARS = 20

_WHITESPACE_RE = re.compile(r"\s+")


class DataUrlError(ValueError):
    """A ``data:`` URL could not be decoded."""


def is_data_url(url: str) -> bool:
    return url.startswith("data:")


def decode_data_url(url: str) -> tuple[str, bytes]:
    """Decode a ``data:`` URL.

    Supports both base64 (``data:image/png;base64,...``) and percent-encoded
    payloads.  A missing media type defaults to ``text/plain`` as in RFC 2397.

    Returns:
        Tuple of ``(media_type, payload_bytes)``.

    Raises:
        DataUrlError: If *url* is not a well-formed data URL.
    """
    if not is_data_url(url):
        raise DataUrlError("Not a data URL")

    header, sep, payload = url[len("data:") :].partition(",")
    if not sep:
        raise DataUrlError("Data URL has no payload separator")

    params = header.split(";")
    media_type = params[0] or "text/plain"
    if "base64" in params[1:]:
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DataUrlError(f"Invalid base64 payload: {e}") from e
    else:
        data = unquote_to_bytes(payload)

    return media_type, data


def extension_for(media_type: str) -> str:
    """File extension (with dot) for *media_type*, ``.bin`` if unknown."""
    return mimetypes.guess_extension(media_type) or ".bin"


def download_filename(prompt: str, timestamp_ms: int | None = None) -> str:
    """Build a download filename from the start of a prompt.

    The first 20 characters of *prompt* have whitespace runs collapsed to a
    single ``-``, followed by a millisecond timestamp:
    ``flux-A-cat-in-space,-wear-1718000000000.png``.

    Args:
        prompt: Prompt text of the image.
        timestamp_ms: Milliseconds since the epoch; defaults to now.
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    slug = _WHITESPACE_RE.sub("-", prompt[:FILENAME_PROMPT_CHARS])
    # Path separators would escape the downloads directory.
    slug = slug.replace("/", "-").replace("\\", "-")
    return f"{DOWNLOAD_PREFIX}-{slug}-{timestamp_ms}.png"


def is_allowed_image_url(url: str, hosts: list[str]) -> bool:
    """Return ``True`` for data URLs and for http(s) URLs on one of *hosts*."""
    if is_data_url(url):
        return True
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and (parsed.hostname or "") in hosts


async def fetch_image_bytes(url: str, client: httpx.AsyncClient | None = None) -> bytes:
    """Return the bytes behind *url*, decoding data URLs locally.

    Raises:
        DataUrlError: For malformed data URLs.
        httpx.HTTPError: If a remote fetch fails.
    """
    if is_data_url(url):
        return decode_data_url(url)[1]

    if client is not None:
        response = await client.get(url)
        response.raise_for_status()
        return response.content

    async with httpx.AsyncClient(timeout=60.0, follow_redirects=True) as owned:
        response = await owned.get(url)
        response.raise_for_status()
        return response.content
