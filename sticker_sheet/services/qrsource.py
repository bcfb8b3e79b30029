# sticker_sheet/services/qrsource.py
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
QR source acquisition: turn caller input into image bytes plus a label.

Four ways in:
  • `fetch_qr_image`   - download a QR image from a generator URL
                         (e.g., api.qrserver.com); the label defaults to the
                         URL's `data` query parameter.
  • `parse_data_uri`   - decode a `data:<mime>;base64,<payload>` upload.
  • `generate_qr_source` - render a QR locally for a plain website URL.
  • `source_from_pasted_url` - one URL of either kind, routed by `classify_url`
                         the way the original paste box did.

Format policy
-------------
The declared MIME type (response header or data-URI prefix) picks the
embedding path: anything mentioning jpeg/jpg is JPEG, everything else is
PNG. Content is not sniffed here; the compositor's decoder rejects bytes that
do not match. Callers opting into strict mode get `UnsupportedImageFormat`
for types that are neither PNG nor JPEG.
"""

import base64
import binascii
import enum
import logging
import re
from dataclasses import dataclass
from urllib.parse import parse_qs, urlparse

import requests

from ..core.errors import InvalidInput, UnsupportedImageFormat, UpstreamFetchFailure
from .qrprint import make_qr_png

logger = logging.getLogger(__name__)

_DATA_URI_RE = re.compile(r"^data:([A-Za-z\-+/]+);base64,(.+)$")

# Hosts/paths of common QR generator APIs; anything else is a website to encode.
_QR_API_MARKERS = ("qrserver.com", "qrcode", "api.qr")
_IMAGE_EXT_RE = re.compile(r"\.(png|jpg|jpeg|gif|svg|webp)(\?|$)", re.IGNORECASE)


class ImageFormat(enum.Enum):
    PNG = "png"
    JPEG = "jpeg"

    @classmethod
    def from_mime(cls, mime: str | None, strict: bool = False) -> ImageFormat:
        """Map a MIME type (or content-type header) to an embedding format.

        Args:
          mime: e.g. "image/png", "image/jpeg; charset=binary". May be empty.
          strict: Reject types that are neither PNG nor JPEG instead of
            defaulting to PNG.

        Raises:
          UnsupportedImageFormat: only when `strict` is set.
        """
        m = (mime or "").lower()
        if "jpeg" in m or "jpg" in m:
            return cls.JPEG
        if strict and "png" not in m:
            raise UnsupportedImageFormat(f"Unsupported image format: {mime or 'unknown'}")
        return cls.PNG


@dataclass(frozen=True)
class QRSource:
    """Raw QR image bytes plus the format they are declared to be."""

    data: bytes
    format: ImageFormat = ImageFormat.PNG


# =============================================================================
# URL helpers
# =============================================================================


def is_valid_url(url: str) -> bool:
    """True for absolute http(s) URLs with a host."""
    try:
        parsed = urlparse(url)
    except (TypeError, ValueError):
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def label_from_url(url: str) -> str:
    """Return the first `data` query parameter of `url`, or "".

    QR generator URLs carry the encoded payload there
    (`...create-qr-code/?size=500x500&data=https%3A%2F%2Fsite.example`), and
    that payload is what the sticker should print under the code.
    """
    try:
        values = parse_qs(urlparse(url).query).get("data")
    except (TypeError, ValueError):
        return ""
    return values[0] if values else ""


def classify_url(url: str) -> str:
    """Guess whether `url` points at a QR image or at a website to encode.

    Returns:
      "qr-image" for known QR generator APIs and direct image links,
      otherwise "website".
    """
    lower = url.lower()
    if any(marker in lower for marker in _QR_API_MARKERS):
        return "qr-image"
    if "chart.googleapis.com/chart?" in lower and "qr" in lower:
        return "qr-image"
    if _IMAGE_EXT_RE.search(url):
        return "qr-image"
    return "website"


# =============================================================================
# Acquisition
# =============================================================================


def fetch_qr_image(
    url: str,
    session: requests.Session | None = None,
    *,
    timeout: float = 10.0,
    strict: bool = False,
) -> tuple[QRSource, str]:
    """Download a QR image and derive its default label.

    Args:
      url: Absolute http(s) URL of the image (validated by the caller).
      session: Optional `requests.Session` to reuse connections; a bare
        `requests.get` is used otherwise.
      timeout: Seconds for connect and read, each.
      strict: Forwarded to :meth:`ImageFormat.from_mime`.

    Returns:
      `(source, label)` where `label` is the URL's `data` parameter or "".

    Raises:
      UpstreamFetchFailure: network error, non-2xx status, or a response that
        is not an image.
    """
    label = label_from_url(url)
    getter = session.get if session is not None else requests.get

    try:
        resp = getter(url, timeout=timeout)
    except requests.RequestException as e:
        raise UpstreamFetchFailure(f"Failed to fetch QR image: {e}") from e

    if not resp.ok:
        raise UpstreamFetchFailure(f"Failed to fetch QR image: {resp.status_code}")

    content_type = resp.headers.get("content-type", "")
    if "image" not in content_type:
        raise UpstreamFetchFailure(
            f"URL did not return an image. Content-Type: {content_type}"
        )

    logger.debug("fetched QR image %s (%d bytes, %s)", url, len(resp.content), content_type)
    return QRSource(resp.content, ImageFormat.from_mime(content_type, strict)), label


def parse_data_uri(value: str, *, strict: bool = False) -> QRSource:
    """Decode a `data:<mime>;base64,<payload>` string.

    Raises:
      InvalidInput: the string does not match the pattern, or the payload is
        not valid base64, or it decodes to nothing.
      UnsupportedImageFormat: strict mode and a non PNG/JPEG MIME type.
    """
    match = _DATA_URI_RE.match(value or "")
    if not match:
        raise InvalidInput("Invalid base64 image format")

    mime, payload = match.groups()
    try:
        data = base64.b64decode(payload)
    except (binascii.Error, ValueError) as e:
        raise InvalidInput("Invalid base64 image format") from e
    if not data:
        raise InvalidInput("Invalid base64 image format")

    return QRSource(data, ImageFormat.from_mime(mime, strict))


def generate_qr_source(website_url: str) -> QRSource:
    """Render a QR code for `website_url` locally (PNG)."""
    return QRSource(make_qr_png(website_url, box_size=12, border=2), ImageFormat.PNG)


def source_from_pasted_url(
    url: str,
    session: requests.Session | None = None,
    *,
    timeout: float = 10.0,
    strict: bool = False,
) -> tuple[QRSource, str]:
    """Handle a single pasted URL that may be a QR image or a website.

    QR image links are fetched and labelled with their `data` parameter;
    anything else is encoded locally and labelled with the URL itself.

    Raises:
      InvalidInput: not an absolute http(s) URL.
      UpstreamFetchFailure: from :func:`fetch_qr_image`.
    """
    url = (url or "").strip()
    if not is_valid_url(url):
        raise InvalidInput("Invalid URL")
    if classify_url(url) == "qr-image":
        return fetch_qr_image(url, session, timeout=timeout, strict=strict)
    logger.debug("encoding website %s locally", url)
    return generate_qr_source(url), url
