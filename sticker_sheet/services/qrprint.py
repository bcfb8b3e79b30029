# sticker_sheet/services/qrprint.py
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
QR image and download-name helpers.

This module provides:
  • High-quality PNG QR generation (via qrcode[pil]) for the "website URL"
    path, where no QR image exists yet and one is rendered locally.
  • Filename sanitization for the `Content-Disposition` header and for the
    CLI's default output name.

All bytes are in-memory; the caller is responsible for writing to disk.
"""

import io
import re

import qrcode
from qrcode.constants import ERROR_CORRECT_M

#: Longest sanitized label kept in a download name.
FILENAME_LABEL_MAX = 30

#: Used when the label sanitizes to nothing (e.g., empty or all symbols).
FILENAME_FALLBACK = "sheet"


def sanitize_filename_label(label: str) -> str:
    """Reduce a label to a short, header- and filesystem-safe stem.

    - Drop every character outside `[A-Za-z0-9.-]`.
    - Truncate to :data:`FILENAME_LABEL_MAX` characters.
    - Fall back to :data:`FILENAME_FALLBACK` if nothing survives.

    Examples:
      >>> sanitize_filename_label("https://site.example")
      'httpssite.example'
      >>> sanitize_filename_label("???")
      'sheet'
    """
    s = re.sub(r"[^A-Za-z0-9.\-]", "", label or "")
    return s[:FILENAME_LABEL_MAX] or FILENAME_FALLBACK


def sticker_filename(label: str) -> str:
    """Download name for a sheet whose stickers carry `label`."""
    return f"stickers-{sanitize_filename_label(label)}.pdf"


def make_qr_png(data: str, box_size: int = 12, border: int = 2) -> bytes:
    """Generate a PNG QR code for `data`.

    Uses medium error correction (M) to balance density and scannability.
    The sticker slot is only ~14 mm wide, so the default quiet zone is kept
    small (2 modules) to leave more room for the pattern itself.

    Args:
      data: Encoded contents (URL or text).
      box_size: Pixel size of one QR module (default 12 → crisp when scaled).
      border: Quiet-zone border modules (default 2).

    Returns:
      PNG bytes.
    """
    qr = qrcode.QRCode(
        version=None,  # Let the library choose minimal fitting version.
        error_correction=ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)

    # Render as RGB (opaque white background for better print results).
    img = qr.make_image(fill_color="black", back_color="white").convert("RGB")
    buf = io.BytesIO()
    img.save(buf, format="PNG", optimize=True)
    return buf.getvalue()
