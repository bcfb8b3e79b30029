# sticker_sheet/services/template.py
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Template storage access and a printable stand-in template.

The vendor template is an external, versioned binary asset. The compositor
never opens files itself; it receives template bytes from a `TemplateStore`
so it can be exercised against an in-memory fixture.

  • `FileTemplateStore`   - reads the PDF from durable storage on every call
                            (no shared mutable state between requests).
  • `MemoryTemplateStore` - wraps an immutable bytes buffer.
  • `build_blank_template` - draws a plain 12-up A4 sheet with reportlab, for
                            local development and tests when the vendor PDF is
                            not at hand.
"""

import io
import logging
import pathlib
from typing import Protocol

from reportlab.lib.colors import Color
from reportlab.pdfgen import canvas as _pdf_canvas

from ..core.constants import (
    CARD_HEIGHT_MM,
    CARD_ROW_PITCH_MM,
    CARD_TOP_MM,
    DEFAULT_LAYOUT,
    TemplateLayout,
    mm_to_pt,
)
from ..core.errors import TemplateMismatch, TemplateUnavailable

logger = logging.getLogger(__name__)

# Placeholder artwork under each QR slot; the compositor must paint over it.
_PLACEHOLDER_GREY = Color(0.85, 0.85, 0.85)
_OUTLINE_GREY = Color(0.6, 0.6, 0.6)


class TemplateStore(Protocol):
    """Anything that can hand out the template PDF as bytes."""

    def load(self) -> bytes: ...


class FileTemplateStore:
    """Template PDF on the local filesystem, read fresh per `load()`."""

    def __init__(self, path: str | pathlib.Path) -> None:
        self.path = pathlib.Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> bytes:
        """Read the template.

        Raises:
          TemplateUnavailable: file missing or unreadable.
        """
        if not self.path.is_file():
            logger.error("template not found at %s", self.path)
            raise TemplateUnavailable("Template PDF not found")
        try:
            return self.path.read_bytes()
        except OSError as e:
            logger.error("template at %s unreadable: %s", self.path, e)
            raise TemplateUnavailable(f"Template PDF unreadable: {e}") from e


class MemoryTemplateStore:
    """Immutable in-memory template buffer."""

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)

    def exists(self) -> bool:
        return bool(self._data)

    def load(self) -> bytes:
        if not self._data:
            raise TemplateUnavailable("Template PDF not found")
        return self._data


def check_page_size(
    width: float,
    height: float,
    expected: tuple[float, float],
    tolerance: float = 2.0,
) -> None:
    """Fail if a template page differs from the size the layout was measured on.

    Without this, a wrong template silently produces misaligned stickers.

    Raises:
      TemplateMismatch: either dimension is off by more than `tolerance` pt.
    """
    exp_w, exp_h = expected
    if abs(width - exp_w) > tolerance or abs(height - exp_h) > tolerance:
        raise TemplateMismatch(
            f"Template page is {width:.1f}x{height:.1f} pt, "
            f"expected {exp_w:.1f}x{exp_h:.1f} pt"
        )


def build_blank_template(layout: TemplateLayout = DEFAULT_LAYOUT) -> bytes:
    """Render a plain stand-in for the vendor template.

    Layout:
      - One outlined card per slot (3 columns X 4 rows, 63 mm wide).
      - A grey square at every QR slot, standing in for vendor artwork that
        the compositor is expected to cover.

    Returns:
      PDF bytes (single A4 page).
    """
    width, height = layout.page_size_pt
    bio = io.BytesIO()
    cpdf = _pdf_canvas.Canvas(bio, pagesize=(width, height), invariant=1)
    cpdf.setTitle("Sticker sheet template (12-up A4)")

    card_w = mm_to_pt(layout.card_width_mm)
    card_h = mm_to_pt(CARD_HEIGHT_MM)
    cols = len(layout.card_left_edges_mm)

    cpdf.setStrokeColor(_OUTLINE_GREY)
    cpdf.setLineWidth(0.5)
    for i in range(layout.slot_count):
        row = i // cols
        x = mm_to_pt(layout.card_left_edges_mm[i % cols])
        top = mm_to_pt(CARD_TOP_MM + row * CARD_ROW_PITCH_MM)
        cpdf.roundRect(x, height - top - card_h, card_w, card_h, 6, stroke=1, fill=0)

    side = mm_to_pt(layout.qr_size_mm)
    cpdf.setFillColor(_PLACEHOLDER_GREY)
    for x_mm, y_mm in layout.qr_positions:
        cpdf.rect(mm_to_pt(x_mm), height - mm_to_pt(y_mm) - side, side, side, stroke=0, fill=1)

    cpdf.showPage()
    cpdf.save()
    return bio.getvalue()
