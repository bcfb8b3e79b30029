# sticker_sheet/services/compositor.py
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Sticker compositor: stamp one QR image and one label onto every slot of the
12-up template.

Pipeline
--------
1) Open the template with pypdf (empty-password decrypt if encrypted) and
   read the first page's height `H` in points.
2) Decode the QR image once with Pillow; reportlab stores it as a single
   image XObject no matter how many times it is drawn.
3) Pick one font size for all labels (`fit_font_size`).
4) Draw an overlay page with reportlab:
     - per QR slot: an opaque white square, then the QR image on top;
     - per label slot: the label in black Helvetica-Bold, centered in its
       card column.
   Slot anchors are in mm with a top-left origin, so y is flipped:
   `y_pt = H - mm_to_pt(y_mm) - qr_size_pt`.
5) Merge the overlay onto the template page and serialize.

Output is all-or-nothing: every failure raises a `StickerError` subclass and
no partial PDF is returned. The template bytes are never modified; each call
works on its own in-memory document.
"""

import io
import logging
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError
from pypdf import PdfReader, PdfWriter
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas as _pdf_canvas

from ..core.constants import (
    BASELINE_FACTOR,
    DEFAULT_LAYOUT,
    FONT_NAME,
    FONT_SIZE_MAX,
    FONT_SIZE_MIN,
    FONT_SIZE_STEP,
    TemplateLayout,
    mm_to_pt,
)
from ..core.errors import (
    CompositionError,
    ImageDecodeError,
    InvalidInput,
    StickerError,
    TemplateUnavailable,
)
from .qrsource import ImageFormat, QRSource
from .template import check_page_size

logger = logging.getLogger(__name__)

# Pillow format names accepted for each embedding format (MPO is multi-frame JPEG).
_PIL_FORMATS = {ImageFormat.PNG: ("PNG",), ImageFormat.JPEG: ("JPEG", "MPO")}


@dataclass(frozen=True)
class SheetResult:
    """A finished sheet and the label size every sticker was set in."""

    pdf: bytes
    font_size: float


# =============================================================================
# Building blocks
# =============================================================================


def fit_font_size(
    text: str,
    max_width_pt: float,
    *,
    font_name: str = FONT_NAME,
    start: float = FONT_SIZE_MAX,
    floor: float = FONT_SIZE_MIN,
    step: float = FONT_SIZE_STEP,
) -> float:
    """Largest size in `start, start - step, ... floor` at which `text` fits.

    Width is monotonic in size for a fixed string, so a linear walk down from
    the ceiling is deterministic. If the text is still too wide at `floor`,
    `floor` is returned and the label simply overflows its column.

    Examples:
      >>> fit_font_size("", 130.4)
      9.0
      >>> fit_font_size("x" * 200, 130.4)
      5.0
    """
    size = start
    while stringWidth(text, font_name, size) > max_width_pt and size > floor:
        size -= step
    return max(size, floor)


def check_label(label: str) -> str:
    """Return `label` if Helvetica-Bold can print it, else raise `InvalidInput`.

    The standard fonts only carry WinAnsi (cp1252) glyphs; anything else would
    come out as a filled box. Control characters (newlines, tabs) are refused
    too since a label is a single line.
    """
    if any(ord(ch) < 32 or ord(ch) == 127 for ch in label):
        raise InvalidInput("Label must be a single line of printable text")
    try:
        label.encode("cp1252")
    except UnicodeEncodeError as e:
        raise InvalidInput(
            f"Label contains characters the sticker font cannot print: {label[e.start:e.end]!r}"
        ) from e
    return label


def load_qr_image(source: QRSource) -> ImageReader:
    """Decode QR bytes once into something reportlab can draw repeatedly.

    The declared format must match the actual content: PNG bytes sent as
    JPEG (or a GIF/SVG defaulted to PNG) are rejected here.

    Raises:
      ImageDecodeError: bytes are empty, undecodable, or not the declared format.
    """
    if not source.data:
        raise ImageDecodeError("QR image is empty")

    accepted = _PIL_FORMATS[source.format]
    try:
        img = Image.open(io.BytesIO(source.data))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, SyntaxError) as e:
        raise ImageDecodeError(f"Could not decode QR image: {e}") from e

    if img.format not in accepted:
        raise ImageDecodeError(
            f"QR image is not a valid {accepted[0]} (found {img.format or 'unknown'})"
        )

    # reportlab handles RGB/L/CMYK natively; palettes and alpha go through RGBA
    # so transparency becomes a soft mask.
    if img.mode in ("RGBA", "LA", "PA") or "transparency" in img.info:
        img = img.convert("RGBA")
    elif img.mode not in ("RGB", "L", "CMYK"):
        img = img.convert("RGB")
    return ImageReader(img)


def _open_template(template: bytes) -> PdfReader:
    """Parse template bytes, or raise `TemplateUnavailable`."""
    if not template:
        raise TemplateUnavailable("Template PDF not found")
    try:
        reader = PdfReader(io.BytesIO(template))
        if reader.is_encrypted:
            reader.decrypt("")
        if len(reader.pages) == 0:
            raise TemplateUnavailable("Template PDF has no pages")
        # Touch the box now so a broken page tree fails here, not mid-draw.
        _ = reader.pages[0].mediabox
    except StickerError:
        raise
    except Exception as e:  # pypdf reports malformed input through many types
        raise TemplateUnavailable(f"Template PDF unreadable: {e}") from e
    return reader


def _render_overlay(
    width: float,
    height: float,
    image: ImageReader,
    label: str,
    font_size: float,
    layout: TemplateLayout,
) -> bytes:
    """Draw the QR squares and labels on a transparent page of the template's size."""
    bio = io.BytesIO()
    cpdf = _pdf_canvas.Canvas(bio, pagesize=(width, height), invariant=1)

    side = mm_to_pt(layout.qr_size_mm)
    for x_mm, y_mm in layout.qr_positions:
        x = mm_to_pt(x_mm)
        y = height - mm_to_pt(y_mm) - side
        # White patch first so template artwork never shows around the code.
        cpdf.setFillColorRGB(1, 1, 1)
        cpdf.rect(x, y, side, side, stroke=0, fill=1)
        cpdf.drawImage(
            image, x, y, side, side, mask="auto", preserveAspectRatio=True, anchor="c"
        )

    if label:
        text_width = stringWidth(label, FONT_NAME, font_size)
        cpdf.setFillColorRGB(0, 0, 0)
        cpdf.setFont(FONT_NAME, font_size)
        for i, (_x_mm, y_mm) in enumerate(layout.label_positions):
            x = layout.column_center_pt(i) - text_width / 2
            y = height - mm_to_pt(y_mm) - font_size * BASELINE_FACTOR
            cpdf.drawString(x, y, label)

    cpdf.showPage()
    cpdf.save()
    return bio.getvalue()


def _merge(reader: PdfReader, overlay: bytes) -> bytes:
    """Lay `overlay` over the first template page and serialize the document."""
    writer = PdfWriter(clone_from=reader)
    writer.pages[0].merge_page(PdfReader(io.BytesIO(overlay)).pages[0])
    out = io.BytesIO()
    writer.write(out)
    return out.getvalue()


# =============================================================================
# Public API
# =============================================================================


def compose_sheet(
    template: bytes,
    source: QRSource,
    label: str,
    *,
    layout: TemplateLayout = DEFAULT_LAYOUT,
    check_size: bool = True,
    size_tolerance_pt: float = 2.0,
) -> SheetResult:
    """Compose a sheet of identical stickers.

    Args:
      template: Template PDF bytes (read-only; never modified).
      source: QR image bytes and their declared format.
      label: Text printed under every QR code; "" prints nothing.
      layout: Slot geometry; defaults to the vendor 12-up A4 sheet.
      check_size: Verify the template page matches `layout.page_size_pt`.
      size_tolerance_pt: Allowed page size deviation for that check.

    Returns:
      :class:`SheetResult` with the PDF bytes and the shared font size.

    Raises:
      InvalidInput: label is multi-line or outside the font's character set.
      TemplateUnavailable: template empty/unreadable (or `TemplateMismatch`).
      ImageDecodeError: QR bytes cannot be decoded as the declared format.
      CompositionError: anything else failing while drawing or saving.
    """
    label = check_label(label or "")
    reader = _open_template(template)
    page = reader.pages[0]
    width = float(page.mediabox.width)
    height = float(page.mediabox.height)
    if check_size:
        check_page_size(width, height, layout.page_size_pt, size_tolerance_pt)

    try:
        image = load_qr_image(source)
        font_size = fit_font_size(label, mm_to_pt(layout.max_text_width_mm))
        overlay = _render_overlay(width, height, image, label, font_size, layout)
        pdf = _merge(reader, overlay)
    except StickerError:
        raise
    except Exception as e:
        raise CompositionError(str(e) or type(e).__name__) from e

    logger.debug(
        "composed %d stickers (font %.1f pt, %d bytes)", layout.slot_count, font_size, len(pdf)
    )
    return SheetResult(pdf=pdf, font_size=font_size)


def compose(
    template: bytes,
    source: QRSource,
    label: str,
    **kwargs,
) -> bytes:
    """Same as :func:`compose_sheet` but returns only the PDF bytes."""
    return compose_sheet(template, source, label, **kwargs).pdf
