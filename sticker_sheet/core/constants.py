# sticker_sheet/core/constants.py
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Sticker template geometry and typography constants.

This module centralizes:
  1) **Slot anchors** for the 12-up A4 sticker template (QR squares and the
     label baselines beneath them), measured once against the vendor PDF.
  2) **Card geometry** used to center label text inside each sticker column.
  3) **Typography** for the label run (font face, size ceiling/floor, step).

Design notes
------------
- All positions are in **millimeters** with a **top-left origin** (y grows
  downward), matching how the template was measured. Conversion to PDF
  points (bottom-left origin) happens at draw time in the compositor.
- The anchor lists are a lookup table, not a computed grid: the measured
  points carry sub-millimeter per-slot jitter and must stay verbatim for
  bit-exact placement on the printed stock.
- Order is row-major, top row first; index `i` of the QR list pairs with
  index `i` of the label list, and `i % 3` selects the card column.
"""

from dataclasses import dataclass
from typing import Final

# ---------------------------------------------------------------------------
# Units
# ---------------------------------------------------------------------------

#: PostScript points per inch.
POINTS_PER_INCH: Final[float] = 72.0

#: Millimeters per inch.
MM_PER_INCH: Final[float] = 25.4


def mm_to_pt(mm: float) -> float:
    """Convert millimeters to PDF points (1 pt = 1/72 inch)."""
    return mm * POINTS_PER_INCH / MM_PER_INCH


#: ISO A4 portrait in points (210 x 297 mm).
A4_SIZE_PT: Final[tuple[float, float]] = (mm_to_pt(210), mm_to_pt(297))

# ---------------------------------------------------------------------------
# Slot anchors (mm, top-left origin)
# ---------------------------------------------------------------------------

#: Number of stickers on one sheet (3 columns X 4 rows).
SLOTS_PER_SHEET: Final[int] = 12

#: Top-left corner of each QR square.
QR_POSITIONS_MM: Final[tuple[tuple[float, float], ...]] = (
    (45.58, 36.09), (113.03, 35.98), (179.44, 35.98),
    (45.56, 103.10), (112.62, 103.08), (179.28, 103.21),
    (45.30, 170.23), (112.34, 170.22), (179.00, 170.34),
    (45.28, 237.00), (112.32, 236.98), (178.98, 237.10),
)  # fmt: skip

#: Label baseline anchor under each QR square.
LABEL_POSITIONS_MM: Final[tuple[tuple[float, float], ...]] = (
    (22.11, 66.99), (89.02, 67.07), (156.10, 66.99),
    (21.85, 134.15), (88.68, 134.15), (155.68, 134.15),
    (21.60, 201.23), (88.43, 201.23), (155.59, 201.23),
    (21.85, 268.13), (88.17, 268.30), (155.17, 268.47),
)  # fmt: skip

#: Side length of the (square) QR slot.
QR_SIZE_MM: Final[float] = 14.43

# ---------------------------------------------------------------------------
# Card geometry (mm)
# ---------------------------------------------------------------------------

#: Left edge of each of the three sticker columns.
CARD_LEFT_EDGES_MM: Final[tuple[float, float, float]] = (8.0, 75.0, 142.0)

#: Width of one sticker card; labels are centered within it.
CARD_WIDTH_MM: Final[float] = 63.0

#: Height of one sticker card and the vertical pitch between rows. Only used
#: to draw the stand-in template; the real vendor artwork carries its own.
CARD_HEIGHT_MM: Final[float] = 63.0
CARD_ROW_PITCH_MM: Final[float] = 67.0
CARD_TOP_MM: Final[float] = 15.0

#: Widest the label run may be before the font size is reduced.
MAX_TEXT_WIDTH_MM: Final[float] = 46.0

# ---------------------------------------------------------------------------
# Typography
# ---------------------------------------------------------------------------

#: One of the 14 standard PDF fonts, so no font file is embedded.
FONT_NAME: Final[str] = "Helvetica-Bold"

FONT_SIZE_MAX: Final[float] = 9.0
FONT_SIZE_MIN: Final[float] = 5.0
FONT_SIZE_STEP: Final[float] = 0.5

#: Baseline drop, as a fraction of the font size, that visually centers the
#: glyphs on the measured label anchor.
BASELINE_FACTOR: Final[float] = 0.3


@dataclass(frozen=True)
class TemplateLayout:
    """Immutable bundle of everything the compositor needs to place a sheet.

    The default instance (:data:`DEFAULT_LAYOUT`) describes the vendor 12-up
    A4 sheet. Tests may build narrower layouts, but the compositor assumes
    `qr_positions` and `label_positions` have equal length.
    """

    qr_positions: tuple[tuple[float, float], ...] = QR_POSITIONS_MM
    label_positions: tuple[tuple[float, float], ...] = LABEL_POSITIONS_MM
    qr_size_mm: float = QR_SIZE_MM
    card_left_edges_mm: tuple[float, ...] = CARD_LEFT_EDGES_MM
    card_width_mm: float = CARD_WIDTH_MM
    max_text_width_mm: float = MAX_TEXT_WIDTH_MM
    page_size_pt: tuple[float, float] = A4_SIZE_PT

    @property
    def slot_count(self) -> int:
        return len(self.qr_positions)

    def column_center_pt(self, index: int) -> float:
        """Horizontal center (pt) of the card column holding slot `index`."""
        left = self.card_left_edges_mm[index % len(self.card_left_edges_mm)]
        return mm_to_pt(left) + mm_to_pt(self.card_width_mm) / 2


DEFAULT_LAYOUT: Final[TemplateLayout] = TemplateLayout()

# Guard against an accidental edit to the lookup tables.
assert len(QR_POSITIONS_MM) == SLOTS_PER_SHEET
assert len(LABEL_POSITIONS_MM) == SLOTS_PER_SHEET
