# tests/test_compositor.py
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import io
import re

import pytest
from pypdf import PdfReader
from reportlab.lib.pagesizes import letter
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from sticker_sheet.core.constants import (
    A4_SIZE_PT,
    BASELINE_FACTOR,
    DEFAULT_LAYOUT,
    FONT_NAME,
    FONT_SIZE_MAX,
    FONT_SIZE_MIN,
    MAX_TEXT_WIDTH_MM,
    SLOTS_PER_SHEET,
    mm_to_pt,
)
from sticker_sheet.core.errors import (
    CompositionError,
    ImageDecodeError,
    InvalidInput,
    TemplateMismatch,
    TemplateUnavailable,
)
from sticker_sheet.services import compositor
from sticker_sheet.services.compositor import (
    check_label,
    compose,
    compose_sheet,
    fit_font_size,
    load_qr_image,
)
from sticker_sheet.services.qrsource import ImageFormat, QRSource

from .conftest import SITE

MAX_WIDTH_PT = mm_to_pt(MAX_TEXT_WIDTH_MM)


def _page(pdf: bytes):
    reader = PdfReader(io.BytesIO(pdf))
    assert len(reader.pages) == 1
    return reader.pages[0]


def _content(pdf: bytes) -> bytes:
    return _page(pdf).get_contents().get_data()


def _empty_template(pagesize=A4_SIZE_PT) -> bytes:
    bio = io.BytesIO()
    c = canvas.Canvas(bio, pagesize=pagesize)
    c.showPage()
    c.save()
    return bio.getvalue()


# ─────────────────────────────── font fitting ────────────────────────────────


def test_short_label_keeps_ceiling_size():
    assert fit_font_size("", MAX_WIDTH_PT) == FONT_SIZE_MAX
    assert fit_font_size("site.example", MAX_WIDTH_PT) == FONT_SIZE_MAX


def test_long_label_bottoms_out_at_floor():
    assert fit_font_size("x" * 200, MAX_WIDTH_PT) == FONT_SIZE_MIN


def test_font_size_never_grows_with_longer_labels():
    base = "https://www.example.com/some/fairly/long/path"
    sizes = [fit_font_size(base[:n], MAX_WIDTH_PT) for n in range(len(base) + 1)]
    assert sizes == sorted(sizes, reverse=True)
    assert all(FONT_SIZE_MIN <= s <= FONT_SIZE_MAX for s in sizes)
    # Somewhere along the way the size had to step down.
    assert sizes[-1] < FONT_SIZE_MAX


def test_font_size_is_deterministic():
    label = "https://shop.example.org/menu"
    assert len({fit_font_size(label, MAX_WIDTH_PT) for _ in range(5)}) == 1


def test_font_size_steps_by_half_points():
    size = fit_font_size("https://www.example.com/a/b/c/d", MAX_WIDTH_PT)
    assert (FONT_SIZE_MAX - size) % 0.5 == 0


def test_coarse_step_never_drops_below_floor():
    # 9 - 0.3k skips over 5.0; the result is still clamped to the floor.
    assert fit_font_size("x" * 200, MAX_WIDTH_PT, step=0.3) == FONT_SIZE_MIN
    assert fit_font_size("x" * 200, MAX_WIDTH_PT, step=3.0) == FONT_SIZE_MIN


# ─────────────────────────────── composition ─────────────────────────────────


def _ops(pdf: bytes, operator: bytes) -> list[list[float]]:
    ops = _page(pdf).get_contents().operations
    return [[float(v) for v in operands] for operands, op in ops if op == operator]


def test_qr_squares_sit_on_their_slots(qr_png):
    height = A4_SIZE_PT[1]
    side = mm_to_pt(DEFAULT_LAYOUT.qr_size_mm)
    pdf = compose(_empty_template(), QRSource(qr_png), SITE)

    expected = [(mm_to_pt(x), height - mm_to_pt(y) - side) for x, y in DEFAULT_LAYOUT.qr_positions]

    patches = [o for o in _ops(pdf, b"re") if o[2] == pytest.approx(side, abs=0.05)]
    assert len(patches) == SLOTS_PER_SHEET
    for (x, y, w, h), (ex, ey) in zip(patches, expected):
        assert (x, y) == (pytest.approx(ex, abs=0.05), pytest.approx(ey, abs=0.05))
        assert h == pytest.approx(side, abs=0.05)

    # drawImage leaves one fused `side 0 0 side x y cm` per slot.
    draws = [o for o in _ops(pdf, b"cm") if o[0] == pytest.approx(side, abs=0.05)]
    assert len(draws) == SLOTS_PER_SHEET
    for (a, b, c, d, e, f), (ex, ey) in zip(draws, expected):
        assert (b, c) == (0, 0)
        assert d == pytest.approx(side, abs=0.05)
        assert (e, f) == (pytest.approx(ex, abs=0.05), pytest.approx(ey, abs=0.05))


def test_labels_are_centered_in_their_columns(qr_png):
    height = A4_SIZE_PT[1]
    result = compose_sheet(_empty_template(), QRSource(qr_png), SITE)
    size = result.font_size
    half = stringWidth(SITE, FONT_NAME, size) / 2

    origins = [o[4:6] for o in _ops(result.pdf, b"Tm")]
    assert len(origins) == SLOTS_PER_SHEET
    for i, ((x, y), (_x_mm, y_mm)) in enumerate(zip(origins, DEFAULT_LAYOUT.label_positions)):
        assert x == pytest.approx(DEFAULT_LAYOUT.column_center_pt(i) - half, abs=0.05)
        assert y == pytest.approx(height - mm_to_pt(y_mm) - size * BASELINE_FACTOR, abs=0.05)


def test_sheet_has_twelve_identical_qr_draws(blank_template, qr_png):
    pdf = compose(blank_template, QRSource(qr_png, ImageFormat.PNG), SITE)
    assert pdf.startswith(b"%PDF")

    data = _content(pdf)
    names = re.findall(rb"/([^\s/]+)\s+Do\b", data)
    assert len(names) == SLOTS_PER_SHEET
    # Every slot references the one embedded image.
    assert len(set(names)) == 1

    xobjects = _page(pdf)["/Resources"]["/XObject"]
    assert len(xobjects) == 1


def test_sheet_has_twelve_label_runs(blank_template, qr_png):
    pdf = compose(blank_template, QRSource(qr_png), SITE)
    data = _content(pdf)
    assert len(re.findall(rb"\)\s*Tj", data)) == SLOTS_PER_SHEET
    assert _page(pdf).extract_text().count("site.example") == SLOTS_PER_SHEET


def test_empty_label_draws_no_text(blank_template, qr_png):
    result = compose_sheet(blank_template, QRSource(qr_png), "")
    assert result.font_size == FONT_SIZE_MAX
    assert not re.search(rb"\)\s*Tj", _content(result.pdf))


def test_long_label_uses_floor_and_still_renders(blank_template, qr_png):
    label = "a" * 200
    result = compose_sheet(blank_template, QRSource(qr_png), label)
    assert result.font_size == FONT_SIZE_MIN
    assert len(re.findall(rb"\)\s*Tj", _content(result.pdf))) == SLOTS_PER_SHEET


def test_jpeg_source_is_embedded(blank_template, qr_jpeg):
    pdf = compose(blank_template, QRSource(qr_jpeg, ImageFormat.JPEG), SITE)
    names = re.findall(rb"/([^\s/]+)\s+Do\b", _content(pdf))
    assert len(names) == SLOTS_PER_SHEET


def test_output_page_content_is_deterministic(blank_template, qr_png):
    src = QRSource(qr_png)
    first = _content(compose(blank_template, src, SITE))
    second = _content(compose(blank_template, src, SITE))
    assert first == second


def test_template_bytes_are_left_untouched(blank_template, qr_png):
    before = bytes(blank_template)
    compose(blank_template, QRSource(qr_png), SITE)
    assert blank_template == before
    # The template itself still has no QR draws.
    assert not re.search(rb"\sDo\b", _content(blank_template))


def test_qr_round_trips_through_the_sheet(blank_template, qr_png):
    cv2 = pytest.importorskip("cv2")
    np = pytest.importorskip("numpy")

    pdf = compose(blank_template, QRSource(qr_png), SITE)
    images = _page(pdf).images
    assert len(images) == 1

    pil = images[0].image.convert("RGB")
    arr = cv2.cvtColor(np.array(pil), cv2.COLOR_RGB2BGR)
    arr = cv2.copyMakeBorder(arr, 40, 40, 40, 40, cv2.BORDER_CONSTANT, value=(255, 255, 255))
    decoded, _, _ = cv2.QRCodeDetector().detectAndDecode(arr)
    assert decoded == SITE


# ─────────────────────────────── failures ────────────────────────────────────


def test_image_wrapping_failure_becomes_composition_error(blank_template, qr_png, monkeypatch):
    def boom(_img):
        raise RuntimeError("reader exploded")

    monkeypatch.setattr(compositor, "ImageReader", boom)
    with pytest.raises(CompositionError, match="reader exploded"):
        compose(blank_template, QRSource(qr_png), SITE)


@pytest.mark.parametrize("label", ["日本語 ✓", "a\nb", "tab\there"])
def test_unprintable_labels_are_invalid_input(blank_template, qr_png, label):
    with pytest.raises(InvalidInput):
        compose(blank_template, QRSource(qr_png), label)


def test_winansi_labels_are_accepted():
    assert check_label("Café 5€ ½") == "Café 5€ ½"


def test_empty_template_is_unavailable(qr_png):
    with pytest.raises(TemplateUnavailable):
        compose(b"", QRSource(qr_png), SITE)


def test_garbage_template_is_unavailable(qr_png):
    with pytest.raises(TemplateUnavailable, match="unreadable"):
        compose(b"this is not a pdf", QRSource(qr_png), SITE)


def test_wrong_page_size_is_rejected(qr_png):
    with pytest.raises(TemplateMismatch):
        compose(_empty_template(letter), QRSource(qr_png), SITE)


def test_page_size_check_can_be_disabled(qr_png):
    pdf = compose(_empty_template(letter), QRSource(qr_png), SITE, check_size=False)
    assert len(re.findall(rb"\sDo\b", _content(pdf))) == SLOTS_PER_SHEET


def test_undecodable_image_is_rejected(blank_template):
    with pytest.raises(ImageDecodeError):
        compose(blank_template, QRSource(b"\x89PNG\r\n\x1a\nnot really"), SITE)


def test_png_bytes_declared_as_jpeg_are_rejected(qr_png):
    with pytest.raises(ImageDecodeError, match="JPEG"):
        load_qr_image(QRSource(qr_png, ImageFormat.JPEG))


def test_empty_image_is_rejected():
    with pytest.raises(ImageDecodeError):
        load_qr_image(QRSource(b""))
