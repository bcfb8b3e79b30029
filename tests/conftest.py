# tests/conftest.py
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import base64
import io

import pytest
from PIL import Image
from requests.structures import CaseInsensitiveDict

from sticker_sheet.app import create_app
from sticker_sheet.core.config import Settings
from sticker_sheet.services.qrprint import make_qr_png
from sticker_sheet.services.template import MemoryTemplateStore, build_blank_template

SITE = "https://site.example"
QR_API_URL = "https://api.example/qr?data=https://site.example"


class StubResponse:
    """The slice of `requests.Response` that `fetch_qr_image` reads."""

    def __init__(self, content: bytes = b"", status_code: int = 200, content_type: str = "image/png"):
        self.content = content
        self.status_code = status_code
        self.headers = CaseInsensitiveDict({"Content-Type": content_type})

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400


class StubSession:
    """Records GETs and answers each with a canned response (or raises it)."""

    def __init__(self, response):
        self.response = response
        self.calls: list[tuple[str, dict]] = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


@pytest.fixture(scope="session")
def blank_template() -> bytes:
    return build_blank_template()


@pytest.fixture(scope="session")
def qr_png() -> bytes:
    return make_qr_png(SITE, box_size=10, border=2)


@pytest.fixture(scope="session")
def qr_jpeg(qr_png) -> bytes:
    buf = io.BytesIO()
    Image.open(io.BytesIO(qr_png)).convert("RGB").save(buf, format="JPEG", quality=95)
    return buf.getvalue()


@pytest.fixture
def png_data_uri(qr_png) -> str:
    return "data:image/png;base64," + base64.b64encode(qr_png).decode("ascii")


@pytest.fixture
def test_settings() -> Settings:
    return Settings(TEMPLATE_PATH="uploads/missing.pdf", LOG_LEVEL="WARNING")


@pytest.fixture
def make_client(test_settings, blank_template, qr_png):
    """Factory: Flask test client wired to an in-memory template and stub upstream."""

    def _make(response=None, template_store=None, app_settings=None):
        session = StubSession(response if response is not None else StubResponse(qr_png))
        app = create_app(
            app_settings or test_settings,
            template_store or MemoryTemplateStore(blank_template),
            session,
        )
        app.config.update(TESTING=True)
        client = app.test_client()
        client.session_stub = session
        return client

    return _make
