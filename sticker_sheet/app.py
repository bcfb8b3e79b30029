# sticker_sheet/app.py
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

__doc__ = """Sticker sheet HTTP service (Flask).

Endpoints:
  POST /api/generate-stickers - compose a 12-up A4 sticker PDF.
  GET  /healthz               - liveness plus template presence.

Request body (JSON), first present source wins:
  qrImageUrl     absolute http(s) URL of a QR image; label defaults to its
                 `data` query parameter.
  qrImageBase64  `data:<mime>;base64,<payload>`; label defaults to "".
  websiteUrl     plain website URL; a QR is rendered locally and the label
                 defaults to the URL itself.
  url            one pasted URL of either kind: QR generator and image links
                 are fetched like qrImageUrl, anything else like websiteUrl.
  labelText      optional explicit label, overrides the defaults above.

Responses:
  200  application/pdf, inline disposition `stickers-<label>.pdf`, no-cache.
  400  {"error": ...} for malformed or missing input.
  500  {"error": ...} for upstream, template, or composition failures.

Design notes:
* Keep this file thin. Acquisition lives in services/qrsource.py and PDF work
  in services/compositor.py; this module only maps JSON to calls and
  `StickerError`s to responses.
* Every request builds its own PDF in memory from a fresh template read, so
  concurrent requests share nothing mutable.
"""

import logging

import requests
from flask import Flask, Response, jsonify, request
from werkzeug.exceptions import HTTPException

from .core.clients import get_http_session, get_template_store
from .core.config import Settings, settings
from .core.errors import InvalidInput, StickerError
from .core.logs import configure_logging
from .services.compositor import compose_sheet
from .services.qrprint import sticker_filename
from .services.qrsource import (
    QRSource,
    fetch_qr_image,
    generate_qr_source,
    is_valid_url,
    parse_data_uri,
    source_from_pasted_url,
)
from .services.template import FileTemplateStore, TemplateStore

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Failed to generate sticker sheet"


def resolve_source(
    body: dict,
    cfg: Settings,
    session: requests.Session | None,
) -> tuple[QRSource, str]:
    """Pick the QR source and label out of a request body.

    Raises:
      InvalidInput: bad or missing fields.
      UpstreamFetchFailure / UnsupportedImageFormat: from acquisition.
    """
    label_text = body.get("labelText")
    if label_text is not None and not isinstance(label_text, str):
        raise InvalidInput("labelText must be a string")

    qr_url = body.get("qrImageUrl")
    qr_b64 = body.get("qrImageBase64")
    website = body.get("websiteUrl")
    pasted = body.get("url")

    if qr_url:
        if not isinstance(qr_url, str) or not is_valid_url(qr_url):
            raise InvalidInput("Invalid QR image URL")
        source, derived = fetch_qr_image(
            qr_url,
            session,
            timeout=cfg.FETCH_TIMEOUT_S,
            strict=cfg.STRICT_IMAGE_FORMAT,
        )
        return source, label_text or derived

    if qr_b64:
        if not isinstance(qr_b64, str):
            raise InvalidInput("Invalid base64 image format")
        return parse_data_uri(qr_b64, strict=cfg.STRICT_IMAGE_FORMAT), label_text or ""

    if website:
        if not isinstance(website, str) or not is_valid_url(website):
            raise InvalidInput("Invalid website URL")
        return generate_qr_source(website), label_text or website

    if pasted:
        if not isinstance(pasted, str):
            raise InvalidInput("Invalid URL")
        source, derived = source_from_pasted_url(
            pasted,
            session,
            timeout=cfg.FETCH_TIMEOUT_S,
            strict=cfg.STRICT_IMAGE_FORMAT,
        )
        return source, label_text or derived

    raise InvalidInput("Please provide a QR image URL or upload an image")


def create_app(
    app_settings: Settings | None = None,
    template_store: TemplateStore | None = None,
    session: requests.Session | None = None,
) -> Flask:
    """Build the Flask application.

    Args:
      app_settings: Overrides the module-level `settings` singleton.
      template_store: Template source; defaults to the file at
        `TEMPLATE_PATH`.
      session: HTTP session for remote QR images; defaults to the shared
        pooled session.
    """
    cfg = app_settings or settings
    configure_logging(cfg.LOG_LEVEL)

    if template_store is not None:
        store = template_store
    elif app_settings is None:
        store = get_template_store()
    else:
        store = FileTemplateStore(cfg.TEMPLATE_PATH)
    http = session if session is not None else get_http_session()

    app = Flask(__name__)

    @app.post("/api/generate-stickers")
    def generate_stickers() -> Response:
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            raise InvalidInput("Invalid JSON body")

        source, label = resolve_source(body, cfg, http)
        result = compose_sheet(
            store.load(),
            source,
            label,
            check_size=cfg.CHECK_TEMPLATE_PAGE_SIZE,
            size_tolerance_pt=cfg.PAGE_SIZE_TOLERANCE_PT,
        )

        filename = sticker_filename(label)
        logger.info("sheet %s: %d bytes, font %.1f pt", filename, len(result.pdf), result.font_size)
        resp = Response(result.pdf, mimetype="application/pdf")
        resp.headers["Content-Disposition"] = f'inline; filename="{filename}"'
        resp.headers["Cache-Control"] = "no-cache"
        return resp

    @app.get("/healthz")
    def healthz():
        exists = getattr(store, "exists", None)
        return jsonify(status="ok", template=bool(exists()) if exists else True)

    @app.errorhandler(StickerError)
    def handle_sticker_error(e: StickerError):
        if e.status_code < 500:
            logger.warning("rejected request: %s", e.message)
        else:
            logger.error("sticker generation failed: %s", e.message)
        return jsonify(error=e.message), e.status_code

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        if isinstance(e, HTTPException):
            return e
        logger.exception("sticker generation failed: %s", e)
        return jsonify(error=GENERIC_ERROR), 500

    return app


if __name__ == "__main__":
    create_app().run(host=settings.HOST, port=settings.PORT)
