# sticker_sheet/core/errors.py
# SPDX-License-Identifier: Apache-2.0
"""Error taxonomy for sticker sheet generation.

Every failure the service can report maps to one class below. Library code
raises these; only the HTTP layer (`sticker_sheet.app`) and the CLI translate
them into responses or exit codes. `status_code` is the HTTP status the
endpoint answers with, and `message` is shown to the client verbatim.

    StickerError
    ├── InvalidInput             400  bad URL / data URI / no image source
    ├── UnsupportedImageFormat   400  strict mode only
    ├── UpstreamFetchFailure     500  remote QR image fetch failed
    ├── TemplateUnavailable      500  template missing or unreadable
    │   └── TemplateMismatch     500  template page is not the expected size
    └── CompositionError         500  embedding / drawing / serialization
        └── ImageDecodeError     500  QR bytes are not a decodable PNG/JPEG
"""

from __future__ import annotations


class StickerError(Exception):
    """Base class for all structured, client-reportable failures."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInput(StickerError):
    status_code = 400


class UnsupportedImageFormat(StickerError):
    status_code = 400


class UpstreamFetchFailure(StickerError):
    status_code = 500


class TemplateUnavailable(StickerError):
    status_code = 500


class TemplateMismatch(TemplateUnavailable):
    pass


class CompositionError(StickerError):
    status_code = 500


class ImageDecodeError(CompositionError):
    pass
