# sticker_sheet/core/clients.py
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Resource factories for the sticker service.

This module exposes two cached constructors:

- `get_http_session()`   → `requests.Session` used to fetch remote QR images
- `get_template_store()` → `FileTemplateStore` for `settings.TEMPLATE_PATH`

Both are wrapped with `functools.lru_cache` so that a single instance is
created per process and reused across requests (connection pooling for the
session; a stable path for the store). Neither holds mutable per-request
state: the store re-reads the template on every `load()`.

Testing:
  * Pass explicit `session=` / `template_store=` to `create_app()` instead of
    relying on these, or call `.cache_clear()` between tests.
"""

from functools import lru_cache

import requests

from ..services.template import FileTemplateStore
from .config import settings

USER_AGENT = "sticker-sheet/0.1 (+qr fetch)"


@lru_cache(maxsize=1)
def get_http_session() -> requests.Session:
    """Construct (once) and return a pooled HTTP session.

    Timeouts are per request (`settings.FETCH_TIMEOUT_S`), not per session.
    """
    s = requests.Session()
    s.headers.update({"User-Agent": USER_AGENT, "Accept": "image/*"})
    return s


@lru_cache(maxsize=1)
def get_template_store() -> FileTemplateStore:
    """Construct (once) and return the on-disk template store."""
    return FileTemplateStore(settings.TEMPLATE_PATH)
