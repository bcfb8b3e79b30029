# sticker_sheet/core/config.py
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Centralized, immutable application configuration for the sticker service.

This module defines a frozen `Settings` dataclass whose fields are populated
from environment variables (loaded via python-dotenv if a `.env` file is
present). The resulting singleton `settings` is imported by other modules to
avoid scattering `os.getenv` calls throughout the codebase.

Design goals
------------
- **Single source of truth**: All tunables live here; other modules consume
  `settings` rather than reading environment variables directly.
- **Immutability**: `@dataclass(frozen=True)` prevents accidental mutation at
  runtime. Changes require process restart (or a fresh `Settings(...)`).
- **Fast import**: Only minimal work at import time (dotenv load + dataclass
  construction). No file or network access here; a missing template is
  reported per request, not at startup.

Testing
-------
Build an instance with explicit overrides and hand it to the app factory:
    >>> from sticker_sheet.core.config import Settings
    >>> s = Settings(TEMPLATE_PATH="/tmp/template.pdf", CHECK_TEMPLATE_PAGE_SIZE=False)
    >>> s.FETCH_TIMEOUT_S
    10.0
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load key-value pairs from a local `.env` file into process environment, if
# present. `override=False` by default, so pre-set env vars take precedence.
load_dotenv()

_TRUTHY = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUTHY


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


@dataclass(frozen=True)
class Settings:
    """
    Immutable application settings.

    Each attribute is populated from the corresponding environment variable;
    when unset, a documented default is used. See `.env.example`.
    """

    # --- Template -------------------------------------------------------------
    # Vendor 12-up A4 template the QR codes and labels are stamped onto.
    TEMPLATE_PATH: str = os.getenv("TEMPLATE_PATH", "uploads/template.pdf")
    # Reject templates whose first page is not A4 (misaligned output otherwise).
    CHECK_TEMPLATE_PAGE_SIZE: bool = _env_bool("CHECK_TEMPLATE_PAGE_SIZE", True)
    # Allowed deviation from A4, in points, before the check fails.
    PAGE_SIZE_TOLERANCE_PT: float = _env_float("PAGE_SIZE_TOLERANCE_PT", 2.0)

    # --- QR acquisition -------------------------------------------------------
    # Upper bound for fetching a remote QR image (connect + read), seconds.
    FETCH_TIMEOUT_S: float = _env_float("FETCH_TIMEOUT_S", 10.0)
    # When False, any non-JPEG content type is embedded as PNG and the
    # decoder decides. When True, unknown types are rejected up front.
    STRICT_IMAGE_FORMAT: bool = _env_bool("STRICT_IMAGE_FORMAT", False)

    # --- Service --------------------------------------------------------------
    HOST: str = os.getenv("HOST", "127.0.0.1")
    PORT: int = int(os.getenv("PORT", "8000"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


# Singleton settings object imported by consumers.
settings = Settings()
