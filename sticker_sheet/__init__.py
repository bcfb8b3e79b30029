# sticker_sheet/__init__.py
# SPDX-License-Identifier: Apache-2.0
"""Printable 12-up A4 QR sticker sheets from a QR image and a label."""

__version__ = "0.1.0"
