# sticker_sheet/cli.py
# SPDX-License-Identifier: Apache-2.0
#
# Purpose
# -------
# Operator commands around the sticker compositor:
#   * compose        - build a sheet from a pasted URL, an image file, or a website
#   * make-template  - write the plain 12-up A4 stand-in template
#   * qr             - write a QR PNG for some data
#   * serve          - run the HTTP service
#
# Usage
# -----
#   sticker-sheet make-template --out uploads/template.pdf
#   sticker-sheet compose --website https://site.example --out sheet.pdf
#   sticker-sheet compose --url "https://api.qrserver.com/v1/create-qr-code/?size=500x500&data=https://site.example"
#   sticker-sheet serve --port 8000
#
# Conventions
# -----------
# * Template path and fetch timeout come from `.env` unless passed as flags.
# * Errors print `error: <message>` and exit with status 1.

from __future__ import annotations

import argparse
import pathlib
import sys

from .core.config import settings
from .core.errors import InvalidInput, StickerError
from .core.logs import configure_logging
from .services.compositor import compose_sheet
from .services.qrprint import make_qr_png, sticker_filename
from .services.qrsource import (
    ImageFormat,
    QRSource,
    generate_qr_source,
    is_valid_url,
    source_from_pasted_url,
)
from .services.template import FileTemplateStore, build_blank_template

_SUFFIX_FORMATS = {".jpg": ImageFormat.JPEG, ".jpeg": ImageFormat.JPEG}


def _source_from_file(path: pathlib.Path) -> QRSource:
    """Read a local QR image; the extension picks JPEG, anything else is PNG."""
    try:
        data = path.read_bytes()
    except OSError as e:
        raise InvalidInput(f"Cannot read image {path}: {e}") from e
    return QRSource(data, _SUFFIX_FORMATS.get(path.suffix.lower(), ImageFormat.PNG))


# ─────────────────────────────── Commands ────────────────────────────────────


def cmd_compose(args: argparse.Namespace) -> None:
    if args.url:
        source, derived = source_from_pasted_url(
            args.url, timeout=args.timeout, strict=settings.STRICT_IMAGE_FORMAT
        )
        label = args.label if args.label is not None else derived
    elif args.image:
        source = _source_from_file(pathlib.Path(args.image))
        label = args.label or ""
    else:
        if not is_valid_url(args.website):
            raise InvalidInput("Invalid website URL")
        source = generate_qr_source(args.website)
        label = args.label if args.label is not None else args.website

    template = FileTemplateStore(args.template).load()
    result = compose_sheet(
        template,
        source,
        label,
        check_size=not args.no_size_check,
        size_tolerance_pt=settings.PAGE_SIZE_TOLERANCE_PT,
    )

    out = pathlib.Path(args.out or sticker_filename(label))
    out.write_bytes(result.pdf)
    print(f"wrote {out} ({len(result.pdf)} bytes, label font {result.font_size:g} pt)")


def cmd_make_template(args: argparse.Namespace) -> None:
    out = pathlib.Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(build_blank_template())
    print(f"wrote {out}")


def cmd_qr(args: argparse.Namespace) -> None:
    out = pathlib.Path(args.out)
    out.write_bytes(make_qr_png(args.data, box_size=args.box_size, border=args.border))
    print(f"wrote {out}")


def cmd_serve(args: argparse.Namespace) -> None:
    # Imported here so the other commands do not pull in Flask.
    from .app import create_app

    create_app().run(host=args.host, port=args.port)


# ─────────────────────────────────── CLI ─────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sticker-sheet",
        description="Lay out QR codes and labels on a 12-up A4 sticker template.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("compose", help="Build a sticker sheet PDF.")
    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument(
        "--url",
        help="QR image link (label: its `data` param) or any other website (encoded locally).",
    )
    src.add_argument("--image", help="Local PNG/JPEG QR image.")
    src.add_argument("--website", help="Website URL to encode (label defaults to it).")
    p.add_argument("--label", default=None, help="Text printed under each QR code.")
    p.add_argument(
        "--template",
        default=settings.TEMPLATE_PATH,
        help=f"Template PDF (default: {settings.TEMPLATE_PATH}).",
    )
    p.add_argument("--out", "-o", default=None, help="Output PDF (default: stickers-<label>.pdf).")
    p.add_argument(
        "--timeout",
        type=float,
        default=settings.FETCH_TIMEOUT_S,
        help="Seconds to wait for --url.",
    )
    p.add_argument(
        "--no-size-check",
        action="store_true",
        help="Skip the A4 page size check on the template.",
    )
    p.set_defaults(func=cmd_compose)

    p = sub.add_parser("make-template", help="Write the plain 12-up A4 template.")
    p.add_argument("--out", "-o", default=settings.TEMPLATE_PATH)
    p.set_defaults(func=cmd_make_template)

    p = sub.add_parser("qr", help="Write a QR code PNG.")
    p.add_argument("--data", "-d", required=True, help="Contents to encode.")
    p.add_argument("--out", "-o", required=True)
    p.add_argument("--box-size", type=int, default=12)
    p.add_argument("--border", type=int, default=2)
    p.set_defaults(func=cmd_qr)

    p = sub.add_parser("serve", help="Run the HTTP service.")
    p.add_argument("--host", default=settings.HOST)
    p.add_argument("--port", type=int, default=settings.PORT)
    p.set_defaults(func=cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint. Returns the process exit status."""
    args = build_parser().parse_args(argv)
    configure_logging(settings.LOG_LEVEL)
    try:
        args.func(args)
    except StickerError as e:
        print(f"error: {e.message}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
