"""Command-line entry for zhaomu.

``python -m zhaomu`` starts the server; ``python -m zhaomu render-card``
renders a share card from a JSON file without starting the server.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import NoReturn, Optional

from . import _init_logging, run_server


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the zhaomu CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="zhaomu",
        description="朝暮记 - daily todos/notes server with share card rendering",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m zhaomu                                  # Start server on default port (8080)
  python -m zhaomu --port 3000                      # Start server on port 3000
  python -m zhaomu render-card day.json -o day.png  # Render a card offline
        """,
    )

    parser.add_argument(
        "--port",
        type=int,
        metavar="PORT",
        help="Port number for the web server (default: 8080, or from ZHAOMU_WEB_PORT env var)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging for zhaomu modules",
    )

    subparsers = parser.add_subparsers(dest="command")
    render = subparsers.add_parser("render-card", help="Render a share card from a JSON summary")
    render.add_argument("input", type=Path, help="JSON file shaped like the /api/share-card body")
    render.add_argument("-o", "--output", type=Path, required=True, help="PNG output path")
    render.add_argument("--font", type=str, default=None, help="Path to a CJK-capable font file")

    return parser


def _render_card(input_path: Path, output_path: Path, font_path: Optional[str]) -> int:
    """Render a card from ``input_path`` and write the PNG to ``output_path``."""
    import logging
    import os

    from pydantic import ValidationError

    from zhaomu.domain.requests import ShareCardRequest
    from zhaomu.rendering.share_card import ShareCardRenderer

    _init_logging(os.environ.get("ZHAOMU_LOG_LEVEL"))
    logger = logging.getLogger("zhaomu.cli")

    try:
        payload = json.loads(input_path.read_text(encoding="utf-8"))
        summary = ShareCardRequest.model_validate(payload).to_summary()
    except (OSError, ValueError, ValidationError) as exc:
        print(f"Error: cannot read summary from {input_path}: {exc}", file=sys.stderr)
        return 2

    card = ShareCardRenderer(font_path=font_path).render(summary)
    output_path.write_bytes(card.image_bytes)
    for warning in card.warnings:
        logger.warning("%s", warning)
    print(f"Wrote {card.pixel_width}x{card.pixel_height} card to {output_path}")
    return 0


def main(argv: Optional[list[str]] = None) -> NoReturn:
    """Run the zhaomu CLI."""
    parser = _create_parser()
    args = parser.parse_args(argv)

    if args.command == "render-card":
        sys.exit(_render_card(args.input, args.output, args.font))

    try:
        run_server(args)
    except KeyboardInterrupt:
        sys.exit(130)
    sys.exit(0)


if __name__ == "__main__":
    main()
