"""
OSD Sign-Off Command Line

Usage:
    osd-signoff serve [--host HOST] [--port PORT] [--dry-run]
    osd-signoff render PAYLOAD.json [-o OUT.pdf]
    osd-signoff send PAYLOAD.json [--dry-run]

Modes:
    serve:   Runs the HTTP service (POST /api/signoff)
    render:  Renders a saved submission to a PDF file, nothing is sent
    send:    Runs the full pipeline for a saved submission
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .logging_config import setup_logging
from .docuflow.composer import DocumentComposer
from .docuflow.normalizer import normalize_submission
from .errors import SignoffError

logger = logging.getLogger(__name__)


def _load_payload(path: str):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def cmd_serve(args) -> int:
    from .server import run_server
    run_server(host=args.host, port=args.port, debug=args.debug, dry_run=args.dry_run)
    return 0


def cmd_render(args) -> int:
    payload = _load_payload(args.payload)
    model = normalize_submission(payload)
    pdf_bytes = DocumentComposer().compose(model)

    output = Path(args.output or Path(args.payload).with_suffix(".pdf"))
    output.write_bytes(pdf_bytes)

    logger.info(f"Rendered {args.payload} -> {output} ({len(pdf_bytes)} bytes)")
    return 0


def cmd_send(args) -> int:
    from .pipeline import create_pipeline

    payload = _load_payload(args.payload)
    result = create_pipeline(dry_run=args.dry_run).process(payload)

    logger.info(f"Submission {result.id}: {result.message}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="osd-signoff",
        description="OSD driver sign-off: render submissions to PDF and e-mail them",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument("--log-level", help="Override configured log level")

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP service")
    serve.add_argument("--host", help="Bind address (default: server.host)")
    serve.add_argument("--port", type=int, help="Port (default: $PORT or server.port)")
    serve.add_argument("--debug", action="store_true", help="Flask debug mode")
    serve.add_argument("--dry-run", action="store_true", help="Save e-mails instead of sending")
    serve.set_defaults(func=cmd_serve)

    render = subparsers.add_parser("render", help="Render a submission JSON file to PDF")
    render.add_argument("payload", help="Path to submission JSON")
    render.add_argument("-o", "--output", help="Output PDF (default: next to the payload)")
    render.set_defaults(func=cmd_render)

    send = subparsers.add_parser("send", help="Render and e-mail a submission JSON file")
    send.add_argument("payload", help="Path to submission JSON")
    send.add_argument("--dry-run", action="store_true", help="Save the e-mail instead of sending")
    send.set_defaults(func=cmd_send)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Process exit code
    """
    args = build_parser().parse_args(argv)
    setup_logging(log_level=args.log_level)

    try:
        return args.func(args)
    except SignoffError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Cannot read submission: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
