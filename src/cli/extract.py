# =============================================================================
# src/cli/extract.py: CLI Extract Command
# =============================================================================
#
# Runs the screenshot extraction pipeline on a local image without the API
# server:
#
#   python -m src.cli.extract chat.png                 # Text on stdout
#   python -m src.cli.extract chat.png --json          # Result + attempt history
#   python -m src.cli.extract chat.png --threshold 0.6 --timeout-ms 5000
#
# Log lines always go to stderr so stdout carries only the extracted text
# (or the JSON document).
# =============================================================================

"""Standalone CLI for extracting text from a chat screenshot.

Usage::

    python -m src.cli.extract /path/to/chat.png
    python -m src.cli.extract /path/to/chat.png --json
    python -m src.cli.extract /path/to/chat.png --max-attempts 2
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from src.models.pipeline import PipelineConfig, PipelineReport
from src.utils.confidence import confidence_to_level, is_limited
from src.utils.errors import ScreenTextError

_MAX_FILE_SIZE = 10 * 1024 * 1024  # matches the API upload limit


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def _format_json_output(report: PipelineReport, image_name: str) -> str:
    result = report.result
    output = {
        "image": image_name,
        "text": result.text,
        "confidence": result.confidence,
        "confidence_level": confidence_to_level(result.confidence).value,
        "source_id": result.source_id,
        "limited_analysis": is_limited(result),
        "outcome": report.outcome.value.lower(),
        "total_elapsed_ms": report.total_elapsed_ms,
        "attempts": [attempt.model_dump(mode="json") for attempt in report.attempts],
    }
    return json.dumps(output, indent=2)


def _format_summary(report: PipelineReport) -> str:
    """One stderr line describing where the text came from."""
    result = report.result
    summary = (
        f"Source: {result.source_id}  |  Confidence: {result.confidence:.0%}  |  "
        f"Attempts: {len(report.attempts)}  |  {report.total_elapsed_ms} ms"
    )
    if is_limited(result):
        summary += "  |  limited analysis"
    return summary


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


def _build_config(args: argparse.Namespace, enabled_providers: int, defaults: PipelineConfig) -> PipelineConfig:
    return PipelineConfig.for_provider_count(
        enabled_providers,
        max_attempts=args.max_attempts if args.max_attempts is not None else defaults.max_attempts,
        confidence_threshold=args.threshold if args.threshold is not None else defaults.confidence_threshold,
        per_attempt_timeout_ms=args.timeout_ms if args.timeout_ms is not None else defaults.per_attempt_timeout_ms,
    )


async def _run(args: argparse.Namespace) -> int:
    """Validate the image, run the pipeline and print the result.

    Returns 0 on success, 1 on validation error.
    """
    # Deferred import: src.main builds settings and the FastAPI app.
    import httpx

    from src.main import build_ocr_service, settings
    from src.models.screenshot import ScreenshotImage
    from src.utils.logging import configure_logging

    configure_logging(
        log_level="WARNING" if args.quiet else settings.log_level,
        stream=sys.stderr,
    )

    image_path = Path(args.image).resolve()
    if not image_path.exists():
        print(f"Error: File not found: {image_path}", file=sys.stderr)
        return 1
    if image_path.stat().st_size > _MAX_FILE_SIZE:
        print(f"Error: File too large. Maximum: {_MAX_FILE_SIZE:,} bytes.", file=sys.stderr)
        return 1

    try:
        image = ScreenshotImage.from_path(image_path)
    except ScreenTextError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1

    async with httpx.AsyncClient(timeout=30.0) as http_client:
        service = build_ocr_service(settings, http_client)
        config = _build_config(args, len(service.registry), service.default_config)
        report = await service.run(image, config)

    if args.json_output:
        print(_format_json_output(report, image_path.name))
    else:
        print(_format_summary(report), file=sys.stderr)
        print(report.result.text)
    return 0


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError("must be >= 1")
    return number


def _unit_float(value: str) -> float:
    number = float(value)
    if not 0.0 <= number <= 1.0:
        raise argparse.ArgumentTypeError("must be between 0 and 1")
    return number


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m src.cli.extract",
        description=(
            "Extract text from a chat screenshot.  Providers are tried in "
            "priority order; some text is always printed."
        ),
    )
    parser.add_argument("image", type=str, help="Path to the screenshot image.")
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Print the result and attempt history as JSON.",
    )
    parser.add_argument(
        "--threshold",
        type=_unit_float,
        default=None,
        help="Confidence needed to accept a provider result (0-1).",
    )
    parser.add_argument(
        "--timeout-ms",
        type=_positive_int,
        default=None,
        dest="timeout_ms",
        help="Per-provider timeout in milliseconds.",
    )
    parser.add_argument(
        "--max-attempts",
        type=_positive_int,
        default=None,
        dest="max_attempts",
        help="Total provider attempts allowed.",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only log warnings and errors.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point; returns the process exit code."""
    args = _build_parser().parse_args(argv)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
