"""Command-line interface for codex-browser."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import math
import signal
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Optional, Sequence, Union

from dotenv import load_dotenv

from . import __version__
from .cancellation import CancellationToken
from .config import env_defaults, env_log_level, merge_options
from .errors import ErrorCode, RunnerError
from .loader import load_raw_input, parse_payload
from .models import FailureReport, RunRequest, SuccessReport
from .runner import Runner, RunnerSettings, build_failure_report

LOGGER = logging.getLogger("codex_browser.cli")

USAGE_EXAMPLES = """examples:
  codex-browser --input request.json
  codex-browser --json '{"actions":[...]}'
  cat request.json | codex-browser
"""


class _ArgumentParser(argparse.ArgumentParser):
    """Reports bad arguments as an InvalidInput failure instead of exiting with status 2."""

    def error(self, message):
        raise RunnerError(ErrorCode.INVALID_INPUT, message)


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="codex-browser",
        description="Run a JSON list of browser actions with Playwright and print a JSON report",
        epilog=USAGE_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--input", help="Read JSON payload from file")
    parser.add_argument("--json", help="Read JSON payload from inline string")
    parser.add_argument("--output", help="Write JSON response to file (still prints to stdout)")
    parser.add_argument("--trace-on-failure", metavar="DIR", help="Write Playwright trace zip on failure")
    parser.add_argument(
        "--capture-console",
        action="store_true",
        default=None,
        help="Capture browser console/pageerror into output JSON",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--headed", dest="headless", action="store_false", default=None,
                      help="Run with a visible browser window")
    mode.add_argument("--headless", dest="headless", action="store_true", default=None,
                      help="Run without a visible browser window (default)")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON output")
    parser.add_argument("--debug", action="store_true", help="Include stack traces on errors")
    parser.add_argument(
        "--log-level",
        help="Logging level for stderr diagnostics (default: $CODEX_BROWSER_LOG_LEVEL or WARNING)",
    )
    parser.add_argument("--log-file", help="Also write this run's log to a file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _configure_logging(level_name: Optional[str]) -> None:
    level_name = (level_name or env_log_level()).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        raise RunnerError(ErrorCode.INVALID_INPUT, f"Unknown log level: {level_name}")
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def _build_request(args: argparse.Namespace) -> RunRequest:
    raw = load_raw_input(json_text=args.json, input_path=args.input, stdin=sys.stdin)
    request = parse_payload(raw)
    options = merge_options(
        env_defaults(),
        request.options,
        trace_on_failure_dir=args.trace_on_failure,
        capture_console=args.capture_console,
        headless=args.headless,
    )
    return replace(request, options=options)


async def run_with_signals(runner: Runner, request: RunRequest) -> Union[SuccessReport, FailureReport]:
    """Run ``request`` with SIGINT/SIGTERM wired to a cancellation token."""
    token = CancellationToken()
    loop = asyncio.get_running_loop()
    installed = []
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, token.cancel)
        except (NotImplementedError, RuntimeError):
            LOGGER.debug("Signal handlers unavailable for %s", signum)
            continue
        installed.append(signum)
    try:
        return await runner.run(request, token)
    finally:
        for signum in installed:
            loop.remove_signal_handler(signum)


def _json_safe(value: Any) -> Any:
    # NaN and the infinities have no JSON form; they serialise as null
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {key: _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    return value


def write_output(report: Union[SuccessReport, FailureReport], output_path: Optional[str], pretty: bool) -> None:
    payload = _json_safe(report.to_dict())
    if pretty:
        text = json.dumps(payload, ensure_ascii=False, allow_nan=False, indent=2)
    else:
        text = json.dumps(payload, ensure_ascii=False, allow_nan=False, separators=(",", ":"))
    text += "\n"
    if output_path:
        target = Path(output_path).resolve()
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
    sys.stdout.write(text)
    sys.stdout.flush()


def main(argv: Sequence[str] | None = None) -> int:
    load_dotenv()
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except RunnerError as exc:
        write_output(build_failure_report(exc), None, False)
        return 1

    try:
        _configure_logging(args.log_level)
        request = _build_request(args)
    except RunnerError as exc:
        write_output(build_failure_report(exc, include_stack=args.debug), args.output, args.pretty)
        return 1

    settings = RunnerSettings(
        include_stack=args.debug,
        log_file=Path(args.log_file) if args.log_file else None,
    )
    report = asyncio.run(run_with_signals(Runner(settings=settings), request))
    write_output(report, args.output, args.pretty)
    return 0 if report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
