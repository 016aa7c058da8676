"""Environment-derived defaults and option precedence."""
from __future__ import annotations

import os
from dataclasses import fields, replace
from typing import Any, Mapping, Optional

from .errors import ErrorCode, RunnerError
from .models import RunOptions

ENV_PREFIX = "CODEX_BROWSER_"
DEFAULT_LOG_LEVEL = "WARNING"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise RunnerError(ErrorCode.INVALID_INPUT, f"{name} must be a boolean, got '{raw}'")


def _parse_number(name: str, raw: str) -> float:
    try:
        value = float(raw)
    except ValueError as exc:
        raise RunnerError(ErrorCode.INVALID_INPUT, f"{name} must be a number, got '{raw}'") from exc
    return int(value) if value.is_integer() else value


def env_defaults(environ: Optional[Mapping[str, str]] = None) -> RunOptions:
    """Read ``CODEX_BROWSER_*`` variables into a :class:`RunOptions`."""
    env = os.environ if environ is None else environ
    options = RunOptions()

    headless = env.get(f"{ENV_PREFIX}HEADLESS")
    if headless:
        options.headless = _parse_bool(f"{ENV_PREFIX}HEADLESS", headless)
    timeout = env.get(f"{ENV_PREFIX}DEFAULT_TIMEOUT_MS")
    if timeout:
        options.default_timeout_ms = _parse_number(f"{ENV_PREFIX}DEFAULT_TIMEOUT_MS", timeout)
    trace_dir = env.get(f"{ENV_PREFIX}TRACE_DIR")
    if trace_dir:
        options.trace_on_failure_dir = trace_dir
    capture = env.get(f"{ENV_PREFIX}CAPTURE_CONSOLE")
    if capture:
        options.capture_console = _parse_bool(f"{ENV_PREFIX}CAPTURE_CONSOLE", capture)
    return options


def env_log_level(environ: Optional[Mapping[str, str]] = None) -> str:
    env = os.environ if environ is None else environ
    return env.get(f"{ENV_PREFIX}LOG_LEVEL") or DEFAULT_LOG_LEVEL


def merge_options(*layers: RunOptions, **overrides: Any) -> RunOptions:
    """Later layers win; ``None`` never overrides a set value."""
    merged = RunOptions()
    for layer in layers:
        values = {item.name: getattr(layer, item.name) for item in fields(layer)}
        merged = replace(merged, **{key: value for key, value in values.items() if value is not None})
    return replace(merged, **{key: value for key, value in overrides.items() if value is not None})
