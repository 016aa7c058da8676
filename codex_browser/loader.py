"""Helpers for loading and validating run requests."""
from __future__ import annotations

import json
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Optional, TextIO

from jsonschema import Draft7Validator, ValidationError

from .errors import ErrorCode, RunnerError
from .models import ACTION_TYPES, WIRE_NAMES, Action, RunOptions, RunRequest

SCHEMA_PATH = Path(__file__).parent / "schema" / "action_payload.schema.json"
NO_INPUT_MESSAGE = "No input provided. Use --json, --input, or pipe JSON via stdin."

_OPTION_KEYS = {
    "headless": "headless",
    "slowMoMs": "slow_mo_ms",
    "defaultTimeoutMs": "default_timeout_ms",
    "defaultNavigationTimeoutMs": "default_navigation_timeout_ms",
    "viewport": "viewport",
    "userAgent": "user_agent",
    "locale": "locale",
    "timezoneId": "timezone_id",
    "ignoreHTTPSErrors": "ignore_https_errors",
    "traceOnFailureDir": "trace_on_failure_dir",
    "captureConsole": "capture_console",
}


def _invalid(message: str) -> RunnerError:
    return RunnerError(ErrorCode.INVALID_INPUT, message)


def load_schema(path: Path = SCHEMA_PATH) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


class PayloadValidator:
    """Validates a decoded payload against the bundled JSON Schema, one definition at a time."""

    def __init__(self, schema: Optional[Dict[str, Any]] = None) -> None:
        self.schema = schema or load_schema()
        self._definitions = self.schema["definitions"]
        self._validators: Dict[str, Draft7Validator] = {}

    def _validator_for(self, name: str) -> Draft7Validator:
        if name not in self._validators:
            # keep the shared definitions reachable for $ref
            subschema = dict(self._definitions[name], definitions=self._definitions)
            self._validators[name] = Draft7Validator(subschema)
        return self._validators[name]

    def check(self, name: str, instance: Any, label: str) -> None:
        errors = sorted(self._validator_for(name).iter_errors(instance), key=lambda e: [str(p) for p in e.path])
        if errors:
            raise _invalid(self._format_validation_error(errors[0], label))

    @staticmethod
    def _format_validation_error(error: ValidationError, label: str) -> str:
        location = label
        for part in error.path:
            location += f"[{part}]" if isinstance(part, int) else f".{part}"
        return f"{location}: {error.message}"

    def validate(self, raw: Any) -> RunRequest:
        if not isinstance(raw, dict):
            raise _invalid("input must be an object")

        raw_actions = raw.get("actions")
        if not isinstance(raw_actions, list):
            raise _invalid("actions must be an array")

        actions = [self._build_action(item, index) for index, item in enumerate(raw_actions)]
        if not actions:
            raise _invalid("actions must contain at least one entry")

        options = RunOptions()
        if "options" in raw:
            self.check("options", raw["options"], "options")
            options = RunOptions(**{
                attr: raw["options"][key] for key, attr in _OPTION_KEYS.items() if key in raw["options"]
            })

        return RunRequest(actions=actions, options=options)

    def _build_action(self, raw: Any, index: int) -> Action:
        label = f"actions[{index}]"
        if not isinstance(raw, dict):
            raise _invalid(f"{label} must be an object")
        kind = raw.get("type")
        if not isinstance(kind, str) or not kind:
            raise _invalid(f"{label}.type must be a non-empty string")
        action_cls = ACTION_TYPES.get(kind)
        if action_cls is None:
            raise _invalid(f"{label}.type is unsupported: {kind}")

        self.check(kind, raw, label)

        kwargs = {}
        for item in fields(action_cls):
            wire_name = WIRE_NAMES.get(item.name, item.name)
            if raw.get(wire_name) is not None:
                kwargs[item.name] = raw[wire_name]
        return action_cls(**kwargs)


def parse_payload(raw_text: str, validator: Optional[PayloadValidator] = None) -> RunRequest:
    """Decode and validate a JSON request body."""
    try:
        raw = json.loads(raw_text)
    except json.JSONDecodeError as exc:
        raise _invalid(f"Invalid JSON: {exc}") from exc
    return (validator or PayloadValidator()).validate(raw)


def load_raw_input(
    json_text: Optional[str] = None,
    input_path: Optional[str] = None,
    stdin: Optional[TextIO] = None,
    cwd: Optional[Path] = None,
) -> str:
    """Pick the request body: inline JSON, then a file, then piped stdin."""
    if json_text:
        raw = json_text
    elif input_path:
        path = (cwd or Path.cwd()) / input_path
        try:
            raw = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise _invalid(f"Cannot read input file {path}: {exc}") from exc
    elif stdin is not None and not stdin.isatty():
        try:
            raw = stdin.read()
        except UnicodeDecodeError as exc:
            raise _invalid(f"Input is not valid UTF-8: {exc}") from exc
    else:
        raise _invalid(NO_INPUT_MESSAGE)

    if not raw.strip():
        raise _invalid(NO_INPUT_MESSAGE)
    return raw
