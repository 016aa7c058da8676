"""``{{name}}`` / ``{{name.path}}`` substitution against saved variables."""
from __future__ import annotations

import dataclasses
import math
import re
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Dict

from .errors import ErrorCode, RunnerError
from .models import Action

TEMPLATE_PATTERN = re.compile(r"\{\{\s*([\w$.-]+)\s*\}\}", re.ASCII)


def _list_index(items: list, part: str) -> Any:
    if part == "length":
        return len(items)
    # canonical decimal indices only: "01" and "-1" are not own keys of an array
    if part.isdigit() and str(int(part)) == part and int(part) < len(items):
        return items[int(part)]
    raise KeyError(part)


def _read_path(variables: Mapping[str, Any], parts: list[str], label: str) -> Any:
    current: Any = variables
    for part in parts:
        # own keys of mappings and lists; attributes and string characters are not walked
        try:
            if isinstance(current, Mapping) and part in current:
                current = current[part]
            elif isinstance(current, list):
                current = _list_index(current, part)
            else:
                raise KeyError(part)
        except KeyError:
            raise RunnerError(ErrorCode.TEMPLATE_ERROR, f"Template path not found: {label}") from None
    return current


def _format_float(value: float) -> str:
    """Render a float the way JavaScript's ``String(number)`` does."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"
    sign, digit_tuple, exponent = Decimal(repr(value)).as_tuple()
    digits = "".join(str(d) for d in digit_tuple)
    stripped = digits.rstrip("0")
    exponent += len(digits) - len(stripped)
    digits = stripped
    k = len(digits)
    n = exponent + k
    prefix = "-" if sign else ""
    if k <= n <= 21:
        return prefix + digits + "0" * (n - k)
    if 0 < n <= 21:
        return prefix + digits[:n] + "." + digits[n:]
    if -6 < n <= 0:
        return prefix + "0." + "0" * -n + digits
    power = n - 1
    mantissa = digits if k == 1 else digits[0] + "." + digits[1:]
    return f"{prefix}{mantissa}e{'+' if power >= 0 else '-'}{abs(power)}"


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _format_float(value)
    return str(value)


def resolve_template(value: str, variables: Mapping[str, Any]) -> str:
    """Substitute every placeholder in ``value``.

    Raises:
        RunnerError: with ``TemplateError`` when a path is missing, or resolves
            to an empty or non-scalar value.
    """
    if "{{" not in value:
        return value

    def _replace(match: re.Match) -> str:
        raw_path = match.group(1)
        parts = [part for part in raw_path.split(".") if part]
        if not parts:
            raise RunnerError(ErrorCode.TEMPLATE_ERROR, "Template path cannot be empty")
        resolved = _read_path(variables, parts, raw_path)
        if resolved is None:
            raise RunnerError(ErrorCode.TEMPLATE_ERROR, f"Template path resolves to empty value: {raw_path}")
        if isinstance(resolved, (dict, list, tuple)):
            raise RunnerError(ErrorCode.TEMPLATE_ERROR, f"Template path resolves to a non-primitive: {raw_path}")
        return _stringify(resolved)

    return TEMPLATE_PATTERN.sub(_replace, value)


def resolve_action_templates(action: Action, variables: Mapping[str, Any]) -> Action:
    """Return a copy of ``action`` with its user-facing string fields resolved."""
    changes: Dict[str, str] = {}
    for name in action.templated_fields:
        current = getattr(action, name)
        if current is None:
            continue
        changes[name] = resolve_template(current, variables)
    if not changes:
        return action
    return dataclasses.replace(action, **changes)
