"""Tests for request decoding and validation."""
from __future__ import annotations

import io
import json

import pytest

from .errors import ErrorCode, RunnerError
from .loader import NO_INPUT_MESSAGE, PayloadValidator, load_raw_input, parse_payload
from .models import (
    ClickAction,
    EvaluateAction,
    GotoAction,
    PressAction,
    RunOptions,
    WaitAction,
    WaitForAction,
    WaitForLoadStateAction,
)


class _Stdin(io.StringIO):
    def __init__(self, text: str = "", tty: bool = False) -> None:
        super().__init__(text)
        self._tty = tty

    def isatty(self) -> bool:
        return self._tty


def _invalid(payload) -> RunnerError:
    with pytest.raises(RunnerError) as excinfo:
        PayloadValidator().validate(payload)
    assert excinfo.value.code == ErrorCode.INVALID_INPUT
    return excinfo.value


def test_builds_typed_actions():
    request = parse_payload(json.dumps({
        "actions": [
            {"type": "goto", "url": "https://example.com", "waitUntil": "networkidle", "saveAs": "home"},
            {"type": "waitFor", "selector": "#root"},
            {"type": "waitForLoadState"},
            {"type": "click", "selector": "button", "clickCount": 2, "button": "right"},
            {"type": "press", "key": "Enter"},
            {"type": "evaluate", "expression": "document.title", "unknownField": 1},
            {"type": "wait", "ms": 100},
        ]
    }))

    assert request.actions == [
        GotoAction(url="https://example.com", wait_until="networkidle", save_as="home"),
        WaitForAction(selector="#root"),
        WaitForLoadStateAction(),
        ClickAction(selector="button", button="right", click_count=2),
        PressAction(key="Enter"),
        EvaluateAction(expression="document.title"),
        WaitAction(ms=100),
    ]
    assert request.options == RunOptions()


def test_options_are_mapped():
    request = PayloadValidator().validate({
        "options": {
            "headless": False,
            "defaultTimeoutMs": 2500,
            "viewport": {"width": 800, "height": 600},
            "ignoreHTTPSErrors": True,
            "traceOnFailureDir": "traces",
            "captureConsole": True,
        },
        "actions": [{"type": "wait", "ms": 1}],
    })
    assert request.options == RunOptions(
        headless=False,
        default_timeout_ms=2500,
        viewport={"width": 800, "height": 600},
        ignore_https_errors=True,
        trace_on_failure_dir="traces",
        capture_console=True,
    )


def test_empty_actions_are_rejected():
    error = _invalid({"actions": []})
    assert error.message == "actions must contain at least one entry"


def test_top_level_shape_errors():
    assert _invalid([]).message == "input must be an object"
    assert _invalid({}).message == "actions must be an array"
    assert _invalid({"actions": {}}).message == "actions must be an array"


def test_unknown_type_is_rejected():
    error = _invalid({"actions": [{"type": "hover", "selector": "a"}]})
    assert error.message == "actions[0].type is unsupported: hover"


def test_missing_required_field_names_the_action():
    error = _invalid({"actions": [{"type": "wait", "ms": 1}, {"type": "fill", "selector": "#q"}]})
    assert error.message.startswith("actions[1]")
    assert "'text'" in error.message


def test_field_type_errors():
    assert _invalid({"actions": [{"type": "goto", "url": ""}]}).message.startswith("actions[0].url")
    assert _invalid({"actions": [{"type": "wait", "ms": "10"}]}).message.startswith("actions[0].ms")
    assert _invalid({"actions": [{"type": "wait", "ms": True}]}).message.startswith("actions[0].ms")
    error = _invalid({"actions": [{"type": "waitFor", "selector": "a", "state": "gone"}]})
    assert error.message.startswith("actions[0].state")


def test_save_as_pattern_is_enforced():
    error = _invalid({"actions": [{"type": "evaluate", "expression": "1", "saveAs": "bad name"}]})
    assert error.message.startswith("actions[0].saveAs")

    request = PayloadValidator().validate({"actions": [{"type": "evaluate", "expression": "1", "saveAs": "ok_name-2"}]})
    assert request.actions[0].save_as == "ok_name-2"


def test_invalid_options_fail_fast():
    error = _invalid({"options": {"viewport": {"width": 10}}, "actions": [{"type": "wait", "ms": 1}]})
    assert error.message.startswith("options.viewport")


def test_one_bad_action_rejects_the_whole_list():
    _invalid({"actions": [{"type": "goto", "url": "https://example.com"}, {"type": "click"}]})


def test_invalid_json():
    with pytest.raises(RunnerError) as excinfo:
        parse_payload("{not json")
    assert excinfo.value.code == ErrorCode.INVALID_INPUT
    assert excinfo.value.message.startswith("Invalid JSON:")


def test_load_raw_input_sources(tmp_path):
    (tmp_path / "request.json").write_text('{"actions": []}', encoding="utf-8")

    assert load_raw_input(json_text='{"a": 1}', input_path="request.json", cwd=tmp_path) == '{"a": 1}'
    assert load_raw_input(input_path="request.json", cwd=tmp_path) == '{"actions": []}'
    assert load_raw_input(stdin=_Stdin('{"b": 2}')) == '{"b": 2}'


def test_load_raw_input_without_any_source():
    for kwargs in ({}, {"stdin": _Stdin(tty=True)}, {"stdin": _Stdin("   \n")}):
        with pytest.raises(RunnerError) as excinfo:
            load_raw_input(**kwargs)
        assert excinfo.value.message == NO_INPUT_MESSAGE


def test_missing_input_file(tmp_path):
    with pytest.raises(RunnerError) as excinfo:
        load_raw_input(input_path="nope.json", cwd=tmp_path)
    assert excinfo.value.code == ErrorCode.INVALID_INPUT


def test_null_options_are_rejected():
    error = _invalid({"options": None, "actions": [{"type": "wait", "ms": 1}]})
    assert error.message.startswith("options")


def test_undecodable_input_file(tmp_path):
    (tmp_path / "request.json").write_bytes(b'{"actions": "\xff"}')
    with pytest.raises(RunnerError) as excinfo:
        load_raw_input(input_path="request.json", cwd=tmp_path)
    assert excinfo.value.code == ErrorCode.INVALID_INPUT
    assert "Cannot read input file" in excinfo.value.message


def test_undecodable_stdin():
    stdin = io.TextIOWrapper(io.BytesIO(b'{"actions": "\xff"}'), encoding="utf-8")
    with pytest.raises(RunnerError) as excinfo:
        load_raw_input(stdin=stdin)
    assert excinfo.value.code == ErrorCode.INVALID_INPUT
    assert excinfo.value.message.startswith("Input is not valid UTF-8")
