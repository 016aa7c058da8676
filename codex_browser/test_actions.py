"""Tests for action-to-session mapping."""
from __future__ import annotations

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from .actions import execute_action, saved_value
from .errors import ErrorCode, RunnerError
from .models import (
    Action,
    ClickAction,
    EvaluateAction,
    FillAction,
    GotoAction,
    PressAction,
    ScreenshotAction,
    SetViewportAction,
    WaitAction,
    WaitForAction,
    WaitForLoadStateAction,
)


def _session() -> AsyncMock:
    session = AsyncMock()
    session.navigate.return_value = ("https://example.com/final", 200)
    session.evaluate_script.return_value = {"title": "Example"}
    return session


def _run(session, action, cwd: Path = Path("/tmp")):
    return asyncio.run(execute_action(session, action, cwd))


def test_goto_reports_final_url_and_status():
    session = _session()
    data = _run(session, GotoAction(url="https://example.com", wait_until="load", timeout_ms=1000))
    session.navigate.assert_awaited_once_with("https://example.com", wait_until="load", timeout=1000)
    assert data == {"url": "https://example.com/final", "status": 200}


def test_goto_without_response_has_null_status():
    session = _session()
    session.navigate.return_value = ("about:blank", None)
    assert _run(session, GotoAction(url="about:blank"))["status"] is None


def test_waits_echo_effective_state():
    session = _session()
    assert _run(session, WaitForAction(selector="#root")) == {"selector": "#root", "state": "visible"}
    session.wait_for_selector.assert_awaited_once_with("#root", state=None, timeout=None)

    assert _run(session, WaitForAction(selector="#x", state="hidden"))["state"] == "hidden"
    assert _run(session, WaitForLoadStateAction()) == {"state": "load"}
    assert _run(session, WaitForLoadStateAction(state="networkidle", timeout_ms=5)) == {"state": "networkidle"}
    session.wait_for_load_state.assert_awaited_with("networkidle", timeout=5)


def test_click_and_fill_forward_options():
    session = _session()
    action = ClickAction(selector="button", button="middle", click_count=2, delay_ms=10, timeout_ms=100)
    assert _run(session, action) == {"selector": "button"}
    session.click.assert_awaited_once_with("button", button="middle", click_count=2, delay=10, timeout=100)

    assert _run(session, FillAction(selector="#q", text="hello")) == {"selector": "#q"}
    session.fill.assert_awaited_once_with("#q", "hello", timeout=None)


def test_press_scoped_and_global():
    session = _session()
    assert _run(session, PressAction(key="Enter", selector="#q")) == {"key": "Enter"}
    session.press_key.assert_awaited_with("Enter", selector="#q", timeout=None)
    _run(session, PressAction(key="Escape"))
    session.press_key.assert_awaited_with("Escape", selector=None, timeout=None)


def test_screenshot_resolves_path_and_creates_directories(tmp_path):
    session = _session()
    data = _run(session, ScreenshotAction(path="shots/deep/page.png", full_page=True), cwd=tmp_path)

    target = (tmp_path / "shots" / "deep" / "page.png").resolve()
    assert data == {"path": str(target)}
    assert target.parent.is_dir()
    session.screenshot.assert_awaited_once_with(target, full_page=True)


def test_evaluate_viewport_and_wait():
    session = _session()
    assert _run(session, EvaluateAction(expression="({title: document.title})")) == {"result": {"title": "Example"}}
    assert _run(session, SetViewportAction(width=640, height=480)) == {"width": 640, "height": 480}
    session.set_viewport_size.assert_awaited_once_with(640, 480)
    assert _run(session, WaitAction(ms=25)) == {"ms": 25}
    session.sleep.assert_awaited_once_with(25)


def test_unsupported_action_is_invalid_input():
    class HoverAction(Action):
        type = "hover"
        save_as = None

    with pytest.raises(RunnerError) as excinfo:
        _run(_session(), HoverAction())
    assert excinfo.value.code == ErrorCode.INVALID_INPUT


def test_saved_value_unwraps_evaluate_result_only():
    assert saved_value(EvaluateAction(expression="1+1"), {"result": 2}) == 2
    goto_data = {"url": "https://example.com", "status": 200}
    assert saved_value(GotoAction(url="https://example.com"), goto_data) == goto_data
    assert saved_value(WaitAction(ms=1), None) is None
