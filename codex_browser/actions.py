"""Maps a resolved action onto page-session calls."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

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

LOGGER = logging.getLogger("codex_browser.actions")


# pylint: disable=too-many-return-statements
async def execute_action(session, action: Action, cwd: Path) -> Dict[str, Any]:
    """Run one action against ``session`` and return its ``data`` payload."""
    if isinstance(action, GotoAction):
        LOGGER.info("Navigating to %s", action.url)
        url, status = await session.navigate(action.url, wait_until=action.wait_until, timeout=action.timeout_ms)
        return {"url": url, "status": status}
    if isinstance(action, WaitForAction):
        await session.wait_for_selector(action.selector, state=action.state, timeout=action.timeout_ms)
        return {"selector": action.selector, "state": action.state or "visible"}
    if isinstance(action, WaitForLoadStateAction):
        await session.wait_for_load_state(action.state, timeout=action.timeout_ms)
        return {"state": action.state or "load"}
    if isinstance(action, ClickAction):
        await session.click(
            action.selector,
            button=action.button,
            click_count=action.click_count,
            delay=action.delay_ms,
            timeout=action.timeout_ms,
        )
        return {"selector": action.selector}
    if isinstance(action, FillAction):
        await session.fill(action.selector, action.text, timeout=action.timeout_ms)
        return {"selector": action.selector}
    if isinstance(action, PressAction):
        await session.press_key(action.key, selector=action.selector, timeout=action.timeout_ms)
        return {"key": action.key}
    if isinstance(action, ScreenshotAction):
        target = (cwd / action.path).resolve()
        target.parent.mkdir(parents=True, exist_ok=True)
        await session.screenshot(target, full_page=bool(action.full_page))
        LOGGER.info("Screenshot written to %s", target)
        return {"path": str(target)}
    if isinstance(action, EvaluateAction):
        result = await session.evaluate_script(action.expression)
        return {"result": result}
    if isinstance(action, SetViewportAction):
        await session.set_viewport_size(action.width, action.height)
        return {"width": action.width, "height": action.height}
    if isinstance(action, WaitAction):
        await session.sleep(action.ms)
        return {"ms": action.ms}
    raise RunnerError(ErrorCode.INVALID_INPUT, f"Unsupported action: {getattr(action, 'type', action)!r}")


def saved_value(action: Action, data: Optional[Dict[str, Any]]) -> Any:
    """Value stored under ``saveAs``: the bare ``result`` for evaluate, the whole payload otherwise."""
    if data is None:
        return None
    if isinstance(action, EvaluateAction):
        return data.get("result")
    return data
