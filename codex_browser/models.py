"""Data models for the codex-browser action runner."""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, ClassVar, Dict, List, Optional, Tuple

# snake_case attribute -> camelCase wire key, for names that differ
WIRE_NAMES = {
    "save_as": "saveAs",
    "wait_until": "waitUntil",
    "timeout_ms": "timeoutMs",
    "click_count": "clickCount",
    "delay_ms": "delayMs",
    "full_page": "fullPage",
}

DEFAULT_VIEWPORT = {"width": 1280, "height": 720}


class Action:
    """Base for the closed set of action kinds.

    Subclasses are frozen dataclasses. ``templated_fields`` lists the
    string fields that go through template resolution before execution.
    """

    type: ClassVar[str] = ""
    templated_fields: ClassVar[Tuple[str, ...]] = ()

    save_as: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"type": self.type}
        for item in fields(self):
            value = getattr(self, item.name)
            if value is None:
                continue
            payload[WIRE_NAMES.get(item.name, item.name)] = value
        return payload


@dataclass(frozen=True)
class GotoAction(Action):
    type: ClassVar[str] = "goto"
    templated_fields: ClassVar[Tuple[str, ...]] = ("url",)

    url: str
    wait_until: Optional[str] = None
    timeout_ms: Optional[float] = None
    save_as: Optional[str] = None


@dataclass(frozen=True)
class WaitForAction(Action):
    type: ClassVar[str] = "waitFor"
    templated_fields: ClassVar[Tuple[str, ...]] = ("selector",)

    selector: str
    state: Optional[str] = None
    timeout_ms: Optional[float] = None
    save_as: Optional[str] = None


@dataclass(frozen=True)
class WaitForLoadStateAction(Action):
    type: ClassVar[str] = "waitForLoadState"

    state: Optional[str] = None
    timeout_ms: Optional[float] = None
    save_as: Optional[str] = None


@dataclass(frozen=True)
class ClickAction(Action):
    type: ClassVar[str] = "click"
    templated_fields: ClassVar[Tuple[str, ...]] = ("selector",)

    selector: str
    button: Optional[str] = None
    click_count: Optional[int] = None
    delay_ms: Optional[float] = None
    timeout_ms: Optional[float] = None
    save_as: Optional[str] = None


@dataclass(frozen=True)
class FillAction(Action):
    type: ClassVar[str] = "fill"
    templated_fields: ClassVar[Tuple[str, ...]] = ("selector", "text")

    selector: str
    text: str
    timeout_ms: Optional[float] = None
    save_as: Optional[str] = None


@dataclass(frozen=True)
class PressAction(Action):
    type: ClassVar[str] = "press"
    templated_fields: ClassVar[Tuple[str, ...]] = ("key", "selector")

    key: str
    selector: Optional[str] = None
    timeout_ms: Optional[float] = None
    save_as: Optional[str] = None


@dataclass(frozen=True)
class ScreenshotAction(Action):
    type: ClassVar[str] = "screenshot"
    templated_fields: ClassVar[Tuple[str, ...]] = ("path",)

    path: str
    full_page: Optional[bool] = None
    save_as: Optional[str] = None


@dataclass(frozen=True)
class EvaluateAction(Action):
    type: ClassVar[str] = "evaluate"
    templated_fields: ClassVar[Tuple[str, ...]] = ("expression",)

    expression: str
    save_as: Optional[str] = None


@dataclass(frozen=True)
class SetViewportAction(Action):
    type: ClassVar[str] = "setViewport"

    width: float
    height: float
    save_as: Optional[str] = None


@dataclass(frozen=True)
class WaitAction(Action):
    type: ClassVar[str] = "wait"

    ms: float
    save_as: Optional[str] = None


ACTION_TYPES: Dict[str, type] = {
    cls.type: cls
    for cls in (
        GotoAction,
        WaitForAction,
        WaitForLoadStateAction,
        ClickAction,
        FillAction,
        PressAction,
        ScreenshotAction,
        EvaluateAction,
        SetViewportAction,
        WaitAction,
    )
}


@dataclass
class RunOptions:
    """Browser and run configuration taken from the payload ``options`` object."""

    headless: Optional[bool] = None
    slow_mo_ms: Optional[float] = None
    default_timeout_ms: Optional[float] = None
    default_navigation_timeout_ms: Optional[float] = None
    viewport: Optional[Dict[str, float]] = None
    user_agent: Optional[str] = None
    locale: Optional[str] = None
    timezone_id: Optional[str] = None
    ignore_https_errors: Optional[bool] = None
    trace_on_failure_dir: Optional[str] = None
    capture_console: Optional[bool] = None


@dataclass
class RunRequest:
    """A validated input payload."""

    actions: List[Action]
    options: RunOptions = field(default_factory=RunOptions)


@dataclass(frozen=True)
class ActionResult:
    """Outcome of one executed action."""

    type: str
    index: int
    timing_ms: int
    data: Optional[Dict[str, Any]] = None
    saved_as: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"type": self.type, "ok": True}
        if self.saved_as is not None:
            payload["savedAs"] = self.saved_as
        if self.data is not None:
            payload["data"] = self.data
        payload["index"] = self.index
        payload["timingMs"] = self.timing_ms
        return payload


@dataclass(frozen=True)
class ConsoleEntry:
    type: str
    text: str
    location: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"type": self.type, "text": self.text}
        if self.location is not None:
            payload["location"] = self.location
        return payload


@dataclass(frozen=True)
class PageErrorEntry:
    message: str
    stack: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"message": self.message}
        if self.stack is not None:
            payload["stack"] = self.stack
        return payload


@dataclass
class SuccessReport:
    """Report produced when every action completed."""

    results: List[ActionResult]
    timing_ms: int
    variables: Optional[Dict[str, Any]] = None
    console: Optional[List[ConsoleEntry]] = None
    page_errors: Optional[List[PageErrorEntry]] = None

    ok: ClassVar[bool] = True

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "ok": True,
            "results": [result.to_dict() for result in self.results],
            "timingMs": self.timing_ms,
        }
        if self.variables:
            payload["variables"] = self.variables
        if self.console:
            payload["console"] = [entry.to_dict() for entry in self.console]
        if self.page_errors:
            payload["pageErrors"] = [entry.to_dict() for entry in self.page_errors]
        return payload


@dataclass
class FailureReport:
    """Report produced when the run stopped on an error."""

    code: str
    name: str
    message: str
    stack: Optional[str] = None
    step_index: Optional[int] = None
    action: Optional[Action] = None
    trace_path: Optional[str] = None
    results_so_far: Optional[List[ActionResult]] = None
    console: Optional[List[ConsoleEntry]] = None
    page_errors: Optional[List[PageErrorEntry]] = None

    ok: ClassVar[bool] = False

    def to_dict(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {
            "code": self.code,
            "name": self.name,
            "message": self.message,
        }
        if self.stack is not None:
            error["stack"] = self.stack
        if self.step_index is not None:
            error["stepIndex"] = self.step_index
        if self.action is not None:
            error["action"] = self.action.to_dict()
        if self.trace_path is not None:
            error["tracePath"] = self.trace_path
        if self.results_so_far is not None:
            error["resultsSoFar"] = [result.to_dict() for result in self.results_so_far]
        if self.console:
            error["console"] = [entry.to_dict() for entry in self.console]
        if self.page_errors:
            error["pageErrors"] = [entry.to_dict() for entry in self.page_errors]
        return {"ok": False, "error": error}
