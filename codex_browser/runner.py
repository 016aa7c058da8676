"""Sequential execution of a validated action list against one page session."""
from __future__ import annotations

import asyncio
import logging
import os
import time
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

from .actions import execute_action, saved_value
from .cancellation import CancellationToken
from .diagnostics import DiagnosticsChannel
from .errors import ErrorCode, RunnerError, classify_error
from .models import Action, ActionResult, FailureReport, RunOptions, RunRequest, SuccessReport
from .session import launch_session
from .templating import resolve_action_templates

Report = Union[SuccessReport, FailureReport]


@dataclass
# pylint: disable=too-few-public-methods
class RunnerSettings:
    """Runtime knobs that do not come from the payload."""

    include_stack: bool = False
    cwd: Optional[Path] = None
    log_file: Optional[Path] = None


def _elapsed_ms(started: float) -> int:
    return int(round((time.monotonic() - started) * 1000))


# pylint: disable=too-many-arguments
def build_failure_report(
    exc: BaseException,
    *,
    include_stack: bool = False,
    interrupted: bool = False,
    step_index: Optional[int] = None,
    action: Optional[Action] = None,
    results: Optional[List[ActionResult]] = None,
    trace_path: Optional[str] = None,
) -> FailureReport:
    """Classify ``exc`` and wrap it with whatever step context is known."""
    code = classify_error(exc, interrupted=interrupted)
    stack = None
    if include_stack:
        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return FailureReport(
        code=code.value,
        name=type(exc).__name__,
        message=getattr(exc, "message", None) or str(exc),
        stack=stack,
        step_index=step_index,
        action=action,
        trace_path=trace_path,
        results_so_far=list(results) if results is not None else None,
    )


class Runner:
    """Runs a :class:`RunRequest` and produces exactly one report."""

    def __init__(self, settings: Optional[RunnerSettings] = None, session_factory=launch_session) -> None:
        self.settings = settings or RunnerSettings()
        self.session_factory = session_factory
        self.logger = logging.getLogger("codex_browser")
        self._close_tasks: Set[asyncio.Task] = set()

    async def run(self, request: RunRequest, token: Optional[CancellationToken] = None) -> Report:
        token = token or CancellationToken()
        log_handler = self._attach_run_logger(self.settings.log_file) if self.settings.log_file else None
        try:
            return await self._run(request, token)
        finally:
            if log_handler:
                self.logger.removeHandler(log_handler)
                log_handler.close()

    # pylint: disable=too-many-locals
    async def _run(self, request: RunRequest, token: CancellationToken) -> Report:
        started = time.monotonic()
        options = request.options
        cwd = self.settings.cwd or Path.cwd()
        diagnostics = DiagnosticsChannel(enabled=bool(options.capture_console))
        results: List[ActionResult] = []
        variables: Dict[str, Any] = {}
        loop = asyncio.get_running_loop()

        self.logger.info("Starting run with %d action(s)", len(request.actions))
        try:
            async with self.session_factory(options, diagnostics) as session:

                def _on_cancel() -> None:
                    loop.call_soon_threadsafe(self._schedule_close, session)

                token.add_callback(_on_cancel)
                step_index: Optional[int] = None
                current: Optional[Action] = None
                try:
                    for index, action in enumerate(request.actions):
                        step_index, current = index, action
                        if token.cancelled:
                            raise RunnerError(ErrorCode.INTERRUPTED, "Interrupted")

                        resolved = resolve_action_templates(action, variables)
                        current = resolved

                        self.logger.info("Step %s: %s", index, action.type)
                        action_started = time.monotonic()
                        data = await execute_action(session, resolved, cwd)
                        timing_ms = _elapsed_ms(action_started)

                        if action.save_as:
                            variables[action.save_as] = saved_value(resolved, data)
                        results.append(
                            ActionResult(
                                type=action.type,
                                index=index,
                                timing_ms=timing_ms,
                                data=data,
                                saved_as=action.save_as,
                            ))

                    step_index, current = None, None
                    if token.cancelled:
                        raise RunnerError(ErrorCode.INTERRUPTED, "Interrupted")
                    await session.stop_tracing()
                except Exception as exc:  # pylint: disable=broad-exception-caught
                    trace_path = await self._capture_trace(session, options, cwd)
                    return self._failure_report(
                        exc,
                        token,
                        diagnostics,
                        step_index=step_index,
                        action=current,
                        results=results,
                        trace_path=trace_path,
                    )
                finally:
                    token.remove_callback(_on_cancel)
                    await self._await_close_tasks()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            # launch, context setup or teardown
            return self._failure_report(exc, token, diagnostics)

        console, page_errors = diagnostics.drain()
        timing_ms = _elapsed_ms(started)
        self.logger.info("Run completed in %sms", timing_ms)
        return SuccessReport(
            results=results,
            timing_ms=timing_ms,
            variables=variables or None,
            console=console,
            page_errors=page_errors,
        )

    # pylint: disable=too-many-arguments
    def _failure_report(
        self,
        exc: Exception,
        token: CancellationToken,
        diagnostics: DiagnosticsChannel,
        *,
        step_index: Optional[int] = None,
        action: Optional[Action] = None,
        results: Optional[List[ActionResult]] = None,
        trace_path: Optional[str] = None,
    ) -> FailureReport:
        report = build_failure_report(
            exc,
            include_stack=self.settings.include_stack,
            interrupted=token.cancelled,
            step_index=step_index,
            action=action,
            results=results if step_index is not None or results else None,
            trace_path=trace_path,
        )
        if step_index is not None:
            self.logger.warning("Step %s failed (%s): %s", step_index, report.code, report.message)
        else:
            self.logger.warning("Run failed (%s): %s", report.code, report.message)
        report.console, report.page_errors = diagnostics.drain()
        return report

    async def _capture_trace(self, session, options: RunOptions, cwd: Path) -> Optional[str]:
        if not options.trace_on_failure_dir or not session.tracing:
            return None
        trace_path = (cwd / options.trace_on_failure_dir /
                      f"trace-failure-{os.getpid()}-{int(time.time() * 1000)}.zip").resolve()
        try:
            await session.stop_tracing(trace_path)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            self.logger.error("Trace capture failed: %s", exc)
            return None
        self.logger.info("Failure trace written to %s", trace_path)
        return str(trace_path)

    def _schedule_close(self, session) -> None:
        task = asyncio.ensure_future(session.close())
        self._close_tasks.add(task)
        task.add_done_callback(self._close_tasks.discard)

    async def _await_close_tasks(self) -> None:
        if not self._close_tasks:
            return
        outcomes = await asyncio.gather(*list(self._close_tasks), return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, Exception):
                self.logger.debug("Early close raised: %s", outcome)

    def _attach_run_logger(self, log_path: Path) -> Optional[logging.Handler]:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, encoding="utf-8")
        formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
        handler.setFormatter(formatter)
        self.logger.addHandler(handler)
        return handler
