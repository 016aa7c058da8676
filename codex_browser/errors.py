"""Error taxonomy and classification for action runs."""
from __future__ import annotations

from enum import Enum

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError


class ErrorCode(str, Enum):
    """Fixed set of codes reported in a failure payload."""

    INVALID_INPUT = "InvalidInput"
    TEMPLATE_ERROR = "TemplateError"
    INTERRUPTED = "Interrupted"
    BROWSER_TIMEOUT = "BrowserTimeout"
    BROWSER_ERROR = "BrowserError"
    UNKNOWN = "Unknown"


class RunnerError(Exception):
    """Raised with an explicit code by validation, templating and cancellation."""

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


def classify_error(exc: BaseException, interrupted: bool = False) -> ErrorCode:
    """Map a raised failure onto an :class:`ErrorCode`.

    Explicit codes win, then interruption, then Playwright's own error
    hierarchy. Anything else is ``Unknown``.
    """
    if isinstance(exc, RunnerError) and exc.code in (ErrorCode.INVALID_INPUT, ErrorCode.TEMPLATE_ERROR):
        return exc.code
    if interrupted:
        return ErrorCode.INTERRUPTED
    if isinstance(exc, RunnerError):
        return exc.code
    # TimeoutError subclasses Error, so it is checked first
    if isinstance(exc, PlaywrightTimeoutError):
        return ErrorCode.BROWSER_TIMEOUT
    if isinstance(exc, PlaywrightError):
        return ErrorCode.BROWSER_ERROR
    return ErrorCode.UNKNOWN
