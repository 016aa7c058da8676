"""Side-channel capture of browser console messages and uncaught page errors."""
from __future__ import annotations

from collections import deque
from typing import Any, Deque, List, Optional, Tuple

from .models import ConsoleEntry, PageErrorEntry


class DiagnosticsChannel:
    """Queue the page session publishes into; drained once when the report is built."""

    def __init__(self, enabled: bool = False) -> None:
        self.enabled = enabled
        self._console: Deque[ConsoleEntry] = deque()
        self._page_errors: Deque[PageErrorEntry] = deque()

    def publish_console(self, entry: ConsoleEntry) -> None:
        if self.enabled:
            self._console.append(entry)

    def publish_page_error(self, entry: PageErrorEntry) -> None:
        if self.enabled:
            self._page_errors.append(entry)

    def on_console(self, message: Any) -> None:
        """Playwright ``console`` event handler."""
        self.publish_console(ConsoleEntry(type=message.type, text=message.text, location=message.location))

    def on_page_error(self, error: Any) -> None:
        """Playwright ``pageerror`` event handler."""
        self.publish_page_error(PageErrorEntry(message=error.message, stack=error.stack))

    def drain(self) -> Tuple[Optional[List[ConsoleEntry]], Optional[List[PageErrorEntry]]]:
        """Empty both queues. Each side is ``None`` when capture is off or nothing arrived."""
        console: List[ConsoleEntry] = []
        while self._console:
            console.append(self._console.popleft())
        page_errors: List[PageErrorEntry] = []
        while self._page_errors:
            page_errors.append(self._page_errors.popleft())
        if not self.enabled:
            return None, None
        return console or None, page_errors or None
