"""Playwright-backed page session used by the action runner."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Optional, Tuple

from playwright.async_api import async_playwright

from .diagnostics import DiagnosticsChannel
from .models import DEFAULT_VIEWPORT, RunOptions

LOGGER = logging.getLogger("codex_browser.session")


class BrowserSession:
    """One browser, one context, one page."""

    def __init__(self, browser, context, page, tracing: bool = False) -> None:
        self.browser = browser
        self.context = context
        self.page = page
        self.tracing = tracing
        self._closed = False

    async def navigate(
        self,
        url: str,
        wait_until: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Tuple[str, Optional[int]]:
        response = await self.page.goto(url, wait_until=wait_until, timeout=timeout)
        status = response.status if response is not None else None
        return self.page.url, status

    async def wait_for_selector(self, selector: str, state: Optional[str] = None, timeout: Optional[float] = None) -> None:
        await self.page.wait_for_selector(selector, state=state, timeout=timeout)

    async def wait_for_load_state(self, state: Optional[str] = None, timeout: Optional[float] = None) -> None:
        await self.page.wait_for_load_state(state, timeout=timeout)

    # pylint: disable=too-many-arguments,too-many-positional-arguments
    async def click(
        self,
        selector: str,
        button: Optional[str] = None,
        click_count: Optional[int] = None,
        delay: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> None:
        await self.page.click(selector, button=button, click_count=click_count, delay=delay, timeout=timeout)

    async def fill(self, selector: str, text: str, timeout: Optional[float] = None) -> None:
        await self.page.fill(selector, text, timeout=timeout)

    async def press_key(self, key: str, selector: Optional[str] = None, timeout: Optional[float] = None) -> None:
        if selector:
            await self.page.press(selector, key, timeout=timeout)
        else:
            await self.page.keyboard.press(key)

    async def screenshot(self, path: Path, full_page: bool = False) -> None:
        await self.page.screenshot(path=str(path), full_page=full_page)

    async def evaluate_script(self, expression: str) -> Any:
        return await self.page.evaluate(expression)

    async def set_viewport_size(self, width: float, height: float) -> None:
        await self.page.set_viewport_size({"width": width, "height": height})

    async def sleep(self, ms: float) -> None:
        await self.page.wait_for_timeout(ms)

    async def start_tracing(self) -> None:
        await self.context.tracing.start(screenshots=True, snapshots=True, sources=False)
        self.tracing = True

    async def stop_tracing(self, path: Optional[Path] = None) -> None:
        if not self.tracing:
            return
        self.tracing = False
        if path is None:
            await self.context.tracing.stop()
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        await self.context.tracing.stop(path=str(path))

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        LOGGER.debug("Closing browser")
        await self.browser.close()


@asynccontextmanager
async def launch_session(options: RunOptions, diagnostics: DiagnosticsChannel) -> AsyncIterator[BrowserSession]:
    """Launch Chromium and yield a ready :class:`BrowserSession`; always closes the browser."""
    headless = True if options.headless is None else options.headless
    async with async_playwright() as playwright:
        LOGGER.info("Launching chromium (headless=%s)", headless)
        browser = await playwright.chromium.launch(headless=headless, slow_mo=options.slow_mo_ms)
        session = BrowserSession(browser, context=None, page=None)
        try:
            context = await browser.new_context(
                viewport=options.viewport or DEFAULT_VIEWPORT,
                user_agent=options.user_agent,
                locale=options.locale,
                timezone_id=options.timezone_id,
                ignore_https_errors=options.ignore_https_errors,
            )
            session.context = context
            if options.trace_on_failure_dir:
                await session.start_tracing()

            page = await context.new_page()
            session.page = page
            if diagnostics.enabled:
                page.on("console", diagnostics.on_console)
                page.on("pageerror", diagnostics.on_page_error)
            if options.default_timeout_ms is not None:
                page.set_default_timeout(options.default_timeout_ms)
            if options.default_navigation_timeout_ms is not None:
                page.set_default_navigation_timeout(options.default_navigation_timeout_ms)

            yield session
        finally:
            await session.close()
