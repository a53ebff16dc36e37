"""Headless-browser implementation of `ScriptRuntime` (Playwright).

Each runtime is one fresh browser context + page, so no state survives
between sandbox builds. Playwright is imported lazily; importing this
module does not require it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from src.preview import config
from src.preview.document import SandboxDocument
from src.preview.errors import (
    ExecutionFault,
    RenderFault,
    SandboxUnavailable,
    TranspileFault,
    UnresolvedSymbolFault,
    parse_unresolved_symbol,
)

logger = logging.getLogger(__name__)

_BROWSER_ARGS = ["--no-sandbox", "--disable-dev-shm-usage"]

_READY_CHECK = """() => ({
  react: typeof window.React === 'object' && typeof window.ReactDOM === 'object',
  babel: typeof window.Babel === 'object',
  sandbox: typeof window.__sandbox === 'object',
})"""


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


class PlaywrightRuntime:
    def __init__(self, context: Any, *, load_timeout_ms: int | None = None) -> None:
        self._context = context
        self._page: Any = None
        self._on_event: Callable[[dict[str, Any]], None] = lambda _payload: None
        self._load_timeout_ms = load_timeout_ms or config.load_timeout_ms()
        self._closed = False

    def _bridge(self, payload: Any) -> None:
        if self._closed:
            return
        self._on_event(_as_dict(payload))

    async def _call(self, expression: str, arg: Any = None) -> Any:
        from playwright.async_api import Error as PlaywrightError

        if self._page is None:
            raise SandboxUnavailable("Sandbox page is not loaded")
        try:
            if arg is None:
                return await self._page.evaluate(expression)
            return await self._page.evaluate(expression, arg)
        except PlaywrightError as exc:
            raise SandboxUnavailable(str(exc)) from exc

    async def load(
        self,
        document: SandboxDocument,
        *,
        generation: int,
        on_event: Callable[[dict[str, Any]], None],
    ) -> None:
        from playwright.async_api import Error as PlaywrightError
        from playwright.async_api import TimeoutError as PlaywrightTimeoutError

        self._on_event = on_event
        try:
            page = await self._context.new_page()
            self._page = page
            await page.expose_function("__previewBridge", self._bridge)
            await page.add_init_script(
                f"window.__previewDriven = true; window.__previewGeneration = {int(generation)};"
            )
            await page.set_content(
                document.html, wait_until="load", timeout=self._load_timeout_ms
            )
        except PlaywrightTimeoutError as exc:
            raise SandboxUnavailable("Sandbox document did not finish loading") from exc
        except PlaywrightError as exc:
            raise SandboxUnavailable(str(exc)) from exc

        ready = _as_dict(await self._call(_READY_CHECK))
        missing = [k for k in ("react", "babel", "sandbox") if not ready.get(k)]
        if missing:
            raise SandboxUnavailable(
                "Sandbox runtime did not initialize (missing: " + ", ".join(missing) + ")"
            )

    async def transpile(self) -> None:
        res = _as_dict(await self._call("() => window.__sandbox.transpile()"))
        if not res.get("ok"):
            raise TranspileFault(str(res.get("message") or "unknown transform error"))

    async def evaluate(self) -> None:
        res = _as_dict(await self._call("() => window.__sandbox.evaluate()"))
        if res.get("ok"):
            return
        message = str(res.get("message") or "unknown error")
        if res.get("kind") == "reference":
            symbol = parse_unresolved_symbol(message)
            if symbol:
                raise UnresolvedSymbolFault(message, symbol=symbol)
        raise ExecutionFault(message)

    async def define(self, code: str) -> None:
        res = _as_dict(await self._call("(c) => window.__sandbox.define(c)", code))
        if not res.get("ok"):
            raise ExecutionFault(str(res.get("message") or "stand-in failed"))

    async def resolve_component(self, name: str) -> str | None:
        found = await self._call("(n) => window.__sandbox.resolve(n)", name)
        return found if isinstance(found, str) else None

    async def mount(self) -> None:
        res = _as_dict(await self._call("() => window.__sandbox.mount()"))
        if not res.get("ok"):
            raise RenderFault(str(res.get("message") or "Render failed"))

    async def set_frame(self, frame: int) -> None:
        await self._call("(f) => window.__sandbox.setFrame(f)", int(frame))

    async def show_error(self, text: str) -> None:
        await self._call("(t) => window.__sandbox.showError(t)", text)

    async def screenshot(self) -> bytes:
        if self._page is None:
            raise SandboxUnavailable("Sandbox page is not loaded")
        return await self._page.screenshot(type="jpeg", quality=70, animations="disabled")

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._context.close()
        except Exception:
            logger.debug("Failed to close sandbox context", exc_info=True)


class PlaywrightSandboxFactory:
    """Launches one browser and hands out isolated runtimes from it."""

    def __init__(
        self,
        *,
        headless: bool | None = None,
        viewport_width: int = 1280,
        viewport_height: int = 720,
    ) -> None:
        self._headless = config.headless() if headless is None else headless
        self._viewport = {"width": viewport_width, "height": viewport_height}
        self._pw: Any = None
        self._browser: Any = None
        self._lock = asyncio.Lock()

    async def _ensure_browser(self) -> Any:
        async with self._lock:
            if self._browser is not None:
                return self._browser
            from playwright.async_api import async_playwright

            self._pw = await async_playwright().start()
            self._browser = await self._pw.chromium.launch(
                headless=self._headless, args=_BROWSER_ARGS
            )
            logger.info("Launched sandbox browser (headless=%s)", self._headless)
            return self._browser

    async def __call__(self) -> PlaywrightRuntime:
        browser = await self._ensure_browser()
        context = await browser.new_context(viewport=self._viewport)
        return PlaywrightRuntime(context)

    async def close(self) -> None:
        async with self._lock:
            browser, self._browser = self._browser, None
            pw, self._pw = self._pw, None
        if browser is not None:
            try:
                await browser.close()
            except Exception:
                logger.debug("Failed to close sandbox browser", exc_info=True)
        if pw is not None:
            await pw.stop()
