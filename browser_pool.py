#!/usr/bin/env python3
"""
Browser worker pool
A fixed number of workers share one headless Chromium. Each worker hosts one
page at a time, in its own browser context so cookies and storage never leak
between unrelated embeds. Tasks beyond the pool size wait in FIFO order.
"""

import asyncio
from collections import deque

from playwright.async_api import async_playwright

CHROMIUM_ARGS = [
    '--disable-gpu',
    '--disable-canvas-aa',
    '--disable-2d-canvas-clip-aa',
    '--disable-gl-drawing-for-tests',
    '--disable-software-rasterizer',
    '--disable-setuid-sandbox',
    '--disable-blink-features=AutomationControlled',
    '--disable-extensions',
    '--disable-dev-shm-usage',
    '--disable-background-networking',
    '--disable-default-apps',
    '--disable-sync',
    '--disable-translate',
    '--disable-offline-load-stale-cache',
    '--disable-gpu-shader-disk-cache',
    '--enable-webgl',
    '--enable-accelerated-2d-canvas',
    '--aggressive-cache-discard',
    '--use-gl=swiftshader',
    '--media-cache-size=0',
    '--disk-cache-size=0',
    '--no-sandbox',
]

USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36'
)

DEFAULT_TASK_TIMEOUT_MS = 60000


class BrowserLaunchError(RuntimeError):
    """The browser engine could not be started; there is no degraded mode."""


class BrowserWorker:
    """A pool slot: opens one isolated page at a time on the shared browser."""

    def __init__(self, worker_id: int, browser):
        self.worker_id = worker_id
        self.browser = browser
        self.page = None

    async def open_page(self):
        context = await self.browser.new_context(
            user_agent=USER_AGENT,
            viewport={'width': 1280, 'height': 720},
            ignore_https_errors=True,
            java_script_enabled=True,
        )
        self.page = await context.new_page()
        return self.page

    async def discard(self, page):
        """Close the page and its context"""
        context = page.context
        try:
            await page.close()
        except Exception:
            pass
        try:
            await context.close()
        except Exception:
            pass
        if self.page is page:
            self.page = None

    def __repr__(self):
        return f"<BrowserWorker #{self.worker_id}>"


class BrowserWorkerPool:
    def __init__(self, max_concurrency: int = 1, headless=True, executable_path: str | None = None,
                 task_timeout_ms: int | None = DEFAULT_TASK_TIMEOUT_MS, verbose=False):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.max_concurrency = max_concurrency
        self.headless = headless
        self.executable_path = executable_path
        self.task_timeout_ms = task_timeout_ms
        self.verbose = verbose

        self.playwright = None
        self.browser = None
        self.workers: list[BrowserWorker] = []
        self._idle: deque[BrowserWorker] = deque()
        self._waiters: deque[asyncio.Future] = deque()

    @property
    def idle_count(self) -> int:
        return len(self._idle)

    @property
    def pending_count(self) -> int:
        return sum(1 for waiter in self._waiters if not waiter.done())

    async def start(self, browser=None):
        """Launch Chromium (or adopt an already launched browser) and create the workers.

        Any failure is raised as BrowserLaunchError.
        """
        if browser is None:
            try:
                print("🎭 Launching Chromium...")
                self.playwright = await async_playwright().start()
                launch_options = {'headless': self.headless, 'args': CHROMIUM_ARGS}
                if self.executable_path:
                    launch_options['executable_path'] = self.executable_path
                browser = await self.playwright.chromium.launch(**launch_options)
            except Exception as e:
                print(f"❌ Failed to launch browser: {e}")
                print("💡 Try running: playwright install chromium")
                await self.close()
                raise BrowserLaunchError(str(e)) from e

        self.browser = browser
        self.workers = [BrowserWorker(i, browser) for i in range(self.max_concurrency)]
        self._idle = deque(self.workers)
        print(f"✅ Browser pool ready with {self.max_concurrency} worker(s)")

    async def queue(self, task):
        """Run ``task(worker)`` on the next free worker and return its result.

        Waits in FIFO order while every worker is busy. The worker goes back to
        the pool when the task finishes, fails or exceeds the task timeout.
        """
        if not self.workers:
            raise RuntimeError("browser pool has not been started")

        worker = await self._acquire()
        try:
            if self.verbose:
                print(f"🕹️ {worker!r} picked up a task")
            if self.task_timeout_ms is None:
                return await task(worker)
            return await asyncio.wait_for(task(worker), timeout=self.task_timeout_ms / 1000)
        finally:
            self._release(worker)

    async def _acquire(self) -> BrowserWorker:
        if self._idle and not self._waiters:
            return self._idle.popleft()

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            return await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # Handed a worker just as we were cancelled; pass it on
                self._release(waiter.result())
            else:
                try:
                    self._waiters.remove(waiter)
                except ValueError:
                    pass
            raise

    def _release(self, worker: BrowserWorker):
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(worker)
                return
        self._idle.append(worker)

    async def close(self):
        """Close the browser and stop Playwright"""
        if self.browser:
            try:
                await self.browser.close()
            except Exception as e:
                print(f"⚠️ Error closing browser: {e}")
            self.browser = None

        if self.playwright:
            try:
                await self.playwright.stop()
            except Exception as e:
                print(f"⚠️ Error stopping Playwright: {e}")
            self.playwright = None

        self.workers = []
        self._idle.clear()
        print("🧹 Browser closed and resources cleaned up")
