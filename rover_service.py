#!/usr/bin/env python3
"""
Extraction service
Glues admission control, the browser pool and extraction sessions together.
Playwright lives on one asyncio loop running in a background thread; Flask
request threads hand work to it and block until the result is ready.
"""

import asyncio
import threading

from admission import AdmissionController, Busy
from browser_pool import BrowserWorkerPool
from embed_extractor import ExtractionRequest, ExtractionResult, ExtractionSession
from settings import Settings


class RoverService:
    def __init__(self, settings: Settings, pool=None, admission=None):
        self.settings = settings
        self.pool = pool or BrowserWorkerPool(
            max_concurrency=settings.max_concurrency,
            headless=settings.headless,
            executable_path=settings.executable_path,
            task_timeout_ms=settings.task_timeout_ms,
            verbose=settings.verbose,
        )
        self.admission = admission or AdmissionController(settings.max_active, settings.reset_key)
        self._loop = None
        self._thread = None

    def start(self):
        """Start the browser loop and launch the pool. Launch failures propagate."""
        self._loop = asyncio.new_event_loop()
        self._loop.set_exception_handler(self._report_loop_error)
        self._thread = threading.Thread(target=self._run_loop, name='rover-browser-loop', daemon=True)
        self._thread.start()

        try:
            self._call(self.pool.start())
        except BaseException:
            self._stop_loop()
            raise

        print(f"\n🚀 CLUSTER LAUNCHED (workers={self.settings.max_concurrency}, "
              f"admission limit={self.settings.max_active})\n")

    def _run_loop(self):
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    def _call(self, coro):
        return asyncio.run_coroutine_threadsafe(coro, self._loop).result()

    def _report_loop_error(self, loop, context):
        if self.settings.development:
            reason = context.get('exception') or context.get('message')
            print(f"\nUNHANDLED BROWSER LOOP ERROR => {reason}\n")

    def extract(self, extraction: ExtractionRequest) -> ExtractionResult:
        """Run one extraction; raises Busy when the admission limit is reached."""
        if not self.admission.try_admit():
            raise Busy(f"{self.admission.active} extraction(s) already active")
        try:
            return self._call(self._extract(extraction))
        finally:
            self.admission.release()

    async def _extract(self, extraction):
        session = ExtractionSession(extraction, verbose=self.settings.verbose)
        try:
            return await self.pool.queue(session.run)
        except asyncio.TimeoutError:
            print(f"⚠️ Task timeout exceeded for {extraction.embed_url}")
            return ExtractionResult.timed_out()

    def status(self) -> int:
        return self.admission.active

    def reset(self, key):
        stamp = self.admission.reset(key)
        print(f"\n🔄 [RESET] ACTIVE COUNTER WAS RESET AT {stamp.isoformat()}\n")
        return stamp

    def close(self):
        if self._loop is None:
            return
        try:
            self._call(self.pool.close())
        except Exception as e:
            print(f"⚠️ Error during cleanup: {e}")
        self._stop_loop()

    def _stop_loop(self):
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=5)
        if not self._loop.is_running():
            self._loop.close()
        self._loop = None
        self._thread = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
