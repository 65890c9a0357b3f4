#!/usr/bin/env python3
"""
Embed page extractor
Captures the stream manifest (.m3u8) and subtitle payload that a third-party
embed page requests while its player boots, without letting the manifest
itself download.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

DEFAULT_SOURCE_TARGET = ".m3u8"
DEFAULT_SUBTITLE_TARGET = "getSources"
DEFAULT_TIMEOUT_MS = 9000

# Sentinel subtitle target meaning "this embed has no subtitle request"
NO_SUBTITLES = "0"

TIMED_OUT = "TIMED-OUT"

# Heavy or tracking-oriented resource types never needed to reach the manifest
BLOCKED_RESOURCE_TYPES = frozenset({
    "image",
    "stylesheet",
    "font",
    "media",
    "texttrack",
    "eventsource",
    "websocket",
    "manifest",
    "other",
})

BLOCKED_DOMAINS = (
    "google-analytics.com",
    "ganalyticshub.net",
)

# Request verdicts
BLOCK = "block"
CAPTURE_TARGET = "capture-target"
PASSTHROUGH = "passthrough"

# Response verdicts
IGNORE = "ignore"
CAPTURE_SUBTITLE = "capture-subtitle"


class TrafficFilter:
    """Classifies the network traffic of one extraction session.

    Request rules are applied in a fixed priority order: the denylist always
    wins, even when the URL would also match the source target.
    """

    def __init__(self, source_target: str = DEFAULT_SOURCE_TARGET,
                 subtitle_target: str = DEFAULT_SUBTITLE_TARGET):
        self.source_target = source_target
        self.subtitle_target = subtitle_target

    @property
    def subtitles_expected(self) -> bool:
        return self.subtitle_target != NO_SUBTITLES

    def classify_request(self, url: str, resource_type: str) -> str:
        if resource_type in BLOCKED_RESOURCE_TYPES:
            return BLOCK
        if any(domain in url for domain in BLOCKED_DOMAINS):
            return BLOCK
        if self.source_target in url:
            return CAPTURE_TARGET
        return PASSTHROUGH

    def classify_response(self, url: str) -> str:
        if self.subtitles_expected and self.subtitle_target in url:
            return CAPTURE_SUBTITLE
        return IGNORE


@dataclass
class ExtractionRequest:
    embed_url: str
    source_target: str = DEFAULT_SOURCE_TARGET
    subtitle_target: str = DEFAULT_SUBTITLE_TARGET
    referer: str | None = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS


@dataclass
class ExtractionResult:
    source_url: str | None = None
    subtitles: Any = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def timed_out(cls):
        return cls(source_url=None, subtitles=[], error=TIMED_OUT)

    def to_json(self) -> dict:
        """Response body in the shape the HTTP front end returns."""
        return {'sourceUrl': self.source_url, 'subtitles': self.subtitles}


class ExtractionSession:
    """One-shot extraction against a single embed page.

    The session owns exactly one page for its whole life. Observers are
    installed before navigation starts and are always detached, and the page
    discarded, whatever the outcome. Handing the worker back to the pool is
    the pool's job.

    Outcome is decided by whichever settles first: both capture signals
    (source URL and subtitles) or the deadline, which starts when the session
    starts running and also covers opening the page. Navigation errors
    collapse into the same TIMED-OUT result as a real timeout.
    """

    NAVIGATING = "NAVIGATING"
    INTERCEPTING = "INTERCEPTING"
    COMPLETE = "COMPLETE"
    TIMED_OUT = "TIMED_OUT"

    def __init__(self, request: ExtractionRequest, verbose=False):
        self.request = request
        self.filter = TrafficFilter(request.source_target, request.subtitle_target)
        self.verbose = verbose

        self.state = None
        self.source_url: str | None = None
        # Pre-satisfied when no subtitle request is expected
        self.subtitles = None if self.filter.subtitles_expected else []

        self._source_found = None
        self._subtitles_found = None
        self._page = None
        self._cdp = None
        # Stable references so unroute/remove_listener match what was added
        self._route_handler = self._on_route
        self._response_handler = self._on_response

    async def run(self, worker) -> ExtractionResult:
        if self.state is not None:
            raise RuntimeError("extraction sessions are single-use")

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.request.timeout_ms / 1000
        self.state = self.NAVIGATING
        self._source_found = loop.create_future()
        self._subtitles_found = loop.create_future()
        if self.subtitles is not None:
            self._subtitles_found.set_result(self.subtitles)

        try:
            await asyncio.wait_for(self._extract(worker), timeout=max(0.0, deadline - loop.time()))
        except asyncio.CancelledError:
            self.state = self.TIMED_OUT
            raise
        except Exception as e:
            self.state = self.TIMED_OUT
            if self.verbose:
                print(f"⏱️ Extraction failed for {self.request.embed_url}: {e!r}")
            return ExtractionResult.timed_out()
        finally:
            if self._page is not None:
                await self._detach(self._page)
                await worker.discard(self._page)

        self.state = self.COMPLETE
        if self.verbose:
            print(f"🎯 Captured source: {self.source_url}")
        return ExtractionResult(source_url=self.source_url, subtitles=self.subtitles)

    async def _extract(self, worker):
        """Open the page, install observers and navigate, all within the deadline"""
        self._page = await worker.open_page()
        await self._attach(self._page)
        await self._drive(self._page)

    async def _attach(self, page):
        if self.request.referer:
            await page.set_extra_http_headers({'Referer': self.request.referer})
        await page.route("**/*", self._route_handler)
        # Routing turns Chromium's HTTP cache off; switch it back on
        self._cdp = await page.context.new_cdp_session(page)
        await self._cdp.send("Network.setCacheDisabled", {'cacheDisabled': False})
        if self.filter.subtitles_expected:
            page.on("response", self._response_handler)

    async def _detach(self, page):
        try:
            await page.unroute("**/*", self._route_handler)
        except Exception as e:
            self._warn(f"Error removing request route: {e}")

        if self.filter.subtitles_expected:
            try:
                page.remove_listener("response", self._response_handler)
            except Exception as e:
                self._warn(f"Error removing response listener: {e}")

        if self._cdp is not None:
            try:
                await self._cdp.detach()
            except Exception as e:
                self._warn(f"Error detaching CDP session: {e}")
            self._cdp = None

    def _warn(self, message):
        if self.verbose:
            print(f"⚠️ {message}")

    async def _drive(self, page):
        navigation = asyncio.ensure_future(page.goto(
            self.request.embed_url,
            wait_until="domcontentloaded",
            timeout=self.request.timeout_ms,
        ))
        completion = asyncio.gather(self._source_found, self._subtitles_found)
        try:
            await asyncio.wait({navigation, completion}, return_when=asyncio.FIRST_COMPLETED)
            if completion.done():
                return
            navigation.result()
            self.state = self.INTERCEPTING
            await completion
        finally:
            if navigation.done():
                if not navigation.cancelled():
                    navigation.exception()
            else:
                navigation.cancel()
            if not completion.done():
                completion.cancel()

    @staticmethod
    def _settle(signal, value):
        if not signal.done():
            signal.set_result(value)

    async def _on_route(self, route):
        request = route.request
        verdict = self.filter.classify_request(request.url, request.resource_type)

        if verdict == BLOCK:
            await route.abort()
        elif verdict == CAPTURE_TARGET:
            # First match wins; later matches are still aborted
            if self.source_url is None:
                self.source_url = request.url
            try:
                await route.abort()
            finally:
                self._settle(self._source_found, self.source_url)
        else:
            await route.continue_()

    async def _on_response(self, response):
        if self.filter.classify_response(response.url) != CAPTURE_SUBTITLE:
            return
        if self.subtitles is not None:
            return

        try:
            data = await response.json()
        except Exception as e:
            # Unreadable payloads leave subtitles pending until the deadline
            if self.verbose:
                print(f"⚠️ Could not parse subtitle payload from {response.url}: {e}")
            return

        if data is None or self.subtitles is not None:
            return
        self.subtitles = data
        self._settle(self._subtitles_found, data)
