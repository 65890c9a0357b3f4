"""
Stand-ins for the Playwright objects the extractor and pool talk to.
"""

import asyncio

import pytest


class FakeRequest:
    def __init__(self, url, resource_type="xhr"):
        self.url = url
        self.resource_type = resource_type


class FakeRoute:
    def __init__(self, request):
        self.request = request
        self.outcome = None

    async def abort(self):
        self.outcome = "aborted"

    async def continue_(self):
        self.outcome = "continued"


class FakeResponse:
    def __init__(self, url, body):
        self.url = url
        self.body = body

    async def json(self):
        if isinstance(self.body, Exception):
            raise self.body
        return self.body


class FakePage:
    """Replays scripted traffic through whatever observers are installed.

    ``traffic`` is emitted while goto() is running; ``late_traffic`` is
    emitted ``late_delay`` seconds after goto() returns.
    """

    def __init__(self, traffic=(), late_traffic=(), late_delay=0.05,
                 nav_error=None, nav_delay=0.0, unroute_error=None):
        self.traffic = list(traffic)
        self.late_traffic = list(late_traffic)
        self.late_delay = late_delay
        self.nav_error = nav_error
        self.nav_delay = nav_delay
        self.unroute_error = unroute_error
        self.context = FakeContext()

        self.route_handlers = []
        self.listeners = {}
        self.ever_listened = []
        self.headers = {}
        self.routes = []
        self.goto_calls = []
        self.events_seen_at_goto = None
        self.closed = False
        self._late_task = None

    async def set_extra_http_headers(self, headers):
        self.headers.update(headers)

    async def route(self, pattern, handler):
        self.route_handlers.append((pattern, handler))

    async def unroute(self, pattern, handler=None):
        if self.unroute_error is not None:
            raise self.unroute_error
        self.route_handlers = [
            (p, h) for p, h in self.route_handlers
            if not (p == pattern and (handler is None or h == handler))
        ]

    def on(self, event, handler):
        self.listeners.setdefault(event, []).append(handler)
        self.ever_listened.append(event)

    def remove_listener(self, event, handler):
        self.listeners.get(event, []).remove(handler)

    async def goto(self, url, wait_until=None, timeout=None):
        self.goto_calls.append((url, wait_until, timeout))
        self.events_seen_at_goto = (len(self.route_handlers), sum(len(h) for h in self.listeners.values()))
        if self.nav_error is not None:
            raise self.nav_error
        for event in self.traffic:
            await self.emit(event)
        if self.late_traffic:
            self._late_task = asyncio.ensure_future(self._emit_later())
        await asyncio.sleep(self.nav_delay)

    async def _emit_later(self):
        await asyncio.sleep(self.late_delay)
        for event in self.late_traffic:
            await self.emit(event)

    async def emit(self, event):
        if isinstance(event, FakeResponse):
            for handler in list(self.listeners.get("response", [])):
                await handler(event)
            return
        route = FakeRoute(event)
        self.routes.append(route)
        for _, handler in list(self.route_handlers):
            await handler(route)

    def route_for(self, url):
        return next(r for r in self.routes if r.request.url == url)

    async def close(self):
        self.closed = True


class FakeCDPSession:
    def __init__(self, page):
        self.page = page
        self.sent = []
        self.detached = False

    async def send(self, method, params=None):
        self.sent.append((method, params))

    async def detach(self):
        self.detached = True


class FakeWorker:
    def __init__(self, page, open_error=None):
        self.page = page
        self.open_error = open_error
        self.discarded = []

    async def open_page(self):
        if self.open_error is not None:
            raise self.open_error
        return self.page

    async def discard(self, page):
        self.discarded.append(page)
        await page.close()


class FakeContext:
    def __init__(self, **options):
        self.options = options
        self.pages = []
        self.cdp_sessions = []
        self.closed = False

    async def new_cdp_session(self, page):
        session = FakeCDPSession(page)
        self.cdp_sessions.append(session)
        return session

    async def new_page(self):
        page = FakePage()
        page.context = self
        self.pages.append(page)
        return page

    async def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self):
        self.contexts = []
        self.closed = False

    async def new_context(self, **options):
        context = FakeContext(**options)
        self.contexts.append(context)
        return context

    async def close(self):
        self.closed = True


@pytest.fixture
def fakes():
    """Namespace of the fake Playwright classes"""
    class Namespace:
        Request = FakeRequest
        Response = FakeResponse
        Page = FakePage
        Worker = FakeWorker
        Browser = FakeBrowser
    return Namespace
