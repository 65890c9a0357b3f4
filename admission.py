#!/usr/bin/env python3
"""
Admission control
Bounds how many extraction requests are accepted at once. Excess requests are
rejected as BUSY before any browser resource is touched.
"""

import hmac
import threading
from datetime import datetime


class Busy(Exception):
    """Admission limit reached; the caller should back off and retry."""


class Forbidden(Exception):
    """Privileged operation attempted without the correct credential."""


class AdmissionController:
    """Process-wide counter of accepted extraction requests.

    Flask serves requests on several threads, so check-and-increment and
    decrement happen under one lock.

    ``reset`` is an operator escape hatch for counter drift (a crash that
    skipped a release). It does not wait for in-flight sessions: their later
    releases are clamped at zero instead of driving the count negative.
    """

    def __init__(self, max_active: int = 1, reset_key: str | None = None):
        self.max_active = max_active
        self.active = 0
        self.last_reset: datetime | None = None
        self._reset_key = reset_key
        self._lock = threading.Lock()

    def try_admit(self) -> bool:
        with self._lock:
            if self.active >= self.max_active:
                return False
            self.active += 1
            return True

    def release(self):
        with self._lock:
            if self.active > 0:
                self.active -= 1

    def reset(self, key: str | None) -> datetime:
        if not self._authorized(key):
            raise Forbidden("invalid reset key")
        with self._lock:
            self.active = 0
            self.last_reset = datetime.now()
            return self.last_reset

    def _authorized(self, key):
        if not self._reset_key or not key:
            return False
        return hmac.compare_digest(str(key).encode(), self._reset_key.encode())
