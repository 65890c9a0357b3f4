"""
Runtime settings, read from the environment (and a local .env file).
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv


def _int(environ, name, default):
    raw = environ.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        print(f"⚠️ Ignoring invalid {name}={raw!r}, using {default}")
        return default


def _flag(environ, name, default):
    raw = environ.get(name)
    if raw is None or raw.strip() == '':
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class Settings:
    port: int = 5000
    max_concurrency: int = 1       # MAX_C: browser workers
    max_active: int = 1            # MAX_A: accepted requests
    reset_key: str | None = None
    headless: bool = True
    extract_timeout_ms: int = 9000
    task_timeout_ms: int = 60000
    executable_path: str | None = None
    app_env: str = 'production'
    verbose: bool = False

    @property
    def development(self) -> bool:
        return self.app_env.upper() == 'DEV'

    @classmethod
    def from_env(cls, environ=None):
        if environ is None:
            load_dotenv()
            environ = os.environ
        return cls(
            port=_int(environ, 'PORT', 5000),
            max_concurrency=max(1, _int(environ, 'MAX_C', 1)),
            max_active=max(1, _int(environ, 'MAX_A', 1)),
            reset_key=environ.get('RESET_KEY') or None,
            headless=_flag(environ, 'HEADLESS', True),
            extract_timeout_ms=_int(environ, 'EXTRACT_TIMEOUT_MS', 9000),
            task_timeout_ms=_int(environ, 'TASK_TIMEOUT_MS', 60000),
            executable_path=environ.get('BROWSER_EXECUTABLE_PATH') or None,
            app_env=environ.get('APP_ENV') or 'production',
            verbose=_flag(environ, 'VERBOSE', False),
        )
