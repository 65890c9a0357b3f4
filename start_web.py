#!/usr/bin/env python3
"""
Startup script for the Rover extraction server
"""

import atexit
import sys


def main():
    print("🚀 Starting Rover extraction server")
    print("=" * 50)

    # Check if required packages are installed
    try:
        import flask
        import playwright
        import dotenv
        print("✅ All dependencies found")
    except ImportError as e:
        print(f"❌ Missing dependency: {e}")
        print("   Run: pip install -e .")
        return 1

    from app import app, attach_service
    from browser_pool import BrowserLaunchError
    from rover_service import RoverService
    from settings import Settings

    settings = Settings.from_env()
    service = RoverService(settings)

    # Without a working browser there is nothing useful to serve
    try:
        service.start()
    except BrowserLaunchError as e:
        print(f"❌ Browser pool could not be launched: {e}")
        return 1

    atexit.register(service.close)
    attach_service(service)

    try:
        print(f"🎉 SERVER STARTED on port {settings.port}")
        print("=" * 50)
        app.run(host='0.0.0.0', port=settings.port, threaded=True, debug=False)
    except Exception as e:
        print(f"❌ Error starting server: {e}")
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
