#!/usr/bin/env python3
"""
Vicify Runner - Serves the remote-control HTTP API
"""

import os

from waitress import serve

from vicify.app import create_app
from vicify.utils.logger import setup_logger

if __name__ == "__main__":
    logger = setup_logger("vicify.runner")
    app = create_app()

    host = os.environ.get("VICIFY_HOST", "127.0.0.1")
    port = int(os.environ.get("PORT", "5011"))
    debug_mode = os.environ.get("VICIFY_DEBUG", "0") == "1"

    print(f"🚀 Starting Vicify on {host}:{port}")
    print(f"🔧 Debug mode: {debug_mode}")

    if debug_mode:
        app.run(host=host, port=port, debug=True)
    else:
        threads = int(os.environ.get("VICIFY_WAITRESS_THREADS", "4"))
        print(f"🍽️ Using Waitress WSGI server (threads={threads})")
        serve(app, host=host, port=port, threads=threads)
