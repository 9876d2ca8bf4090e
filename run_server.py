#!/usr/bin/env python
"""
API Server Entry Point

Usage:
    Development:  python run_server.py --dev
    Production:   python run_server.py --workers 4
"""

import argparse

import uvicorn

from aquametrics.config import get_settings

APP = "aquametrics.serving.api.main:app"


def run_dev_server(port: int):
    """Run development server with auto-reload."""
    settings = get_settings()
    uvicorn.run(
        APP,
        host=settings.api_host,
        port=port,
        reload=True,
        reload_dirs=["aquametrics"],
        log_level="debug",
    )


def run_prod_server(port: int, workers: int):
    """Run with several Uvicorn workers."""
    settings = get_settings()
    uvicorn.run(
        APP,
        host=settings.api_host,
        port=port,
        workers=workers,
        log_level=settings.monitoring.log_level.lower(),
        proxy_headers=True,
        forwarded_allow_ips="*",
        server_header=False,
    )


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Aquaculture production metrics API server")
    parser.add_argument("--dev", action="store_true", help="Run in development mode with auto-reload")
    parser.add_argument("--port", type=int, default=None, help="Port to run on (default: API_PORT)")
    parser.add_argument("--workers", type=int, default=1, help="Worker processes in production mode")

    args = parser.parse_args()
    port = args.port or get_settings().api_port

    if args.dev:
        run_dev_server(port)
    else:
        run_prod_server(port, args.workers)
