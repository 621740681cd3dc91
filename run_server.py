#!/usr/bin/env python
"""
Server Entry Point

Usage:
    Development:  python run_server.py --dev
    Production:   python run_server.py --workers 4
    Gunicorn:     python run_server.py --gunicorn
                  (same as: gunicorn analytics_engine.main:app -c gunicorn.conf.py)
"""

import argparse
import os
import subprocess

import uvicorn

APP = "analytics_engine.main:app"


def run_dev_server(host: str, port: int) -> None:
    """Single process with auto-reload."""
    uvicorn.run(
        APP,
        host=host,
        port=port,
        reload=True,
        reload_dirs=["analytics_engine"],
        log_level="debug",
    )


def run_prod_server(host: str, port: int, workers: int) -> None:
    """Uvicorn workers behind a reverse proxy."""
    uvicorn.run(
        APP,
        host=host,
        port=port,
        workers=workers,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
        proxy_headers=True,
        forwarded_allow_ips="*",
        server_header=False,
    )


def run_gunicorn(host: str, port: int) -> None:
    env = dict(os.environ, BIND=f"{host}:{port}")
    subprocess.run(["gunicorn", APP, "-c", "gunicorn.conf.py"], env=env, check=True)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Marketplace Analytics API Server")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--dev", action="store_true", help="Run with auto-reload")
    mode.add_argument("--gunicorn", action="store_true", help="Run under Gunicorn")
    parser.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", 8000)))
    parser.add_argument("--workers", type=int, default=int(os.getenv("WORKERS", 4)))
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()

    if args.dev:
        run_dev_server(args.host, args.port)
    elif args.gunicorn:
        run_gunicorn(args.host, args.port)
    else:
        run_prod_server(args.host, args.port, args.workers)
