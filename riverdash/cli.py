"""
riverdash/cli.py
  riverdash serve   → run the FastAPI service (uvicorn)
  riverdash watch   → run the dashboard against a service and print it on
                      every change (or once with --once)
"""

import argparse
import asyncio
import logging
import sys

from riverdash.core import config


def parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="riverdash", description="Delaware River conditions dashboard.")
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="Logging level (default from LOG_LEVEL).")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the river conditions API.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true", help="Auto-reload on code changes.")

    watch = sub.add_parser("watch", help="Poll the API and print the dashboard.")
    watch.add_argument("--api", default=config.API_BASE, help="Base URL of the river conditions API.")
    watch.add_argument("--river", default="all", help='River filter, e.g. "Neversink River".')
    watch.add_argument("--lat", type=float, default=config.DEFAULT_COORDS[0])
    watch.add_argument("--lng", type=float, default=config.DEFAULT_COORDS[1])
    watch.add_argument("--once", action="store_true", help="Fetch everything once, print, and exit.")
    watch.add_argument(
        "--debounce",
        type=float,
        default=0.5,
        help="Seconds to wait for further changes before re-printing.",
    )
    return parser.parse_args(argv)


def serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run(
        "riverdash.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level.lower(),
    )
    return 0


async def watch(args: argparse.Namespace) -> int:
    from riverdash.core.fetcher import ResourceFetcher
    from riverdash.core.http_client import api_client, close_all
    from riverdash.core.hub import SubscriptionHub
    from riverdash.dashboard import Dashboard, render_text

    changed = asyncio.Event()
    hub = SubscriptionHub(fetch=ResourceFetcher(api_client(args.api)))
    dashboard = Dashboard(
        hub,
        coords=(args.lat, args.lng),
        river=args.river,
        on_change=lambda _: changed.set(),
    )

    try:
        dashboard.start()
        if args.once:
            await hub.settle()
            print(render_text(dashboard.snapshot()))
            return 0

        while True:
            await changed.wait()
            await asyncio.sleep(args.debounce)
            changed.clear()
            print(render_text(dashboard.snapshot()), flush=True)
            print("", flush=True)
    finally:
        dashboard.close()
        await hub.close()
        await close_all()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    if args.command == "serve":
        return serve(args)
    try:
        return asyncio.run(watch(args))
    except KeyboardInterrupt:
        return 130
