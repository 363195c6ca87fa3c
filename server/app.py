from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from aiohttp import web

# Ensure `python server/app.py` can import sibling modules and `game/`.
SERVER_DIR = Path(__file__).resolve().parent
if str(SERVER_DIR) not in sys.path:
    sys.path.insert(0, str(SERVER_DIR))

import admin_cli
from game.entities import Table
from matchmaking import RoomRegistry
from util import get_env_config, local_ips
from ws import WSHub


logger = logging.getLogger(__name__)


async def health(request: web.Request) -> web.Response:
    ws_hub: WSHub = request.app["ws_hub"]
    return web.json_response(ws_hub.status())


async def api_config(request: web.Request) -> web.Response:
    cfg = request.app["cfg"]
    registry: RoomRegistry = request.app["registry"]
    return web.json_response({"ok": True, "config": {**registry.table.to_public(), "tickRate": cfg["TICK_RATE"]}})


async def api_rooms(request: web.Request) -> web.Response:
    ws_hub: WSHub = request.app["ws_hub"]
    return web.json_response({"ok": True, "rooms": ws_hub.list_rooms_admin()})


async def startup(app: web.Application) -> None:
    cfg = app["cfg"]
    logger.info("accepting connections, %d ticks/s, rooms evicted %ss after abandonment", cfg["TICK_RATE"], cfg["EVICTION_GRACE_SECONDS"])
    if cfg.get("ADMIN_CLI"):
        loop = asyncio.get_running_loop()
        app["admin_cli_thread"] = admin_cli.start_stdin_repl(loop, {"ws_hub": app["ws_hub"]})


async def cleanup(app: web.Application) -> None:
    await app["ws_hub"].stop()


def build_app(cfg: Optional[Dict[str, Any]] = None, registry: Optional[RoomRegistry] = None) -> web.Application:
    cfg = {**get_env_config(), **(cfg or {})}
    registry = registry or RoomRegistry(table=Table(winning_score=cfg["WINNING_SCORE"]))
    app = web.Application()
    app["cfg"] = cfg
    app["registry"] = registry
    ws_hub = WSHub(registry, tick_rate=cfg["TICK_RATE"], eviction_grace=cfg["EVICTION_GRACE_SECONDS"])
    app["ws_hub"] = ws_hub

    app.router.add_get("/ws", ws_hub.ws_handler)
    app.router.add_get("/health", health)
    app.router.add_get("/api/config", api_config)
    app.router.add_get("/api/rooms", api_rooms)

    app.on_startup.append(startup)
    app.on_cleanup.append(cleanup)
    return app


def print_startup_banner(host: str, port: int, app: web.Application) -> None:
    cfg = app["cfg"]
    ips = local_ips()
    print("Pong Duel Server")
    print(f"Detected local IPs: {', '.join(ips)}")
    print(f"WebSocket endpoint: ws://{'localhost' if host in {'0.0.0.0', '::'} else host}:{port}/ws")
    print(f"TICK_RATE={cfg['TICK_RATE']} | WINNING_SCORE={cfg['WINNING_SCORE']} | EVICTION_GRACE_SECONDS={cfg['EVICTION_GRACE_SECONDS']}")


def main() -> None:
    cfg = get_env_config()
    parser = argparse.ArgumentParser(description="Authoritative multiplayer pong server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=cfg["PORT"])
    parser.add_argument("--admin-cli", action="store_true", help="read operator commands from stdin")
    args = parser.parse_args()

    logging.basicConfig(level=cfg["LOG_LEVEL"], format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if args.admin_cli:
        cfg["ADMIN_CLI"] = True
    app = build_app(cfg)
    print_startup_banner(args.host, args.port, app)
    web.run_app(app, host=args.host, port=args.port, print=None)


if __name__ == "__main__":
    main()
