from __future__ import annotations

import asyncio
import shlex
import threading
from typing import Any, Dict


HELP_TEXT = """Admin CLI commands:
  status
  rooms
  restart <room_id>
  evict <room_id>
  help
  quit
"""


def _print_table_rows(rows):
    if not rows:
        print("(none)")
        return
    for row in rows:
        print(row)


async def execute_command_async(state: Dict[str, Any], line: str) -> bool:
    line = line.strip()
    if not line:
        return True
    try:
        parts = shlex.split(line)
    except ValueError as e:
        print(f"Parse error: {e}")
        return True
    cmd = parts[0].lower()
    args = parts[1:]
    ws_hub = state["ws_hub"]

    if cmd in {"help", "?"}:
        print(HELP_TEXT)
        return True
    if cmd in {"quit", "exit"}:
        return False
    if cmd == "status":
        print(ws_hub.status())
        return True
    if cmd == "rooms":
        _print_table_rows(ws_hub.list_rooms_admin())
        return True
    if cmd == "restart" and args:
        ok = await ws_hub.force_room_restart(args[0])
        print(f"restart {args[0]}: {'ok' if ok else 'failed'}")
        return True
    if cmd == "evict" and args:
        room = ws_hub.registry.get(args[0].strip().upper())
        ok = room is not None and ws_hub.evict_if_abandoned(room)
        print(f"evict {args[0]}: {'ok' if ok else 'failed (unknown room or players still connected)'}")
        return True

    print("Unknown command or wrong args. Type `help`.")
    return True


def start_stdin_repl(loop: asyncio.AbstractEventLoop, state: Dict[str, Any]) -> threading.Thread:
    def _worker():
        print("\n[Admin CLI] Type `help` for commands. Ctrl+C stops server.")
        while True:
            try:
                line = input("admin> ")
            except EOFError:
                break
            except KeyboardInterrupt:
                print()
                break
            fut = asyncio.run_coroutine_threadsafe(execute_command_async(state, line), loop)
            try:
                should_continue = fut.result()
            except Exception as e:
                print(f"Command error: {e}")
                continue
            if not should_continue:
                break

    t = threading.Thread(target=_worker, name="admin-cli", daemon=True)
    t.start()
    return t
