from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Set

from aiohttp import WSMsgType, web

from game import protocol
from game.constants import EVICTION_GRACE_SECONDS, PHASE_RUNNING, TICK_RATE
from game.room import PongRoom, RoomError
from matchmaking import RoomJoinResult, RoomRegistry
from scheduler import TickScheduler
from util import json_dumps, json_loads, random_token


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Binding:
    room_id: str
    player_num: int


class WSHub:
    """Binds sockets to room slots, routes client events and fans out snapshots."""

    def __init__(
        self,
        registry: RoomRegistry,
        *,
        tick_rate: int = TICK_RATE,
        eviction_grace: float = EVICTION_GRACE_SECONDS,
    ):
        self.registry = registry
        self.scheduler = TickScheduler(self.broadcast_room, tick_rate=tick_rate)
        self.eviction_grace = eviction_grace
        self.sockets: Dict[str, Any] = {}
        self.bindings: Dict[str, Binding] = {}
        self._eviction_tasks: Set[asyncio.Task] = set()
        self._closing = False

    async def stop(self) -> None:
        self._closing = True
        await self.scheduler.stop_all()
        for task in list(self._eviction_tasks):
            task.cancel()
        for task in list(self._eviction_tasks):
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._eviction_tasks.clear()
        for ws in list(self.sockets.values()):
            close = getattr(ws, "close", None)
            if close is not None:
                await close()

    def status(self) -> dict:
        return {
            "status": "OK",
            "activeRooms": len(self.registry),
            "runningRooms": self.scheduler.active_count(),
            "connections": len(self.sockets),
        }

    # Transport

    async def ws_handler(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse(heartbeat=30, autoping=True, max_msg_size=64 * 1024)
        await ws.prepare(request)
        connection_id = random_token(9)
        self.connect(connection_id, ws)
        try:
            async for msg in ws:
                if msg.type == WSMsgType.TEXT:
                    try:
                        data = json_loads(msg.data)
                    except ValueError:
                        await self.send(connection_id, protocol.error_message("invalid_json", "Message is not valid JSON"))
                        continue
                    await self.handle_message(connection_id, data)
                elif msg.type == WSMsgType.ERROR:
                    logger.warning("connection %s closed with exception %s", connection_id, ws.exception())
                    break
        finally:
            await self.disconnect(connection_id)
        return ws

    def connect(self, connection_id: str, ws: Any) -> None:
        self.sockets[connection_id] = ws
        logger.info("connection %s opened", connection_id)

    async def send(self, connection_id: str, payload: dict) -> bool:
        ws = self.sockets.get(connection_id)
        if ws is None:
            return False
        try:
            await ws.send_json(payload, dumps=json_dumps)
        except Exception as exc:
            logger.warning("send %s to %s failed: %s", payload.get("type"), connection_id, exc)
            return False
        return True

    # Inbound events

    async def handle_message(self, connection_id: str, data: Any) -> None:
        if not isinstance(data, dict):
            await self.send(connection_id, protocol.error_message("json_object_required", "Message must be a JSON object"))
            return
        t = data.get("type")

        if t == protocol.PING:
            await self.send(connection_id, protocol.ok_message(protocol.PONG, ts=data.get("ts")))
            return
        if t in {protocol.QUICK_MATCH, protocol.CREATE_ROOM, protocol.JOIN_ROOM}:
            await self._handle_matchmaking(connection_id, t, data)
            return
        if t == protocol.PADDLE_MOVE:
            room, binding = self._bound_room(connection_id)
            if room is not None and binding is not None:
                room.move_paddle(binding.player_num, protocol.parse_paddle_direction(data))
            return
        if t == protocol.RESTART:
            room, _ = self._bound_room(connection_id)
            if room is not None:
                room.restart()
                self.scheduler.start(room)
                await self.broadcast_room(room)
            return

        await self.send(connection_id, protocol.error_message("unknown_message_type", f"Unknown message type: {t}", got=t))

    async def _handle_matchmaking(self, connection_id: str, kind: str, data: dict) -> None:
        try:
            if kind == protocol.QUICK_MATCH:
                result = self.registry.quick_match(connection_id)
            elif kind == protocol.CREATE_ROOM:
                result = self.registry.create_private_room(connection_id)
            else:
                result = self.registry.join_room(protocol.parse_room_id(data), connection_id)
        except RoomError as e:
            await self.send(connection_id, protocol.error_message(e.code, e.message, roomId=e.room_id))
            return
        # One room per connection; a successful match leaves the previous one.
        previous = self.bindings.get(connection_id)
        if previous is not None and previous.room_id != result.room_id:
            await self._release(connection_id)
        await self._on_joined(connection_id, result)

    async def _on_joined(self, connection_id: str, result: RoomJoinResult) -> None:
        room = result.room
        self.bindings[connection_id] = Binding(room.room_id, result.player_num)
        await self.send(
            connection_id,
            protocol.ok_message(
                protocol.JOINED,
                roomId=room.room_id,
                playerNum=result.player_num,
                gameConfig=room.table.game_config(),
            ),
        )
        if result.waiting:
            await self.send(connection_id, protocol.ok_message(protocol.WAITING))
            return
        host = room.slots[1]
        if host is not None and host.connected:
            await self.send(host.connection_id, protocol.ok_message(protocol.OPPONENT_JOINED, playerNum=result.player_num))
        await self.send(connection_id, protocol.ok_message(protocol.OPPONENT_JOINED, playerNum=1))
        self.scheduler.start(room)

    def _bound_room(self, connection_id: str) -> tuple[Optional[PongRoom], Optional[Binding]]:
        binding = self.bindings.get(connection_id)
        if binding is None:
            return None, None
        return self.registry.get(binding.room_id), binding

    # Disconnects and eviction

    async def disconnect(self, connection_id: str) -> None:
        if self.sockets.pop(connection_id, None) is None:
            return
        logger.info("connection %s closed", connection_id)
        await self._release(connection_id)

    async def _release(self, connection_id: str) -> None:
        binding = self.bindings.pop(connection_id, None)
        if binding is None:
            return
        room = self.registry.get(binding.room_id)
        if room is None:
            return
        room.disconnect(connection_id)
        if room.phase != PHASE_RUNNING:
            self.scheduler.stop(room.room_id)
        other = room.opponent_of(connection_id)
        if other is not None and other.connected:
            await self.send(other.connection_id, protocol.ok_message(protocol.OPPONENT_DISCONNECTED))
        self._schedule_eviction(room)

    def _schedule_eviction(self, room: PongRoom) -> None:
        if self._closing:
            return
        task = asyncio.create_task(self._evict_later(room), name=f"evict:{room.room_id}")
        self._eviction_tasks.add(task)
        task.add_done_callback(self._eviction_tasks.discard)

    async def _evict_later(self, room: PongRoom) -> None:
        await asyncio.sleep(self.eviction_grace)
        self.evict_if_abandoned(room)

    def evict_if_abandoned(self, room: PongRoom) -> bool:
        if not self.registry.evict(room.room_id, expected=room):
            return False
        self.scheduler.stop(room.room_id)
        return True

    # Outbound fanout

    async def broadcast_room(self, room: PongRoom) -> None:
        payload = protocol.ok_message(protocol.UPDATE, **room.snapshot().to_public())
        for _, connection_id in room.connected_ids():
            await self.send(connection_id, payload)

    def list_rooms_admin(self) -> list:
        rows = self.registry.rooms_summary()
        for row in rows:
            row["ticking"] = self.scheduler.is_running(row["room_id"])
        return rows

    async def force_room_restart(self, room_id: str) -> bool:
        room = self.registry.get(room_id.strip().upper())
        if room is None:
            return False
        room.restart()
        self.scheduler.start(room)
        await self.broadcast_room(room)
        return True
