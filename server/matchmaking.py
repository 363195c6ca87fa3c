from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional

from game.constants import PHASE_WAITING, ROOM_CODE_ALPHABET, ROOM_CODE_LENGTH
from game.entities import DEFAULT_TABLE, Table
from game.room import PongRoom, RoomError
from util import random_room_code


logger = logging.getLogger(__name__)


class RoomNotFoundError(RoomError):
    code = "room_not_found"
    message = "Room not found"


@dataclass(frozen=True)
class RoomJoinResult:
    room: PongRoom
    player_num: int
    created: bool

    @property
    def room_id(self) -> str:
        return self.room.room_id

    @property
    def waiting(self) -> bool:
        return self.room.phase == PHASE_WAITING


class RoomRegistry:
    """In-memory room map plus quick-match/private-room pairing.

    WSHub handles bindings and message fanout; nothing here touches sockets.
    """

    def __init__(
        self,
        table: Table = DEFAULT_TABLE,
        rng: Optional[random.Random] = None,
        code_factory: Optional[Callable[[], str]] = None,
    ):
        self.table = table
        self.rng = rng
        self.rooms: Dict[str, PongRoom] = {}
        self._code_factory = code_factory or (lambda: random_room_code(ROOM_CODE_LENGTH, ROOM_CODE_ALPHABET))

    def __len__(self) -> int:
        return len(self.rooms)

    def __contains__(self, room_id: object) -> bool:
        return room_id in self.rooms

    def __iter__(self) -> Iterator[PongRoom]:
        return iter(list(self.rooms.values()))

    def get(self, room_id: str) -> Optional[PongRoom]:
        return self.rooms.get(room_id)

    def new_room_code(self) -> str:
        for _ in range(1000):
            code = self._code_factory()
            if code not in self.rooms:
                return code
        raise RuntimeError("could not allocate a free room code")

    def _create(self, connection_id: str, private: bool = False) -> PongRoom:
        room_id = self.new_room_code()
        room = PongRoom(room_id, connection_id, table=self.table, rng=self.rng, private=private)
        self.rooms[room_id] = room
        logger.info("%s room %s created by %s", "private" if private else "open", room_id, connection_id)
        return room

    def quick_match(self, connection_id: str) -> RoomJoinResult:
        for room in self.rooms.values():
            if room.private or room.is_full():
                continue
            host = room.slots[1]
            # A host who already left can never play; let the room age out instead.
            if host is None or host.connection_id == connection_id or not host.connected:
                continue
            return self._join(room, connection_id)
        room = self._create(connection_id)
        return RoomJoinResult(room=room, player_num=1, created=True)

    def create_private_room(self, connection_id: str) -> RoomJoinResult:
        room = self._create(connection_id, private=True)
        return RoomJoinResult(room=room, player_num=1, created=True)

    def join_room(self, room_id: str, connection_id: str) -> RoomJoinResult:
        code = (room_id or "").strip().upper()
        room = self.rooms.get(code)
        if room is None:
            raise RoomNotFoundError(code)
        return self._join(room, connection_id)

    def _join(self, room: PongRoom, connection_id: str) -> RoomJoinResult:
        num = room.join(connection_id)
        logger.info("%s joined room %s as player %d", connection_id, room.room_id, num)
        return RoomJoinResult(room=room, player_num=num, created=False)

    def evict(self, room_id: str, expected: Optional[PongRoom] = None) -> bool:
        room = self.rooms.get(room_id)
        if room is None:
            return False
        if expected is not None and room is not expected:
            return False
        if not room.is_abandoned():
            return False
        self.rooms.pop(room_id, None)
        logger.info("room %s evicted", room_id)
        return True

    def rooms_summary(self) -> List[dict]:
        out = [room.summary() for room in self.rooms.values()]
        out.sort(key=lambda r: r["room_id"])
        return out
