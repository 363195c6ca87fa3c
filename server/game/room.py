import logging
import random
from typing import Dict, List, Optional, Tuple

from game.constants import (
    PHASE_GAME_OVER,
    PHASE_PAUSED,
    PHASE_READY,
    PHASE_RUNNING,
    PHASE_WAITING,
)
from game.entities import DEFAULT_TABLE, Paddles, RoomSnapshot, Scores, Slot, Table
from game.physics import scoring_side, serve_ball, step_ball
from util import clamp


logger = logging.getLogger(__name__)

PADDLE_DIRECTIONS = {"up": -1, "down": 1}


class RoomError(Exception):
    code = "room_error"
    message = "Room error"

    def __init__(self, room_id: str = "", message: Optional[str] = None):
        self.room_id = room_id
        if message:
            self.message = message
        super().__init__(self.message)


class RoomFullError(RoomError):
    code = "room_full"
    message = "Room is full"


class AlreadyInRoomError(RoomError):
    code = "already_in_room"
    message = "Already in this room"


class PongRoom:
    """Authoritative state for one two-player match."""

    def __init__(
        self,
        room_id: str,
        creator_id: str,
        table: Table = DEFAULT_TABLE,
        rng: Optional[random.Random] = None,
        private: bool = False,
    ):
        self.room_id = room_id
        self.private = private
        self.table = table
        self.rng = rng or random.Random()
        self.slots: Dict[int, Optional[Slot]] = {1: Slot(creator_id), 2: None}
        self.phase = PHASE_WAITING
        self.winner: Optional[str] = None
        self.scores = Scores()
        self.rallies = 0
        self.current_rally = 0
        self.tick_count = 0
        self.paddles = Paddles.centred(table)
        self.ball = serve_ball(table, self.rng)

    # Membership

    def join(self, connection_id: str) -> int:
        if self.player_num_for(connection_id) is not None:
            raise AlreadyInRoomError(self.room_id)
        if self.slots[2] is not None:
            raise RoomFullError(self.room_id)
        self.slots[2] = Slot(connection_id)
        self.phase = PHASE_READY
        self.start()
        return 2

    def start(self) -> None:
        if self.phase == PHASE_READY:
            self.phase = PHASE_RUNNING

    def disconnect(self, connection_id: str) -> Optional[int]:
        num = self.player_num_for(connection_id)
        slot = self.slots[num] if num is not None else None
        if slot is None:
            return None
        slot.connected = False
        if self.phase == PHASE_RUNNING:
            self.phase = PHASE_PAUSED
        return num

    def player_num_for(self, connection_id: str) -> Optional[int]:
        for num, slot in self.slots.items():
            if slot is not None and slot.connection_id == connection_id:
                return num
        return None

    def opponent_of(self, connection_id: str) -> Optional[Slot]:
        num = self.player_num_for(connection_id)
        if num is None:
            return None
        return self.slots[3 - num]

    def connected_ids(self) -> List[Tuple[int, str]]:
        return [(num, slot.connection_id) for num, slot in self.slots.items() if slot is not None and slot.connected]

    def is_full(self) -> bool:
        return self.slots[2] is not None

    def is_abandoned(self) -> bool:
        return not self.connected_ids()

    # Simulation

    def move_paddle(self, player_num: int, direction) -> bool:
        sign = PADDLE_DIRECTIONS.get(direction) if isinstance(direction, str) else None
        if sign is None or player_num not in (1, 2):
            return False
        dy = sign * self.table.paddle_speed
        if player_num == 1:
            self.paddles.left_y = clamp(self.paddles.left_y + dy, 0.0, self.table.paddle_max_y)
        else:
            self.paddles.right_y = clamp(self.paddles.right_y + dy, 0.0, self.table.paddle_max_y)
        return True

    def tick(self) -> Optional[str]:
        if self.phase != PHASE_RUNNING:
            return None
        self.tick_count += 1
        if step_ball(self.ball, self.paddles.left_y, self.paddles.right_y, self.table):
            self.current_rally += 1
        scorer = scoring_side(self.ball, self.table.width)
        if scorer:
            self.score(scorer)
        return scorer

    def score(self, scorer: str) -> None:
        points = self.scores.bump(scorer)
        self.rallies += 1
        self.current_rally = 0
        if points >= self.table.winning_score:
            self.end_game(scorer)
        else:
            self.reset_ball()

    def reset_ball(self) -> None:
        self.ball = serve_ball(self.table, self.rng)

    def end_game(self, winner: str) -> None:
        self.phase = PHASE_GAME_OVER
        self.winner = winner
        logger.info("room %s over, %s wins %d-%d", self.room_id, winner, self.scores.player1, self.scores.player2)

    def restart(self) -> None:
        self.scores = Scores()
        self.rallies = 0
        self.current_rally = 0
        self.tick_count = 0
        self.winner = None
        self.paddles = Paddles.centred(self.table)
        self.reset_ball()
        self.phase = PHASE_RUNNING if self.is_full() else PHASE_WAITING

    def snapshot(self) -> RoomSnapshot:
        return RoomSnapshot(
            room_id=self.room_id,
            phase=self.phase,
            tick=self.tick_count,
            ball=self.ball.copy(),
            paddles=Paddles(self.paddles.left_y, self.paddles.right_y),
            scores=Scores(self.scores.player1, self.scores.player2),
            rallies=self.rallies,
            current_rally=self.current_rally,
            winner=self.winner,
            connected={num: (None if slot is None else slot.connected) for num, slot in self.slots.items()},
        )

    def summary(self) -> dict:
        return {
            "room_id": self.room_id,
            "phase": self.phase,
            "private": self.private,
            "scores": self.scores.to_public(),
            "players": {
                str(num): (None if slot is None else {"connected": slot.connected})
                for num, slot in self.slots.items()
            },
            "tick": self.tick_count,
        }
