from dataclasses import dataclass, field
from typing import Dict, Optional

from game.constants import (
    BALL_SIZE,
    BOUNCE_SPEEDUP,
    INITIAL_BALL_SPEED,
    MAX_BALL_SPEED,
    MAX_BOUNCE_ANGLE,
    PADDLE_HEIGHT,
    PADDLE_MARGIN,
    PADDLE_SPEED,
    PADDLE_WIDTH,
    PHASE_GAME_OVER,
    PHASE_RUNNING,
    SERVE_ANGLE_SPREAD,
    SNAPSHOT_VERSION,
    TABLE_HEIGHT,
    TABLE_WIDTH,
    WINNING_SCORE,
)


@dataclass(frozen=True)
class Table:
    width: int = TABLE_WIDTH
    height: int = TABLE_HEIGHT
    paddle_width: int = PADDLE_WIDTH
    paddle_height: int = PADDLE_HEIGHT
    paddle_margin: int = PADDLE_MARGIN
    paddle_speed: float = PADDLE_SPEED
    ball_size: int = BALL_SIZE
    initial_ball_speed: float = INITIAL_BALL_SPEED
    max_ball_speed: float = MAX_BALL_SPEED
    bounce_speedup: float = BOUNCE_SPEEDUP
    max_bounce_angle: float = MAX_BOUNCE_ANGLE
    serve_spread: float = SERVE_ANGLE_SPREAD
    winning_score: int = WINNING_SCORE

    @property
    def paddle_max_y(self) -> float:
        return float(self.height - self.paddle_height)

    @property
    def ball_max_y(self) -> float:
        return float(self.height - self.ball_size)

    def left_face_x(self) -> float:
        return float(self.paddle_margin + self.paddle_width)

    def right_face_x(self) -> float:
        return float(self.width - self.paddle_margin - self.paddle_width)

    def game_config(self) -> dict:
        return {"width": self.width, "height": self.height}

    def to_public(self) -> dict:
        return {
            "width": self.width,
            "height": self.height,
            "paddleWidth": self.paddle_width,
            "paddleHeight": self.paddle_height,
            "paddleMargin": self.paddle_margin,
            "paddleSpeed": self.paddle_speed,
            "ballSize": self.ball_size,
            "initialBallSpeed": self.initial_ball_speed,
            "maxBallSpeed": self.max_ball_speed,
            "winningScore": self.winning_score,
        }


DEFAULT_TABLE = Table()


@dataclass
class Ball:
    x: float = TABLE_WIDTH / 2
    y: float = TABLE_HEIGHT / 2
    speed_x: float = 0.0
    speed_y: float = 0.0
    speed: float = INITIAL_BALL_SPEED

    def copy(self) -> "Ball":
        return Ball(self.x, self.y, self.speed_x, self.speed_y, self.speed)

    def to_public(self) -> dict:
        return {
            "x": round(self.x, 2),
            "y": round(self.y, 2),
            "speedX": round(self.speed_x, 3),
            "speedY": round(self.speed_y, 3),
            "speed": round(self.speed, 3),
        }


@dataclass
class Paddles:
    left_y: float = (TABLE_HEIGHT - PADDLE_HEIGHT) / 2
    right_y: float = (TABLE_HEIGHT - PADDLE_HEIGHT) / 2

    @classmethod
    def centred(cls, table: Table) -> "Paddles":
        mid = (table.height - table.paddle_height) / 2
        return cls(mid, mid)

    def to_public(self) -> dict:
        return {"left": {"y": round(self.left_y, 2)}, "right": {"y": round(self.right_y, 2)}}


@dataclass
class Scores:
    player1: int = 0
    player2: int = 0

    def bump(self, key: str) -> int:
        if key == "player1":
            self.player1 += 1
            return self.player1
        self.player2 += 1
        return self.player2

    def to_public(self) -> dict:
        return {"player1": self.player1, "player2": self.player2}


@dataclass
class Slot:
    connection_id: str
    connected: bool = True


@dataclass(frozen=True)
class RoomSnapshot:
    """Everything a client needs to draw one frame of a room."""

    room_id: str
    phase: str
    tick: int
    ball: Ball
    paddles: Paddles
    scores: Scores
    rallies: int
    current_rally: int
    winner: Optional[str] = None
    connected: Dict[int, Optional[bool]] = field(default_factory=dict)
    version: int = SNAPSHOT_VERSION

    @property
    def game_started(self) -> bool:
        return self.phase == PHASE_RUNNING

    @property
    def game_over(self) -> bool:
        return self.phase == PHASE_GAME_OVER

    def to_public(self) -> dict:
        return {
            "version": self.version,
            "roomId": self.room_id,
            "phase": self.phase,
            "gameStarted": self.game_started,
            "gameOver": self.game_over,
            "winner": self.winner,
            "tick": self.tick,
            "ball": self.ball.to_public(),
            "paddles": self.paddles.to_public(),
            "scores": self.scores.to_public(),
            "rallies": self.rallies,
            "currentRally": self.current_rally,
            "players": {
                str(num): (None if state is None else {"connected": state})
                for num, state in sorted(self.connected.items())
            },
        }
