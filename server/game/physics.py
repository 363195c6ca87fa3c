"""Pure ball/paddle geometry for the authoritative simulation.

Every function here works only on the values it is given. Positions are the
top-left corner of the ball's square and of each paddle rectangle, and one unit
of ``dt`` is one tick worth of motion.
"""

import math
import random
from typing import Optional

from game.constants import SIDE_LEFT, SIDE_RIGHT
from game.entities import DEFAULT_TABLE, Ball, Table
from util import clamp


def side_direction(side: str) -> int:
    """+1 when the ball leaves the paddle moving right, -1 for the right paddle."""
    return 1 if side == SIDE_LEFT else -1


def advance_ball(ball: Ball, dt: float = 1.0) -> Ball:
    ball.x += ball.speed_x * dt
    ball.y += ball.speed_y * dt
    return ball


def reflect_off_walls(ball: Ball, table_height: float, ball_size: float) -> bool:
    max_y = table_height - ball_size
    if ball.y <= 0 or ball.y >= max_y:
        ball.speed_y = -ball.speed_y
        ball.y = clamp(ball.y, 0.0, max_y)
        return True
    return False


def check_paddle_collision(ball: Ball, paddle_y: float, side: str, table: Table = DEFAULT_TABLE) -> bool:
    """AABB overlap between the ball and one paddle, only while approaching it."""
    overlaps_y = ball.y + table.ball_size >= paddle_y and ball.y <= paddle_y + table.paddle_height
    if not overlaps_y:
        return False
    if side == SIDE_LEFT:
        back_x = float(table.paddle_margin)
        return ball.speed_x < 0 and ball.x <= table.left_face_x() and ball.x + table.ball_size >= back_x
    back_x = float(table.width - table.paddle_margin)
    return ball.speed_x > 0 and ball.x + table.ball_size >= table.right_face_x() and ball.x <= back_x


def bounce_offset(ball: Ball, paddle_y: float, table: Table = DEFAULT_TABLE) -> float:
    """Where the ball met the paddle, -1 (bottom edge) .. 1 (top edge)."""
    half = table.paddle_height / 2
    paddle_centre = paddle_y + half
    ball_centre = ball.y + table.ball_size / 2
    return clamp((paddle_centre - ball_centre) / half, -1.0, 1.0)


def resolve_paddle_collision(ball: Ball, paddle_y: float, side: str, table: Table = DEFAULT_TABLE) -> Ball:
    angle = bounce_offset(ball, paddle_y, table) * table.max_bounce_angle
    speed = min(ball.speed * table.bounce_speedup, table.max_ball_speed)
    ball.speed = speed
    ball.speed_x = side_direction(side) * speed * math.cos(angle)
    # A hit above the paddle centre sends the ball upward (towards y=0).
    ball.speed_y = -speed * math.sin(angle)
    if side == SIDE_LEFT:
        ball.x = table.left_face_x()
    else:
        ball.x = table.right_face_x() - table.ball_size
    return ball


def scoring_side(ball: Ball, table_width: float) -> Optional[str]:
    if ball.x < 0:
        return "player2"
    if ball.x > table_width:
        return "player1"
    return None


def random_sign(rng: random.Random) -> int:
    return 1 if rng.random() < 0.5 else -1


def random_angle_offset(rng: random.Random, spread: float) -> float:
    return rng.uniform(-spread, spread)


def serve_ball(table: Table = DEFAULT_TABLE, rng: Optional[random.Random] = None) -> Ball:
    """A fresh ball in the middle of the table heading towards a random side."""
    rng = rng or random.Random()
    angle = random_angle_offset(rng, table.serve_spread)
    speed = table.initial_ball_speed
    return Ball(
        x=(table.width - table.ball_size) / 2,
        y=(table.height - table.ball_size) / 2,
        speed_x=random_sign(rng) * speed * math.cos(angle),
        speed_y=speed * math.sin(angle),
        speed=speed,
    )


def step_ball(ball: Ball, left_y: float, right_y: float, table: Table = DEFAULT_TABLE) -> Optional[str]:
    """Advance one tick: move, bounce off walls, then paddles.

    Returns the side whose paddle the ball hit this tick, if any.
    """
    advance_ball(ball)
    reflect_off_walls(ball, table.height, table.ball_size)
    hit = None
    if check_paddle_collision(ball, left_y, SIDE_LEFT, table):
        resolve_paddle_collision(ball, left_y, SIDE_LEFT, table)
        hit = SIDE_LEFT
    if check_paddle_collision(ball, right_y, SIDE_RIGHT, table):
        resolve_paddle_collision(ball, right_y, SIDE_RIGHT, table)
        hit = SIDE_RIGHT
    return hit
