"""
Unit tests for the room state machine

Covers:
- Joining and phase transitions
- Paddle movement and clamping
- Scoring, rallies and win detection
- Disconnect and restart
"""

import random

import pytest

from game.constants import PHASE_GAME_OVER, PHASE_PAUSED, PHASE_RUNNING, PHASE_WAITING
from game.entities import Ball
from game.room import AlreadyInRoomError, PongRoom, RoomFullError


def running_room(table, rng) -> PongRoom:
    room = PongRoom("ABC123", "conn-a", table=table, rng=rng)
    room.join("conn-b")
    return room


def aim_at_goal(room: PongRoom, side: str) -> None:
    """Put the ball one tick away from leaving the table, clear of both paddles."""
    if side == "left":
        room.ball = Ball(x=2, y=10, speed_x=-5, speed_y=0, speed=5)
    else:
        room.ball = Ball(x=room.table.width - 2, y=10, speed_x=5, speed_y=0, speed=5)


class TestMembership:
    def test_new_room_waits_for_opponent(self, table, rng):
        room = PongRoom("ABC123", "conn-a", table=table, rng=rng)
        assert room.phase == PHASE_WAITING
        assert room.slots[1].connection_id == "conn-a"
        assert room.slots[2] is None

    def test_join_fills_slot_two_and_starts(self, table, rng):
        room = PongRoom("ABC123", "conn-a", table=table, rng=rng)
        assert room.join("conn-b") == 2
        assert room.phase == PHASE_RUNNING
        assert room.player_num_for("conn-b") == 2

    def test_join_full_room_raises(self, table, rng):
        room = running_room(table, rng)
        with pytest.raises(RoomFullError) as exc:
            room.join("conn-c")
        assert exc.value.code == "room_full"
        assert room.slots[2].connection_id == "conn-b"

    def test_host_cannot_join_own_room(self, table, rng):
        room = PongRoom("ABC123", "conn-a", table=table, rng=rng)
        with pytest.raises(AlreadyInRoomError) as exc:
            room.join("conn-a")
        assert exc.value.code == "already_in_room"
        assert room.slots[2] is None
        assert room.phase == PHASE_WAITING

    def test_opponent_lookup(self, table, rng):
        room = running_room(table, rng)
        assert room.opponent_of("conn-a").connection_id == "conn-b"
        assert room.opponent_of("conn-b").connection_id == "conn-a"
        assert room.opponent_of("stranger") is None


class TestPaddles:
    def test_up_moves_left_paddle_by_paddle_speed(self, table, rng):
        room = running_room(table, rng)
        start = room.paddles.left_y
        assert room.move_paddle(1, "up")
        assert room.paddles.left_y == start - table.paddle_speed

    def test_down_moves_right_paddle(self, table, rng):
        room = running_room(table, rng)
        start = room.paddles.right_y
        room.move_paddle(2, "down")
        assert room.paddles.right_y == start + table.paddle_speed

    def test_paddle_is_clamped(self, table, rng):
        room = running_room(table, rng)
        for _ in range(200):
            room.move_paddle(1, "up")
            assert 0 <= room.paddles.left_y <= table.paddle_max_y
        assert room.paddles.left_y == 0
        for _ in range(200):
            room.move_paddle(1, "down")
            assert 0 <= room.paddles.left_y <= table.paddle_max_y
        assert room.paddles.left_y == table.paddle_max_y

    @pytest.mark.parametrize("direction", ["left", "UP", "", None, 5, {"dir": "up"}])
    def test_unknown_direction_is_ignored(self, table, rng, direction):
        room = running_room(table, rng)
        before = (room.paddles.left_y, room.paddles.right_y)
        assert not room.move_paddle(1, direction)
        assert (room.paddles.left_y, room.paddles.right_y) == before

    def test_unknown_player_is_ignored(self, table, rng):
        room = running_room(table, rng)
        before = (room.paddles.left_y, room.paddles.right_y)
        assert not room.move_paddle(3, "up")
        assert (room.paddles.left_y, room.paddles.right_y) == before


class TestTick:
    def test_tick_is_noop_while_waiting(self, table, rng):
        room = PongRoom("ABC123", "conn-a", table=table, rng=rng)
        before = room.ball.copy()
        assert room.tick() is None
        assert room.ball == before
        assert room.tick_count == 0

    def test_tick_moves_ball(self, table, rng):
        room = running_room(table, rng)
        before = room.ball.copy()
        room.tick()
        assert room.ball.x == pytest.approx(before.x + before.speed_x)
        assert room.tick_count == 1

    def test_ball_stays_inside_table(self, table):
        room = running_room(table, random.Random(99))
        for i in range(5000):
            # Keep the game alive and the paddles moving so every path gets exercised.
            room.move_paddle(1, "up" if (i // 40) % 2 else "down")
            room.move_paddle(2, "down" if (i // 55) % 2 else "up")
            before = (room.scores.player1, room.scores.player2)
            room.tick()
            assert 0 <= room.ball.y <= table.ball_max_y
            gained = (room.scores.player1 - before[0]) + (room.scores.player2 - before[1])
            assert gained <= 1
            if room.phase == PHASE_GAME_OVER:
                room.restart()

    def test_paddle_hit_counts_rally(self, table, rng):
        room = running_room(table, rng)
        room.paddles.left_y = 250
        room.ball = Ball(x=48, y=294, speed_x=-5, speed_y=0, speed=5)
        room.tick()
        assert room.current_rally == 1
        assert room.ball.speed_x > 0


class TestScoring:
    def test_point_for_player2_recentres_ball(self, table, rng):
        room = running_room(table, rng)
        room.current_rally = 4
        aim_at_goal(room, "left")
        assert room.tick() == "player2"
        assert room.scores.player2 == 1
        assert room.scores.player1 == 0
        assert room.rallies == 1
        assert room.current_rally == 0
        assert room.phase == PHASE_RUNNING
        assert room.ball.x == (table.width - table.ball_size) / 2
        assert room.ball.speed > 0
        assert (room.ball.speed_x, room.ball.speed_y) != (0, 0)

    def test_point_for_player1(self, table, rng):
        room = running_room(table, rng)
        aim_at_goal(room, "right")
        assert room.tick() == "player1"
        assert room.scores.to_public() == {"player1": 1, "player2": 0}

    def test_seventh_point_ends_game(self, table, rng):
        room = running_room(table, rng)
        room.scores.player1 = 6
        room.scores.player2 = 5
        aim_at_goal(room, "right")
        room.tick()
        assert room.scores.player1 == 7
        assert room.phase == PHASE_GAME_OVER
        assert room.winner == "player1"

        frozen = room.ball.copy()
        assert room.tick() is None
        assert room.ball == frozen

    def test_custom_winning_score(self, rng):
        from game.entities import Table

        room = running_room(Table(winning_score=1), rng)
        aim_at_goal(room, "left")
        room.tick()
        assert room.phase == PHASE_GAME_OVER
        assert room.winner == "player2"


class TestDisconnectRestart:
    def test_disconnect_pauses_running_game(self, table, rng):
        room = running_room(table, rng)
        assert room.disconnect("conn-b") == 2
        assert room.slots[2].connected is False
        assert room.phase == PHASE_PAUSED
        assert room.winner is None
        assert room.tick() is None

    def test_disconnect_while_waiting_keeps_phase(self, table, rng):
        room = PongRoom("ABC123", "conn-a", table=table, rng=rng)
        room.disconnect("conn-a")
        assert room.phase == PHASE_WAITING
        assert room.is_abandoned()

    def test_unknown_connection(self, table, rng):
        room = running_room(table, rng)
        assert room.disconnect("stranger") is None
        assert room.phase == PHASE_RUNNING

    def test_abandoned_only_when_both_gone(self, table, rng):
        room = running_room(table, rng)
        room.disconnect("conn-a")
        assert not room.is_abandoned()
        assert room.connected_ids() == [(2, "conn-b")]
        room.disconnect("conn-b")
        assert room.is_abandoned()

    def test_restart_after_game_over(self, table, rng):
        room = running_room(table, rng)
        room.scores.player1 = 6
        room.rallies = 12
        aim_at_goal(room, "right")
        room.tick()
        assert room.phase == PHASE_GAME_OVER

        room.restart()
        assert room.scores.to_public() == {"player1": 0, "player2": 0}
        assert room.rallies == 0
        assert room.current_rally == 0
        assert room.winner is None
        assert room.phase == PHASE_RUNNING
        assert room.tick_count == 0

    def test_restart_from_paused(self, table, rng):
        room = running_room(table, rng)
        room.disconnect("conn-b")
        room.restart()
        assert room.phase == PHASE_RUNNING

    def test_restart_without_opponent_keeps_waiting(self, table, rng):
        room = PongRoom("ABC123", "conn-a", table=table, rng=rng)
        room.scores.player1 = 3
        room.restart()
        assert room.phase == PHASE_WAITING
        assert room.scores.player1 == 0


class TestSnapshot:
    def test_wire_shape(self, table, rng):
        room = running_room(table, rng)
        data = room.snapshot().to_public()
        assert data["version"] == 1
        assert data["roomId"] == "ABC123"
        assert data["phase"] == PHASE_RUNNING
        assert data["gameStarted"] is True
        assert data["gameOver"] is False
        assert data["winner"] is None
        assert set(data["ball"]) == {"x", "y", "speedX", "speedY", "speed"}
        assert data["paddles"]["left"]["y"] == room.paddles.left_y
        assert data["scores"] == {"player1": 0, "player2": 0}
        assert data["rallies"] == 0
        assert data["currentRally"] == 0
        assert data["players"] == {"1": {"connected": True}, "2": {"connected": True}}

    def test_snapshot_is_detached_from_room(self, table, rng):
        room = running_room(table, rng)
        snap = room.snapshot()
        room.tick()
        room.move_paddle(1, "up")
        assert snap.tick == 0
        assert snap.paddles.left_y != room.paddles.left_y

    def test_waiting_room_snapshot_marks_empty_slot(self, table, rng):
        room = PongRoom("ABC123", "conn-a", table=table, rng=rng)
        assert room.snapshot().to_public()["players"]["2"] is None
