import math


TABLE_WIDTH = 800
TABLE_HEIGHT = 600
PADDLE_WIDTH = 15
PADDLE_HEIGHT = 100
PADDLE_MARGIN = 30
PADDLE_SPEED = 8
BALL_SIZE = 12
INITIAL_BALL_SPEED = 5.0
MAX_BALL_SPEED = 15.0
BOUNCE_SPEEDUP = 1.05
MAX_BOUNCE_ANGLE = math.pi / 3
SERVE_ANGLE_SPREAD = math.pi / 4
WINNING_SCORE = 7

TICK_RATE = 60
EVICTION_GRACE_SECONDS = 120.0

ROOM_CODE_LENGTH = 6
ROOM_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"

SNAPSHOT_VERSION = 1

PHASE_WAITING = "waiting"
PHASE_READY = "ready"
PHASE_RUNNING = "running"
PHASE_PAUSED = "paused"
PHASE_GAME_OVER = "gameOver"

SIDE_LEFT = "left"
SIDE_RIGHT = "right"
