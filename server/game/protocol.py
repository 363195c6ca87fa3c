from typing import Any, Dict, Optional


# Client -> server
QUICK_MATCH = "quickMatch"
CREATE_ROOM = "createRoom"
JOIN_ROOM = "joinRoom"
PADDLE_MOVE = "paddleMove"
RESTART = "restartMultiplayer"
PING = "ping"

# Server -> client
JOINED = "multiplayerJoined"
WAITING = "waitingForOpponent"
OPPONENT_JOINED = "opponentJoined"
UPDATE = "multiplayerUpdate"
OPPONENT_DISCONNECTED = "opponentDisconnected"
PONG = "pong"
ERROR = "error"


def ok_message(kind: str, **payload: Any) -> Dict[str, Any]:
    data = {"type": kind}
    data.update(payload)
    return data


def error_message(code: str, message: str, **extra: Any) -> Dict[str, Any]:
    return ok_message(ERROR, error=code, message=message, **extra)


def parse_room_id(payload: Dict[str, Any]) -> str:
    raw = payload.get("roomId")
    if raw is None:
        raw = payload.get("data")
    if not isinstance(raw, str):
        return ""
    return raw.strip().upper()


def parse_paddle_direction(payload: Dict[str, Any]) -> Optional[str]:
    direction = payload.get("direction")
    if direction is None and isinstance(payload.get("data"), dict):
        direction = payload["data"].get("direction")
    return direction if isinstance(direction, str) else None
