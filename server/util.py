import json
import os
import secrets
import socket
from typing import Any, Dict, List


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def safe_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def safe_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def random_token(nbytes: int = 24) -> str:
    return secrets.token_urlsafe(nbytes)


def random_room_code(length: int, alphabet: str) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(length))


def parse_bool_env(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def get_env_config() -> Dict[str, Any]:
    tick_rate = max(1, safe_int(os.getenv("TICK_RATE"), 60))
    grace = max(0.0, safe_float(os.getenv("EVICTION_GRACE_SECONDS"), 120.0))
    winning_score = max(1, safe_int(os.getenv("WINNING_SCORE"), 7))
    return {
        "PORT": safe_int(os.getenv("PORT"), 3000),
        "TICK_RATE": tick_rate,
        "EVICTION_GRACE_SECONDS": grace,
        "WINNING_SCORE": winning_score,
        "LOG_LEVEL": (os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
        "ADMIN_CLI": parse_bool_env("ADMIN_CLI", False),
    }


def local_ips() -> List[str]:
    ips = {"127.0.0.1"}
    host = socket.gethostname()
    try:
        for info in socket.getaddrinfo(host, None, family=socket.AF_INET):
            ip = info[4][0]
            if ip and not ip.startswith("169.254."):
                ips.add(ip)
    except OSError:
        pass
    return sorted(ips)


def json_dumps(data: Any) -> str:
    return json.dumps(data, separators=(",", ":"), ensure_ascii=True)


def json_loads(text: str) -> Any:
    return json.loads(text)
