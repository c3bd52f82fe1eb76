"""
Connection settings for a game session.

- Defaults match both peers' builds: port 7000, responder dials localhost.
- Environment variables (TICTACTOE_*) override defaults; CLI flags override both.
"""
from dataclasses import dataclass, replace
import os
from typing import Any, Callable

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 7000
DEFAULT_CONNECT_TIMEOUT = 10.0


def _get(name: str, default: Any, cast: Callable[[Any], Any] | None = None) -> Any:
    env = os.environ.get(name)
    if env is None or env == "":
        return default
    return cast(env) if cast else env


def _check_port(port: int) -> int:
    if not 0 <= port <= 65535:
        raise ValueError(f"port out of range: {port}")
    return port


@dataclass(frozen=True)
class SessionConfig:
    # responder dials host:port, initiator listens on bind_host:port
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    bind_host: str = ""          # "" = all interfaces
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT

    def __post_init__(self):
        _check_port(self.port)

    @classmethod
    def from_env(cls) -> "SessionConfig":
        return cls(
            host=_get("TICTACTOE_HOST", DEFAULT_HOST),
            port=int(_get("TICTACTOE_PORT", DEFAULT_PORT, cast=int)),
            bind_host=_get("TICTACTOE_BIND_HOST", ""),
            connect_timeout=float(_get("TICTACTOE_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT, cast=float)),
        )

    def with_overrides(self, **values: Any) -> "SessionConfig":
        # drop unset cli flags so they don't clobber env/defaults
        return replace(self, **{k: v for k, v in values.items() if v is not None})
