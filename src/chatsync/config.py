"""
Engine configuration.
"""

import os
from typing import Literal, Optional

from pydantic import BaseModel, Field

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_RECONNECT_DELAY_S = 3.0

TransportMode = Literal["push", "duplex"]


class SyncConfig(BaseModel):
    base_url: str = DEFAULT_BASE_URL
    # "push": SSE stream + request/broadcast sends. "duplex": Socket.IO both ways.
    mode: TransportMode = "push"
    reconnect_delay: float = Field(default=DEFAULT_RECONNECT_DELAY_S, ge=0)
    request_timeout: float = 30.0
    socketio_path: str = "socket.io"
    socketio_transports: list[str] = Field(default_factory=lambda: ["websocket"])

    @classmethod
    def from_env(cls, prefix: str = "CHATSYNC_", **overrides: object) -> "SyncConfig":
        values: dict[str, object] = {}
        base_url: Optional[str] = os.environ.get(f"{prefix}BASE_URL")
        if base_url:
            values["base_url"] = base_url
        mode = os.environ.get(f"{prefix}MODE")
        if mode:
            values["mode"] = mode
        delay = os.environ.get(f"{prefix}RECONNECT_DELAY")
        if delay:
            values["reconnect_delay"] = delay
        values.update(overrides)
        return cls.model_validate(values)
