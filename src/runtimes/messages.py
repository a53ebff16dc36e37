from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from enum import Enum


class MessageType(Enum):
    INIT = "init"
    USER = "user"
    REBUILD = "rebuild"
    RECOMPILE = "recompile"
    FIX = "fix"
    SAVE = "save"
    SESSION = "session"
    PREVIEW_EVENT = "preview_event"
    VERIFY_RESULT = "verify_result"
    ERROR = "error"
    PING = "ping"


@dataclass
class Message:
    id: str
    timestamp: int
    type: MessageType
    data: dict
    session_id: str

    @classmethod
    def new(
        cls,
        type: MessageType,
        data: dict,
        id: str | None = None,
        session_id: str | None = None,
    ) -> Message:
        return cls(
            type=type,
            data=data,
            id=id or str(uuid.uuid4()),
            timestamp=time.time_ns() // 1_000_000,
            session_id=session_id or "",
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "data": self.data,
            "timestamp": self.timestamp,
            "session_id": self.session_id,
        }
