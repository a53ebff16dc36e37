from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class ChatMessage:
    role: str  # "user" | "assistant"
    content: str
    timestamp: int = field(default_factory=_now_ms)

    def to_dict(self) -> dict[str, Any]:
        return {"role": self.role, "content": self.content, "timestamp": int(self.timestamp)}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ChatMessage:
        return cls(
            role=str(d.get("role") or "user"),
            content=str(d.get("content") or ""),
            timestamp=int(d.get("timestamp") or 0),
        )


class CompileStatus(Enum):
    IDLE = "idle"
    COMPILING = "compiling"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class EditSession:
    """Read model of one component being edited.

    Mutated only by the orchestrator, in response to stream and protocol
    events.
    """

    component_id: str
    live_code: str
    persisted_code: str = ""
    scene_id: str | None = None
    chat_history: list[ChatMessage] = field(default_factory=list)
    compile_status: CompileStatus = CompileStatus.IDLE
    preview_error: str | None = None
    auto_mocked: list[str] = field(default_factory=list)
    dirty: bool = False
    streaming: bool = False
    autofix_count: int = 0
    # One-shot: the next terminal preview event decides on an automatic fix.
    autofix_armed: bool = False

    def last_assistant(self) -> ChatMessage | None:
        if self.chat_history and self.chat_history[-1].role == "assistant":
            return self.chat_history[-1]
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "component_id": self.component_id,
            "live_code": self.live_code,
            "scene_id": self.scene_id,
            "chat_history": [m.to_dict() for m in self.chat_history],
            "compile_status": self.compile_status.value,
            "preview_error": self.preview_error,
            "auto_mocked": list(self.auto_mocked),
            "dirty": bool(self.dirty),
            "streaming": bool(self.streaming),
            "autofix_count": int(self.autofix_count),
        }


@dataclass(frozen=True)
class ToolCallEvent:
    tool: str
    message: str | None = None


@dataclass(frozen=True)
class CodeUpdateEvent:
    code: str


@dataclass(frozen=True)
class ValidationEvent:
    valid: bool
    error: str | None = None


@dataclass(frozen=True)
class StatusEvent:
    message: str | None = None


@dataclass(frozen=True)
class DeltaEvent:
    content: str


@dataclass(frozen=True)
class DoneEvent:
    code: str | None
    explanation: str | None = None
    validated: bool | None = None
    validation_error: str | None = None


@dataclass(frozen=True)
class ErrorEvent:
    message: str


StreamEvent = Union[
    ToolCallEvent,
    CodeUpdateEvent,
    ValidationEvent,
    StatusEvent,
    DeltaEvent,
    DoneEvent,
    ErrorEvent,
]


def _opt_str(v: Any) -> str | None:
    if v is None:
        return None
    s = str(v)
    return s if s else None


def parse_stream_event(data: Any) -> StreamEvent | None:
    """Map one decoded stream record to its event type.

    Unknown types and malformed records yield None.
    """
    if not isinstance(data, dict):
        return None
    kind = data.get("type")
    if kind == "tool_call":
        return ToolCallEvent(tool=str(data.get("tool") or "unknown"), message=_opt_str(data.get("message")))
    if kind == "code_update":
        code = data.get("code")
        return CodeUpdateEvent(code=code) if isinstance(code, str) else None
    if kind == "validation":
        return ValidationEvent(valid=bool(data.get("valid")), error=_opt_str(data.get("error")))
    if kind == "status":
        return StatusEvent(message=_opt_str(data.get("message")))
    if kind == "delta":
        content = data.get("content")
        return DeltaEvent(content=content) if isinstance(content, str) else None
    if kind == "done":
        code = data.get("code")
        validated = data.get("validated")
        return DoneEvent(
            code=code if isinstance(code, str) else None,
            explanation=_opt_str(data.get("explanation")),
            validated=validated if isinstance(validated, bool) else None,
            validation_error=_opt_str(data.get("validationError")),
        )
    if kind == "error":
        return ErrorEvent(message=str(data.get("message") or "Unknown error"))
    return None
