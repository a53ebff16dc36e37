from src.editing.orchestrator import EditOrchestrator, TurnResult
from src.editing.types import ChatMessage, CompileStatus, EditSession, parse_stream_event

__all__ = [
    "ChatMessage",
    "CompileStatus",
    "EditOrchestrator",
    "EditSession",
    "TurnResult",
    "parse_stream_event",
]
