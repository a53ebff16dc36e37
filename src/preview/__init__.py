from src.preview.document import (
    DEFAULT_COMPONENT_NAME,
    DEFAULT_EXPORT_BINDING,
    SandboxDocument,
    build_sandbox_document,
    clean_source,
)
from src.preview.imports import ImportBinding, analyze_imports
from src.preview.mocks import RUNTIME_SYMBOLS, MockEntry, MockKind, synthesize_mock, synthesize_mocks
from src.preview.props import extract_preview_props
from src.preview.protocol import (
    EventChannel,
    HostPreviewState,
    PreviewListener,
    ProtocolEvent,
    ProtocolEventType,
)

__all__ = [
    "DEFAULT_COMPONENT_NAME",
    "DEFAULT_EXPORT_BINDING",
    "RUNTIME_SYMBOLS",
    "EventChannel",
    "HostPreviewState",
    "ImportBinding",
    "MockEntry",
    "MockKind",
    "PreviewListener",
    "ProtocolEvent",
    "ProtocolEventType",
    "SandboxDocument",
    "analyze_imports",
    "build_sandbox_document",
    "clean_source",
    "extract_preview_props",
    "synthesize_mock",
    "synthesize_mocks",
]
