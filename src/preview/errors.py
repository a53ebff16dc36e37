from __future__ import annotations

import re

_UNRESOLVED_PATTERNS = (
    re.compile(r"(\w+) is not defined"),
    re.compile(r"Can't find variable: (\w+)"),
)


class PreviewFault(RuntimeError):
    """Base class for everything that can go wrong while building a preview.

    `label` is the short prefix shown in front of the message in the
    preview's error surface ("Babel transform", "Runtime", ...).
    """

    label = "Preview"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def display(self) -> str:
        return f"{self.label}: {self.message}"


class TranspileFault(PreviewFault):
    label = "Babel transform"


class UnresolvedSymbolFault(PreviewFault):
    label = "Runtime"

    def __init__(self, message: str, *, symbol: str):
        super().__init__(message)
        self.symbol = symbol


class ExecutionFault(PreviewFault):
    label = "Runtime"


class RenderFault(PreviewFault):
    label = "Render"

    def display(self) -> str:
        # Mount failures already carry their own prefix.
        return self.message


class ProbeTimeout(PreviewFault):
    label = "Compile check"

    def display(self) -> str:
        return self.message


class SandboxUnavailable(PreviewFault):
    label = "Sandbox"


def parse_unresolved_symbol(message: str) -> str | None:
    """Return the identifier named by an unresolved-reference message."""
    text = message or ""
    for pat in _UNRESOLVED_PATTERNS:
        m = pat.search(text)
        if m:
            return m.group(1)
    return None
