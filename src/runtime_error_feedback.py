from __future__ import annotations

import re
from collections.abc import Sequence

from src.preview.errors import parse_unresolved_symbol
from src.preview.verify import TIMEOUT_MESSAGE

AUTO_FIX_NOTICE = "Auto-fix: runtime error detected"


def _truncate(text: str, *, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars]


def _hints(message: str, auto_mocked: Sequence[str]) -> str:
    hint = ""
    symbol = parse_unresolved_symbol(message)
    if symbol:
        hint += (
            f"\n\nHint: `{symbol}` is not available in the preview sandbox. "
            "Define it locally or use one of the provided helpers; do not invent functions."
        )
    if re.search(r"Objects are not valid as a React child", message):
        hint += (
            "\n\nHint: an object was rendered as a child. Helpers such as `typewriterReveal()` "
            "return `{ visibleChars, showCursor }`; render `text.slice(0, tw.visibleChars)` instead."
        )
    if message.startswith(TIMEOUT_MESSAGE):
        hint += (
            "\n\nHint: the component never finished rendering. "
            "Look for infinite loops or effects that update state on every render."
        )
    if auto_mocked:
        names = ", ".join(auto_mocked)
        hint += f"\n\nThese references were undefined and had to be stubbed in the preview: {names}."
    return hint


def build_runtime_error_feedback_prompt(
    *, error: str, auto_mocked: Sequence[str] = ()
) -> str:
    """Instruction sent automatically when a freshly committed edit crashes."""
    message = _truncate(str(error or "Unknown error"), max_chars=4000)
    prompt = (
        "The code you just produced has a RUNTIME ERROR:\n"
        f"```\n{message}\n```\n\n"
        "Fix this error. The preview crashed after your edit. "
        "Check for undefined variables, wrong function usage, or type mismatches."
    )
    return prompt + _hints(message, auto_mocked)


def build_manual_fix_prompt(*, error: str) -> str:
    message = _truncate(str(error or "Unknown error"), max_chars=4000)
    return (
        f"Fix this runtime error:\n{message}\n\n"
        "Look at the code and fix the issue. "
        "Common causes: undefined variables, wrong function signatures, missing helpers."
    )
