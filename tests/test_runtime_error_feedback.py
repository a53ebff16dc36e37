from __future__ import annotations

from src.preview.verify import TIMEOUT_MESSAGE
from src.runtime_error_feedback import (
    build_manual_fix_prompt,
    build_runtime_error_feedback_prompt,
)


def test_prompt_quotes_error_and_asks_for_fix():
    prompt = build_runtime_error_feedback_prompt(error="Runtime: Cannot read properties of undefined")
    assert prompt.startswith("The code you just produced has a RUNTIME ERROR:\n```\n")
    assert "Runtime: Cannot read properties of undefined" in prompt
    assert "Hint:" not in prompt


def test_unresolved_symbol_gets_a_hint():
    prompt = build_runtime_error_feedback_prompt(error="Runtime: Can't find variable: Sparkline")
    assert "`Sparkline` is not available in the preview sandbox" in prompt


def test_object_child_hint_mentions_typewriter():
    prompt = build_runtime_error_feedback_prompt(
        error="Render error: Objects are not valid as a React child (found: object with keys {visibleChars})"
    )
    assert "typewriterReveal()" in prompt


def test_timeout_hint():
    prompt = build_runtime_error_feedback_prompt(error=TIMEOUT_MESSAGE)
    assert "infinite loops" in prompt


def test_auto_mocked_names_are_listed():
    prompt = build_runtime_error_feedback_prompt(error="boom", auto_mocked=["Badge", "useWidget"])
    assert "stubbed in the preview: Badge, useWidget." in prompt


def test_long_errors_are_truncated():
    prompt = build_runtime_error_feedback_prompt(error="x" * 10_000)
    assert "x" * 4000 in prompt
    assert "x" * 4001 not in prompt


def test_manual_prompt():
    prompt = build_manual_fix_prompt(error="Runtime: boom")
    assert prompt.startswith("Fix this runtime error:\nRuntime: boom\n\n")
    assert build_manual_fix_prompt(error="").startswith("Fix this runtime error:\nUnknown error")
