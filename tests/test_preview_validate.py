from __future__ import annotations

from src.preview.validate import (
    MISSING_COMPONENT_ERROR,
    TYPEWRITER_ERROR,
    find_unbalanced_delimiter,
    strip_and_fix,
    validate_component,
)

_OK = """import React from 'react';

export default function GeneratedComponent({ content, theme }) {
  const frame = useCurrentFrame();
  return <div style={{ color: theme.colors.text }}>{content.headline}</div>;
}
"""


def test_valid_component_is_stripped():
    res = validate_component(_OK)
    assert res.valid is True
    assert res.error is None
    assert "import" not in res.fixed_code
    assert res.fixed_code.lstrip().startswith("function GeneratedComponent(")


def test_empty_code():
    res = validate_component("   ")
    assert res.valid is False
    assert res.error == "Empty code"


def test_misnamed_content_theme_function_is_renamed():
    fixed = strip_and_fix("function HeroScene({ content, theme }) { return null }")
    assert fixed.startswith("function GeneratedComponent(")


def test_missing_component_is_rejected():
    res = validate_component("const x = 1;")
    assert res.valid is False
    assert res.error == MISSING_COMPONENT_ERROR


def test_unbalanced_braces_are_reported():
    res = validate_component("function GeneratedComponent() {\n  return (<div>;\n}")
    assert res.valid is False
    assert res.error is not None
    assert res.error.startswith("JSX/TypeScript compilation failed: ")


def test_common_mistakes_are_repaired():
    fixed = strip_and_fix(
        "function GeneratedComponent({ content, theme }) {\n"
        "  const { typo } = getTypography(theme);\n"
        "  const s = { ...depthShadow(2), color: theme.brandColors.foreground, "
        "bg: theme.palette.primary };\n"
        "  return null;\n"
        "}"
    )
    assert "const typo = getTypography(theme)" in fixed
    assert "boxShadow: depthShadow(2)" in fixed
    assert "theme.colors.text" in fixed
    assert "theme.colors.primary" in fixed


def test_typewriter_length_argument_is_fixed():
    fixed = strip_and_fix("const tw = typewriterReveal(frame, 10, title)")
    assert fixed == "const tw = typewriterReveal(frame, 10, title.length)"
    assert strip_and_fix("typewriterReveal(frame, 10, 24)") == "typewriterReveal(frame, 10, 24)"


def test_typewriter_result_rendered_directly_is_rejected():
    code = (
        "function GeneratedComponent({ content, theme }) {\n"
        "  const frame = useCurrentFrame();\n"
        "  return <p>{typewriterReveal(frame, 0, 20)}</p>;\n"
        "}"
    )
    res = validate_component(code)
    assert res.error == TYPEWRITER_ERROR


def test_brackets_inside_strings_and_comments_are_ignored():
    code = (
        "const a = '(';\n"
        "const b = `}${x}`;\n"
        "// ) stray\n"
        "/* ] */\n"
        "const c = [1, 2];\n"
    )
    assert find_unbalanced_delimiter(code) is None


def test_apostrophe_in_jsx_text_does_not_swallow_the_file():
    code = "function A() {\n  return <p>Don't stop</p>;\n}\n"
    assert find_unbalanced_delimiter(code) is None


def test_reports_line_of_unclosed_opener():
    assert find_unbalanced_delimiter("a(\nb[\n") == "Unclosed '[' opened on line 2"
    assert find_unbalanced_delimiter("x)\n") == "Unexpected ')' on line 1"
