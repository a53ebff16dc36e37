"""Server-side sanity check for generated components.

Strips module syntax, repairs a handful of mistakes generated code makes
often, and rejects code that cannot possibly render. The full check
(transpile and execute) happens in the sandbox; this one is cheap and
runs without a browser.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from src.preview.document import DEFAULT_COMPONENT_NAME

_STRIP_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"^[ \t]*import\s+['\"][^'\"]*['\"][ \t]*;?[ \t]*$", re.M), ""),
    (re.compile(r"^[ \t]*import\s+[^;'\"`]+?\s+from\s+['\"][^'\"]*['\"][ \t]*;?[ \t]*$", re.M), ""),
    (re.compile(r"^export\s+default\s+", re.M), ""),
    (re.compile(r"^export\s+(const|let|function)\s+", re.M), r"\1 "),
    (re.compile(r"^export\s+", re.M), ""),
    (re.compile(r"['\"]use (?:client|server)['\"]\s*;?"), ""),
)

_FIX_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\.\.\.depthShadow\s*\(([^)]*)\)"), r"boxShadow: depthShadow(\1)"),
    (
        re.compile(r"const\s*\{\s*typo\s*\}\s*=\s*getTypography\(([^)]*)\)"),
        r"const typo = getTypography(\1)",
    ),
    (
        re.compile(r"const\s*\{\s*typography\s*\}\s*=\s*getTypography\(([^)]*)\)"),
        r"const typography = getTypography(\1)",
    ),
    (re.compile(r"theme\.brandColors\.foreground"), "theme.colors.text"),
    (re.compile(r"theme\.brandColors\."), "theme.colors."),
    (re.compile(r"theme\.foreground\b"), "theme.colors.text"),
    (re.compile(r"theme\.palette\."), "theme.colors."),
)

_COMPONENT_DECL_RE = re.compile(rf"function\s+{DEFAULT_COMPONENT_NAME}\s*\(")
_CONTENT_THEME_FN_RE = re.compile(r"function\s+(\w+)\s*\(\s*\{\s*content\s*,\s*theme\s*\}\s*\)")
_TYPEWRITER_RE = re.compile(r"typewriterReveal\((\w+),\s*(\w+),\s*(\w+)\s*\)")
_CLOSERS = {")": "(", "]": "[", "}": "{"}

MISSING_COMPONENT_ERROR = (
    f"Missing 'function {DEFAULT_COMPONENT_NAME}({{ content, theme }})'. "
    f"Your component function must be named {DEFAULT_COMPONENT_NAME}."
)
TYPEWRITER_ERROR = (
    "typewriterReveal() returns { visibleChars, showCursor }, NOT a string. "
    "You must use: const tw = typewriterReveal(frame, delay, text.length); "
    "then render text.slice(0, tw.visibleChars). "
    "Never pass the return value directly as a React child."
)


@dataclass(frozen=True)
class ComponentValidation:
    valid: bool
    fixed_code: str
    error: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {"valid": self.valid, "error": self.error, "fixed_code": self.fixed_code}


def _fix_typewriter(m: re.Match[str]) -> str:
    frame, delay, third = m.group(1), m.group(2), m.group(3)
    if third.isdigit():
        return m.group(0)
    return f"typewriterReveal({frame}, {delay}, {third}.length)"


def strip_and_fix(code: str) -> str:
    fixed = code or ""
    for pattern, repl in _STRIP_RULES:
        fixed = pattern.sub(repl, fixed)

    if not _COMPONENT_DECL_RE.search(fixed):
        m = _CONTENT_THEME_FN_RE.search(fixed)
        if m and m.group(1) != DEFAULT_COMPONENT_NAME:
            fixed = re.sub(
                rf"function\s+{re.escape(m.group(1))}\b",
                f"function {DEFAULT_COMPONENT_NAME}",
                fixed,
                count=1,
            )

    for pattern, repl in _FIX_RULES:
        fixed = pattern.sub(repl, fixed)
    fixed = _TYPEWRITER_RE.sub(_fix_typewriter, fixed)
    return fixed


def find_unbalanced_delimiter(code: str) -> str | None:
    """Return a description of the first unbalanced bracket, if any.

    String literals, template literals and comments are skipped. Template
    substitutions are not tracked, so `${...}` bodies count as literal text.
    """
    stack: list[tuple[str, int]] = []
    i, n, line = 0, len(code), 1
    while i < n:
        c = code[i]
        if c == "\n":
            line += 1
        elif code.startswith("//", i):
            end = code.find("\n", i)
            i = n if end == -1 else end
            continue
        elif code.startswith("/*", i):
            end = code.find("*/", i + 2)
            chunk = code[i : n if end == -1 else end + 2]
            line += chunk.count("\n")
            i = n if end == -1 else end + 2
            continue
        elif c in "'\"`":
            j = i + 1
            while j < n and code[j] != c:
                if code[j] == "\\":
                    j += 1
                elif code[j] == "\n":
                    if c != "`":
                        break
                    line += 1
                j += 1
            # An unterminated quote ends at the line break (JSX text apostrophes).
            i = j + 1 if j < n and code[j] == c else j
            continue
        elif c in "([{":
            stack.append((c, line))
        elif c in _CLOSERS:
            if not stack or stack[-1][0] != _CLOSERS[c]:
                return f"Unexpected '{c}' on line {line}"
            stack.pop()
        i += 1
    if stack:
        opener, at = stack[-1]
        return f"Unclosed '{opener}' opened on line {at}"
    return None


def validate_component(code: str) -> ComponentValidation:
    if not (code or "").strip():
        return ComponentValidation(valid=False, error="Empty code", fixed_code=code or "")

    fixed = strip_and_fix(code)
    if not _COMPONENT_DECL_RE.search(fixed):
        return ComponentValidation(valid=False, error=MISSING_COMPONENT_ERROR, fixed_code=fixed)

    problem = find_unbalanced_delimiter(fixed)
    if problem:
        return ComponentValidation(
            valid=False,
            error=f"JSX/TypeScript compilation failed: {problem}",
            fixed_code=fixed,
        )

    if "typewriterReveal(" in fixed and "visibleChars" not in fixed:
        return ComponentValidation(valid=False, error=TYPEWRITER_ERROR, fixed_code=fixed)

    return ComponentValidation(valid=True, fixed_code=fixed)
