"""Static import analysis for component source.

Only the import *statements* are inspected; nothing is resolved or loaded.
The result feeds mock synthesis, so an unrecognized statement simply yields
no bindings for that statement.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# `import <clause> from '<path>'`. The clause may span lines but never contains
# a quote or a semicolon, which keeps one statement from swallowing the next.
_IMPORT_RE = re.compile(
    r"^[ \t]*import\s+(?!type\s)([^;'\"`]+?)\s+from\s+['\"]([^'\"]*)['\"]",
    re.MULTILINE,
)
_NAMED_RE = re.compile(r"\{([^}]*)\}")
_DEFAULT_RE = re.compile(r"^([A-Za-z_$][\w$]*)\s*(?:,|$)")
_NAMESPACE_RE = re.compile(r"\*\s*as\s+([A-Za-z_$][\w$]*)")
_AS_SPLIT_RE = re.compile(r"\s+as\s+")
_IDENT_RE = re.compile(r"^[A-Za-z_$][\w$]*$")


@dataclass(frozen=True)
class ImportBinding:
    name: str
    module_path: str
    is_default: bool
    is_namespace: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "module_path": self.module_path,
            "is_default": self.is_default,
            "is_namespace": self.is_namespace,
        }


def _named_bindings(body: str, module_path: str) -> list[ImportBinding]:
    out: list[ImportBinding] = []
    for raw in body.split(","):
        entry = raw.strip()
        if not entry:
            continue
        # `{ type Props }` entries are erased by the transpiler.
        if entry.startswith("type ") or entry.startswith("type\t"):
            continue
        local = _AS_SPLIT_RE.split(entry)[-1].strip()
        if not _IDENT_RE.match(local):
            continue
        out.append(ImportBinding(name=local, module_path=module_path, is_default=False))
    return out


def parse_import_clause(clause: str, module_path: str) -> list[ImportBinding]:
    """Return the bindings introduced by one import clause."""
    text = " ".join(clause.split())
    if not text:
        return []

    out: list[ImportBinding] = []
    if not text.startswith("{") and not text.startswith("*"):
        m = _DEFAULT_RE.match(text)
        if m:
            out.append(ImportBinding(name=m.group(1), module_path=module_path, is_default=True))

    ns = _NAMESPACE_RE.search(text)
    if ns:
        out.append(
            ImportBinding(
                name=ns.group(1),
                module_path=module_path,
                is_default=False,
                is_namespace=True,
            )
        )

    named = _NAMED_RE.search(text)
    if named:
        out.extend(_named_bindings(named.group(1), module_path))
    return out


def analyze_imports(source: str) -> list[ImportBinding]:
    """Extract import bindings from `source` in encounter order.

    Type-only statements are skipped. The same module may contribute several
    bindings; duplicates are kept here and suppressed during mock synthesis.
    """
    if not source:
        return []
    bindings: list[ImportBinding] = []
    for m in _IMPORT_RE.finditer(source):
        clause, module_path = m.group(1), m.group(2)
        if re.match(r"type\s", clause.strip()):
            continue
        bindings.extend(parse_import_clause(clause, module_path))
    return bindings
