"""Assembly of the self-contained sandbox document.

`build_sandbox_document` is a pure function of (source, component name,
props): no timestamps, nonces or generation tags are embedded, so equal
inputs always produce byte-identical HTML.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from src.preview import config
from src.preview.imports import analyze_imports
from src.preview.mocks import MockEntry, synthesize_mocks
from src.preview.props import coerce_props, extract_preview_props
from src.preview.runtime_js import FAULT_HANDLER_JS, SANDBOX_RUNTIME_JS
from src.preview.stubs import (
    BASE_CSS,
    RUNTIME_STUBS_JS,
    SAFE_THEME_JS,
    SHARED_HELPERS_TSX,
    STUB_LIBRARY_VERSION,
)

logger = logging.getLogger(__name__)

DEFAULT_EXPORT_BINDING = "__default__"
DEFAULT_COMPONENT_NAME = "GeneratedComponent"

_JS_IDENT_RE = re.compile(r"^[A-Za-z_$][\w$]*$")

# Order matters: side-effect imports go first so a bare `import "x.css"` can
# never be read as the head of the following statement.
_CLEAN_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"^[ \t]*import\s+['\"][^'\"]*['\"][ \t]*;?[ \t]*$", re.M), ""),
    (
        re.compile(
            r"^[ \t]*import\s+[^;'\"`]+?\s+from\s+['\"][^'\"]*['\"][ \t]*;?[ \t]*$",
            re.M,
        ),
        "",
    ),
    (
        re.compile(
            r"^[ \t]*export\s+(?:type\s+)?\{[^}]*\}(?:\s*from\s+['\"][^'\"]*['\"])?[ \t]*;?[ \t]*$",
            re.M,
        ),
        "",
    ),
    (re.compile(r"^([ \t]*)export\s+default\s+", re.M), rf"\1var {DEFAULT_EXPORT_BINDING} = "),
    (re.compile(r"^([ \t]*)export\s+(?:const|let)\s+", re.M), r"\1var "),
    (re.compile(r"^([ \t]*)export\s+", re.M), r"\1"),
    (re.compile(r"['\"]use (?:client|server)['\"]\s*;?"), ""),
)

_SCRIPT_CLOSE_RE = re.compile(r"</(script)", re.I)


@dataclass(frozen=True)
class SandboxDocument:
    html: str
    component_name: str
    props: dict[str, Any] = field(compare=False)
    mocks: tuple[MockEntry, ...]
    stub_version: str = STUB_LIBRARY_VERSION

    @property
    def digest(self) -> str:
        return hashlib.sha256(self.html.encode("utf-8")).hexdigest()

    @property
    def mocked_symbols(self) -> list[str]:
        return [m.symbol_name for m in self.mocks]

    def to_dict(self) -> dict[str, Any]:
        return {
            "html": self.html,
            "digest": self.digest,
            "component_name": self.component_name,
            "stub_version": self.stub_version,
            "props": self.props,
            "mocks": [{"symbol": m.symbol_name, "kind": m.kind.value} for m in self.mocks],
        }


def clean_source(source: str) -> str:
    """Strip module syntax so the source can run as a plain script."""
    out = source or ""
    for pattern, repl in _CLEAN_RULES:
        out = pattern.sub(repl, out)
    return out


def _escape_script_text(text: str) -> str:
    # An embedded `</script` would terminate the enclosing element early.
    return _SCRIPT_CLOSE_RE.sub(r"<\\/\1", text).replace("<!--", "<\\!--")


def _js_json(value: Any) -> str:
    return _escape_script_text(json.dumps(value, ensure_ascii=False, sort_keys=False))


def _script_src(url: str) -> str:
    return f'<script crossorigin="anonymous" src="{url}"></script>'


def build_sandbox_document(
    source: str,
    component_name: str = DEFAULT_COMPONENT_NAME,
    props: dict[str, str] | None = None,
) -> SandboxDocument:
    """Build the isolated preview document for `source`.

    `props` maps prop names to source literals; when omitted they are derived
    from the component signature.
    """
    name = (component_name or "").strip() or DEFAULT_COMPONENT_NAME
    if not _JS_IDENT_RE.match(name):
        raise ValueError(f"component_name must be an identifier, got {component_name!r}")

    mocks = synthesize_mocks(analyze_imports(source or ""))
    literals = extract_preview_props(source or "") if props is None else dict(props)
    values = coerce_props(literals)

    mock_block = "\n".join(m.code for m in mocks)
    script_source = (
        SHARED_HELPERS_TSX
        + "\n// ---- stand-ins for imported symbols ----\n"
        + mock_block
        + "\n\n// ---- component ----\n"
        + clean_source(source or "")
        + "\n"
    )

    settings = (
        f"window.__previewComponentName = {json.dumps(name)};\n"
        f"window.__previewProps = {_js_json(values)};\n"
        f"window.__previewMaxRepairs = {config.max_repairs()};\n"
        f"window.__previewClockMs = {int(config.clock_interval_s() * 1000)};\n"
        f"window.__previewClockWrap = {config.clock_wrap_frames()};\n"
    )

    html = "\n".join(
        [
            "<!DOCTYPE html>",
            "<html>",
            "<head>",
            '<meta charset="utf-8"/>',
            f'<meta name="preview-stub-version" content="{STUB_LIBRARY_VERSION}"/>',
            f"<style>{BASE_CSS}</style>",
            f"<script>{FAULT_HANDLER_JS}</script>",
            _script_src(config.react_url()),
            _script_src(config.react_dom_url()),
            _script_src(config.babel_url()),
            f"<script>{RUNTIME_STUBS_JS}{SAFE_THEME_JS}</script>",
            "</head>",
            "<body>",
            '<div id="root"></div>',
            f'<script type="text/plain" id="__src">{_escape_script_text(script_source)}</script>',
            f"<script>\n{settings}</script>",
            f"<script>{SANDBOX_RUNTIME_JS}</script>",
            "</body>",
            "</html>",
            "",
        ]
    )
    logger.debug(
        "Built sandbox document component=%s mocks=%d bytes=%d",
        name,
        len(mocks),
        len(html),
    )
    return SandboxDocument(html=html, component_name=name, props=values, mocks=tuple(mocks))
