"""JavaScript stand-ins for imports the sandbox cannot satisfy.

Every import of the previewed component is replaced by a synthesized
definition unless the runtime stub library already provides the symbol.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from src.preview.imports import ImportBinding

# Symbols defined by the stub library or React itself. Never mocked.
RUNTIME_SYMBOLS: frozenset[str] = frozenset(
    {
        # React
        "React",
        "ReactDOM",
        "useState",
        "useEffect",
        "useRef",
        "useMemo",
        "useCallback",
        "useContext",
        "createContext",
        "useReducer",
        "useLayoutEffect",
        "forwardRef",
        "memo",
        "Children",
        "cloneElement",
        "isValidElement",
        "Fragment",
        "h",
        # timeline primitives
        "useCurrentFrame",
        "useVideoConfig",
        "interpolate",
        "spring",
        "Easing",
        "Sequence",
        "AbsoluteFill",
        "Img",
        "OffthreadVideo",
        "Audio",
        "Video",
        "staticFile",
        "continueRender",
        "delayRender",
        "useNoise2D",
        "useNoise3D",
        "TransitionSeries",
        "linearTiming",
        "springTiming",
        "fade",
        "slide",
        "wipe",
        # animation helpers
        "fadeInBlur",
        "fadeInUp",
        "scaleIn",
        "slideFromLeft",
        "slideFromRight",
        "glowPulse",
        "revealLine",
        "animatedNumber",
        "typewriterReveal",
        "counterSpinUp",
        "horizontalWipe",
        "parallaxLayer",
        "fadeOutDown",
        "animatedMeshBg",
        "staggerEntrance",
        "floatY",
        "scanLineStyle",
        "breathe",
        # style helpers
        "glowBorderStyle",
        "themedHeadlineStyle",
        "themedButtonStyle",
        "meshGradientStyle",
        "gridPatternStyle",
        "noiseOverlayStyle",
        "glowOrbStyle",
        "glassSurface",
        "glassCard",
        "depthShadow",
        "gradientText",
        "accentColor",
        "shimmerStyle",
        "isThemeDark",
        "mergeThemeWithOverrides",
        # typography / layout tables
        "easings",
        "spacing",
        "typography",
        "typo",
        "getTypography",
        "MockupPlaceholder",
    }
)

_STYLESHEET_MODULE_RE = re.compile(r"\.module\.(css|scss|less|sass)$")
_HOOK_RE = re.compile(r"^use[A-Z]")
_JS_IDENT_RE = re.compile(r"^[A-Za-z_$][\w$]*$")
_FRAMEWORK_PREFIX = "next"


class MockKind(str, Enum):
    STYLESHEET = "stylesheet"
    NAVIGATION = "navigation"
    MEDIA = "media"
    NAMESPACE = "namespace"
    HOOK = "hook"
    COMPONENT = "component"
    FUNCTION = "function"


@dataclass(frozen=True)
class MockEntry:
    symbol_name: str
    code: str
    kind: MockKind

    def to_dict(self) -> dict[str, str]:
        return {"symbol": self.symbol_name, "kind": self.kind.value, "code": self.code}


def _is_framework_module(module_path: str) -> bool:
    p = (module_path or "").strip()
    return p == _FRAMEWORK_PREFIX or p.startswith(_FRAMEWORK_PREFIX + "/")


def classify_binding(binding: ImportBinding) -> MockKind:
    """Pick the stand-in shape for a binding. First matching rule wins."""
    name = binding.name
    if _STYLESHEET_MODULE_RE.search(binding.module_path) or name == "styles":
        return MockKind.STYLESHEET
    if _is_framework_module(binding.module_path):
        if name == "Link":
            return MockKind.NAVIGATION
        if name == "Image":
            return MockKind.MEDIA
    if binding.is_namespace:
        return MockKind.NAMESPACE
    if _HOOK_RE.match(name):
        return MockKind.HOOK
    if name[:1].isupper():
        return MockKind.COMPONENT
    return MockKind.FUNCTION


def component_stand_in(name: str) -> str:
    label = json.dumps(name)
    return (
        f"var {name} = function(p) {{ return React.createElement('div', "
        f"{{ style: p && p.style, className: p && p.className, 'data-mock': {label} }}, "
        f"p && p.children != null ? p.children : {label}); }};"
    )


def _hook_stand_in(name: str) -> str:
    return (
        f"var {name} = function() {{ return {{ data: null, error: null, loading: false, "
        "isLoaded: true, isSignedIn: false, user: null, profile: null, "
        "signOut: function() {}, isConfigured: true }; };"
    )


def _render_mock(name: str, kind: MockKind) -> str:
    if kind is MockKind.STYLESHEET:
        return (
            f"var {name} = new Proxy({{}}, {{ get: function(_, k) "
            "{ return typeof k === 'string' ? k : ''; } });"
        )
    if kind is MockKind.NAVIGATION:
        return (
            f"var {name} = function(p) {{ return React.createElement('a', "
            "{ href: p && p.href, style: p && p.style, className: p && p.className }, "
            "p && p.children); };"
        )
    if kind is MockKind.MEDIA:
        return (
            f"var {name} = function(p) {{ return React.createElement('img', "
            "{ src: p && p.src, alt: (p && p.alt) || '', style: p && p.style, "
            "className: p && p.className }); };"
        )
    if kind is MockKind.NAMESPACE:
        # `Icons.Star` resolves to a labeled component; `Icons.helper()` is harmless.
        return (
            f"var {name} = new Proxy({{}}, {{ get: function(_, k) {{ "
            "if (typeof k !== 'string') return undefined; "
            "return function(p) { return React.createElement('div', "
            "{ style: p && p.style, className: p && p.className, 'data-mock': k }, "
            "p && p.children != null ? p.children : k); }; } });"
        )
    if kind is MockKind.HOOK:
        return _hook_stand_in(name)
    if kind is MockKind.COMPONENT:
        return component_stand_in(name)
    return f"var {name} = function() {{ return null; }};"


def synthesize_mock(
    binding: ImportBinding,
    seen: set[str] | None = None,
    *,
    runtime_symbols: frozenset[str] = RUNTIME_SYMBOLS,
) -> MockEntry | None:
    """Return a stand-in for `binding`, or None when none is needed.

    `seen` collects names already handled in the current build; a repeated
    name yields None.
    """
    name = binding.name
    if not _JS_IDENT_RE.match(name or ""):
        return None
    if name in runtime_symbols:
        return None
    if seen is not None:
        if name in seen:
            return None
        seen.add(name)
    kind = classify_binding(binding)
    return MockEntry(symbol_name=name, code=_render_mock(name, kind), kind=kind)


def synthesize_mocks(bindings: Iterable[ImportBinding]) -> list[MockEntry]:
    seen: set[str] = set()
    out: list[MockEntry] = []
    for b in bindings:
        entry = synthesize_mock(b, seen)
        if entry is not None:
            out.append(entry)
    return out


def adhoc_stand_in(name: str) -> str:
    """Definition for a symbol discovered missing at execution time.

    Capitalized names become labeled components. Anything else becomes a
    permissive helper: numeric first argument gives a neutral style object,
    otherwise the first argument (or an empty object) is passed through.
    """
    if not _JS_IDENT_RE.match(name or ""):
        raise ValueError(f"not a valid identifier: {name!r}")
    if name[:1].isupper():
        return component_stand_in(name)
    return (
        f"var {name} = function() {{ var a = arguments[0]; "
        "if (typeof a === 'number') return { opacity: 1, transform: 'none' }; "
        "return a || {}; };"
    )
