from __future__ import annotations

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_CONTENT: dict[str, Any] = {
    "headline": "Your Headline",
    "subtext": "A brief description of what this does.",
    "buttonText": "Get Started",
    "bullets": ["First benefit", "Second benefit", "Third benefit"],
    "features": [
        {"title": "Feature One", "description": "A great feature"},
        {"title": "Feature Two", "description": "Another great feature"},
        {"title": "Feature Three", "description": "Yet another feature"},
    ],
    "steps": [
        {"number": 1, "title": "Step 1", "description": "Do this first"},
        {"number": 2, "title": "Step 2", "description": "Then do this"},
        {"number": 3, "title": "Step 3", "description": "Finally, this"},
    ],
    "stats": [
        {"value": "10K+", "label": "Users"},
        {"value": "99.9%", "label": "Uptime"},
        {"value": "4.9★", "label": "Rating"},
        {"value": "150+", "label": "Countries"},
    ],
    "questions": [
        {"question": "How does it work?", "answer": "It works great."},
        {"question": "Is it free?", "answer": "Yes, there is a free tier."},
    ],
    "items": [
        {"label": "Speed", "us": "Fast", "them": "Slow"},
        {"label": "Price", "us": "$9/mo", "them": "$29/mo"},
    ],
    "cells": [
        {"title": "Cell 1", "description": "Description 1", "size": "lg"},
        {"title": "Cell 2", "description": "Description 2", "size": "sm"},
        {"title": "Cell 3", "description": "Description 3", "size": "md"},
    ],
    "milestones": [
        {"year": "2023", "title": "Founded", "description": "Started the journey"},
        {"year": "2024", "title": "Launch", "description": "Shipped v1.0"},
    ],
    "members": [
        {"name": "Alice", "role": "CEO", "initial": "A"},
        {"name": "Bob", "role": "CTO", "initial": "B"},
    ],
    "reviews": [
        {"text": "Amazing product!", "author": "Jane", "stars": 5},
        {"text": "Works perfectly.", "author": "John", "stars": 4},
    ],
    "logos": ["Acme", "Globex", "Initech", "Umbrella"],
    "before": {"title": "Before", "points": ["Slow", "Manual", "Error-prone"]},
    "after": {"title": "After", "points": ["Fast", "Automated", "Reliable"]},
    "quote": "This product changed everything for us.",
    "author": "Jane Doe, CEO",
    "price": "$19/mo",
    "date": "2025-12-31",
    "rating": 4.8,
    "reviewCount": "2,400+",
    "mediaUrl": "",
    "layout": "centered",
}

DEFAULT_THEME: dict[str, Any] = {
    "id": "preview",
    "name": "Preview",
    "description": "",
    "preview": "",
    "colors": {
        "background": "#0f0f17",
        "surface": "#1a1a2e",
        "primary": "#61dafb",
        "secondary": "#a78bfa",
        "text": "#e0e0e0",
        "textMuted": "#8888a0",
        "accent": "#f97316",
    },
    "fonts": {"heading": "system-ui", "body": "system-ui"},
    "transitions": {"default": "fade"},
    "borderRadius": 12,
}

# Tried in order; the first signature with a destructured parameter wins.
_DESTRUCTURED_PATTERNS = (
    re.compile(r"export\s+default\s+function\s+\w+\s*\(\s*\{([^}]+)\}"),
    re.compile(r"function\s+\w+\s*\(\s*\{([^}]+)\}"),
    re.compile(r"(?:const|let)\s+\w+\s*(?::\s*\w+)?\s*=\s*\(\s*\{([^}]+)\}"),
)
_POSITIONAL_RE = re.compile(r"(?:export\s+default\s+)?function\s+\w+\s*\(\s*(\w+)\s*[,:)]")
_PROP_NAME_SPLIT_RE = re.compile(r"\s*[=:]")
_WORD_RE = re.compile(r"^\w+$")


def _dump(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


def default_prop_literal(name: str) -> str:
    if name == "content":
        return _dump(DEFAULT_CONTENT)
    if name == "theme":
        return _dump(DEFAULT_THEME)
    return json.dumps(name)


def _destructured_names(inner: str) -> list[str]:
    names: list[str] = []
    for part in inner.split(","):
        p = _PROP_NAME_SPLIT_RE.split(part.strip())[0].strip()
        if not p or p.startswith("//") or p.startswith("/*"):
            continue
        if not _WORD_RE.match(p):
            continue
        if p not in names:
            names.append(p)
    return names


def extract_preview_props(source: str) -> dict[str, str]:
    """Derive default prop literals from the component's signature.

    Values are source literals (JSON text), not parsed values.
    """
    text = source or ""
    for pat in _DESTRUCTURED_PATTERNS:
        m = pat.search(text)
        if m:
            return {name: default_prop_literal(name) for name in _destructured_names(m.group(1))}

    m = _POSITIONAL_RE.search(text)
    if m and m.group(1) == "props":
        return {"props": _dump({"placeholder": "value"})}
    return {}


def coerce_prop_value(literal: str) -> Any:
    """Parse a prop literal into a structured value.

    Literals that are not valid JSON are passed through as plain strings.
    """
    if not isinstance(literal, str):
        return literal
    raw = literal.strip()
    if not raw:
        return ""
    try:
        return json.loads(raw)
    except ValueError:
        logger.debug("Prop literal is not JSON; using raw text")
        return literal


def coerce_props(props: dict[str, str] | None) -> dict[str, Any]:
    return {str(k): coerce_prop_value(v) for k, v in (props or {}).items()}
