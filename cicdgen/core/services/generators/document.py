"""
Structured-document writer — YAML-compatible text from plain data.

Used for docker-compose.yml and for the spec files embedded in deploy
scripts.  Output is deterministic: keys keep insertion order, strings
are always double-quoted and nothing depends on PyYAML's emitter
settings.

Rules:
    * 2-space indent per nesting level
    * ``- `` prefix per sequence element (one per line)
    * strings double-quoted with ``\\`` and ``"`` escaped
    * bools ``true``/``false``, ``None`` → ``null``, numbers bare
    * empty mapping ``{}``, empty sequence ``[]``
    * keys bare when they read back as the same plain string, otherwise
      quoted like any other string
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

_INDENT = "  "

_PLAIN_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_./-]*$")

# Words YAML 1.1 resolves to bools or null when unquoted
_RESERVED_WORDS = frozenset({
    "y", "n", "yes", "no", "on", "off", "true", "false", "null",
})


def render_document(document: Mapping[str, Any]) -> str:
    """Render a top-level mapping, newline-terminated."""
    if not isinstance(document, Mapping):
        raise TypeError(f"Document root must be a mapping, got {type(document).__name__}")
    if not document:
        return "{}\n"
    return "\n".join(_mapping_lines(document, 0)) + "\n"


def render_scalar(value: Any) -> str:
    """Render one scalar value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    raise TypeError(f"Unsupported scalar type: {type(value).__name__}")


def render_key(key: Any) -> str:
    """Render a mapping key, quoting anything YAML would not read back verbatim."""
    if not isinstance(key, str):
        raise TypeError(f"Mapping keys must be strings, got {type(key).__name__}")
    if _PLAIN_KEY_RE.match(key) and key.lower() not in _RESERVED_WORDS:
        return key
    return render_scalar(key)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def _mapping_lines(mapping: Mapping[str, Any], depth: int) -> list[str]:
    pad = _INDENT * depth
    lines: list[str] = []
    for raw_key, value in mapping.items():
        key = render_key(raw_key)
        if isinstance(value, Mapping):
            if value:
                lines.append(f"{pad}{key}:")
                lines.extend(_mapping_lines(value, depth + 1))
            else:
                lines.append(f"{pad}{key}: {{}}")
        elif _is_sequence(value):
            if value:
                lines.append(f"{pad}{key}:")
                lines.extend(_sequence_lines(value, depth + 1))
            else:
                lines.append(f"{pad}{key}: []")
        else:
            lines.append(f"{pad}{key}: {render_scalar(value)}")
    return lines


def _sequence_lines(items: Sequence[Any], depth: int) -> list[str]:
    pad = _INDENT * depth
    lines: list[str] = []
    for item in items:
        if isinstance(item, Mapping):
            if not item:
                lines.append(f"{pad}- {{}}")
                continue
            # First key shares the dash line; the rest align under it
            nested = _mapping_lines(item, depth + 1)
            lines.append(f"{pad}- {nested[0].lstrip()}")
            lines.extend(nested[1:])
        elif _is_sequence(item):
            raise TypeError("Nested sequences are not supported")
        else:
            lines.append(f"{pad}- {render_scalar(item)}")
    return lines
