"""Java ``.properties`` reading and writing.

Supports ``=``, ``:`` and whitespace separators, ``#``/``!`` comments,
backslash line continuations and the usual escapes including ``\\uXXXX``.
"""
from __future__ import annotations

import re
from typing import Dict, Iterator, List, Mapping, Tuple

_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}
_REVERSE_ESCAPES = {v: k for k, v in _ESCAPES.items()}
_UNICODE_ESCAPE = re.compile(r"[0-9a-fA-F]{4}")


def _unescape(text: str) -> str:
    out: List[str] = []
    i = 0
    while i < len(text):
        char = text[i]
        if char != "\\" or i + 1 >= len(text):
            out.append(char)
            i += 1
            continue
        nxt = text[i + 1]
        if nxt == "u" and _UNICODE_ESCAPE.fullmatch(text[i + 2:i + 6]):
            out.append(chr(int(text[i + 2:i + 6], 16)))
            i += 6
            continue
        out.append(_ESCAPES.get(nxt, nxt))
        i += 2
    return "".join(out)


def _logical_lines(text: str) -> Iterator[str]:
    pending = ""
    for raw in text.splitlines():
        line = raw.lstrip()
        if not pending and (not line or line[0] in "#!"):
            continue
        # An odd number of trailing backslashes continues the line
        trailing = len(line) - len(line.rstrip("\\"))
        if trailing % 2 == 1:
            pending += line[:-1]
            continue
        yield pending + line
        pending = ""
    if pending:
        yield pending


def _split(line: str) -> Tuple[str, str]:
    i = 0
    while i < len(line):
        char = line[i]
        if char == "\\":
            i += 2
            continue
        if char in "=:":
            return line[:i], line[i + 1:].lstrip()
        if char.isspace():
            rest = line[i:].lstrip()
            if rest[:1] in ("=", ":"):
                rest = rest[1:].lstrip()
            return line[:i], rest
        i += 1
    return line, ""


def loads(text: str) -> Dict[str, str]:
    """Parse properties text; later duplicate keys win."""
    result: Dict[str, str] = {}
    for line in _logical_lines(text):
        key, value = _split(line)
        result[_unescape(key)] = _unescape(value)
    return result


def _escape(text: str, is_key: bool) -> str:
    out: List[str] = []
    for i, char in enumerate(text):
        if char == "\\":
            out.append("\\\\")
        elif char in _REVERSE_ESCAPES:
            out.append("\\" + _REVERSE_ESCAPES[char])
        elif char in "=:#!" or (char == " " and (is_key or i == 0)):
            out.append("\\" + char)
        elif ord(char) > 0x7E or ord(char) < 0x20:
            out.append(f"\\u{ord(char):04x}")
        else:
            out.append(char)
    return "".join(out)


def dumps(properties: Mapping[str, str]) -> str:
    """Serialize a mapping as properties text, one ``key=value`` per line."""
    return "".join(f"{_escape(str(k), True)}={_escape(str(v), False)}\n" for k, v in properties.items())
