# src/manta_build/json_query.py
"""In-place JSON query engine for small, read-once configuration files.

A `JsonDocument` strips insignificant whitespace from the text once and then
answers queries by scanning byte ranges of that buffer. Navigating into an
object or array yields a `JsonView`, a `(buffer, start, end)` window; no
tree is ever built and nothing is cached between calls.

Lookups never raise. A key or index that cannot be found, or a value with
the wrong delimiters, yields an empty view (for scopes) or the caller's
default (for leaves):

    doc = JsonDocument('{"debug": {"compile": {"gcc": {"linkerFlags": "-g"}}}}')
    gcc = doc.object("debug").object("compile").object("gcc")
    gcc.get_string("linkerFlags")          # "-g"
    gcc.get_string("compilerFlags", "")    # ""
"""

from __future__ import annotations

import re
from pathlib import Path

_INT_PREFIX = re.compile(r"[+-]?\d+")
_FLOAT_PREFIX = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


# --------------------------------------------------------------------------- #
# scanners
# --------------------------------------------------------------------------- #


def _is_escaped(buffer: str, index: int) -> bool:
    """True if the character at `index` follows an odd run of backslashes."""
    backslashes = 0
    i = index - 1
    while i >= 0 and buffer[i] == "\\":
        backslashes += 1
        i -= 1
    return backslashes % 2 == 1


def strip_whitespace(text: str) -> str:
    """Remove every whitespace character that is not inside a quoted string."""
    kept: list[str] = []
    in_quotes = False
    # Quote state is tracked walking backward from the end of the text.
    for i in range(len(text) - 1, -1, -1):
        ch = text[i]
        if ch == '"' and not _is_escaped(text, i):
            in_quotes = not in_quotes
        elif not in_quotes and ch.isspace():
            continue
        kept.append(ch)
    return "".join(reversed(kept))


def _find_key(buffer: str, key: str, start: int, end: int) -> int | None:
    """Return the offset just past `"key":` at depth 0 of [start, end)."""
    in_quotes = False
    braces = 0
    brackets = 0
    stop = min(end, len(buffer))

    for i in range(start, stop):
        ch = buffer[i]

        if ch == '"' and not _is_escaped(buffer, i):
            if (
                not in_quotes
                and braces == 0
                and brackets == 0
                and buffer.startswith(key, i + 1)
                and buffer.startswith('":', i + 1 + len(key))
            ):
                return i + len(key) + 3
            in_quotes = not in_quotes
            continue
        if in_quotes:
            continue

        if ch == "{":
            braces += 1
        elif ch == "[":
            brackets += 1
        elif ch == "}":
            if braces == 0:
                break
            braces -= 1
        elif ch == "]":
            if brackets == 0:
                break
            brackets -= 1

    return None


def _find_index(buffer: str, index: int, start: int, end: int) -> int | None:
    """Return the start offset of the `index`-th depth-0 element of [start, end)."""
    in_quotes = False
    braces = 0
    brackets = 0
    last = start
    count = 0
    stop = min(end, len(buffer))

    for i in range(start, stop):
        ch = buffer[i]

        if ch == '"' and not _is_escaped(buffer, i):
            in_quotes = not in_quotes
        if in_quotes:
            continue

        if ch == "{":
            braces += 1
            continue
        if ch == "[":
            brackets += 1
            continue
        if ch == "}":
            if braces == 0:
                break
            braces -= 1
        elif ch == "]":
            if brackets == 0:
                break
            brackets -= 1
        if braces > 0 or brackets > 0:
            continue

        if ch == ",":
            if count == index:
                return last
            last = i + 1
            count += 1

    return last if count == index else None


def _find_value_end(buffer: str, start: int, end: int) -> int:
    """Return the offset of the depth-0 `,`, `}` or `]` ending the value at `start`."""
    in_quotes = False
    braces = 0
    brackets = 0
    stop = min(end, len(buffer))

    for i in range(start, stop):
        ch = buffer[i]

        if ch == '"' and not _is_escaped(buffer, i):
            in_quotes = not in_quotes
        if in_quotes:
            continue

        if ch == "{":
            braces += 1
            continue
        if ch == "[":
            brackets += 1
            continue
        if ch == "}":
            if braces == 0:
                return i
            braces -= 1
        elif ch == "]":
            if brackets == 0:
                return i
            brackets -= 1
        if braces > 0 or brackets > 0:
            continue

        if ch == ",":
            return i

    return stop


def _unescape(inner: str) -> str:
    return inner.replace('\\"', '"').replace("\\n", "\n").replace("\\t", "\t")


# --------------------------------------------------------------------------- #
# views
# --------------------------------------------------------------------------- #


class JsonView:
    """A non-owning window `[start, end)` over an object or array scope."""

    __slots__ = ("buffer", "end", "start")

    def __init__(self, buffer: str, start: int, end: int) -> None:
        self.buffer = buffer
        self.start = start
        self.end = end

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.text!r})"

    @property
    def text(self) -> str:
        return self.buffer[self.start : self.end]

    @property
    def empty(self) -> bool:
        return self.end <= self.start

    # --- element spans ---

    def _span_for(self, value_start: int | None) -> tuple[int, int] | None:
        if value_start is None or value_start > self.end:
            return None
        value_end = _find_value_end(self.buffer, value_start, self.end)
        if value_end > self.end or value_end <= value_start:
            return None
        return value_start, value_end

    def _element_key(self, key: str) -> tuple[int, int] | None:
        return self._span_for(_find_key(self.buffer, key, self.start, self.end))

    def _element_index(self, index: int) -> tuple[int, int] | None:
        if index < 0:
            return None
        return self._span_for(_find_index(self.buffer, index, self.start, self.end))

    def _scope(
        self, span: tuple[int, int] | None, opener: str, closer: str
    ) -> JsonView:
        if span is None:
            return JsonView(self.buffer, 0, 0)
        start, end = span
        if self.buffer[start] != opener or self.buffer[end - 1] != closer:
            return JsonView(self.buffer, 0, 0)
        return JsonView(self.buffer, start + 1, end - 1)

    def _string(self, span: tuple[int, int] | None, default: str) -> str:
        if span is None:
            return default
        start, end = span
        if self.buffer[start] != '"' or self.buffer[end - 1] != '"':
            return default
        return _unescape(self.buffer[start + 1 : end - 1])

    def _double(self, span: tuple[int, int] | None, default: float) -> float:
        if span is None:
            return default
        match = _FLOAT_PREFIX.match(self.buffer, span[0], span[1])
        return float(match.group()) if match else default

    def _int(self, span: tuple[int, int] | None, default: int) -> int:
        if span is None:
            return default
        match = _INT_PREFIX.match(self.buffer, span[0], span[1])
        return int(match.group()) if match else default

    def _bool(self, span: tuple[int, int] | None, default: bool) -> bool:
        if span is None:
            return default
        value = self.buffer[span[0] : span[1]]
        return value.startswith(("true", "1"))

    # --- scopes ---

    def object(self, key: str) -> JsonView:
        return self._scope(self._element_key(key), "{", "}")

    def object_at(self, index: int) -> JsonView:
        return self._scope(self._element_index(index), "{", "}")

    def array(self, key: str) -> JsonView:
        return self._scope(self._element_key(key), "[", "]")

    def array_at(self, index: int) -> JsonView:
        return self._scope(self._element_index(index), "[", "]")

    # --- leaves ---

    def get_string(self, key: str, default: str = "") -> str:
        return self._string(self._element_key(key), default)

    def get_string_at(self, index: int, default: str = "") -> str:
        return self._string(self._element_index(index), default)

    def get_double(self, key: str, default: float = 0.0) -> float:
        return self._double(self._element_key(key), default)

    def get_double_at(self, index: int, default: float = 0.0) -> float:
        return self._double(self._element_index(index), default)

    # Python has a single float type; these mirror the double accessors.
    def get_float(self, key: str, default: float = 0.0) -> float:
        return self.get_double(key, default)

    def get_float_at(self, index: int, default: float = 0.0) -> float:
        return self.get_double_at(index, default)

    def get_int(self, key: str, default: int = 0) -> int:
        return self._int(self._element_key(key), default)

    def get_int_at(self, index: int, default: int = 0) -> int:
        return self._int(self._element_index(index), default)

    def get_bool(self, key: str, default: bool = False) -> bool:
        return self._bool(self._element_key(key), default)

    def get_bool_at(self, index: int, default: bool = False) -> bool:
        return self._bool(self._element_index(index), default)

    def count(self) -> int:
        """Number of depth-0 elements in this scope."""
        if self.end - self.start <= 1:
            return 0

        in_quotes = False
        braces = 0
        brackets = 0
        commas = 0
        for i in range(self.start, min(self.end, len(self.buffer))):
            ch = self.buffer[i]

            if ch == '"' and not _is_escaped(self.buffer, i):
                in_quotes = not in_quotes
            if in_quotes:
                continue

            if ch == "{":
                braces += 1
                continue
            if ch == "[":
                brackets += 1
                continue
            if ch == "}":
                if braces == 0:
                    break
                braces -= 1
            elif ch == "]":
                if brackets == 0:
                    break
                brackets -= 1
            if braces > 0 or brackets > 0:
                continue

            if ch == ",":
                commas += 1

        return commas + 1


class JsonDocument(JsonView):
    """Owns the whitespace-stripped buffer; behaves as the root object scope."""

    __slots__ = ()

    def __init__(self, text: str) -> None:
        buffer = strip_whitespace(text)
        if not buffer.startswith("{"):
            xmsg = f"JSON has invalid root scope (no open {{)\n\nJSON:\n{buffer}"
            raise ValueError(xmsg)
        if not buffer.endswith("}") or len(buffer) < 2:  # noqa: PLR2004
            xmsg = f"JSON has invalid root scope (no closing }})\n\nJSON:\n{buffer}"
            raise ValueError(xmsg)
        super().__init__(buffer, 1, len(buffer) - 1)

    @classmethod
    def from_path(cls, path: Path | str) -> JsonDocument:
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            xmsg = f"Failed to load JSON file: {path}"
            raise FileNotFoundError(xmsg) from e
        return cls(text)
