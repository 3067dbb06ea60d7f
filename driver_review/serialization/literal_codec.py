"""
Literal table codec.

Encodes nested mappings into a compact table-constructor literal
(``{["type"]="review",["review"]={...}}``) and parses that literal back with a
recursive-descent parser. The parser understands exactly the literal grammar:
tables, quoted strings with escapes, numbers, ``true``, ``false`` and ``nil``.
Any other name, operator or call is a DecodeError, so a frame from a peer can
never reach anything but value construction.
"""

import math
import re
from collections.abc import Mapping
from typing import Any

from ..exceptions import DecodeError

MAX_DEPTH = 32

_KEYWORDS = {"true": True, "false": False, "nil": None}
_WHITESPACE = " \t\r\n\f\v"
_DIGITS = "0123456789"
_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_NUMBER = re.compile(r"-?(?:0[xX][0-9a-fA-F]+|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)")
_MAX_NUMBER_LENGTH = 4300
_SIMPLE_ESCAPES = {
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
    "\\": "\\",
    '"': '"',
    "'": "'",
    "\n": "\n",
}
_QUOTE_ESCAPES = {'"': '\\"', "\\": "\\\\", "\n": "\\n", "\r": "\\r", "\t": "\\t"}


def quote(text: str) -> str:
    """Render a string as a double-quoted, escaped literal."""
    parts = ['"']
    for ch in text:
        if ch in _QUOTE_ESCAPES:
            parts.append(_QUOTE_ESCAPES[ch])
        elif ord(ch) < 32 or ord(ch) == 127:
            # Always three digits so a following digit is not absorbed
            parts.append(f"\\{ord(ch):03d}")
        else:
            parts.append(ch)
    parts.append('"')
    return "".join(parts)


def _encode_key(key: Any) -> str:
    if isinstance(key, bool):
        return "[true]" if key else "[false]"
    if isinstance(key, int) or (isinstance(key, float) and math.isfinite(key)):
        return f"[{key!r}]"
    return f"[{quote(str(key))}]"


def _encode_value(value: Any) -> str:
    if isinstance(value, Mapping):
        return "{" + ",".join(f"{_encode_key(k)}={_encode_value(v)}" for k, v in value.items()) + "}"
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float) and math.isfinite(value):
        return repr(value)
    if isinstance(value, str):
        return quote(value)
    return quote(str(value))


def encode(value: Any) -> str:
    """
    Encode a value as a table literal.

    Mappings nest to any depth; strings, numbers, booleans and None render as
    literals and anything else is coerced to its quoted string form.
    """
    return _encode_value(value)


class _Parser:
    """Recursive-descent parser over the literal grammar produced by encode()."""

    def __init__(self, text: str):
        self.text: str = text
        self.pos: int = 0

    def parse(self) -> Any:
        value = self._value(0)
        self._skip_ws()
        if self.pos != len(self.text):
            raise DecodeError("unexpected trailing input", self.pos)
        return value

    def _peek(self, offset: int = 0) -> str:
        index = self.pos + offset
        return self.text[index] if index < len(self.text) else ""

    def _skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos] in _WHITESPACE:
            self.pos += 1

    def _expect(self, ch: str) -> None:
        self._skip_ws()
        if self._peek() != ch:
            raise DecodeError(f"expected {ch!r}", self.pos)
        self.pos += 1

    def _value(self, depth: int) -> Any:
        self._skip_ws()
        ch = self._peek()
        if not ch:
            raise DecodeError("unexpected end of input", self.pos)
        if ch == "{":
            return self._table(depth + 1)
        if ch in "\"'":
            return self._string()
        if ch == "-" or ch in _DIGITS or (ch == "." and self._peek(1) != "" and self._peek(1) in _DIGITS):
            return self._number()
        match = _NAME.match(self.text, self.pos)
        if match:
            word = match.group()
            if word in _KEYWORDS:
                self.pos = match.end()
                return _KEYWORDS[word]
            raise DecodeError(f"name {word!r} is not a literal", self.pos)
        raise DecodeError(f"unexpected character {ch!r}", self.pos)

    def _table(self, depth: int) -> dict[Any, Any]:
        if depth > MAX_DEPTH:
            raise DecodeError("tables nested too deeply", self.pos)
        self._expect("{")
        result: dict[Any, Any] = {}
        index = 1
        while True:
            self._skip_ws()
            if self._peek() == "}":
                self.pos += 1
                return result

            key = self._field_key(depth)
            if key is None:
                key = index
                index += 1
            value = self._value(depth)
            # nil-valued fields are absent, as in the table constructor they mirror
            if value is not None:
                result[key] = value

            self._skip_ws()
            ch = self._peek()
            if ch in (",", ";"):
                self.pos += 1
            elif ch != "}":
                raise DecodeError("expected ',' or '}' in table", self.pos)

    def _field_key(self, depth: int) -> Any:
        """Parse an explicit ``[key]=`` or ``name=`` prefix; None for positional fields."""
        if self._peek() == "[":
            self.pos += 1
            key_pos = self.pos
            key = self._value(depth)
            if key is None or isinstance(key, dict):
                raise DecodeError("invalid table key", key_pos)
            if isinstance(key, float) and key.is_integer():
                key = int(key)
            self._expect("]")
            self._expect("=")
            return key

        match = _NAME.match(self.text, self.pos)
        if match and match.group() not in _KEYWORDS:
            after = match.end()
            while after < len(self.text) and self.text[after] in _WHITESPACE:
                after += 1
            if self.text[after:after + 1] == "=" and self.text[after + 1:after + 2] != "=":
                self.pos = after + 1
                return match.group()
        return None

    def _string(self) -> str:
        delimiter = self.text[self.pos]
        start = self.pos
        self.pos += 1
        parts: list[str] = []
        while True:
            if self.pos >= len(self.text):
                raise DecodeError("unterminated string", start)
            ch = self.text[self.pos]
            if ch == delimiter:
                self.pos += 1
                return "".join(parts)
            if ch == "\n":
                raise DecodeError("unfinished string", self.pos)
            if ch == "\\":
                self.pos += 1
                parts.append(self._escape())
            else:
                parts.append(ch)
                self.pos += 1

    def _escape(self) -> str:
        ch = self._peek()
        if not ch:
            raise DecodeError("unterminated escape", self.pos)
        if ch in _SIMPLE_ESCAPES:
            self.pos += 1
            return _SIMPLE_ESCAPES[ch]
        if ch in _DIGITS:
            digits = ""
            while len(digits) < 3 and self._peek() and self._peek() in _DIGITS:
                digits += self._peek()
                self.pos += 1
            code = int(digits)
            if code > 255:
                raise DecodeError("decimal escape too large", self.pos)
            return chr(code)
        raise DecodeError(f"invalid escape '\\{ch}'", self.pos)

    def _number(self) -> int | float:
        match = _NUMBER.match(self.text, self.pos)
        if not match:
            raise DecodeError("malformed number", self.pos)
        end = match.end()
        if end < len(self.text) and (self.text[end].isalnum() or self.text[end] in "._"):
            raise DecodeError("malformed number", self.pos)
        start = self.pos
        self.pos = end

        literal = match.group()
        if len(literal) > _MAX_NUMBER_LENGTH:
            raise DecodeError("number too long", start)
        negative = literal.startswith("-")
        digits = literal[1:] if negative else literal
        try:
            if digits[:2] in ("0x", "0X"):
                number: int | float = int(digits, 16)
            elif any(c in digits for c in ".eE"):
                number = float(digits)
            else:
                number = int(digits)
        except ValueError as e:
            raise DecodeError("malformed number", start) from e
        return -number if negative else number


def decode(text: str) -> Any:
    """
    Parse a table literal back into Python values.

    Raises:
        DecodeError: If the text is not exactly one literal of the grammar
    """
    if not isinstance(text, str):
        raise DecodeError(f"expected str, got {type(text).__name__}")
    return _Parser(text).parse()
