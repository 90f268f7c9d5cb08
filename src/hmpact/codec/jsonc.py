"""Tolerant JSON-with-comments codec.

``parse`` accepts ``//`` and ``/* */`` comments and trailing commas, collects
every diagnostic (error code + offset) before failing, and optionally runs a
validator over the decoded value. It returns a tagged ``CodecResult`` and
never raises.
"""
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel

from ..errors import NotFoundError, ParseError, ValidationError
from .validators import ValidatorLike, as_validator

logger = logging.getLogger(__name__)


class ParseErrorCode(str, Enum):
    """Diagnostic codes reported by the parser."""
    INVALID_SYMBOL = "InvalidSymbol"
    INVALID_NUMBER_FORMAT = "InvalidNumberFormat"
    PROPERTY_NAME_EXPECTED = "PropertyNameExpected"
    VALUE_EXPECTED = "ValueExpected"
    COLON_EXPECTED = "ColonExpected"
    COMMA_EXPECTED = "CommaExpected"
    CLOSE_BRACE_EXPECTED = "CloseBraceExpected"
    CLOSE_BRACKET_EXPECTED = "CloseBracketExpected"
    END_OF_FILE_EXPECTED = "EndOfFileExpected"
    INVALID_COMMENT_TOKEN = "InvalidCommentToken"
    UNEXPECTED_END_OF_COMMENT = "UnexpectedEndOfComment"
    UNEXPECTED_END_OF_STRING = "UnexpectedEndOfString"
    UNEXPECTED_END_OF_NUMBER = "UnexpectedEndOfNumber"
    INVALID_UNICODE = "InvalidUnicode"
    INVALID_ESCAPE_CHARACTER = "InvalidEscapeCharacter"
    INVALID_CHARACTER = "InvalidCharacter"
    NESTING_TOO_DEEP = "NestingTooDeep"


@dataclass
class ParseDiagnostic:
    """A single parse problem."""
    code: ParseErrorCode
    offset: int
    length: int = 0
    line: int = 1
    column: int = 1

    def __str__(self) -> str:
        return f"{self.code.value} at offset {self.offset} (line {self.line}, column {self.column})"


@dataclass
class CodecResult:
    """Tagged result of a codec call.

    ``status`` is one of ``success``, ``error``, ``validation_failed`` and,
    for ``read_file`` only, ``not_found``.
    """
    status: str
    data: Any = None
    message: str = ""
    diagnostics: list[ParseDiagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == "success"

    def unwrap(self) -> Any:
        """Return ``data`` or raise the matching error.

        Raises:
            NotFoundError: status ``not_found``
            ValidationError: status ``validation_failed``
            ParseError: status ``error`` (with the collected diagnostics)
        """
        if self.status == "success":
            return self.data
        if self.status == "not_found":
            raise NotFoundError(self.message)
        if self.status == "validation_failed":
            raise ValidationError(self.message)
        raise ParseError(self.message, diagnostics=self.diagnostics)


# --- Scanner ---

class _Kind(Enum):
    OPEN_BRACE = "{"
    CLOSE_BRACE = "}"
    OPEN_BRACKET = "["
    CLOSE_BRACKET = "]"
    COMMA = ","
    COLON = ":"
    STRING = "string"
    NUMBER = "number"
    LITERAL = "literal"  # true, false, null
    EOF = "eof"


_PUNCTUATION = {k.value: k for k in (
    _Kind.OPEN_BRACE, _Kind.CLOSE_BRACE, _Kind.OPEN_BRACKET,
    _Kind.CLOSE_BRACKET, _Kind.COMMA, _Kind.COLON,
)}

_LITERALS = {"true": True, "false": False, "null": None}

_ESCAPES = {
    '"': '"', "\\": "\\", "/": "/", "b": "\b",
    "f": "\f", "n": "\n", "r": "\r", "t": "\t",
}

_WHITESPACE = " \t\r\n\v\f\ufeff\u00a0"
_DIGITS = "0123456789"
_HEX = "0123456789abcdefABCDEF"


@dataclass
class _Token:
    kind: _Kind
    value: Any
    offset: int
    length: int


class _Scanner:
    """Split text into tokens, dropping whitespace and comments."""

    def __init__(self, text: str, allow_comments: bool):
        self.text = text
        self.allow_comments = allow_comments
        self.pos = 0
        self.errors: list[tuple[ParseErrorCode, int, int]] = []

    def _error(self, code: ParseErrorCode, offset: int, length: int) -> None:
        self.errors.append((code, offset, length))

    def tokens(self) -> list[_Token]:
        text = self.text
        n = len(text)
        out: list[_Token] = []

        while self.pos < n:
            ch = text[self.pos]
            start = self.pos

            if ch in _WHITESPACE:
                self.pos += 1
            elif ch in _PUNCTUATION:
                out.append(_Token(_PUNCTUATION[ch], ch, start, 1))
                self.pos += 1
            elif ch == '"':
                out.append(self._string())
            elif ch == "/" and text.startswith("//", start):
                end = start + 2
                while end < n and text[end] not in "\r\n":
                    end += 1
                self._comment(start, end)
            elif ch == "/" and text.startswith("/*", start):
                close = text.find("*/", start + 2)
                if close == -1:
                    self._error(ParseErrorCode.UNEXPECTED_END_OF_COMMENT, start, n - start)
                    self._comment(start, n)
                else:
                    self._comment(start, close + 2)
            elif ch == "-" or ch in _DIGITS:
                token = self._number()
                if token is not None:
                    out.append(token)
            elif ch.isalpha():
                end = start
                while end < n and (text[end].isalnum() or text[end] == "_"):
                    end += 1
                word = text[start:end]
                self.pos = end
                if word in _LITERALS:
                    out.append(_Token(_Kind.LITERAL, _LITERALS[word], start, end - start))
                else:
                    self._error(ParseErrorCode.INVALID_SYMBOL, start, end - start)
            else:
                self._error(ParseErrorCode.INVALID_SYMBOL, start, 1)
                self.pos += 1

        out.append(_Token(_Kind.EOF, None, n, 0))
        return out

    def _comment(self, start: int, end: int) -> None:
        if not self.allow_comments:
            self._error(ParseErrorCode.INVALID_COMMENT_TOKEN, start, end - start)
        self.pos = end

    def _string(self) -> _Token:
        text = self.text
        n = len(text)
        start = self.pos
        pos = start + 1
        chunks: list[str] = []

        while True:
            if pos >= n:
                self._error(ParseErrorCode.UNEXPECTED_END_OF_STRING, start, pos - start)
                break
            ch = text[pos]
            if ch == '"':
                pos += 1
                break
            if ch == "\\":
                pos += 1
                if pos >= n:
                    self._error(ParseErrorCode.UNEXPECTED_END_OF_STRING, start, pos - start)
                    break
                esc = text[pos]
                if esc in _ESCAPES:
                    chunks.append(_ESCAPES[esc])
                    pos += 1
                elif esc == "u":
                    digits = text[pos + 1:pos + 5]
                    if len(digits) == 4 and all(d in _HEX for d in digits):
                        code = int(digits, 16)
                        pos += 5
                        low = text[pos + 2:pos + 6]
                        if (0xD800 <= code <= 0xDBFF and text.startswith("\\u", pos)
                                and len(low) == 4 and all(d in _HEX for d in low)
                                and 0xDC00 <= int(low, 16) <= 0xDFFF):
                            code = 0x10000 + ((code - 0xD800) << 10) + (int(low, 16) - 0xDC00)
                            pos += 6
                        chunks.append(chr(code))
                    else:
                        self._error(ParseErrorCode.INVALID_UNICODE, pos - 1, 2)
                        pos += 1
                else:
                    self._error(ParseErrorCode.INVALID_ESCAPE_CHARACTER, pos - 1, 2)
                    pos += 1
                continue
            if ch in "\r\n":
                self._error(ParseErrorCode.UNEXPECTED_END_OF_STRING, start, pos - start)
                break
            if ord(ch) < 0x20:
                self._error(ParseErrorCode.INVALID_CHARACTER, pos, 1)
            chunks.append(ch)
            pos += 1

        self.pos = pos
        return _Token(_Kind.STRING, "".join(chunks), start, pos - start)

    def _number(self) -> Optional[_Token]:
        text = self.text
        n = len(text)
        start = self.pos
        pos = start

        if text[pos] == "-":
            pos += 1
            if pos >= n or text[pos] not in _DIGITS:
                self.pos = pos
                self._error(ParseErrorCode.INVALID_SYMBOL, start, 1)
                return None

        if text[pos] == "0":
            pos += 1
        else:
            while pos < n and text[pos] in _DIGITS:
                pos += 1

        is_float = False
        if pos < n and text[pos] == ".":
            is_float = True
            pos += 1
            if pos >= n or text[pos] not in _DIGITS:
                self.pos = pos
                self._error(ParseErrorCode.UNEXPECTED_END_OF_NUMBER, start, pos - start)
                return _Token(_Kind.NUMBER, None, start, pos - start)
            while pos < n and text[pos] in _DIGITS:
                pos += 1

        if pos < n and text[pos] in "eE":
            is_float = True
            pos += 1
            if pos < n and text[pos] in "+-":
                pos += 1
            if pos >= n or text[pos] not in _DIGITS:
                self.pos = pos
                self._error(ParseErrorCode.UNEXPECTED_END_OF_NUMBER, start, pos - start)
                return _Token(_Kind.NUMBER, None, start, pos - start)
            while pos < n and text[pos] in _DIGITS:
                pos += 1

        self.pos = pos
        raw = text[start:pos]
        try:
            value = float(raw) if is_float else int(raw)
        except ValueError:
            self._error(ParseErrorCode.INVALID_NUMBER_FORMAT, start, pos - start)
            value = None
        return _Token(_Kind.NUMBER, value, start, pos - start)


# --- Parser ---

_INVALID = object()

# Objects and arrays nested deeper than this are rejected instead of
# recursing into them.
MAX_NESTING_DEPTH = 256

_SCALARS = (_Kind.STRING, _Kind.NUMBER, _Kind.LITERAL)


class _Parser:
    """Recursive descent over the token list, recovering after each error."""

    def __init__(self, tokens: list[_Token], allow_trailing_comma: bool):
        self.tokens = tokens
        self.allow_trailing_comma = allow_trailing_comma
        self.index = 0
        self.depth = 0
        self.errors: list[tuple[ParseErrorCode, int, int]] = []

    def _peek(self) -> _Token:
        return self.tokens[self.index]

    def _advance(self) -> _Token:
        token = self.tokens[self.index]
        if token.kind is not _Kind.EOF:
            self.index += 1
        return token

    def _error(self, code: ParseErrorCode) -> None:
        token = self._peek()
        self.errors.append((code, token.offset, token.length))

    def _skip_until(self, *kinds: _Kind) -> None:
        while self._peek().kind not in kinds and self._peek().kind is not _Kind.EOF:
            self._advance()

    def _skip_nested(self) -> None:
        """Consume one bracketed value without building it."""
        level = 0
        while self._peek().kind is not _Kind.EOF:
            kind = self._advance().kind
            if kind in (_Kind.OPEN_BRACE, _Kind.OPEN_BRACKET):
                level += 1
            elif kind in (_Kind.CLOSE_BRACE, _Kind.CLOSE_BRACKET):
                level -= 1
                if level == 0:
                    return

    def parse_document(self) -> Any:
        if self._peek().kind is _Kind.EOF:
            self._error(ParseErrorCode.VALUE_EXPECTED)
            return _INVALID

        value = self._value()
        if self._peek().kind is not _Kind.EOF:
            self._error(ParseErrorCode.END_OF_FILE_EXPECTED)
        return value

    def _value(self) -> Any:
        kind = self._peek().kind
        if kind in (_Kind.OPEN_BRACE, _Kind.OPEN_BRACKET):
            if self.depth >= MAX_NESTING_DEPTH:
                self._error(ParseErrorCode.NESTING_TOO_DEEP)
                self._skip_nested()
                return _INVALID
            self.depth += 1
            value = self._object() if kind is _Kind.OPEN_BRACE else self._array()
            self.depth -= 1
            return value
        if kind in _SCALARS:
            return self._advance().value
        self._error(ParseErrorCode.VALUE_EXPECTED)
        return _INVALID

    def _object(self) -> dict:
        self._advance()  # {
        result: dict[str, Any] = {}
        need_comma = False

        while self._peek().kind not in (_Kind.CLOSE_BRACE, _Kind.EOF):
            token = self._peek()

            if token.kind is _Kind.COMMA:
                if not need_comma:
                    self._error(ParseErrorCode.VALUE_EXPECTED)
                self._advance()
                if self._peek().kind is _Kind.CLOSE_BRACE and not self.allow_trailing_comma:
                    self._error(ParseErrorCode.PROPERTY_NAME_EXPECTED)
                need_comma = False
                continue
            if need_comma:
                self._error(ParseErrorCode.COMMA_EXPECTED)

            need_comma = True
            if token.kind is not _Kind.STRING:
                self._error(ParseErrorCode.PROPERTY_NAME_EXPECTED)
                self._skip_until(_Kind.CLOSE_BRACE, _Kind.COMMA)
                continue

            key = self._advance().value
            if self._peek().kind is not _Kind.COLON:
                self._error(ParseErrorCode.COLON_EXPECTED)
                self._skip_until(_Kind.CLOSE_BRACE, _Kind.COMMA)
                continue
            self._advance()

            value = self._value()
            if value is _INVALID:
                self._skip_until(_Kind.CLOSE_BRACE, _Kind.COMMA)
            else:
                result[key] = value

        if self._peek().kind is _Kind.CLOSE_BRACE:
            self._advance()
        else:
            self._error(ParseErrorCode.CLOSE_BRACE_EXPECTED)
        return result

    def _array(self) -> list:
        self._advance()  # [
        result: list[Any] = []
        need_comma = False

        while self._peek().kind not in (_Kind.CLOSE_BRACKET, _Kind.EOF):
            if self._peek().kind is _Kind.COMMA:
                if not need_comma:
                    self._error(ParseErrorCode.VALUE_EXPECTED)
                self._advance()
                if self._peek().kind is _Kind.CLOSE_BRACKET and not self.allow_trailing_comma:
                    self._error(ParseErrorCode.VALUE_EXPECTED)
                need_comma = False
                continue
            if need_comma:
                self._error(ParseErrorCode.COMMA_EXPECTED)

            need_comma = True
            value = self._value()
            if value is _INVALID:
                self._skip_until(_Kind.CLOSE_BRACKET, _Kind.COMMA)
            else:
                result.append(value)

        if self._peek().kind is _Kind.CLOSE_BRACKET:
            self._advance()
        else:
            self._error(ParseErrorCode.CLOSE_BRACKET_EXPECTED)
        return result


def _line_column(text: str, offset: int) -> tuple[int, int]:
    line = text.count("\n", 0, offset) + 1
    column = offset - (text.rfind("\n", 0, offset) + 1) + 1
    return line, column


def _diagnostics(text: str, raw: list[tuple[ParseErrorCode, int, int]]) -> list[ParseDiagnostic]:
    result = []
    for code, offset, length in sorted(raw, key=lambda e: e[1]):
        line, column = _line_column(text, offset)
        result.append(ParseDiagnostic(code=code, offset=offset, length=length, line=line, column=column))
    return result


def _decode(
    raw_text: str,
    allow_comments: bool = True,
    allow_trailing_comma: bool = True,
) -> tuple[Any, list[ParseDiagnostic]]:
    scanner = _Scanner(raw_text, allow_comments=allow_comments)
    tokens = scanner.tokens()
    parser = _Parser(tokens, allow_trailing_comma=allow_trailing_comma)
    value = parser.parse_document()
    return value, _diagnostics(raw_text, scanner.errors + parser.errors)


def validate(value: Any, validator: Optional[ValidatorLike], source: Optional[str] = None) -> CodecResult:
    """Run ``validator`` over an already-decoded value."""
    checker = as_validator(validator)
    if checker is None:
        return CodecResult(status="success", data=value)

    outcome = checker.validate(value)
    if not outcome.ok:
        where = f" for {source}" if source else ""
        return CodecResult(status="validation_failed", message=f"Validation failed{where}: {outcome.message}")
    return CodecResult(status="success", data=outcome.value)


def parse(
    raw_text: Union[str, bytes],
    validator: Optional[ValidatorLike] = None,
    source: Optional[str] = None,
    strict: bool = False,
) -> CodecResult:
    """Parse JSON-with-comments text.

    Args:
        raw_text: Document text (bytes are decoded as UTF-8)
        validator: Optional pydantic model, predicate or Validator
        source: Name used in error messages (usually a file path)
        strict: Reject comments and trailing commas (plain JSON)

    Returns:
        CodecResult with status ``success``, ``error`` or ``validation_failed``
    """
    where = f" at {source}" if source else ""

    if isinstance(raw_text, bytes):
        try:
            raw_text = raw_text.decode("utf-8")
        except UnicodeDecodeError as e:
            return CodecResult(status="error", message=f"Failed to decode document{where}: {e}")

    value, diagnostics = _decode(
        raw_text,
        allow_comments=not strict,
        allow_trailing_comma=not strict,
    )

    if diagnostics:
        for diag in diagnostics:
            logger.debug(f"Parse error{where}: {diag}")
        details = "; ".join(str(d) for d in diagnostics)
        return CodecResult(
            status="error",
            message=f"Failed to parse document{where}: {details}",
            diagnostics=diagnostics,
        )

    return validate(value, validator, source=source)


def serialize(data: Any, indent: int = 2) -> str:
    """Serialize ``data`` to JSON text.

    Pure and deterministic: key order follows the input mapping order.
    Pydantic models are dumped with only the fields that were set.

    Raises:
        TypeError: If ``data`` holds a value JSON cannot represent
        ValueError: If ``data`` holds NaN or infinity
    """
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json", exclude_unset=True)
    return json.dumps(data, indent=indent, ensure_ascii=False, allow_nan=False) + "\n"


def read_file(path: Union[str, Path], validator: Optional[ValidatorLike] = None) -> CodecResult:
    """Read and parse a ``.jsonc`` or ``.json`` file.

    Returns ``not_found`` when the file does not exist and ``error`` for
    unreadable files or unsupported extensions.
    """
    path = Path(path)
    ext = path.suffix.lower()

    if ext not in (".jsonc", ".json"):
        return CodecResult(status="error", message=f"Unsupported file extension: {ext} at {path}.")

    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return CodecResult(status="not_found", message=f"File not found: {path}")
    except (OSError, UnicodeDecodeError) as e:
        return CodecResult(status="error", message=f"Failed to read {path}: {e}")

    return parse(raw, validator, source=str(path), strict=(ext == ".json"))
