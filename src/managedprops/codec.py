"""
Store codecs: text encodings of a flat name -> value mapping.

PropertiesCodec reads and writes the common subset of java-style
``.properties`` files; JsonCodec stores a flat JSON object. Both work on
text; read()/write() add UTF-8 file handling on top.
"""

from abc import ABC, abstractmethod
from datetime import datetime
import json
import logging
import os
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional, Tuple, Union

from managedprops.exceptions import CodecError

logger = logging.getLogger(__name__)

PathLike = Union[str, 'os.PathLike[str]']


class StoreCodec(ABC):
    """Encodes and decodes a flat mapping of property names to string values."""

    @abstractmethod
    def decode(self, text: str) -> Dict[str, str]:
        """Parse text into a name -> value mapping."""

    @abstractmethod
    def encode(self, values: Mapping[str, str], comment: Optional[str] = None) -> str:
        """Render values as text, with an optional comment where the format allows it."""

    def read(self, path: PathLike) -> Dict[str, str]:
        """Decode the file at path. A missing file decodes to an empty mapping."""
        path = Path(path)
        if not path.is_file():
            logger.debug(f"No property file at {path}, starting empty")
            return {}

        with open(path, 'r', encoding='utf-8') as f:
            values = self.decode(f.read())
        logger.debug(f"Read {len(values)} value(s) from {path}")
        return values

    def write(self, path: PathLike, values: Mapping[str, str], comment: Optional[str] = None) -> None:
        """Encode values into the file at path, creating parent directories.

        The text goes to a sibling ``.tmp`` file first and replaces path in one
        step, so a failed write leaves the previous file in place.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        text = self.encode(values, comment)
        tmp = path.with_suffix(path.suffix + '.tmp')
        try:
            with tmp.open('w', encoding='utf-8') as f:
                f.write(text)
            tmp.replace(path)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise
        logger.debug(f"Wrote {len(values)} value(s) to {path}")


# ========== PROPERTIES FORMAT ==========

_COMMENT_CHARS = '#!'
_SEPARATORS = '=:'
_WHITESPACE = ' \t\f'
_UNESCAPES = {'t': '\t', 'n': '\n', 'r': '\r', 'f': '\f'}
_ESCAPES = {'\t': '\\t', '\n': '\\n', '\r': '\\r', '\f': '\\f', '\\': '\\\\'}


def _ends_with_continuation(line: str) -> bool:
    """True if line ends with an odd number of backslashes."""
    count = len(line) - len(line.rstrip('\\'))
    return count % 2 == 1


def _logical_lines(text: str) -> Iterator[Tuple[int, str]]:
    """Yield (line number, logical line) with comments, blanks and continuations handled."""
    natural = text.splitlines()
    index = 0
    while index < len(natural):
        number = index + 1
        line = natural[index].lstrip(_WHITESPACE)
        index += 1

        if not line or line[0] in _COMMENT_CHARS:
            continue

        parts: List[str] = []
        while _ends_with_continuation(line) and index < len(natural):
            parts.append(line[:-1])
            line = natural[index].lstrip(_WHITESPACE)
            index += 1
        if _ends_with_continuation(line):
            line = line[:-1]
        parts.append(line)
        yield number, ''.join(parts)


def _unescape(text: str, line: int) -> str:
    result: List[str] = []
    position = 0
    while position < len(text):
        char = text[position]
        if char != '\\' or position + 1 >= len(text):
            result.append(char)
            position += 1
            continue

        escaped = text[position + 1]
        if escaped == 'u':
            digits = text[position + 2:position + 6]
            if len(digits) != 4:
                raise CodecError(f"truncated \\u escape {text[position:]!r}", line)
            try:
                result.append(chr(int(digits, 16)))
            except ValueError:
                raise CodecError(f"malformed \\u escape \\u{digits}", line) from None
            position += 6
            continue

        result.append(_UNESCAPES.get(escaped, escaped))
        position += 2
    return ''.join(result)


def _split_entry(line: str) -> Tuple[str, str]:
    """Split a logical line into raw (still escaped) key and value."""
    position = 0
    while position < len(line):
        char = line[position]
        if char == '\\':
            position += 2
            continue
        if char in _SEPARATORS or char in _WHITESPACE:
            break
        position += 1

    key = line[:position]
    rest = line[position:].lstrip(_WHITESPACE)
    if rest and rest[0] in _SEPARATORS:
        rest = rest[1:].lstrip(_WHITESPACE)
    return key, rest


def _escape(text: str, is_key: bool) -> str:
    result: List[str] = []
    for index, char in enumerate(text):
        if char in _ESCAPES:
            result.append(_ESCAPES[char])
        elif char == ' ' and (is_key or index == 0):
            result.append('\\ ')
        elif char in _SEPARATORS or char in _COMMENT_CHARS:
            result.append('\\' + char)
        elif ord(char) < 0x20 or ord(char) == 0x7f:
            result.append(f'\\u{ord(char):04x}')
        else:
            result.append(char)
    return ''.join(result)


class PropertiesCodec(StoreCodec):
    """
    java-style ``.properties`` text.

    Supported: ``#``/``!`` comment lines; ``=``, ``:`` or whitespace between
    key and value; backslash line continuation; ``\\t \\n \\r \\f \\\\``
    and ``\\uXXXX`` escapes; escaped separators in keys. Later duplicates win.

    Example:
        >>> PropertiesCodec().decode("a.b = 1\\nc: two\\\\\\n  lines")
        {'a.b': '1', 'c': 'twolines'}
    """

    def __init__(self, timestamp: bool = True):
        """
        Args:
            timestamp: Write a timestamp comment line after the caller's comment.
        """
        self.timestamp = timestamp

    def decode(self, text: str) -> Dict[str, str]:
        values: Dict[str, str] = {}
        for number, line in _logical_lines(text):
            raw_key, raw_value = _split_entry(line)
            key = _unescape(raw_key, number)
            if not key:
                raise CodecError("missing property name", number)
            values[key] = _unescape(raw_value, number)
        return values

    def encode(self, values: Mapping[str, str], comment: Optional[str] = None) -> str:
        lines: List[str] = []
        if comment:
            lines.extend(f"#{comment_line}" for comment_line in comment.splitlines())
        if self.timestamp:
            lines.append(f"#{datetime.now().strftime('%a %b %d %H:%M:%S %Y')}")
        for name in sorted(values):
            lines.append(f"{_escape(name, True)}={_escape(values[name], False)}")
        return '\n'.join(lines) + '\n'


class JsonCodec(StoreCodec):
    """
    Flat JSON object of string values.

    The comment has no place in the format and is ignored.
    """

    def __init__(self, indent: int = 2):
        self.indent = indent

    def decode(self, text: str) -> Dict[str, str]:
        if not text.strip():
            return {}
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise CodecError(e.msg, e.lineno) from e

        if not isinstance(data, dict):
            raise CodecError(f"expected a JSON object, got {type(data).__name__}")

        values: Dict[str, str] = {}
        for name, value in data.items():
            if value is None or isinstance(value, (dict, list)):
                raise CodecError(f"property '{name}' must be a scalar, got {type(value).__name__}")
            if isinstance(value, bool):
                value = 'true' if value else 'false'
            values[name] = str(value)
        return values

    def encode(self, values: Mapping[str, str], comment: Optional[str] = None) -> str:
        return json.dumps(dict(values), indent=self.indent, sort_keys=True, ensure_ascii=False) + '\n'


def codec_for_path(path: PathLike) -> StoreCodec:
    """JsonCodec for ``.json`` files, PropertiesCodec for anything else."""
    if Path(path).suffix.lower() == '.json':
        return JsonCodec()
    return PropertiesCodec()
