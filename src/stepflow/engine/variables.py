"""
VariableStore - per-run key/value state with path addressing.

Values are dynamically typed. Paths address nested data with dots and
integer indexes (``users[0].name``), and templates pull values in with
``{{ path }}`` placeholders.

Lookups and substitution never raise: a broken path resolves to None,
and None renders as an empty string.

Example:
    >>> store = VariableStore({"user": {"name": "Ada"}})
    >>> store.substitute("Hello {{ user.name }}")
    'Hello Ada'
"""

from typing import Any, Dict, Iterator, List, Optional, Union
import copy
import json
import logging
import math
import re

logger = logging.getLogger(__name__)


PathToken = Union[str, int]

TEMPLATE_PATTERN = re.compile(r"\{\{\s*([a-zA-Z0-9_\[\].]+)\s*\}\}")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _reject_constant(name: str) -> Any:
    # NaN / Infinity are not JSON
    raise ValueError(name)


def auto_type(text: str) -> Any:
    """
    Convert a string to the most specific value it spells.

    JSON is tried first (objects, arrays, numbers, null, quoted strings),
    then the literals ``true``/``false``, then plain numbers. Anything else
    stays a string.

    Example:
        >>> auto_type("42"), auto_type("true"), auto_type('{"a":1}'), auto_type("hi")
        (42, True, {'a': 1}, 'hi')
    """
    if not isinstance(text, str):
        return text

    try:
        return json.loads(text, parse_constant=_reject_constant)
    except ValueError:
        pass

    if text == "true":
        return True
    if text == "false":
        return False

    stripped = text.strip()
    if stripped:
        try:
            number = float(stripped)
        except ValueError:
            return text
        if math.isfinite(number):
            return int(number) if number.is_integer() and "." not in stripped and "e" not in stripped.lower() else number

    return text


def parse_path(path: str) -> List[PathToken]:
    """
    Split a variable path into key and index tokens.

    ``a.b[2].c`` becomes ``["a", "b", 2, "c"]``. A bracket whose content
    does not start with an integer is dropped, as is an unterminated one.
    """
    tokens: List[PathToken] = []
    current = ""
    i = 0
    length = len(path)

    while i < length:
        char = path[i]
        if char == ".":
            if current:
                tokens.append(current)
            current = ""
            i += 1
        elif char == "[":
            if current:
                tokens.append(current)
            current = ""
            close = path.find("]", i + 1)
            if close == -1:
                break
            match = _LEADING_INT.match(path[i + 1:close])
            if match:
                tokens.append(int(match.group(1)))
            i = close + 1
        else:
            current += char
            i += 1

    if current:
        tokens.append(current)
    return tokens


def stringify(value: Any) -> str:
    """Render a value the way templates show it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), default=str)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class VariableStore:
    """
    Mapping of variable name to value, scoped to one run.

    Attributes:
        auto_type: The string auto-typing rule used by set()
    """

    auto_type = staticmethod(auto_type)
    parse_path = staticmethod(parse_path)

    def __init__(self, seed: Optional[Dict[str, Any]] = None):
        self._values: Dict[str, Any] = {}
        self.init(seed)

    def init(self, seed: Optional[Dict[str, Any]] = None) -> None:
        """Replace all values with a copy of ``seed``."""
        self._values = dict(seed or {})

    def get(self, path: str) -> Any:
        """
        Resolve a path, returning None on any missing or mismatched link.
        """
        tokens = parse_path(path or "")
        if not tokens:
            return None

        first = tokens[0]
        value = self._values.get(str(first))

        for token in tokens[1:]:
            if value is None:
                return None
            if isinstance(token, int):
                if not isinstance(value, list) or token < 0 or token >= len(value):
                    return None
                value = value[token]
            else:
                if not isinstance(value, dict):
                    return None
                value = value.get(token)

        return value

    def set(self, key: str, value: Any) -> Any:
        """
        Store a value, auto-typing strings.

        Returns:
            The value actually stored
        """
        typed = auto_type(value) if isinstance(value, str) else value
        self._values[key] = typed
        logger.debug(f"Set variable {key} = {typed!r}")
        return typed

    def set_raw(self, key: str, value: Any) -> None:
        """Store a value exactly as given."""
        self._values[key] = value

    def has(self, key: str) -> bool:
        return key in self._values

    def delete(self, key: str) -> bool:
        """Remove a key. Returns False when it was not set."""
        return self._values.pop(key, _MISSING) is not _MISSING

    def clear(self) -> None:
        self._values.clear()

    def substitute(self, template: Optional[str]) -> str:
        """
        Replace every ``{{ path }}`` with the stringified value at that path.
        """
        if not template:
            return ""
        return TEMPLATE_PATTERN.sub(lambda m: stringify(self.get(m.group(1))), template)

    def snapshot(self) -> Dict[str, Any]:
        """Deep copy of all values."""
        return copy.deepcopy(self._values)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)


_MISSING = object()
