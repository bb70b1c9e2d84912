"""Low level helpers for the engine's escaped XML payload.

The QuickPricer result arrives as an escaped XML document embedded in a SOAP
body which is itself escaped, so the payload must go through ``unescape_xml``
exactly twice before any element parsing. A different count silently corrupts
attribute values that legitimately contain entities.
"""

import logging
import re
from typing import Optional, Union

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

# Encoding order matters: "&" first so the entities produced afterwards are not
# escaped again. Decoding runs the other way round and finishes with "&amp;".
_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&apos;"),
)

_NUMBER_PREFIX = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_INT_PREFIX = re.compile(r"^\s*[+-]?\d+")


def escape_xml(text: Optional[str]) -> str:
    """Replace ``& < > " '`` with their named entities."""
    if not text:
        return ""
    text = str(text)
    for raw, entity in _ESCAPES:
        text = text.replace(raw, entity)
    return text


def unescape_xml(text: Optional[str]) -> str:
    """Reverse ``escape_xml`` for a single level of escaping."""
    if not text:
        return ""
    for raw, entity in reversed(_ESCAPES):
        text = text.replace(entity, raw)
    return text


def unescape_twice(text: Optional[str]) -> str:
    """Decode the double-escaped engine payload back into plain XML."""
    return unescape_xml(unescape_xml(text))


def parse_markup(text: str) -> BeautifulSoup:
    """Tokenize a payload into tag records.

    ``html.parser`` lowercases tag and attribute names, handles self-closing
    tags and decodes entities inside attribute values.
    """
    return BeautifulSoup(text or "", "html.parser", multi_valued_attributes=None)


def get_attr(source: Union[Tag, str, None], name: str) -> str:
    """Return the value of attribute ``name`` or an empty string.

    ``source`` is either a parsed tag or the raw attribute text of a tag.
    The lookup ignores case in both forms.
    """
    if source is None:
        return ""
    if isinstance(source, Tag):
        value = source.attrs.get(name.lower())
        if value is None:
            return ""
        if isinstance(value, list):
            return " ".join(value)
        return str(value)
    match = re.search(rf'(?:^|\s){re.escape(name)}\s*=\s*"([^"]*)"', source, re.IGNORECASE)
    return match.group(1) if match else ""


def first_attr(source: Union[Tag, str, None], *names: str) -> str:
    """Return the first non-empty value among several attribute spellings."""
    for name in names:
        value = get_attr(source, name)
        if value:
            return value
    return ""


def parse_number(value, default: float = 0.0) -> float:
    """Parse the leading number of ``value``.

    Trailing text such as ``%`` is ignored, as are thousands separators.
    Anything unparsable, or a parsed zero, yields ``default``.
    """
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value) if value == value and value else default
    if not value:
        return default
    match = _NUMBER_PREFIX.match(str(value).replace(",", ""))
    if not match:
        logger.debug(f"Unparsable number {value!r}, using {default}")
        return default
    number = float(match.group(0))
    return number if number else default


def parse_int(value, default: int = 0) -> int:
    """Integer counterpart of ``parse_number``; decimals are truncated."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value) if value else default
    if not value:
        return default
    match = _INT_PREFIX.match(str(value).replace(",", ""))
    if not match:
        logger.debug(f"Unparsable integer {value!r}, using {default}")
        return default
    number = int(match.group(0))
    return number if number else default


def parse_percent(value) -> float:
    """Parse a percent-formatted attribute such as ``"0.500%"`` into ``0.5``."""
    return parse_number(str(value or "0").replace("%", ""))


def first_number(source: Union[Tag, str, None], *names: str) -> float:
    """Return the first non-zero number among several attribute spellings."""
    for name in names:
        number = parse_number(get_attr(source, name))
        if number:
            return number
    return 0.0
