"""Helpers for the vendor XML payloads.

Responses are small flat fragments such as::

    <?xml version="1.0" encoding="UTF-8"?>
    <response><SesInfo>SessionID=abc</SesInfo><TokInfo>def</TokInfo></response>

or an error wrapper::

    <error><code>125003</code><message></message></error>

The firmware is not strict about well-formedness, so values are extracted by
tag name rather than by a full parser.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from functools import cache

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'

_ENTITIES = {
    "&lt;": "<",
    "&gt;": ">",
    "&amp;": "&",
    "&quot;": '"',
    "&apos;": "'",
    "&#39;": "'",
    "&#40;": "(",
    "&#41;": ")",
    "&nbsp;": " ",
}
_ENTITY_RE = re.compile(r"&[a-zA-Z0-9#]+;")
_NUMERIC_ENTITY_RE = re.compile(r"&#(\d+);")
_MAX_CODE_POINT = 0x10FFFF
_ERROR_RE = re.compile(r"<error>", re.IGNORECASE)

_OK_RESPONSES = (
    "<response>OK</response>",
    "<response/>",
    "<response></response>",
)


@cache
def _tag_re(tag: str) -> re.Pattern[str]:
    escaped = re.escape(tag)
    return re.compile(rf"<{escaped}>([\s\S]*?)</{escaped}>")


def _decode_numeric_entity(match: re.Match[str]) -> str:
    code_point = int(match.group(1))
    if code_point > _MAX_CODE_POINT:
        return match.group(0)
    return chr(code_point)


def decode_entities(text: str) -> str:
    """Decode the entities the firmware emits in text values."""
    result = _ENTITY_RE.sub(lambda m: _ENTITIES.get(m.group(0), m.group(0)), text)
    return _NUMERIC_ENTITY_RE.sub(_decode_numeric_entity, result)


def find_xml_value(xml: str, tag: str) -> str | None:
    """Return the decoded text of the first ``tag`` or None if it is absent."""
    if not xml:
        return None
    if (match := _tag_re(tag).search(xml)) is None:
        return None
    return decode_entities(match.group(1).strip())


def parse_xml_value(xml: str, tag: str) -> str:
    """Return the decoded text of the first ``tag``, empty if it is absent."""
    return find_xml_value(xml, tag) or ""


def has_error(xml: str) -> bool:
    """Return True if the body carries an ``<error>`` wrapper."""
    return bool(xml) and _ERROR_RE.search(xml) is not None


def parse_error_code(xml: str) -> str | None:
    """Return the vendor error code of an error body."""
    if not has_error(xml):
        return None
    return find_xml_value(xml, "code")


def is_ok_response(xml: str) -> bool:
    """Return True if the body is one of the accepted OK markers."""
    if not xml:
        return False
    if xml.strip() == "OK":
        return True
    compact = re.sub(r">\s+<", "><", xml)
    return any(ok in compact for ok in _OK_RESPONSES)


def escape_text(value: str) -> str:
    """Escape a text value for inclusion in a request element."""
    return value.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def build_request(fields: Mapping[str, object]) -> str:
    """Build a request envelope from an ordered mapping of element values.

    Nested mappings become nested elements, None values become empty elements.
    """
    return f"{XML_DECLARATION}<request>{_build_elements(fields)}</request>"


def _build_elements(fields: Mapping[str, object]) -> str:
    parts = []
    for tag, value in fields.items():
        if isinstance(value, Mapping):
            inner = _build_elements(value)
        elif value is None:
            inner = ""
        elif isinstance(value, bool):
            inner = "1" if value else "0"
        else:
            inner = escape_text(str(value))
        parts.append(f"<{tag}>{inner}</{tag}>")
    return "".join(parts)
