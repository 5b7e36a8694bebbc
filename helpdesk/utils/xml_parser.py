"""
Structured-response parser for the legacy SOAP backend

Regex-based extraction over the raw document. The backend returns loosely
namespaced envelopes, so elements are matched by local tag name and opening
tags may carry attributes. Nothing here raises on malformed input; missing
elements come back as None or an empty list.
"""
import html
import re
from typing import List, Optional

FAULT_TAGS = ("faultstring", "error")


def _tag_pattern(tag: str) -> str:
    # Optional namespace prefix, attributes allowed on the opening tag
    escaped = re.escape(tag)
    return rf"<(?:[\w.-]+:)?{escaped}(?:\s[^>]*)?>"


def _close_pattern(tag: str) -> str:
    return rf"</(?:[\w.-]+:)?{re.escape(tag)}\s*>"


def parse_xml_value(document: Optional[str], tag: str) -> Optional[str]:
    """
    Extract the inner text of the first element named ``tag``.

    Args:
        document: Raw XML document
        tag: Element name (case-insensitive, namespace prefix ignored)

    Returns:
        Stripped inner text, or None when the element is absent or has
        nested markup
    """
    if not document:
        return None

    match = re.search(
        _tag_pattern(tag) + r"([^<]*)" + _close_pattern(tag),
        document,
        re.IGNORECASE,
    )
    return match.group(1).strip() if match else None


def parse_xml_array(document: Optional[str], container_tag: str, item_tag: str) -> List[str]:
    """
    Extract the raw inner markup of every ``item_tag`` record found inside
    ``container_tag`` elements, in document order.

    Falls back to scanning the whole document when no container is present,
    since some operations return records directly under the body.
    """
    if not document:
        return []

    containers = re.findall(
        _tag_pattern(container_tag) + r"([\s\S]*?)" + _close_pattern(container_tag),
        document,
        re.IGNORECASE,
    )
    scopes = containers or [document]

    items: List[str] = []
    item_regex = re.compile(
        _tag_pattern(item_tag) + r"([\s\S]*?)" + _close_pattern(item_tag),
        re.IGNORECASE,
    )
    for scope in scopes:
        items.extend(item_regex.findall(scope))
    return items


def detect_fault(document: Optional[str]) -> Optional[str]:
    """
    Return the fault message when the document carries a SOAP fault or an
    error wrapper, None otherwise.
    """
    if not document:
        return None

    for tag in FAULT_TAGS:
        if re.search(_tag_pattern(tag), document, re.IGNORECASE):
            return parse_xml_value(document, tag) or "Error desconocido"
    return None


def detect_business_error(
    document: Optional[str],
    code_tag: str = "codigoError",
    message_tag: str = "descripcionError",
) -> Optional[str]:
    """
    Return the human-readable message for a non-zero business error code.

    A missing code, or a code of "0", means the call succeeded.
    """
    code = parse_xml_value(document, code_tag)
    if code is None or code == "" or code.strip() == "0":
        return None
    return parse_xml_value(document, message_tag) or "Error desconocido"


def unescape_entities(value: Optional[str]) -> str:
    """Decode XML entities (&lt; &gt; &amp; ...) in an extracted value"""
    if not value:
        return ""
    return html.unescape(value)


def parse_float(value: Optional[str], default: float = 0.0) -> float:
    """Lenient float conversion for numeric fields"""
    if value is None:
        return default
    try:
        return float(value.replace(",", ""))
    except ValueError:
        return default
