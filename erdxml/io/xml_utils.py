"""
XML helpers shared by the codecs

lxml parsing with MalformedDocument errors, typed attribute readers with defaults,
and the number/boolean text forms used on the wire
"""
import math
import random
import re
import string
import time
from contextlib import contextmanager
from typing import List, Optional, Type, Union

from lxml import etree as ET

from ..errors import MalformedDocument, UnserializableText
from ..logger import ConversionLogger

_ID_ALPHABET = string.digits + string.ascii_lowercase
_XML_DECLARATION_RE = re.compile(r"^\ufeff?\s*<\?xml[^>]*\?>")


def _make_parser() -> ET.XMLParser:
    # No external entities or network access for documents picked by a user
    return ET.XMLParser(resolve_entities=False, no_network=True, remove_comments=True)


def parse_xml(text: Union[str, bytes]) -> ET._Element:
    """
    Parse XML text and return the root element

    ``str`` input is already decoded, so its XML declaration (which may name another
    encoding) is dropped before parsing. ``bytes`` are passed through and decoded by
    lxml according to their declaration.

    Raises:
        MalformedDocument: When the text is not well-formed XML
    """
    if text is None or not text.strip():
        raise MalformedDocument("Invalid XML format", "document is empty")
    if isinstance(text, str):
        data = _XML_DECLARATION_RE.sub("", text, count=1).encode("utf-8")
    else:
        data = text
    try:
        return ET.fromstring(data, parser=_make_parser())
    except ET.XMLSyntaxError as e:
        raise MalformedDocument("Invalid XML format", str(e)) from e


def local_tag(element: ET._Element) -> str:
    """Tag name without namespace"""
    tag = element.tag
    if not isinstance(tag, str):
        return ""
    return ET.QName(tag).localname


def children(element: ET._Element, *tags: str) -> List[ET._Element]:
    """Direct child elements whose tag is one of ``tags`` (all element children if none given)"""
    result = []
    for child in element:
        if not isinstance(child.tag, str):
            continue
        if not tags or local_tag(child) in tags:
            result.append(child)
    return result


def first_child(element: ET._Element, *tags: str) -> Optional[ET._Element]:
    found = children(element, *tags)
    return found[0] if found else None


def get_str(element: ET._Element, name: str, default: Optional[str] = None) -> Optional[str]:
    """Attribute value; empty strings count as absent"""
    value = element.get(name)
    if value is None or value == "":
        return default
    return value


def get_float(element: ET._Element, name: str, default: Optional[float] = None) -> Optional[float]:
    """Attribute as float, ``default`` when absent or not a finite number"""
    value = element.get(name)
    if value is None or not value.strip():
        return default
    try:
        number = float(value)
    except ValueError:
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def get_bool(element: ET._Element, name: str) -> bool:
    """Attribute equals the literal 'true'"""
    return (element.get(name) or "").strip() == "true"


def get_enum(
    element: ET._Element,
    name: str,
    enum_cls: Type,
    default,
    logger: Optional[ConversionLogger] = None,
    element_id: Optional[str] = None,
):
    """
    Attribute as a member of ``enum_cls``

    Unknown strings fall back to ``default`` and are reported to ``logger``.
    """
    raw = element.get(name)
    if raw is None or raw == "":
        return default
    value = enum_cls.parse(raw)
    if value is None:
        if logger:
            logger.warn_invalid_value(element_id, name, raw, default.value)
        return default
    return value


def format_number(value: float) -> str:
    """Shortest text form of a number: 100.0 -> '100', 100.5 -> '100.5'"""
    if isinstance(value, bool):
        value = int(value)
    if isinstance(value, int):
        return str(value)
    value = float(value)
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def format_bool(value: bool) -> str:
    return "true" if value else "false"


def format_points(points: List[float]) -> str:
    return ",".join(format_number(p) for p in points)


def parse_points(text: Optional[str]) -> List[float]:
    """Comma-separated numbers; empty and non-numeric tokens are skipped"""
    points: List[float] = []
    if not text:
        return points
    for token in text.split(","):
        token = token.strip()
        if not token:
            continue
        try:
            number = float(token)
        except ValueError:
            continue
        if math.isnan(number) or math.isinf(number):
            continue
        points.append(number)
    return points


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward +infinity"""
    return int(math.floor(value + 0.5))


def generate_id() -> str:
    """Millisecond timestamp plus a 9 character base36 random suffix"""
    suffix = "".join(random.choice(_ID_ALPHABET) for _ in range(9))
    return f"{int(time.time() * 1000)}-{suffix}"


XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'


def to_text(root: ET._Element, pretty_print: bool = True) -> str:
    """Serialize a document with an XML declaration"""
    # lxml writes its own declaration with single quotes; keep the double-quoted form
    # that the desktop application writes
    body = ET.tostring(root, encoding="unicode", pretty_print=pretty_print)
    return f"{XML_DECLARATION}\n{body}"


@contextmanager
def xml_text_guard():
    """Report strings lxml refuses to store (control characters) as UnserializableText"""
    try:
        yield
    except ValueError as e:
        if "XML compatible" not in str(e):
            raise
        raise UnserializableText(str(e)) from e
