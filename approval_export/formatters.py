"""
Output Formatters for Structured Exports

JSON encoding with canonical timestamps, XML entity escaping and the
mapping-to-markup serializer used by the XML renderer.
"""

import json
import re
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Iterable, List, Mapping
from xml.sax.saxutils import escape

from pydantic import BaseModel


XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'

_XML_ENTITIES = {'"': "&quot;", "'": "&#39;"}

# Characters XML 1.0 does not allow, even as character references
_XML_ILLEGAL = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")
_TAG_INVALID = re.compile(r"[^A-Za-z0-9_.\-]")


def canonical_timestamp(value: datetime) -> str:
    """UTC timestamp with millisecond precision, e.g. 2024-03-01T09:30:00.000Z"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def json_default(value: Any) -> Any:
    """json.dumps fallback for datetimes and models"""
    if isinstance(value, datetime):
        return canonical_timestamp(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, exclude_none=True)
    return str(value)


def escape_xml(value: Any) -> str:
    """Escape & < > " ' for XML text content, dropping characters XML cannot carry"""
    if value is None:
        return ""
    return escape(_XML_ILLEGAL.sub("", str(value)), _XML_ENTITIES)


def tag_name(key: Any) -> str:
    """
    Element name for a mapping key.

    Characters outside letters, digits, "_", "." and "-" become "_", and a
    name that would not start with a letter or "_" gets a leading "_".
    """
    name = _TAG_INVALID.sub("_", str(key))
    if not name or not (name[0].isalpha() or name[0] == "_"):
        name = f"_{name}"
    return name


def humanize_key(key: str) -> str:
    """totalRequests -> Total Requests"""
    words = re.sub(r"(?<=[a-z0-9])([A-Z])", r" \1", key).replace("_", " ").split()
    return " ".join(word[:1].upper() + word[1:] for word in words)


class JSONFormatter:
    """Format export payloads as JSON"""

    def __init__(self, indent: int = 2):
        """
        Args:
            indent: Indentation level for pretty printing
        """
        self.indent = indent

    def format(self, data: Any) -> str:
        """Format data as JSON"""
        return json.dumps(data, indent=self.indent, default=json_default, ensure_ascii=False)


class NodeKind(Enum):
    """Shape of a value in the markup walk"""
    NULL = "null"
    SCALAR = "scalar"
    SEQUENCE = "sequence"
    MAPPING = "mapping"


def classify(value: Any) -> NodeKind:
    if value is None:
        return NodeKind.NULL
    if isinstance(value, (Mapping, BaseModel)):
        return NodeKind.MAPPING
    if isinstance(value, (list, tuple)):
        return NodeKind.SEQUENCE
    return NodeKind.SCALAR


class XMLFormatter:
    """
    Serialize nested mappings into XML elements.

    Mappings become nested tags keyed by field name, sequences become a
    wrapper tag holding one <item> per element, None becomes a self-closing
    tag, and scalar text is entity-escaped.

    Example:
        XMLFormatter().element("request", {"id": "R1", "tags": ["a", "b"]})
        # '<request><id>R1</id><tags><item>a</item><item>b</item></tags></request>'
    """

    item_tag = "item"

    def element(self, tag: str, value: Any) -> str:
        kind = classify(value)

        if kind is NodeKind.NULL:
            return f"<{tag}/>"

        if kind is NodeKind.SCALAR:
            return f"<{tag}>{escape_xml(self.scalar_text(value))}</{tag}>"

        if kind is NodeKind.SEQUENCE:
            children = "".join(self.element(self.item_tag, item) for item in value)
            return f"<{tag}>{children}</{tag}>"

        if isinstance(value, BaseModel):
            value = value.model_dump(by_alias=True, exclude_none=True)
        children = "".join(self.element(tag_name(key), child) for key, child in value.items())
        return f"<{tag}>{children}</{tag}>"

    def scalar_text(self, value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, datetime):
            return canonical_timestamp(value)
        if isinstance(value, date):
            return value.isoformat()
        if isinstance(value, Enum):
            return str(value.value)
        return str(value)

    def document(self, root_tag: str, item_tag: str, items: Iterable[Any]) -> str:
        """Full XML document: declaration, root element, one element per item"""
        lines: List[str] = [XML_DECLARATION, f"<{root_tag}>"]
        lines.extend(self.element(item_tag, item) for item in items)
        lines.append(f"</{root_tag}>")
        return "\n".join(lines)
