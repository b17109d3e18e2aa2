"""
JSON and XML helpers for request and response bodies.

Request bodies are produced incrementally (``iter_json``, ``iter_xml``) so the
encoder can run in its own task and feed the transport chunk by chunk.
Response bodies are decoded in one go (``decode_json``, ``decode_xml``).

XML values are either lxml elements/trees or a plain-data mapping with a single
root key:

    {"payload": {"@id": "1", "message": "hi", "tag": ["a", "b"]}}

encodes as ``<payload id="1"><message>hi</message><tag>a</tag><tag>b</tag></payload>``.
Mapping keys starting with ``@`` are attributes, ``#text`` is the element
text, lists repeat the element and ``None`` leaves it empty.
"""
import io
import json
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from lxml import etree

from requestkit.errors import DecodeError
from requestkit.settings import BODY_SETTINGS


def _chunked(pieces: Iterable[bytes], size: int) -> Iterator[bytes]:
    buf = bytearray()
    for piece in pieces:
        buf += piece
        if len(buf) >= size:
            yield bytes(buf)
            buf.clear()
    if buf:
        yield bytes(buf)


# --------------------------------------------------------------------------- #
# JSON
# --------------------------------------------------------------------------- #
def iter_json(value: Any) -> Iterator[bytes]:
    """Yield the compact JSON encoding of ``value`` as UTF-8 chunks.

    Encoding is lazy: a value that cannot be serialized raises ``TypeError``
    (or ``ValueError`` for circular references) only once the generator
    reaches it, after the preceding chunks were already produced.
    """
    encoder = json.JSONEncoder(
        separators=tuple(BODY_SETTINGS.json.separators),
        ensure_ascii=BODY_SETTINGS.json.ensure_ascii,
    )
    pieces = (piece.encode("utf-8") for piece in encoder.iterencode(value))
    yield from _chunked(pieces, BODY_SETTINGS.chunk_size)


def decode_json(data: bytes) -> Any:
    try:
        return json.loads(data)
    except ValueError as exc:
        raise DecodeError(f"unmarshal JSON: {exc}") from exc


# --------------------------------------------------------------------------- #
# XML
# --------------------------------------------------------------------------- #
def _text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _fill(elem: etree._Element, content: Any) -> None:
    if content is None:
        return
    if isinstance(content, Mapping):
        for key, child in content.items():
            if key.startswith("@"):
                elem.set(key[1:], _text(child))
            elif key == "#text":
                elem.text = _text(child)
            elif isinstance(child, (list, tuple)):
                for item in child:
                    _fill(etree.SubElement(elem, key), item)
            else:
                _fill(etree.SubElement(elem, key), child)
        return
    if isinstance(content, (list, tuple)):
        raise TypeError(f"cannot encode a list directly inside <{elem.tag}>; wrap items in a tag")
    elem.text = _text(content)


def to_element(value: Any) -> etree._Element:
    """Return the root element for an XML request body value."""
    if isinstance(value, etree._ElementTree):
        return value.getroot()
    if isinstance(value, etree._Element):
        return value
    if isinstance(value, Mapping) and len(value) == 1:
        (tag, content), = value.items()
        root = etree.Element(tag)
        _fill(root, content)
        return root
    raise TypeError(
        f"cannot encode {type(value).__name__} as XML; "
        "expected an lxml element or a mapping with a single root key"
    )


def _content(elem: etree._Element) -> Any:
    children = [c for c in elem if isinstance(c.tag, str)]  # skip comments/PIs
    if not children and not elem.attrib:
        return elem.text

    data: dict[str, Any] = {f"@{k}": v for k, v in elem.attrib.items()}
    if elem.text and elem.text.strip():
        data["#text"] = elem.text

    repeated = set()
    for child in children:
        value = _content(child)
        if child.tag not in data:
            data[child.tag] = value
        elif child.tag in repeated:
            data[child.tag].append(value)
        else:
            data[child.tag] = [data[child.tag], value]
            repeated.add(child.tag)
    return data


def element_to_data(elem: etree._Element) -> dict[str, Any]:
    """Convert an element into the plain-data mapping accepted by ``to_element``.

    Leaf values come back as strings; numbers and booleans are not restored.
    """
    return {elem.tag: _content(elem)}


def _drain(buf: io.BytesIO) -> bytes:
    chunk = buf.getvalue()
    buf.seek(0)
    buf.truncate()
    return chunk


def iter_xml(value: Any) -> Iterator[bytes]:
    """Yield the XML encoding of ``value``, one chunk per top-level child element.

    No XML declaration is written; the encoding is UTF-8.
    """
    root = to_element(value)
    buf = io.BytesIO()
    with etree.xmlfile(buf, encoding="utf-8") as xf:
        with xf.element(root.tag, attrib=dict(root.attrib), nsmap=root.nsmap):
            if root.text:
                xf.write(root.text)
            for child in root:
                xf.write(child)
                xf.flush()
                chunk = _drain(buf)
                if chunk:
                    yield chunk
    chunk = _drain(buf)
    if chunk:
        yield chunk


def decode_xml(data: bytes) -> etree._Element:
    """Parse a response body into its root element.

    Entity resolution and network access are disabled.
    """
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    try:
        return etree.fromstring(data, parser=parser)
    except (etree.XMLSyntaxError, ValueError) as exc:
        raise DecodeError(f"unmarshal XML: {exc}") from exc
