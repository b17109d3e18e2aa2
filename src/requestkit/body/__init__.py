from typing import Any

from requestkit.body.pipe import BodyPipe
from requestkit.body.stream import EncodedBody
from requestkit.codec import iter_json, iter_xml


def json_body(value: Any) -> EncodedBody:
    return EncodedBody(iter_json, value, fmt="JSON")


def xml_body(value: Any) -> EncodedBody:
    return EncodedBody(iter_xml, value, fmt="XML")


__all__ = [
    'BodyPipe',
    'EncodedBody',
    'json_body',
    'xml_body',
]
