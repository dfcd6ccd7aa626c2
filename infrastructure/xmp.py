"""Read-only access to XMP sidecar files.

A sidecar `<image>.xmp` may carry keywords (`dc:subject`) and the catalogue's
own values (`tg:sha1`, `tg:taken_time`, `tg:rating`) on `rdf:Description`,
either as attributes or as child elements.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
import xml.etree.ElementTree as ET

from loguru import logger

NAMESPACES = {
    "x": "adobe:ns:meta/",
    "dc": "http://purl.org/dc/elements/1.1/",
    "rdf": "http://www.w3.org/1999/02/22-rdf-syntax-ns#",
    "xmp": "http://ns.adobe.com/xap/1.0/",
    "tg": "http://tagger.tommay.net/",
}


def _qname(prefix: str, name: str) -> str:
    return f"{{{NAMESPACES[prefix]}}}{name}"


@dataclass
class XmpSidecar:
    """Values read from one sidecar file."""

    tags: list[str] = field(default_factory=list)
    sha1: str | None = None
    taken_time: str | None = None
    rating: int | None = None

    @classmethod
    def from_root(cls, root: ET.Element) -> XmpSidecar:
        sidecar = cls()
        for li in root.iterfind(".//dc:subject//rdf:li", NAMESPACES):
            text = (li.text or "").strip()
            if text and text not in sidecar.tags:
                sidecar.tags.append(text)

        for desc in root.iterfind(".//rdf:Description", NAMESPACES):
            sidecar.sha1 = sidecar.sha1 or _get_value(desc, "sha1")
            sidecar.taken_time = sidecar.taken_time or _get_value(desc, "taken_time")
            if sidecar.rating is None:
                sidecar.rating = _parse_rating(_get_value(desc, "rating"))
        return sidecar


def _get_value(desc: ET.Element, name: str) -> str | None:
    value = desc.get(_qname("tg", name))
    if value is None:
        child = desc.find(_qname("tg", name))
        value = child.text if child is not None else None
    value = (value or "").strip()
    return value or None


def _parse_rating(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        rating = int(value)
    except ValueError:
        logger.warning("Ignoring non-numeric sidecar rating: {}", value)
        return None
    return rating if 1 <= rating <= 5 else None


def sidecar_path(filename: str) -> str:
    return f"{filename}.xmp"


def read_sidecar(filename: str) -> XmpSidecar | None:
    """Return the sidecar of the image `filename`, or None if it has none.

    A sidecar that cannot be parsed is logged and treated as absent.
    """
    path = sidecar_path(filename)
    if not os.path.exists(path):
        return None
    try:
        return XmpSidecar.from_root(ET.parse(path).getroot())
    except ET.ParseError as ex:
        logger.warning("Unreadable sidecar {}: {}", path, ex)
        return None
