"""
CMR Metadata Rewriter.

Rewrites file URLs embedded in a granule's CMR metadata after its files
have moved. Two formats are supported behind one "related URL" view:

    ECHO10 XML: every <URL> element, which covers
        OnlineAccessURLs/OnlineAccessURL/URL,
        OnlineResources/OnlineResource/URL and
        AssociatedBrowseImageUrls/ProviderBrowseUrl/URL
    UMM-G JSON: RelatedUrls[].URL

Only URLs present as keys of the old -> new mapping change. A document
in which nothing matches is returned as the exact input bytes, so a
second pass with the same mapping is a no-op.

Exports:
    MetadataRewriter: rewrite bytes, or a metadata object in place
    MetadataDocument, Echo10Document, UmmgDocument, RelatedUrl
    detect_metadata_format: file name / content -> MetadataFormat
"""

import json
import re
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Tuple
from xml.sax.saxutils import escape, unescape

from core.models import GranuleFile, MetadataFormat
from exceptions import ValidationError
from interfaces.repository import IObjectStore
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "MetadataRewriter")


_QUOTE_ENTITIES = {"&quot;": "\"", "&apos;": "'"}

_CONTENT_TYPES = {
    MetadataFormat.ECHO10_XML: "application/xml",
    MetadataFormat.UMMG_JSON: "application/json",
}


def detect_metadata_format(file_name: Optional[str] = None, data: Optional[bytes] = None) -> MetadataFormat:
    """
    Decide the metadata format from the file extension, else the content.

    Raises:
        ValidationError: Neither the name nor the content identify a format
    """
    if file_name:
        lowered = file_name.lower()
        if lowered.endswith(".xml"):
            return MetadataFormat.ECHO10_XML
        if lowered.endswith(".json"):
            return MetadataFormat.UMMG_JSON
    if data:
        head = data.lstrip()[:1]
        if head == b"<":
            return MetadataFormat.ECHO10_XML
        if head in (b"{", b"["):
            return MetadataFormat.UMMG_JSON
    raise ValidationError(f"Cannot determine metadata format of {file_name or 'document'}")


class RelatedUrl:
    """One URL entry inside a metadata document."""

    __slots__ = ("url", "_apply")

    def __init__(self, url: str, apply: Callable[[str], None]):
        self.url = url
        self._apply = apply

    def set(self, new_url: str) -> None:
        self._apply(new_url)
        self.url = new_url


class MetadataDocument(ABC):
    """Parsed metadata exposing its related URLs."""

    format: MetadataFormat

    @abstractmethod
    def related_urls(self) -> List[RelatedUrl]:
        pass

    @abstractmethod
    def serialize(self) -> bytes:
        pass

    @staticmethod
    def parse(data: bytes, metadata_format: MetadataFormat) -> "MetadataDocument":
        if metadata_format == MetadataFormat.ECHO10_XML:
            return Echo10Document(data)
        return UmmgDocument(data)


# <URL> / <prefix:URL> text content; URLDescription and friends do not match
_URL_ELEMENT = re.compile(
    r"<(?:[\w.-]+:)?URL(?:\s[^>]*)?>(\s*)([^<]*?)(\s*)</(?:[\w.-]+:)?URL\s*>"
)


class Echo10Document(MetadataDocument):
    """
    ECHO10 XML edited as text.

    ElementTree only validates the document; URL text is replaced in
    place so prefixes, comments and the declaration keep their exact
    bytes.
    """

    format = MetadataFormat.ECHO10_XML

    def __init__(self, data: bytes):
        try:
            ET.fromstring(data)
            self._text = data.decode("utf-8")
        except (ET.ParseError, UnicodeDecodeError) as e:
            raise ValidationError(f"Invalid ECHO10 XML metadata: {e}") from e
        self._replacements: Dict[Tuple[int, int], str] = {}

    def related_urls(self) -> List[RelatedUrl]:
        urls = []
        for match in _URL_ELEMENT.finditer(self._text):
            if not match.group(2):
                continue
            urls.append(RelatedUrl(
                unescape(match.group(2), _QUOTE_ENTITIES),
                lambda value, span=match.span(2): self._replacements.__setitem__(
                    span, escape(value)
                )
            ))
        return urls

    def serialize(self) -> bytes:
        parts = []
        position = 0
        for (start, end), value in sorted(self._replacements.items()):
            parts.append(self._text[position:start])
            parts.append(value)
            position = end
        parts.append(self._text[position:])
        return "".join(parts).encode("utf-8")


class UmmgDocument(MetadataDocument):
    format = MetadataFormat.UMMG_JSON

    def __init__(self, data: bytes):
        try:
            self._doc = json.loads(data)
        except ValueError as e:
            raise ValidationError(f"Invalid UMM-G JSON metadata: {e}") from e
        if not isinstance(self._doc, dict):
            raise ValidationError("Invalid UMM-G JSON metadata: top level must be an object")

    def related_urls(self) -> List[RelatedUrl]:
        urls = []
        for entry in self._doc.get("RelatedUrls") or []:
            if isinstance(entry, dict) and isinstance(entry.get("URL"), str):
                urls.append(RelatedUrl(
                    entry["URL"],
                    lambda value, record=entry: record.__setitem__("URL", value)
                ))
        return urls

    def serialize(self) -> bytes:
        return json.dumps(self._doc, indent=2).encode("utf-8")


class MetadataRewriter:
    """
    Format-agnostic URL replacement over MetadataDocument.
    """

    def rewrite(
        self,
        document: bytes,
        url_mapping: Dict[str, str],
        metadata_format: Optional[MetadataFormat] = None,
        file_name: Optional[str] = None
    ) -> bytes:
        """
        Replace every related URL that is a key of url_mapping.

        Args:
            document: Raw metadata
            url_mapping: Old URL -> new URL for moved files only
            metadata_format: Explicit format; sniffed when None
            file_name: Used for sniffing

        Returns:
            Updated document, or the input bytes when nothing matched

        Raises:
            ValidationError: Unknown format or unparseable document
        """
        if not url_mapping:
            return document
        metadata_format = metadata_format or detect_metadata_format(file_name, document)
        parsed = MetadataDocument.parse(document, metadata_format)

        replaced = 0
        for related in parsed.related_urls():
            new_url = url_mapping.get(related.url)
            if new_url is not None and new_url != related.url:
                related.set(new_url)
                replaced += 1

        if not replaced:
            return document
        logger.debug(f"Replaced {replaced} URLs in {file_name or metadata_format.value} metadata")
        return parsed.serialize()

    def rewrite_file(
        self,
        object_store: IObjectStore,
        metadata_file: GranuleFile,
        url_mapping: Dict[str, str]
    ) -> Optional[bytes]:
        """
        Rewrite a metadata object in place (same bucket/key).

        Returns:
            The new document if it changed and was written, else None
        """
        original = object_store.read_object(metadata_file.location)
        metadata_format = detect_metadata_format(metadata_file.file_name, original)
        updated = self.rewrite(original, url_mapping, metadata_format, metadata_file.file_name)
        if updated == original:
            logger.info(f"No moved-file URLs in {metadata_file.location}; left unchanged")
            return None
        object_store.write_object(metadata_file.location, updated, _CONTENT_TYPES[metadata_format])
        logger.info(f"Rewrote file URLs in {metadata_file.location}")
        return updated
