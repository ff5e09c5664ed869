"""Parses sitemap content as an XML urlset, an XML sitemapindex, or a plain-text URL list."""

from __future__ import annotations

import logging
from xml.etree.ElementTree import Element, ParseError as XMLParseError

from defusedxml import DefusedXmlException
from defusedxml.ElementTree import fromstring

from sitemap_seo.errors import ParseError

from .models import ParsedSitemap, SitemapKind

logger = logging.getLogger(__name__)

EMPTY = ParsedSitemap()


def _local_name(tag: str) -> str:
    """Strip an ``{namespace}`` prefix from an element tag."""
    return tag.rsplit("}", 1)[-1]


def _child_locs(root: Element, entry_name: str) -> tuple[str, ...]:
    """Collect non-empty ``<loc>`` text from each direct ``entry_name`` child, in document order."""
    locs: list[str] = []
    for entry in root:
        if not isinstance(entry.tag, str) or _local_name(entry.tag) != entry_name:
            continue
        for node in entry:
            if isinstance(node.tag, str) and _local_name(node.tag) == "loc":
                text = (node.text or "").strip()
                if text:
                    locs.append(text)
                break
    return tuple(locs)


def _parse_xml(content: str) -> ParsedSitemap:
    try:
        root = fromstring(content)
    except (XMLParseError, DefusedXmlException, ValueError) as exc:
        raise ParseError(f"not a well-formed XML document: {exc}") from exc

    root_name = _local_name(root.tag)
    if root_name == "urlset":
        urls = _child_locs(root, "url")
        if urls:
            return ParsedSitemap(kind=SitemapKind.SINGLE, urls=urls)
    elif root_name == "sitemapindex":
        children = _child_locs(root, "sitemap")
        if children:
            return ParsedSitemap(kind=SitemapKind.INDEX, child_urls=children)

    raise ParseError(f"unrecognised sitemap root <{root_name}>")


def _parse_text(content: str) -> ParsedSitemap:
    lines = [line.strip() for line in content.splitlines()]
    urls = tuple(line for line in lines if line.startswith("http"))
    if urls:
        return ParsedSitemap(kind=SitemapKind.SINGLE, urls=urls)
    return EMPTY


def parse_sitemap(content: str) -> ParsedSitemap:
    """Parse sitemap *content*, falling back to a plain-text URL list.

    Never raises: content that matches no known shape yields an empty result.
    """
    text = content.lstrip("\ufeff").strip()
    if not text:
        return EMPTY

    try:
        return _parse_xml(text)
    except ParseError as exc:
        logger.debug("xml sitemap parse failed, trying plain text", extra={"reason": str(exc)})

    parsed = _parse_text(text)
    if parsed.is_empty:
        logger.debug("sitemap content matched no known shape", extra={"length": len(content)})
    return parsed
