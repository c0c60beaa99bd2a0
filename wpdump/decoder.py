import bz2
import gzip
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator

from . import config

logger = logging.getLogger(__name__)


@dataclass
class Page:
    """One <page> record of a MediaWiki dump."""

    title: str = ""
    redirect_title: str = ""
    text: str = ""
    canonical_title: str = ""


def open_dump(path) -> BinaryIO:
    """Open a plain, gzip or bzip2 compressed dump as a binary stream."""
    path = Path(path)
    kind = config.COMPRESSED_SUFFIXES.get(path.suffix.lower())
    if kind == "gzip":
        return gzip.open(path, "rb")
    if kind == "bz2":
        return bz2.open(path, "rb")
    return open(path, "rb")


def _local_name(tag):
    # Real dumps put every element in the export namespace: {http://...}page
    if isinstance(tag, str) and tag.startswith("{"):
        return tag.rsplit("}", 1)[1]
    return tag


def _child(elem, name):
    for child in elem:
        if _local_name(child.tag) == name:
            return child
    return None


def _page_from_element(elem) -> Page:
    page = Page()
    title = _child(elem, "title")
    if title is not None:
        page.title = title.text or ""
    redirect = _child(elem, "redirect")
    if redirect is not None:
        page.redirect_title = redirect.get("title", "")
    revision = _child(elem, "revision")
    if revision is not None:
        text = _child(revision, "text")
        if text is not None:
            page.text = text.text or ""
    return page


def iter_pages(stream: BinaryIO) -> Iterator[Page]:
    """
    Yield pages from a dump stream in document order.

    Only the page being decoded is kept in memory: every finished <page>
    element is cleared and dropped from its parent. Pages nested inside
    another page are not treated as records of their own. Invalid or
    truncated markup ends the sequence after the last complete page.
    """
    parents = []
    depth = 0
    try:
        for event, elem in ET.iterparse(stream, events=("start", "end")):
            is_page = _local_name(elem.tag) == config.PAGE_TAG
            if event == "start":
                if is_page:
                    depth += 1
                if depth == 0:
                    parents.append(elem)
                continue

            if is_page:
                depth -= 1
                if depth == 0:
                    yield _page_from_element(elem)
                    elem.clear()
                    if parents:
                        parents[-1].remove(elem)
                continue
            if depth == 0 and parents:
                parents.pop()
                elem.clear()
    except (ET.ParseError, EOFError) as exc:
        # EOFError comes from truncated gzip/bz2 streams
        logger.warning("[!] Malformed dump, stopping after the last complete page: %s", exc)
