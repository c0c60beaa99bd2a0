"""
Per-page extraction strategies.

Exactly one strategy runs per invocation. Each one receives a decoded page,
decides through the shared PageFilter whether the page is a content page,
and turns it into zero or more output lines.
"""

import enum
import re
from typing import List, Optional

import ijson

from .errors import ConfigurationError, RecordError
from .serialize import dumps, page_record, parse_content
from .titles import PageFilter, canonicalize_title


class Mode(enum.Enum):
    VANILLA = "vanilla"
    WIKIDATA = "wikidata"
    CATEGORY = "category"
    AUTHORITY = "authority"


class Strategy:
    """Base class; subclasses implement extract()."""

    mode: Mode

    def __init__(self, page_filter: Optional[PageFilter] = None) -> None:
        self.page_filter = page_filter or PageFilter()

    def process(self, page) -> List[str]:
        page.canonical_title = canonicalize_title(page.title)
        if not self.page_filter.is_eligible(page.canonical_title, page.redirect_title, page.title):
            return []
        return self.extract(page)

    def extract(self, page) -> List[str]:
        raise NotImplementedError


class CategoryStrategy(Strategy):
    """Emit one `title<TAB>category` line per [[<marker>:...]] link."""

    mode = Mode.CATEGORY

    def __init__(self, marker: str, page_filter: Optional[PageFilter] = None) -> None:
        super().__init__(page_filter)
        self.marker = marker
        self.pattern = re.compile(r"\[\[" + re.escape(marker) + r":([^\[]+)\]\]")

    def extract(self, page) -> List[str]:
        lines = []
        for match in self.pattern.finditer(page.text):
            # Drop the sort key / display label after the first pipe
            category = match.group(1).strip().split("|", 1)[0]
            lines.append(f"{page.title}\t{category}")
        return lines


class AuthorityStrategy(Strategy):
    """Emit the first {{<marker>...}} template of a page, tabs removed."""

    mode = Mode.AUTHORITY

    def __init__(self, marker: str, page_filter: Optional[PageFilter] = None) -> None:
        super().__init__(page_filter)
        self.marker = marker
        self.pattern = re.compile(
            r"\{\{" + re.escape(marker) + r"[^}]*\}\}",
            re.IGNORECASE | re.MULTILINE,
        )

    def extract(self, page) -> List[str]:
        match = self.pattern.search(page.text)
        if match is None:
            return []
        template = match.group(0).replace("\t", "")
        return [f"{page.title}\t{template}"]


def _to_line(record, title) -> str:
    """Serialize one output record; a value JSON cannot carry fails only this page."""
    try:
        return dumps(record)
    except (TypeError, ValueError) as exc:
        raise RecordError("SERIALIZATION", "Cannot serialize page.", {"title": title, "error": str(exc)})


class WikidataStrategy(Strategy):
    """Emit the page with its body decoded from JSON into a nested value."""

    mode = Mode.WIKIDATA

    def extract(self, page) -> List[str]:
        try:
            content = parse_content(page.text)
        except ijson.JSONError as exc:
            raise RecordError("INVALID_JSON", "Page text is not valid JSON.", {"title": page.title, "error": str(exc)})
        return [_to_line(page_record(page, "content", content), page.title)]


class VanillaStrategy(Strategy):
    """Emit the page as-is, raw body included."""

    mode = Mode.VANILLA

    def extract(self, page) -> List[str]:
        return [_to_line(page_record(page, "text", page.text), page.title)]


def select_mode(categories: Optional[str] = None, authority: Optional[str] = None, decode: bool = False) -> Mode:
    """Map the mutually exclusive strategy options onto a single Mode."""
    chosen = [name for name, flag in (("categories", categories), ("authority", authority), ("decode", decode)) if flag]
    if len(chosen) > 1:
        raise ConfigurationError(f"Options are mutually exclusive: {', '.join(chosen)}")
    if categories:
        return Mode.CATEGORY
    if authority:
        return Mode.AUTHORITY
    if decode:
        return Mode.WIKIDATA
    return Mode.VANILLA


def build_strategy(mode: Mode, marker: Optional[str] = None, page_filter: Optional[PageFilter] = None) -> Strategy:
    """Build the one strategy instance shared by every worker of a run."""
    if mode is Mode.CATEGORY:
        if not marker:
            raise ConfigurationError("Category extraction needs a marker, e.g. Category.")
        return CategoryStrategy(marker, page_filter)
    if mode is Mode.AUTHORITY:
        if not marker:
            raise ConfigurationError("Authority data extraction needs a marker, e.g. Authority control.")
        return AuthorityStrategy(marker, page_filter)
    if mode is Mode.WIKIDATA:
        return WikidataStrategy(page_filter)
    if mode is Mode.VANILLA:
        return VanillaStrategy(page_filter)
    raise ConfigurationError(f"Unknown mode: {mode!r}")
