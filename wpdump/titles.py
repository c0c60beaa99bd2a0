from urllib.parse import quote_plus, unquote

from . import config


def canonicalize_title(title):
    """Lowercase, underscore spaces and percent-encode a page title."""
    # MediaWiki titles cannot contain %XX sequences, so unquoting only
    # undoes a previous canonicalization and keeps the transform idempotent
    can = unquote(title).lower()
    can = can.replace(" ", "_")
    return quote_plus(can)


class PageFilter:
    """Decides which pages are content pages worth extracting."""

    def __init__(self, title_contains="", pattern=config.NAMESPACE_PATTERN):
        self.title_contains = title_contains or ""
        self.pattern = pattern

    def is_eligible(self, canonical_title, redirect_title, title=""):
        """Return True for non-redirect pages outside the excluded namespaces."""
        if redirect_title:
            return False
        if self.pattern.match(canonical_title):
            return False
        return self.title_contains in title
