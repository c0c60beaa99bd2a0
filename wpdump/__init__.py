"""wpdump -- stream MediaWiki XML dumps into JSON lines or TSV extracts."""

from .config import APP_VERSION as __version__

__all__ = ["__version__"]
