"""Source-location resolution for rendered text, attributes and images."""

from .context import BuildContext
from .parser import ParsedFile, get_parsed_file
from .resolver import SourceResolver
from .search_index import SearchIndex
from .text import normalize_text

__all__ = [
    "BuildContext",
    "ParsedFile",
    "SearchIndex",
    "SourceResolver",
    "get_parsed_file",
    "normalize_text",
]
