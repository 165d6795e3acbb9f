"""Trailer index for structured commit history.

Example:
    >>> from trailer_index import build_index, write_index, index_path, load_index
    >>>
    >>> index = build_index(repo_root)
    >>> write_index(index, index_path(repo_root))
    >>> fresh = load_index(repo_root)  # None unless built against current HEAD
"""

from .store import (
    Freshness,
    TrailerIndex,
    build_index,
    check_freshness,
    index_path,
    load_index,
    read_index_file,
    write_index,
)

__all__ = [
    "Freshness",
    "TrailerIndex",
    "build_index",
    "check_freshness",
    "index_path",
    "load_index",
    "read_index_file",
    "write_index",
]
