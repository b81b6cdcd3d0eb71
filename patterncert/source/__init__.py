"""
Pattern Source

Loads pattern markdown and sample corpora from disk.
"""

from .loader import (
    InputNotReadableError,
    parse_pattern,
    load_pattern,
    parse_corpus,
    load_corpus,
    dump_corpus,
    find_corpus_for,
    split_sections,
)

__all__ = [
    "InputNotReadableError",
    # Patterns
    "parse_pattern",
    "load_pattern",
    "split_sections",
    # Corpora
    "parse_corpus",
    "load_corpus",
    "dump_corpus",
    "find_corpus_for",
]
