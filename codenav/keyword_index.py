"""Inverted keyword indices over extracted facts, and query tokenization.

Each sub-index maps a lowercased keyword to the file paths that produced
it.  Paths keep first-seen order and are never repeated under one key.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence

from .models import FILE, FUNCTION, MODULE, Node

logger = logging.getLogger(__name__)

STOPWORDS = frozenset({
    "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "has",
    "have", "in", "is", "it", "its", "of", "on", "or", "that", "the", "this",
    "to", "was", "were", "will", "with", "which", "can", "all", "also", "but",
    "been", "into", "only", "some", "such", "than", "then", "them", "they",
    "their", "there", "these", "when", "where", "while", "who", "why",
    "would", "each", "more", "most", "other", "should", "through", "very",
    "about", "after", "any", "before", "being", "between", "both", "could",
    "does", "during", "either", "every", "had", "here", "how", "just",
    "like", "made", "make", "many", "may", "must", "our", "over", "own",
    "same", "so", "still", "take", "too", "under", "up", "used", "using",
    "way", "well", "what", "you", "your", "provides",
})

MIN_TOKEN_LENGTH = 3

_WORD_RE = re.compile(r"[A-Za-z]+")
_QUERY_WORD_RE = re.compile(r"[A-Za-z0-9]+")
_ASSIGNMENT_RE = re.compile(r"^\s*(?:(?:const|let|var)\s+)?(\w+)\s*=(?!=)")
# lower->Upper, and the last capital of an acronym before a capitalised word
_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


class Multimap:
    """Keyword -> ordered, duplicate-free list of paths."""

    def __init__(self) -> None:
        self._data: Dict[str, List[str]] = {}

    def add(self, key: str, path: str) -> None:
        bucket = self._data.setdefault(key.lower(), [])
        if path not in bucket:
            bucket.append(path)

    def get(self, key: str) -> List[str]:
        return list(self._data.get(key.lower(), []))

    def keys(self) -> List[str]:
        return list(self._data)

    def items(self):
        return self._data.items()

    def to_dict(self) -> Dict[str, List[str]]:
        return {key: list(paths) for key, paths in self._data.items()}

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._data

    def __len__(self) -> int:
        return len(self._data)

    def __getitem__(self, key: str) -> List[str]:
        return self._data[key.lower()]


@dataclass
class KeywordIndex:
    by_export: Multimap = field(default_factory=Multimap)
    by_pattern: Multimap = field(default_factory=Multimap)
    by_key_statement: Multimap = field(default_factory=Multimap)
    by_summary_word: Multimap = field(default_factory=Multimap)
    by_error_type: Multimap = field(default_factory=Multimap)
    by_module: Multimap = field(default_factory=Multimap)

    def sub_indices(self) -> Dict[str, Multimap]:
        return {
            "byExport": self.by_export,
            "byPattern": self.by_pattern,
            "byKeyStatement": self.by_key_statement,
            "bySummaryWord": self.by_summary_word,
            "byErrorType": self.by_error_type,
            "byModule": self.by_module,
        }

    def sizes(self) -> Dict[str, int]:
        return {name: len(index) for name, index in self.sub_indices().items()}

    def is_empty(self) -> bool:
        return all(len(index) == 0 for index in self.sub_indices().values())

    def to_dict(self) -> Dict[str, Dict[str, List[str]]]:
        return {name: index.to_dict() for name, index in self.sub_indices().items()}


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------

def split_camel_case(word: str) -> List[str]:
    """``extractFile`` -> ``[extract, File]``; ``parseAPIResponse`` -> ``[parse, API, Response]``.

    All-caps words are kept whole.
    """
    if word == word.upper():
        return [word]
    return [part for part in _CAMEL_BOUNDARY_RE.split(word) if part]


def extract_summary_words(summary: str) -> List[str]:
    if not summary:
        return []
    words = _WORD_RE.findall(summary.lower())
    return [w for w in words if len(w) >= MIN_TOKEN_LENGTH and w not in STOPWORDS]


def extract_keywords_from_statement(text: str) -> List[str]:
    keywords: List[str] = []
    assignment = _ASSIGNMENT_RE.match(text)
    if assignment:
        keywords.append(assignment.group(1))

    for word in _WORD_RE.findall(text):
        for part in split_camel_case(word):
            if len(part) >= MIN_TOKEN_LENGTH:
                keywords.append(part.lower())
    return keywords


def tokenize_query(query: str) -> List[str]:
    """Normalized, stopword-free, deduplicated query tokens in first-seen order.

    Numeric runs are kept as-is so status codes such as ``404`` can match
    the error index.
    """
    if not query:
        return []

    tokens: List[str] = []
    seen = set()
    for word in _QUERY_WORD_RE.findall(query):
        if word.isdigit():
            parts = [word]
        else:
            parts = [
                p.lower() for p in split_camel_case(word)
                if len(p) >= MIN_TOKEN_LENGTH and p.lower() not in STOPWORDS
            ]
        for part in parts:
            if part not in seen:
                seen.add(part)
                tokens.append(part)
    return tokens


# ---------------------------------------------------------------------------
# Index construction
# ---------------------------------------------------------------------------

def _index_name(index: Multimap, name: str, path: str) -> None:
    index.add(name, path)
    for part in split_camel_case(name):
        if len(part) >= MIN_TOKEN_LENGTH:
            index.add(part, path)


def _index_file(index: KeywordIndex, node: Node) -> None:
    path = node.path
    for export in node.exports:
        if export.kind == "star":
            continue
        _index_name(index.by_export, export.name, path)

    for func in node.functions:
        if func.is_exported:
            _index_name(index.by_export, func.name, path)
        for stmt in func.key_statements:
            for keyword in extract_keywords_from_statement(stmt.text):
                index.by_key_statement.add(keyword, path)
        for error_path in func.error_paths:
            if error_path.http_status is not None:
                index.by_error_type.add(str(error_path.http_status), path)

    for pattern in node.patterns:
        index.by_pattern.add(pattern.name, path)

    for word in extract_summary_words(node.summary):
        index.by_summary_word.add(word, path)


def build_keyword_index(nodes: Iterable[Node]) -> KeywordIndex:
    """Single pass over *nodes*; function nodes are skipped, their facts live on the file."""
    index = KeywordIndex()
    for node in nodes:
        if node.node_type == FUNCTION:
            continue
        if node.node_type == MODULE:
            index.by_module.add(node.name, node.path)
        elif node.node_type == FILE:
            _index_file(index, node)

    logger.info("Built keyword index: %s", index.sizes())
    return index


def merge_keyword_indices(parts: Sequence[KeywordIndex]) -> KeywordIndex:
    """Merge shard indices in the given order.

    Shards must be passed in snapshot file order; "first seen wins" then
    holds exactly as for a single sequential build.
    """
    merged = KeywordIndex()
    merged_subs = merged.sub_indices()
    for part in parts:
        for name, sub in part.sub_indices().items():
            target = merged_subs[name]
            for key, paths in sub.items():
                for path in paths:
                    target.add(key, path)
    return merged
