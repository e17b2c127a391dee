"""Keyword pre-filter: score files against a query and keep the best few."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .config import HIGH_FAN_IN_THRESHOLD, MAX_CANDIDATES
from .keyword_index import KeywordIndex, tokenize_query
from .models import FILE, IMPORTS, MODULE, PARENT, Node

logger = logging.getLogger(__name__)

# Per-hit weights: exports, then pattern, error-code and module hits, then
# key statements, with summary words lowest
EXPORT_SCORE = 10
PATTERN_SCORE = 8
ERROR_SCORE = 7
MODULE_SCORE = 7
KEY_STATEMENT_SCORE = 5
SUMMARY_SCORE = 3
PARENT_SCORE = 1
HIGH_FAN_IN_SCORE = 1

PARENT_REASON = "parent of matched file"
HIGH_FAN_IN_REASON = "high fanIn"


@dataclass
class PreFilterCandidate:
    path: str
    score: float = 0
    match_reasons: List[str] = field(default_factory=list)
    is_high_fan_in: bool = False
    is_module: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {
            "path": self.path,
            "score": self.score,
            "matchReasons": list(self.match_reasons),
            "isHighFanIn": self.is_high_fan_in,
            "isModule": self.is_module,
        }


class _CandidateSet:
    """Path -> candidate, accumulating score and distinct reasons."""

    def __init__(self) -> None:
        self.by_path: Dict[str, PreFilterCandidate] = {}

    def add(self, path: str, score: float, reason: str, is_module: bool = False) -> PreFilterCandidate:
        candidate = self.by_path.get(path)
        if candidate is None:
            candidate = PreFilterCandidate(path=path, score=score, match_reasons=[reason], is_module=is_module)
            self.by_path[path] = candidate
            return candidate
        candidate.score += score
        if reason not in candidate.match_reasons:
            candidate.match_reasons.append(reason)
        return candidate


def _score_tokens(candidates: _CandidateSet, tokens: Sequence[str], index: KeywordIndex) -> None:
    lookups = (
        (index.by_export, EXPORT_SCORE, "export", False),
        (index.by_pattern, PATTERN_SCORE, "pattern", False),
        (index.by_error_type, ERROR_SCORE, "error", False),
        (index.by_key_statement, KEY_STATEMENT_SCORE, "keyStatement", False),
        (index.by_summary_word, SUMMARY_SCORE, "summary", False),
        (index.by_module, MODULE_SCORE, "module", True),
    )
    for token in tokens:
        for sub_index, score, label, is_module in lookups:
            for path in sub_index.get(token):
                candidates.add(path, score, f"{label}: {token}", is_module)


def _add_parent_modules(candidates: _CandidateSet, by_path: Dict[str, Node], by_id: Dict[str, Node]) -> None:
    for path, candidate in list(candidates.by_path.items()):
        if candidate.is_module:
            continue
        node = by_path.get(path)
        if node is None:
            continue
        parent_edge = next(iter(node.edges_of(PARENT)), None)
        if parent_edge is None:
            continue
        parent = by_id.get(parent_edge.target)
        parent_path = parent.path if parent is not None else parent_edge.target
        if parent_path not in candidates.by_path:
            candidates.add(parent_path, PARENT_SCORE, PARENT_REASON, is_module=True)


def _add_high_fan_in(candidates: _CandidateSet, nodes: Sequence[Node], threshold: int) -> None:
    central = [n for n in nodes if n.node_type == FILE and n.fan_in > threshold]
    # equal final scores keep this order, most-imported first
    central.sort(key=lambda n: n.fan_in, reverse=True)
    for node in central:
        candidate = candidates.add(node.path, HIGH_FAN_IN_SCORE, HIGH_FAN_IN_REASON)
        candidate.is_high_fan_in = True


def pre_filter(
    query: str,
    index: KeywordIndex,
    nodes: Sequence[Node],
    max_candidates: int = MAX_CANDIDATES,
    high_fan_in_threshold: int = HIGH_FAN_IN_THRESHOLD,
) -> List[PreFilterCandidate]:
    """Rank files for *query*.

    Every keyword hit adds its weight and a ``"<kind>: <token>"`` reason.
    Parent modules of matched files and every file whose fan-in exceeds
    *high_fan_in_threshold* are always included.  The result is sorted by
    score, highest first (ties keep discovery order), and capped at
    *max_candidates*.
    """
    by_path: Dict[str, Node] = {}
    by_id: Dict[str, Node] = {}
    for node in nodes:
        by_path.setdefault(node.path, node)
        by_id[node.node_id] = node

    candidates = _CandidateSet()
    tokens = tokenize_query(query)
    _score_tokens(candidates, tokens, index)
    _add_parent_modules(candidates, by_path, by_id)
    _add_high_fan_in(candidates, nodes, high_fan_in_threshold)

    for candidate in candidates.by_path.values():
        node = by_path.get(candidate.path)
        if node is not None and node.node_type == MODULE:
            candidate.is_module = True

    ranked = sorted(candidates.by_path.values(), key=lambda c: c.score, reverse=True)
    logger.debug("Pre-filter %r: %d tokens, %d candidates", query, len(tokens), len(ranked))
    return ranked[:max_candidates]


def format_candidates(candidates: Sequence[PreFilterCandidate], nodes: Sequence[Node]) -> str:
    """One line per candidate: ``path: summary [Uses: ...] [Matched: ...]``.

    ``Uses`` lists only imports that are candidates themselves.
    """
    if not candidates:
        return ""

    by_path: Dict[str, Node] = {}
    by_id: Dict[str, Node] = {}
    for node in nodes:
        by_path.setdefault(node.path, node)
        by_id[node.node_id] = node
    candidate_paths = {c.path for c in candidates}

    lines: List[str] = []
    for candidate in candidates:
        node: Optional[Node] = by_path.get(candidate.path)
        if node is None:
            continue
        line = f"{candidate.path}: {node.summary or '(no summary)'}"

        imported = (by_id.get(e.target) for e in node.edges_of(IMPORTS))
        uses = [n.path for n in imported if n is not None and n.path in candidate_paths]
        if uses:
            line += f" [Uses: {', '.join(uses)}]"

        matched = [reason.replace(": ", ":", 1) for reason in candidate.match_reasons]
        if matched:
            line += f" [Matched: {', '.join(matched)}]"
        lines.append(line)
    return "\n".join(lines)
